from fda_intel.companies.extractor import (
    CompanyExtractor,
    clean_title,
    extract_company,
    is_plausible_name,
)
from fda_intel.models.schemas import UNKNOWN_COMPANY


def test_extract_from_warning_letter_title_with_trailing_date() -> None:
    name = extract_company("Warning Letter to Acme Pharmaceuticals - 12/01/2023")

    assert name == "Acme Pharmaceuticals"


def test_extract_prefers_fda_url_slug() -> None:
    url = (
        "https://www.fda.gov/inspections-compliance-enforcement-and-criminal-"
        "investigations/warning-letters/sunrise-labs-llc-654321-03152024"
    )

    assert extract_company("Untitled posting", url=url) == "Sunrise Labs Llc"


def test_extract_ignores_slugs_from_other_hosts() -> None:
    name = extract_company(
        "Acme receives warning letter",
        url="https://news.example.com/globex-inc-12345678",
    )

    assert name == "Acme"


def test_extract_after_stripping_breaking_prefix() -> None:
    assert extract_company("BREAKING: Globex Corp - FDA Warning Letter") == "Globex Corp"


def test_extract_from_fda_verb_headline() -> None:
    assert extract_company("FDA warns Initech over misleading claims") == "Initech"


def test_extract_falls_back_to_body() -> None:
    name = extract_company(
        "Agency posts new enforcement documents",
        "The agency sent a warning letter to Hooli Biotech regarding sterility failures.",
    )

    assert name == "Hooli Biotech"


def test_extract_falls_back_to_leading_proper_noun() -> None:
    assert extract_company("Contoso Therapeutics announces layoffs") == "Contoso Therapeutics"


def test_extract_returns_sentinel_when_nothing_plausible() -> None:
    name = extract_company(
        "FDA announces new guidance on digital health tools",
        url="https://www.fda.gov/news-events/press-announcements/digital-health-guidance",
    )

    assert name == UNKNOWN_COMPANY


def test_plausibility_rejects_agency_and_action_words() -> None:
    assert not is_plausible_name("FDA")
    assert not is_plausible_name("Warning Letter")
    assert not is_plausible_name("December")
    assert not is_plausible_name("12345")
    assert not is_plausible_name("US FDA Office")
    assert not is_plausible_name("")
    assert is_plausible_name("Acme")


def test_clean_title_strips_stacked_prefixes_and_dates() -> None:
    assert clean_title("UPDATE: FDA: Acme receives CRL 01/02/2024") == "Acme receives CRL"


def test_company_extractor_memoizes_by_title_and_link() -> None:
    extractor = CompanyExtractor()
    title = "Agency posts new enforcement documents"
    link = "https://news.example.com/post"

    first = extractor.extract(title, "A warning letter to Hooli Biotech regarding sterility.", link)
    second = extractor.extract(title, "", link)

    assert first == "Hooli Biotech"
    assert second == "Hooli Biotech"
    assert len(extractor) == 1
