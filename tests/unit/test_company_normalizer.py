from fda_intel.companies.normalizer import match_key, normalize, title_case


def test_normalize_strips_legal_then_industry_suffix() -> None:
    assert normalize("Sunrise Biologics Pharmaceuticals, Inc.") == "Sunrise Biologics"
    assert normalize("Globex Corp.") == "Globex"
    assert normalize("Initech Holdings LLC") == "Initech"


def test_normalize_keeps_suffix_when_remainder_is_too_short() -> None:
    assert normalize("Acme Pharmaceuticals") == "Acme Pharmaceuticals"
    assert normalize("AB Inc") == "AB Inc"


def test_normalize_collapses_whitespace_and_trailing_punctuation() -> None:
    assert normalize("  Northwind   Traders ,  ") == "Northwind Traders"
    assert normalize("") == ""


def test_match_key_folds_case_accents_and_punctuation() -> None:
    assert match_key("Laboratoires Sérvier-France") == "laboratoires servier france"
    assert match_key("PFIZER, INC.") == "pfizer inc"
    assert match_key("Merck & Co") == "merck co"


def test_title_case_lowercases_tail_of_each_word() -> None:
    assert title_case("ACME PHARMACEUTICALS") == "Acme Pharmaceuticals"
    assert title_case("acme  labs") == "Acme Labs"
