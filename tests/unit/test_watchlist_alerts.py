from pathlib import Path

from fda_intel.alerts.watchlist import (
    build_alerts,
    build_dedupe_key,
    load_watchlist,
    wants_alert,
)
from fda_intel.companies.resolver import CanonicalResolver
from fda_intel.models.schemas import RegulatoryItem, WatchlistEntry


def _resolve(name: str) -> str:
    return CanonicalResolver({}, {}).resolve(name)


def _item(company: str, types: list[str], severity: int, link: str) -> RegulatoryItem:
    return RegulatoryItem(
        id=link,
        title=f"{company}: FDA action",
        link=link,
        raw_company_text=company,
        date="2024-01-05T10:00:00+00:00",
        source="Test",
        source_category="official",
        types=types,
        severity=severity,
        company=company,
    )


def test_load_watchlist_defaults_missing_flags_to_true(tmp_path: Path) -> None:
    path = tmp_path / "watchlist.csv"
    path.write_text(
        "company,alert_on_any,alert_on_warning,alert_on_crl,alert_on_483,webhook\n"
        "Pfizer Inc.,false,true,,no,https://hooks.example.com/pfizer\n"
        ",true,true,true,true,\n",
        encoding="utf-8",
    )

    entries = load_watchlist(path)

    assert len(entries) == 1
    assert entries[0].alert_on_any is False
    assert entries[0].alert_on_crl is True
    assert entries[0].alert_on_483 is False
    assert entries[0].webhook == "https://hooks.example.com/pfizer"


def test_wants_alert_checks_per_type_flags() -> None:
    entry = WatchlistEntry(
        company="Pfizer",
        alert_on_any=False,
        alert_on_warning=False,
        alert_on_crl=True,
        alert_on_483=False,
    )

    assert wants_alert(entry, ["crl"])
    assert not wants_alert(entry, ["form_483"])
    assert not wants_alert(entry, ["recall"])


def test_watched_company_matches_through_resolution() -> None:
    watchlist = [WatchlistEntry(company="PFIZER", alert_on_any=False)]
    items = [
        _item("Pfizer Inc.", ["form_483"], 6, "https://example.com/1"),
        _item("Pfizer Inc.", ["recall"], 7, "https://example.com/2"),
    ]

    alerts = build_alerts(items, watchlist, _resolve, created_at="2024-01-05T12:00:00Z")

    assert len(alerts) == 1
    assert alerts[0].reason == "watchlist"
    assert alerts[0].type == "form_483"
    assert alerts[0].status == "new"
    assert alerts[0].created_at == "2024-01-05T12:00:00Z"


def test_high_severity_alerts_without_watchlist() -> None:
    items = [
        _item("Globex", ["crl"], 9, "https://example.com/3"),
        _item("Globex", ["warning_letter"], 8, "https://example.com/4"),
    ]

    alerts = build_alerts(items, [], _resolve, high_severity_threshold=9)

    assert [alert.reason for alert in alerts] == ["high_severity"]
    assert alerts[0].dedupe_key == "Globex|crl|2024-01-05|globex fda action"


def test_dedupe_key_normalizes_title_and_date() -> None:
    assert (
        build_dedupe_key("Acme", "crl", "12/01/2023", "ACME: CRL, Again!")
        == "Acme|crl|2023-12-01|acme crl again"
    )
    assert build_dedupe_key("Acme", "crl", "", "x") == "Acme|crl|unknown|x"
