import uuid
from pathlib import Path
from typing import Callable

from fda_intel.classify.classifier import primary_type
from fda_intel.companies.resolver import is_sentinel
from fda_intel.dates import parse_date
from fda_intel.models.schemas import Alert, RegulatoryItem, WatchlistEntry
from fda_intel.storage.store import read_csv

DEFAULT_HIGH_SEVERITY = 9

_TYPE_CRITERIA = {
    "warning_letter": "alert_on_warning",
    "crl": "alert_on_crl",
    "form_483": "alert_on_483",
}


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if not normalized:
        return default
    return normalized in {"1", "true", "yes", "y"}


def load_watchlist(path: Path) -> list[WatchlistEntry]:
    entries: list[WatchlistEntry] = []
    for row in read_csv(path):
        company = (row.get("company") or "").strip()
        if not company:
            continue
        entries.append(
            WatchlistEntry(
                company=company,
                alert_on_any=_parse_bool(row.get("alert_on_any"), True),
                alert_on_warning=_parse_bool(row.get("alert_on_warning"), True),
                alert_on_crl=_parse_bool(row.get("alert_on_crl"), True),
                alert_on_483=_parse_bool(row.get("alert_on_483"), True),
                webhook=(row.get("webhook") or "").strip(),
            )
        )
    return entries


def normalize_title(title: str) -> str:
    if not title:
        return ""
    lowered = title.strip().lower()
    cleaned = "".join(ch if ch.isalnum() or ch.isspace() else " " for ch in lowered)
    return " ".join(cleaned.split())


def published_date(value: str) -> str:
    parsed = parse_date(value)
    return parsed.date().isoformat() if parsed else "unknown"


def build_dedupe_key(company: str, type_name: str, date: str, title: str) -> str:
    return f"{company}|{type_name}|{published_date(date)}|{normalize_title(title)}"


def wants_alert(entry: WatchlistEntry, types: list[str]) -> bool:
    if entry.alert_on_any:
        return True
    return any(
        getattr(entry, criterion) and type_name in types
        for type_name, criterion in _TYPE_CRITERIA.items()
    )


def index_watchlist(
    watchlist: list[WatchlistEntry],
    resolve: Callable[[str], str],
) -> dict[str, WatchlistEntry]:
    """Key watchlist entries by the canonical name they resolve to."""
    indexed: dict[str, WatchlistEntry] = {}
    for entry in watchlist:
        canonical = resolve(entry.company)
        if not is_sentinel(canonical):
            indexed.setdefault(canonical, entry)
    return indexed


def build_alerts(
    items: list[RegulatoryItem],
    watchlist: list[WatchlistEntry],
    resolve: Callable[[str], str],
    high_severity_threshold: int = DEFAULT_HIGH_SEVERITY,
    created_at: str = "",
) -> list[Alert]:
    """One alert per item: watched companies first, then high severity."""
    watched = index_watchlist(watchlist, resolve)
    alerts: list[Alert] = []
    for item in items:
        entry = watched.get(item.company)
        if entry is not None and wants_alert(entry, item.types):
            reason = "watchlist"
        elif item.severity >= high_severity_threshold:
            reason = "high_severity"
        else:
            continue

        type_name = primary_type(item.types)
        alerts.append(
            Alert(
                alert_id=str(uuid.uuid4()),
                company=item.company,
                type=type_name,
                severity=item.severity,
                date=item.date,
                title=item.title,
                link=item.link,
                reason=reason,
                dedupe_key=build_dedupe_key(item.company, type_name, item.date, item.title),
                created_at=created_at,
                status="new",
            )
        )
    return alerts
