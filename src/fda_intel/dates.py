import re
from datetime import datetime, timezone

_NUMERIC_US_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_TEXT_FORMATS = ("%B %d, %Y", "%B %d %Y", "%b %d, %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value: str | None) -> datetime | None:
    """Parse the date formats seen in feeds and FDA listing pages.

    Returns an aware UTC datetime, or None when nothing matches.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    cleaned = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        parsed = _parse_loose(text)
    if parsed is None:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_loose(text: str) -> datetime | None:
    match = _NUMERIC_US_RE.search(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    compact = " ".join(text.replace(".", "").split())
    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(compact, fmt)
        except ValueError:
            continue
    return None


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()
