import calendar
from datetime import datetime, timezone
from pathlib import Path

import certifi
import feedparser
import requests
from bs4 import BeautifulSoup

from fda_intel.errors import SourceFetchError
from fda_intel.models.schemas import FeedSource, RawItem
from fda_intel.sources.fda_site import scrape_warning_letters
from fda_intel.storage.store import read_csv

USER_AGENT = "Mozilla/5.0 (FdaIntel/0.1)"
SOURCE_KINDS = {"rss", "rss_file", "fda_warning_letters"}


def load_sources(path: Path) -> list[FeedSource]:
    """Read the feed catalogue; unknown kinds and blank urls are skipped."""
    sources: list[FeedSource] = []
    for row in read_csv(path):
        kind = (row.get("kind") or "rss").strip()
        url = (row.get("url") or "").strip()
        if kind not in SOURCE_KINDS or not url:
            continue
        sources.append(
            FeedSource(
                source_id=(row.get("source_id") or "").strip(),
                name=(row.get("name") or url).strip(),
                kind=kind,
                url=url,
                category=(row.get("category") or "").strip(),
                priority=_parse_priority(row.get("priority", "")),
                type_hint=(row.get("type_hint") or "").strip(),
                enabled=_parse_enabled(row.get("enabled", "")),
            )
        )
    return sources


def _parse_priority(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 5


def _parse_enabled(value: str) -> bool:
    normalized = (value or "").strip().lower()
    if not normalized:
        return True
    return normalized in {"1", "true", "yes", "y"}


def fetch_source(source: FeedSource, timeout: float) -> list[RawItem]:
    """Fetch one source; any failure surfaces as SourceFetchError."""
    if source.kind == "fda_warning_letters":
        return scrape_warning_letters(source, timeout)

    try:
        if source.kind == "rss_file" or source.url.startswith("file://"):
            content = _read_rss_file(source.url)
        else:
            content = fetch_url_bytes(source.url, timeout)
        feed = feedparser.parse(content)
    except (OSError, requests.RequestException, ValueError) as exc:
        raise SourceFetchError(source.name, str(exc).strip() or exc.__class__.__name__) from exc

    entries = getattr(feed, "entries", []) or []
    if not entries and getattr(feed, "bozo", False):
        reason = getattr(feed, "bozo_exception", None) or "unparseable feed"
        raise SourceFetchError(source.name, str(reason))
    return _entries_to_items(source, entries)


def fetch_url_bytes(url: str, timeout: float) -> bytes:
    response = requests.get(
        url,
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
        verify=certifi.where(),
    )
    response.raise_for_status()
    return response.content


def _read_rss_file(url: str) -> bytes:
    path = Path(url.replace("file://", "", 1))
    return path.read_bytes()


def _entries_to_items(source: FeedSource, entries: list) -> list[RawItem]:
    items: list[RawItem] = []
    for entry in entries:
        title = (entry.get("title") or "").strip()
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue
        items.append(
            RawItem(
                title=title,
                link=link,
                date=_published_at(entry),
                source=source.name,
                source_category=source.category,
                body=html_to_text(entry.get("summary") or entry.get("description") or ""),
                type_hint=source.type_hint,
                priority=source.priority,
            )
        )
    return items


def _published_at(entry) -> str:
    published = entry.get("published_parsed") or entry.get("updated_parsed")
    if published:
        timestamp = calendar.timegm(published)
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    return ""


def html_to_text(value: str) -> str:
    if not value:
        return ""
    if "<" not in value:
        return " ".join(value.split())
    soup = BeautifulSoup(value, "html.parser")
    return " ".join(soup.get_text(" ").split())
