"""Scraper for the FDA warning-letters listing page.

The page layout has changed several times, so a list of row selectors is
tried in order and the first one that yields usable rows wins.
"""

import logging
from urllib.parse import urljoin

import certifi
import requests
from bs4 import BeautifulSoup

from fda_intel.errors import SourceFetchError
from fda_intel.models.schemas import FeedSource, RawItem

logger = logging.getLogger(__name__)

FDA_BASE_URL = "https://www.fda.gov"
WARNING_LETTERS_URL = (
    "https://www.fda.gov/inspections-compliance-enforcement-and-criminal-investigations/"
    "compliance-actions-and-activities/warning-letters"
)
BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
ROW_SELECTORS = (
    "table tbody tr",
    ".views-table tbody tr",
    ".warning-letter-list tr",
    "article.node--type-warning-letter",
    ".view-warning-letters tbody tr",
    ".view-content tbody tr",
)
MIN_TITLE_LENGTH = 10


def scrape_warning_letters(source: FeedSource, timeout: float) -> list[RawItem]:
    try:
        response = requests.get(
            source.url or WARNING_LETTERS_URL,
            headers={"User-Agent": BROWSER_USER_AGENT},
            timeout=timeout,
            verify=certifi.where(),
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SourceFetchError(source.name, str(exc).strip() or exc.__class__.__name__) from exc
    return parse_warning_letters(response.text, source)


def parse_warning_letters(html: str, source: FeedSource) -> list[RawItem]:
    soup = BeautifulSoup(html, "html.parser")
    for selector in ROW_SELECTORS:
        rows = soup.select(selector)
        if not rows:
            continue
        items = [item for item in (_parse_row(row, source) for row in rows) if item]
        if items:
            logger.debug("Selector %s matched %d warning letters", selector, len(items))
            return items
    return []


def _parse_row(row, source: FeedSource) -> RawItem | None:
    link = row.find("a")
    href = link.get("href") if link else None
    cells = row.find_all("td")

    title = link.get_text(" ", strip=True) if link else ""
    if not title and cells:
        title = cells[0].get_text(" ", strip=True)
    if not href or len(title) <= MIN_TITLE_LENGTH:
        return None

    date_text = ""
    if cells:
        date_text = cells[-1].get_text(" ", strip=True)
    if not date_text:
        marker = row.select_one(".date") or row.find("time")
        if marker is not None:
            date_text = marker.get("datetime") or marker.get_text(" ", strip=True)

    return RawItem(
        title=" ".join(title.split()),
        link=href if href.startswith("http") else urljoin(FDA_BASE_URL, href),
        date=date_text,
        source=source.name,
        source_category=source.category or "official",
        type_hint=source.type_hint or "warning_letter",
        priority=source.priority,
    )
