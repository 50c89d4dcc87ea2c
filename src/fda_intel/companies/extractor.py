"""Best-guess company names from feed titles, bodies and FDA URLs.

Each strategy is a pure ``(title, body, url) -> Optional[str]`` function.
``STRATEGIES`` lists them in the order they are tried; the first plausible
name wins and ``UNKNOWN_COMPANY`` is returned when none produces one.
"""

import re
from typing import Callable, Optional
from urllib.parse import urlparse

from fda_intel.companies.normalizer import match_key, title_case
from fda_intel.models.schemas import UNKNOWN_COMPANY

Strategy = Callable[[str, str, str], Optional[str]]

_NAME = r"([A-Z0-9][A-Za-z0-9&.,'’\- ]*?)"
_TERM = (
    r"(?=\s*[-–—:|(]|\s*,\s|\s+(?i:regarding|concerning|over|for|after|on|in"
    r"|citing|amid|due|following)\b|\s*$)"
)
_ACTIONS = (
    r"(?i:warning letter|form 483|complete response letter|crl|import alert"
    r"|untitled letter|consent decree)"
)
_FDA = r"(?i:(?:u\.?s\.?\s+)?fda)"

_TITLE_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^(?i:warning letter)\s+(?i:to|issued to|sent to|for)\s+" + _NAME + _TERM,
        r"^" + _NAME + r"\s*[-–—:|]\s*(?:" + _FDA + r"\s+)?" + _ACTIONS,
        r"^" + _NAME + r"\s+(?i:receives?|received|gets?|got|hit with|handed"
        r"|slapped with|issued)\s+(?i:an?\s+|the\s+|fda\s+)*(?:" + _ACTIONS
        + r"|(?i:fda))",
        r"(?i:form 483|483 observations).*?\b(?i:issued to|to|for|at)\s+"
        + _NAME + _TERM,
        r"(?i:complete response letter|\bcrl\b).*?\b(?i:to|for)\s+" + _NAME + _TERM,
        r"^" + _FDA + r"\s+(?i:issues?|sends?|cites?|hands?)\s+.*?\b(?i:to)\s+"
        + _NAME + _TERM,
        r"^" + _FDA + r"\s+(?i:warns|cites|rejects|flags|slams)\s+" + _NAME + _TERM,
        r"(?i:import alert).*?\b(?i:for|against|on)\s+" + _NAME + _TERM,
        r"^" + _NAME + r"\s+[-–—|:]\s+",
    )
)

_BODY_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"\b(?i:letter|warning|alert|action)\s+(?i:to|for|against)\s+" + _NAME + _TERM,
        r"\b(?i:issued to|sent to)\s+" + _NAME + _TERM,
        r"(?:^|[.!?]\s+)" + _NAME + r"\s+(?i:has|have)\s+received\s+(?i:an?|the)\s+"
        r"(?i:warning|letter|form|crl|complete response)",
    )
)

_PROPER_NOUN_RE = re.compile(
    r"^([A-Z][A-Za-z0-9&'’]+(?:\s+[A-Z][A-Za-z0-9&'’]+)*"
    r"(?:,?\s+(?:Pharma|Pharmaceuticals?|Inc|LLC|Ltd|Corp|Company|Co|Biotech"
    r"|Medical|Sciences?|Therapeutics?|Laboratories|Labs?)\.?)?)"
)

_URL_SLUG_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^([a-z0-9-]+?)-\d{5,}-\d{8}$",
        r"^([a-z0-9-]+?)-\d{2}-\d{2}-\d{2,4}$",
        r"^([a-z0-9-]+?)-\d{8}$",
        r"^([a-z0-9-]+?)-\d{6}$",
    )
)
_URL_COMPANY_PATH_RE = re.compile(r"/company/([a-z0-9-]+)")

_PREFIX_RE = re.compile(
    r"^(?:(?:breaking|update|updated|news|alert|exclusive|u\.?s\.?\s+fda|fda)"
    r"\s*:\s*)+",
    re.IGNORECASE,
)
_LEADING_DATE_RE = re.compile(r"^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\s*[-–—:]?\s*")
_TRAILING_DATE_RE = re.compile(r"\s*[-–—:|]?\s*\d{1,2}[/-]\d{1,2}[/-]\d{2,4}$")
_WHITESPACE_RE = re.compile(r"\s+")
_CANDIDATE_TRAILING_RE = re.compile(r"[\s,;:.\-–—'’]+$")

_MONTHS = (
    "january february march april may june july august september october "
    "november december"
).split()
_WEEKDAYS = "monday tuesday wednesday thursday friday saturday sunday".split()
_DENIED_KEYS = frozenset(
    [
        "fda",
        "us fda",
        "usfda",
        "the fda",
        "food and drug administration",
        "warning letter",
        "warning letters",
        "form",
        "form 483",
        "complete response",
        "complete response letter",
        "crl",
        "import alert",
        "consent decree",
        "untitled letter",
        "recall",
        "breaking",
        "update",
        "news",
        "nda",
        "bla",
        "anda",
        "tbd",
        match_key(UNKNOWN_COMPANY),
    ]
    + _MONTHS
    + _WEEKDAYS
)
_ACTION_PHRASES = (
    "warning letter",
    "complete response",
    "form 483",
    "import alert",
    "consent decree",
    "untitled letter",
)


def clean_title(title: str) -> str:
    text = _WHITESPACE_RE.sub(" ", title or "").strip()
    text = _PREFIX_RE.sub("", text)
    text = _LEADING_DATE_RE.sub("", text)
    text = _TRAILING_DATE_RE.sub("", text)
    return text.strip()


def is_plausible_name(name: Optional[str]) -> bool:
    if not name:
        return False
    stripped = name.strip()
    if len(stripped) < 2 or len(stripped) > 100:
        return False

    key = match_key(stripped)
    if not key or key in _DENIED_KEYS:
        return False
    if key.replace(" ", "").isdigit():
        return False
    if key.startswith(("fda ", "us fda ")):
        return False
    return not any(phrase in key for phrase in _ACTION_PHRASES)


def _tidy_candidate(candidate: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", candidate).strip()
    return _CANDIDATE_TRAILING_RE.sub("", collapsed)


def _first_plausible(patterns, text: str) -> Optional[str]:
    if not text:
        return None
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        candidate = _tidy_candidate(match.group(1))
        if is_plausible_name(candidate):
            return candidate
    return None


def from_url(title: str, body: str, url: str) -> Optional[str]:
    if not url:
        return None
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    if not host.endswith("fda.gov"):
        return None

    path = parsed.path.lower().rstrip("/")
    slugs: list[str] = []
    company_match = _URL_COMPANY_PATH_RE.search(path)
    if company_match:
        slugs.append(company_match.group(1))
    last_segment = path.rsplit("/", 1)[-1]
    for pattern in _URL_SLUG_PATTERNS:
        match = pattern.match(last_segment)
        if match:
            slugs.append(match.group(1))
            break

    for slug in slugs:
        candidate = title_case(slug.replace("-", " ").strip())
        if is_plausible_name(candidate):
            return candidate
    return None


def from_title(title: str, body: str, url: str) -> Optional[str]:
    return _first_plausible(_TITLE_PATTERNS, title)


def from_body(title: str, body: str, url: str) -> Optional[str]:
    text = _WHITESPACE_RE.sub(" ", body or "").strip()
    return _first_plausible(_BODY_PATTERNS, text)


def from_leading_proper_noun(title: str, body: str, url: str) -> Optional[str]:
    return _first_plausible((_PROPER_NOUN_RE,), title)


STRATEGIES: tuple[Strategy, ...] = (
    from_url,
    from_title,
    from_body,
    from_leading_proper_noun,
)


def extract_company(
    title: str,
    body: str = "",
    url: str = "",
    strategies: tuple[Strategy, ...] = STRATEGIES,
) -> str:
    cleaned = clean_title(title)
    for strategy in strategies:
        candidate = strategy(cleaned, body or "", url or "")
        if candidate:
            return candidate
    return UNKNOWN_COMPANY


class CompanyExtractor:
    """Memoizes extraction per (title, link) for the lifetime of one cycle."""

    def __init__(self, strategies: tuple[Strategy, ...] = STRATEGIES) -> None:
        self.strategies = strategies
        self._cache: dict[tuple[str, str], str] = {}

    def extract(self, title: str, body: str = "", url: str = "") -> str:
        key = (title or "", url or "")
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        name = extract_company(title, body, url, self.strategies)
        self._cache[key] = name
        return name

    def __len__(self) -> int:
        return len(self._cache)
