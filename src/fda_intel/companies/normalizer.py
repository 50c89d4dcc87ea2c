"""Company-name cleanup and lookup keys.

``normalize`` produces the display-cased name the resolver works from.
``match_key`` produces the case, accent and punctuation insensitive key
that the alias index and the known-company table are keyed on.
"""

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[\s,;:.&\-–—]+$")

_LEGAL_SUFFIX_RE = re.compile(
    r"(?:,\s*|\s+)(?:inc|incorporated|llc|l\.l\.c|ltd|limited|corp|corporation"
    r"|company|co|plc|gmbh|s\.?a|ag|n\.?v|b\.?v|kg|srl|s\.?p\.?a|lp|llp"
    r"|pvt\.? ltd|pty ltd)\.?$",
    re.IGNORECASE,
)

_PHARMA_SUFFIX_RE = re.compile(
    r"\s+(?:pharmaceuticals?|pharma|biopharma|biotech|biotechnology"
    r"|therapeutics?|laboratories|labs?|holdings?|group|international|global"
    r"|usa|us|health|healthcare|sciences?|medical|technologies)\.?$",
    re.IGNORECASE,
)

MIN_LEGAL_REMAINDER = 3
MIN_PHARMA_REMAINDER = 5

_KEY_SEPARATORS_RE = re.compile(r"[-/_]+")
_KEY_STRIP_RE = re.compile(r"[^a-z0-9\s]")


def _tidy(name: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", name).strip()
    return _TRAILING_PUNCT_RE.sub("", collapsed)


def normalize(raw_name: str) -> str:
    name = _tidy(raw_name or "")
    if not name:
        return ""

    stripped = _tidy(_LEGAL_SUFFIX_RE.sub("", name, count=1))
    if len(stripped) >= MIN_LEGAL_REMAINDER:
        name = stripped

    stripped = _tidy(_PHARMA_SUFFIX_RE.sub("", name, count=1))
    if len(stripped) >= MIN_PHARMA_REMAINDER:
        name = stripped

    return name


def match_key(name: str) -> str:
    if not name:
        return ""
    folded = unicodedata.normalize("NFKD", name)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    lowered = _KEY_SEPARATORS_RE.sub(" ", folded.lower())
    cleaned = _KEY_STRIP_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def title_case(name: str) -> str:
    words = []
    for word in name.split(" "):
        if not word:
            continue
        words.append(word[0].upper() + word[1:].lower())
    return " ".join(words)
