import re

_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#].*$")


def clean_link(link: str) -> str:
    """Dedup key for an item: no query string or fragment, case-folded."""
    if not link:
        return ""
    return _QUERY_OR_FRAGMENT_RE.sub("", link.strip()).lower()
