from typing import Callable

from rapidfuzz import fuzz

# Any callable returning a score in [0, 1] can stand in for the default.
Similarity = Callable[[str, str], float]


def token_sort_similarity(a: str, b: str) -> float:
    """Word-order insensitive edit similarity in [0, 1]."""
    if not a or not b:
        return 0.0
    return fuzz.token_sort_ratio(a, b) / 100.0
