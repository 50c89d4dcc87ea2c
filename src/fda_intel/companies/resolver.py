from typing import Optional

from fda_intel.companies.normalizer import match_key, normalize, title_case
from fda_intel.companies.similarity import Similarity, token_sort_similarity
from fda_intel.models.schemas import (
    PLACEHOLDER_COMPANY,
    UNKNOWN_COMPANY,
    KnownCompany,
)

DEFAULT_FUZZY_THRESHOLD = 0.85

SENTINEL_NAMES = frozenset({UNKNOWN_COMPANY, PLACEHOLDER_COMPANY, ""})

_PLACEHOLDER_KEYS = frozenset(
    {match_key(PLACEHOLDER_COMPANY), match_key(normalize(PLACEHOLDER_COMPANY))}
)
_SENTINEL_KEYS = _PLACEHOLDER_KEYS | {
    match_key(UNKNOWN_COMPANY),
    match_key(normalize(UNKNOWN_COMPANY)),
}


def _known(canonical: str, domain: str, ticker: str, *variants: str):
    company = KnownCompany(canonical=canonical, domain=domain, ticker=ticker)
    return [(match_key(variant), company) for variant in variants]


KNOWN_COMPANIES: dict[str, KnownCompany] = dict(
    _known("Pfizer Inc.", "pfizer.com", "PFE", "Pfizer")
    + _known("Merck & Co., Inc.", "merck.com", "MRK", "Merck", "Merck & Co", "MSD")
    + _known(
        "Johnson & Johnson",
        "jnj.com",
        "JNJ",
        "Johnson & Johnson",
        "Johnson and Johnson",
        "J&J",
    )
    + _known(
        "F. Hoffmann-La Roche Ltd",
        "roche.com",
        "RHHBY",
        "Roche",
        "Hoffmann-La Roche",
        "F. Hoffmann-La Roche",
    )
    + _known("Novartis AG", "novartis.com", "NVS", "Novartis")
    + _known("Sanofi", "sanofi.com", "SNY", "Sanofi")
    + _known(
        "GlaxoSmithKline plc",
        "gsk.com",
        "GSK",
        "GlaxoSmithKline",
        "GSK",
    )
    + _known("AstraZeneca PLC", "astrazeneca.com", "AZN", "AstraZeneca")
    + _known("AbbVie Inc.", "abbvie.com", "ABBV", "AbbVie")
    + _known(
        "Bristol Myers Squibb Company",
        "bms.com",
        "BMY",
        "Bristol Myers Squibb",
        "Bristol-Myers Squibb",
        "BMS",
    )
    + _known("Eli Lilly and Company", "lilly.com", "LLY", "Eli Lilly", "Lilly")
    + _known("Amgen Inc.", "amgen.com", "AMGN", "Amgen")
    + _known("Gilead Sciences, Inc.", "gilead.com", "GILD", "Gilead")
    + _known("Biogen Inc.", "biogen.com", "BIIB", "Biogen")
    + _known("Moderna, Inc.", "modernatx.com", "MRNA", "Moderna")
    + _known(
        "Regeneron Pharmaceuticals, Inc.",
        "regeneron.com",
        "REGN",
        "Regeneron",
    )
    + _known("Bayer AG", "bayer.com", "BAYRY", "Bayer")
    + _known(
        "Takeda Pharmaceutical Company Limited",
        "takeda.com",
        "TAK",
        "Takeda",
    )
    + _known(
        "Teva Pharmaceutical Industries Ltd.",
        "tevapharm.com",
        "TEVA",
        "Teva",
        "Teva Pharmaceutical Industries",
    )
    + _known("Novo Nordisk A/S", "novonordisk.com", "NVO", "Novo Nordisk")
    + _known("Viatris Inc.", "viatris.com", "VTRS", "Viatris", "Mylan")
)


def _sentinel_keys(name: str) -> set[str]:
    return {match_key(name), match_key(normalize(name))}


def is_sentinel(name: Optional[str]) -> bool:
    stripped = (name or "").strip()
    if stripped in SENTINEL_NAMES:
        return True
    return bool(_sentinel_keys(stripped) & _SENTINEL_KEYS)


def canonical_sentinel(name: Optional[str]) -> str:
    """Maps any spelling of a placeholder name onto its canonical form."""
    stripped = (name or "").strip()
    if not stripped:
        return ""
    if _sentinel_keys(stripped) & _PLACEHOLDER_KEYS:
        return PLACEHOLDER_COMPANY
    return UNKNOWN_COMPANY


class CanonicalResolver:
    """Maps raw company text to a stable canonical display name.

    Lookup order: known-company table, learned aliases, fuzzy match against
    canonical names already in use, then a title-cased new identity. The
    alias and canonical indexes are owned by the caller (the registry) and
    read here by reference.
    """

    def __init__(
        self,
        alias_index: dict[str, str],
        canonical_index: dict[str, str],
        similarity: Similarity = token_sort_similarity,
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
        known_companies: dict[str, KnownCompany] | None = None,
    ) -> None:
        self.alias_index = alias_index
        self.canonical_index = canonical_index
        self.similarity = similarity
        self.threshold = threshold
        self.known_companies = (
            KNOWN_COMPANIES if known_companies is None else known_companies
        )

    def _candidate_keys(self, raw_name: str) -> list[str]:
        keys: list[str] = []
        for key in (match_key(normalize(raw_name)), match_key(raw_name)):
            if key and key not in keys:
                keys.append(key)
        return keys

    def lookup_known(self, name: str) -> KnownCompany | None:
        for key in self._candidate_keys(name):
            known = self.known_companies.get(key)
            if known:
                return known
        return None

    def fuzzy_match(self, key: str) -> str | None:
        best_name = None
        best_score = 0.0
        for canonical_key, canonical in self.canonical_index.items():
            score = self.similarity(key, canonical_key)
            if score > best_score:
                best_name, best_score = canonical, score
        if best_name is not None and best_score >= self.threshold:
            return best_name
        return None

    def resolve(self, raw_name: str) -> str:
        if is_sentinel(raw_name):
            return canonical_sentinel(raw_name)

        known = self.lookup_known(raw_name)
        if known:
            return known.canonical

        keys = self._candidate_keys(raw_name)
        for key in keys:
            canonical = self.alias_index.get(key)
            if canonical:
                return canonical

        if not keys:
            return UNKNOWN_COMPANY

        matched = self.fuzzy_match(keys[0])
        if matched:
            return matched

        return title_case(normalize(raw_name))
