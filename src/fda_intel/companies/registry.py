import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from fda_intel.classify.classifier import is_action_type, primary_type, type_severity
from fda_intel.companies.normalizer import match_key, normalize
from fda_intel.companies.resolver import (
    DEFAULT_FUZZY_THRESHOLD,
    CanonicalResolver,
    is_sentinel,
)
from fda_intel.companies.scoring import RiskWeights, compliance_score, risk_score
from fda_intel.companies.similarity import Similarity, token_sort_similarity
from fda_intel.dates import parse_date, to_iso, utc_now
from fda_intel.links import clean_link
from fda_intel.models.schemas import (
    Company,
    Contact,
    KnownCompany,
    RegulatoryItem,
    Violation,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_VIOLATIONS = 100
HOTSPOT_WINDOW = timedelta(days=90)
HOTSPOT_MIN_VIOLATIONS = 2
REPEAT_OFFENDER_MIN_VIOLATIONS = 3

_THEMES = {
    "manufacturing": ("manufactur", "cgmp", "quality"),
    "clinical": ("clinical", "trial", "study"),
    "promotional": ("promot", "market", "advertis"),
}

_FACILITY_RE = re.compile(
    r"(?i:facility|plant|site|location)\s+(?i:in|at|located in|located at)\s+"
    r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?),?\s+([A-Z]{2})\b"
)
_PRODUCT_RE = re.compile(
    r"(?i:drug|product|medication|device|treatment)\s+([A-Z][a-z]+(?:\s+[A-Z]?[a-z]+)?)"
)


@dataclass
class Hotspot:
    company: str
    count: int
    types: list[str]


@dataclass
class Escalation:
    company: str
    from_type: str
    to_type: str


@dataclass
class ThemeHit:
    company: str
    violation: Violation


@dataclass
class RepeatOffender:
    company: str
    total_violations: int
    types: list[str]
    risk_score: int


@dataclass
class PatternReport:
    hotspots: list[Hotspot] = field(default_factory=list)
    escalating: list[Escalation] = field(default_factory=list)
    manufacturing: list[ThemeHit] = field(default_factory=list)
    clinical: list[ThemeHit] = field(default_factory=list)
    promotional: list[ThemeHit] = field(default_factory=list)
    repeat_offenders: list[RepeatOffender] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _unique(values) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def _sort_key(violation: Violation) -> float:
    when = parse_date(violation.date)
    return when.timestamp() if when else float("-inf")


def _within_window(violation: Violation, now: datetime, window: timedelta) -> bool:
    when = parse_date(violation.date)
    return when is not None and when > now - window


def _violation_from(item: RegulatoryItem) -> Violation:
    types = list(item.types or [])
    return Violation(
        id=item.id,
        type=primary_type(types),
        date=item.date,
        title=item.title,
        link=item.link,
        source=item.source,
        summary=item.summary or "",
        severity=int(item.severity or 0),
    )


def _company_from_record(record: dict[str, Any]) -> Company:
    violations = [Violation(**row) for row in record.get("violations", [])]
    contacts = [Contact(**row) for row in record.get("contacts", [])]
    return Company(
        canonical_name=record["canonical_name"],
        aliases=list(record.get("aliases", [])),
        violations=violations,
        risk_score=int(record.get("risk_score", 0)),
        compliance_score=int(record.get("compliance_score", 100)),
        facilities=list(record.get("facilities", [])),
        products=list(record.get("products", [])),
        contacts=contacts,
        response_times=list(record.get("response_times", [])),
        domain=record.get("domain", ""),
        ticker=record.get("ticker", ""),
        first_seen=record.get("first_seen", ""),
        last_updated=record.get("last_updated", ""),
    )


class CompanyRegistry:
    """Canonical companies, their violation histories and the alias index.

    Built once at process start (optionally from a persisted snapshot),
    mutated only through ``upsert_violation`` during a cycle, and saved via
    ``to_snapshot``. Upserts must be applied sequentially.
    """

    def __init__(
        self,
        max_violations: int = DEFAULT_MAX_VIOLATIONS,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        similarity: Similarity = token_sort_similarity,
        weights: RiskWeights | None = None,
        clock: Callable[[], datetime] = utc_now,
        known_companies: dict[str, KnownCompany] | None = None,
    ) -> None:
        self.max_violations = max_violations
        self.weights = weights or RiskWeights()
        self.clock = clock
        self.companies: dict[str, Company] = {}
        self.alias_index: dict[str, str] = {}
        self.canonical_index: dict[str, str] = {}
        self.resolver = CanonicalResolver(
            self.alias_index,
            self.canonical_index,
            similarity=similarity,
            threshold=fuzzy_threshold,
            known_companies=known_companies,
        )

    def __len__(self) -> int:
        return len(self.companies)

    @property
    def total_violations(self) -> int:
        return sum(len(company.violations) for company in self.companies.values())

    def resolve(self, raw_name: str) -> str:
        return self.resolver.resolve(raw_name)

    def get(self, name: str) -> Company | None:
        company = self.companies.get(name)
        if company is not None:
            return company
        if is_sentinel(name):
            return None
        return self.companies.get(self.resolve(name))

    def upsert_violation(self, item: RegulatoryItem) -> bool:
        """Attach ``item`` to its company; True when the violation is new."""
        try:
            raw_name = (item.raw_company_text or "").strip()
            if is_sentinel(raw_name):
                return False
            canonical = self.resolve(raw_name)
            if is_sentinel(canonical):
                return False
            return self._record(canonical, raw_name, item)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed item %r: %s", getattr(item, "id", ""), exc)
            return False

    def _record(self, canonical: str, raw_name: str, item: RegulatoryItem) -> bool:
        violation = _violation_from(item)
        now = self.clock()
        company = self.companies.get(canonical)
        if company is None:
            company = self._create(canonical, now)
        self._register_alias(company, raw_name)

        link_key = clean_link(violation.link) or violation.id
        for existing in company.violations:
            if (clean_link(existing.link) or existing.id) == link_key:
                return False

        merged = sorted(
            company.violations + [violation], key=_sort_key, reverse=True
        )[: self.max_violations]
        if not any(kept is violation for kept in merged):
            return False
        company.violations = merged
        self._rescore(company, now)
        company.last_updated = to_iso(now)
        self._extract_details(company, violation.summary)
        return True

    def _create(self, canonical: str, now: datetime) -> Company:
        company = Company(
            canonical_name=canonical,
            first_seen=to_iso(now),
            last_updated=to_iso(now),
        )
        known = self.resolver.lookup_known(canonical)
        if known:
            company.domain = known.domain
            company.ticker = known.ticker
        self.companies[canonical] = company
        self.canonical_index[match_key(normalize(canonical))] = canonical
        return company

    def _register_alias(self, company: Company, raw_name: str) -> None:
        if raw_name not in company.aliases:
            company.aliases = company.aliases + [raw_name]
        for key in (match_key(normalize(raw_name)), match_key(raw_name)):
            if key:
                self.alias_index.setdefault(key, company.canonical_name)

    def _rescore(self, company: Company, now: datetime) -> None:
        company.risk_score = risk_score(
            company.violations,
            company.first_seen,
            now,
            company.response_times,
            self.weights,
        )
        company.compliance_score = compliance_score(company.violations, now)

    def _extract_details(self, company: Company, text: str) -> None:
        if not text:
            return
        facilities = [f"{city}, {state}" for city, state in _FACILITY_RE.findall(text)]
        products = [name for name in _PRODUCT_RE.findall(text) if len(name) > 3]
        company.facilities = _unique(company.facilities + facilities)
        company.products = _unique(company.products + products)

    def risk_score_for(self, name: str) -> int:
        company = self.get(name)
        if company is None:
            return 0
        return risk_score(
            company.violations,
            company.first_seen,
            self.clock(),
            company.response_times,
            self.weights,
        )

    def detect_patterns(self) -> PatternReport:
        now = self.clock()
        report = PatternReport()
        for name, company in self.companies.items():
            recent = [
                violation
                for violation in company.violations
                if _within_window(violation, now, HOTSPOT_WINDOW)
            ]
            if len(recent) >= HOTSPOT_MIN_VIOLATIONS:
                report.hotspots.append(
                    Hotspot(
                        company=name,
                        count=len(recent),
                        types=_unique(v.type for v in recent),
                    )
                )

            escalation = self._escalation(name, company)
            if escalation:
                report.escalating.append(escalation)

            for violation in company.violations:
                summary = (violation.summary or "").lower()
                if not summary:
                    continue
                for theme, keywords in _THEMES.items():
                    if any(keyword in summary for keyword in keywords):
                        getattr(report, theme).append(
                            ThemeHit(company=name, violation=violation)
                        )

            if len(company.violations) >= REPEAT_OFFENDER_MIN_VIOLATIONS:
                report.repeat_offenders.append(
                    RepeatOffender(
                        company=name,
                        total_violations=len(company.violations),
                        types=_unique(v.type for v in company.violations),
                        risk_score=self.risk_score_for(name),
                    )
                )
        return report

    @staticmethod
    def _escalation(name: str, company: Company) -> Escalation | None:
        dated = [v for v in company.violations if parse_date(v.date) is not None]
        if len(dated) < 2:
            return None
        previous, latest = sorted(dated, key=_sort_key)[-2:]
        if not (is_action_type(previous.type) and is_action_type(latest.type)):
            return None
        if type_severity(latest.type) > type_severity(previous.type):
            return Escalation(company=name, from_type=previous.type, to_type=latest.type)
        return None

    def timeline(self, name: str) -> dict[str, Any] | None:
        company = self.get(name)
        if company is None:
            return None
        return {
            "company": company.canonical_name,
            "aliases": list(company.aliases),
            "risk_score": company.risk_score,
            "compliance_score": company.compliance_score,
            "total_violations": len(company.violations),
            "timeline": [
                {
                    "date": v.date,
                    "type": v.type,
                    "severity": v.severity,
                    "title": v.title,
                    "link": v.link,
                }
                for v in company.violations
            ],
            "facilities": list(company.facilities),
            "products": list(company.products),
        }

    def top_violators(self, limit: int = 10) -> list[dict[str, Any]]:
        ranked = sorted(
            self.companies.values(),
            key=lambda company: len(company.violations),
            reverse=True,
        )
        return [
            {
                "name": company.canonical_name,
                "violations": len(company.violations),
                "risk_score": company.risk_score,
                "compliance_score": company.compliance_score,
            }
            for company in ranked[:limit]
        ]

    def risk_assessment(self) -> dict[str, list[str]]:
        buckets: dict[str, list[str]] = {"high": [], "medium": [], "low": []}
        for name, company in self.companies.items():
            if company.risk_score >= 70:
                buckets["high"].append(name)
            elif company.risk_score >= 40:
                buckets["medium"].append(name)
            else:
                buckets["low"].append(name)
        return buckets

    def attach_contacts(self, name: str, contacts: list[Contact]) -> bool:
        company = self.get(name)
        if company is None:
            return False
        known_emails = {contact.email.lower() for contact in company.contacts}
        fresh = [c for c in contacts if c.email and c.email.lower() not in known_emails]
        company.contacts = company.contacts + fresh
        return True

    def guess_domain(self, name: str) -> str:
        known = self.resolver.lookup_known(name)
        if known:
            return known.domain
        company = self.get(name)
        if company is not None and company.domain:
            return company.domain
        slug = match_key(normalize(name)).replace(" ", "")
        return f"{slug}.com" if slug else ""

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "companies": [asdict(company) for company in self.companies.values()],
            "aliases": dict(self.alias_index),
        }

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any] | None, **kwargs) -> "CompanyRegistry":
        registry = cls(**kwargs)
        if not snapshot:
            return registry
        for record in snapshot.get("companies", []):
            try:
                company = _company_from_record(record)
            except (KeyError, TypeError) as exc:
                logger.warning("Skipping unreadable company record: %s", exc)
                continue
            registry.companies[company.canonical_name] = company
            registry.canonical_index[match_key(normalize(company.canonical_name))] = (
                company.canonical_name
            )
            for alias in company.aliases:
                for key in (match_key(normalize(alias)), match_key(alias)):
                    if key:
                        registry.alias_index.setdefault(key, company.canonical_name)
        for key, canonical in (snapshot.get("aliases") or {}).items():
            if canonical in registry.companies:
                registry.alias_index.setdefault(key, canonical)
        return registry
