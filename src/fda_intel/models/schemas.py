from dataclasses import dataclass, field

UNKNOWN_COMPANY = "Unknown Company"
PLACEHOLDER_COMPANY = "TBD"
REGULATORY_NEWS = "regulatory_news"


@dataclass
class FeedSource:
    source_id: str
    name: str
    kind: str
    url: str
    category: str
    priority: int = 5
    type_hint: str = ""
    enabled: bool = True


@dataclass
class RawItem:
    title: str
    link: str
    date: str
    source: str
    source_category: str = ""
    body: str = ""
    type_hint: str = ""
    priority: int = 5


@dataclass
class Classification:
    types: list[str]
    severity: int


@dataclass
class RegulatoryItem:
    id: str
    title: str
    link: str
    raw_company_text: str
    date: str
    source: str
    source_category: str
    types: list[str]
    severity: int
    summary: str = ""
    company: str = UNKNOWN_COMPANY
    priority: int = 5


@dataclass
class Violation:
    id: str
    type: str
    date: str
    title: str
    link: str
    source: str
    summary: str
    severity: int


@dataclass
class Contact:
    name: str
    email: str
    title: str = ""


@dataclass
class Company:
    canonical_name: str
    aliases: list[str] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    risk_score: int = 0
    compliance_score: int = 100
    facilities: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    contacts: list[Contact] = field(default_factory=list)
    response_times: list[float] = field(default_factory=list)
    domain: str = ""
    ticker: str = ""
    first_seen: str = ""
    last_updated: str = ""


@dataclass
class KnownCompany:
    canonical: str
    domain: str
    ticker: str


@dataclass
class WatchlistEntry:
    company: str
    alert_on_any: bool = True
    alert_on_warning: bool = True
    alert_on_crl: bool = True
    alert_on_483: bool = True
    webhook: str = ""


@dataclass
class Alert:
    alert_id: str
    company: str
    type: str
    severity: int
    date: str
    title: str
    link: str
    reason: str
    dedupe_key: str
    created_at: str
    status: str


@dataclass
class CycleResult:
    total_items: int
    new_violations: int
    companies_tracked: int
    failed_sources: list[str] = field(default_factory=list)
    alerts: int = 0
