import logging

import requests

from fda_intel.companies.registry import CompanyRegistry
from fda_intel.models.schemas import Contact

logger = logging.getLogger(__name__)

HUNTER_DOMAIN_SEARCH_URL = "https://api.hunter.io/v2/domain-search"


class ContactEnricher:
    """Looks up people at a company. The default finds nobody."""

    def find_contacts(self, company: str, domain: str | None = None) -> list[Contact]:
        return []


class HunterEnricher(ContactEnricher):
    def __init__(self, api_key: str, timeout: float = 15, limit: int = 10) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.limit = limit

    def find_contacts(self, company: str, domain: str | None = None) -> list[Contact]:
        if not self.api_key:
            return []
        if not domain or "." not in domain:
            logger.warning("Invalid domain for Hunter lookup of %s: %r", company, domain)
            return []

        try:
            response = requests.get(
                HUNTER_DOMAIN_SEARCH_URL,
                params={"domain": domain, "api_key": self.api_key, "limit": self.limit},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Hunter lookup failed for %s: %s", domain, exc)
            return []

        emails = (payload.get("data") or {}).get("emails") or []
        contacts: list[Contact] = []
        for entry in emails:
            email = (entry.get("value") or "").strip()
            if not email:
                continue
            name = f"{entry.get('first_name') or ''} {entry.get('last_name') or ''}".strip()
            contacts.append(
                Contact(name=name, email=email, title=entry.get("position") or "")
            )
        print(f"Hunter {domain}: found {len(contacts)} contacts")
        return contacts


def enrich_company(
    registry: CompanyRegistry,
    enricher: ContactEnricher,
    name: str,
) -> list[Contact]:
    company = registry.get(name)
    if company is None:
        return []

    domain = company.domain or registry.guess_domain(company.canonical_name)
    if domain and not company.domain:
        company.domain = domain

    contacts = enricher.find_contacts(company.canonical_name, domain)
    if contacts:
        registry.attach_contacts(company.canonical_name, contacts)
    return contacts
