from datetime import datetime, timezone

import requests

from fda_intel.companies.registry import CompanyRegistry
from fda_intel.enrichment import contacts
from fda_intel.enrichment.contacts import ContactEnricher, HunterEnricher, enrich_company
from fda_intel.models.schemas import Contact, RegulatoryItem


def _registry_with(company: str) -> CompanyRegistry:
    registry = CompanyRegistry(clock=lambda: datetime(2024, 1, 10, tzinfo=timezone.utc))
    registry.upsert_violation(
        RegulatoryItem(
            id="i1",
            title=f"Warning Letter to {company}",
            link="https://example.com/i1",
            raw_company_text=company,
            date="2024-01-05T00:00:00+00:00",
            source="Test",
            source_category="official",
            types=["warning_letter"],
            severity=8,
        )
    )
    return registry


class _Response:
    def __init__(self, payload: dict) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self._payload


def test_hunter_maps_domain_search_results(monkeypatch) -> None:
    calls: list[dict] = []

    def fake_get(url, params, timeout):
        calls.append({"url": url, "params": params})
        return _Response(
            {
                "data": {
                    "emails": [
                        {
                            "value": "jane.doe@globex.com",
                            "first_name": "Jane",
                            "last_name": "Doe",
                            "position": "VP Regulatory Affairs",
                        },
                        {"value": "", "first_name": "No", "last_name": "Email"},
                    ]
                }
            }
        )

    monkeypatch.setattr(contacts.requests, "get", fake_get)

    found = HunterEnricher("key-123").find_contacts("Globex", "globex.com")

    assert calls[0]["url"] == contacts.HUNTER_DOMAIN_SEARCH_URL
    assert calls[0]["params"] == {"domain": "globex.com", "api_key": "key-123", "limit": 10}
    assert found == [Contact("Jane Doe", "jane.doe@globex.com", "VP Regulatory Affairs")]


def test_hunter_failures_return_no_contacts(monkeypatch) -> None:
    def fake_get(url, params, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(contacts.requests, "get", fake_get)
    enricher = HunterEnricher("key-123")

    assert enricher.find_contacts("Globex", "globex.com") == []
    assert enricher.find_contacts("Globex", "not-a-domain") == []
    assert HunterEnricher("").find_contacts("Globex", "globex.com") == []


def test_enrich_company_guesses_domain_and_attaches() -> None:
    registry = _registry_with("Globex")
    seen: list[tuple[str, str]] = []

    class StaticEnricher(ContactEnricher):
        def find_contacts(self, company, domain=None):
            seen.append((company, domain))
            return [Contact("Jane Doe", f"jane@{domain}")]

    found = enrich_company(registry, StaticEnricher(), "GLOBEX")

    assert seen == [("Globex", "globex.com")]
    assert found == [Contact("Jane Doe", "jane@globex.com")]
    company = registry.get("Globex")
    assert company.domain == "globex.com"
    assert company.contacts == found


def test_enrich_unknown_company_is_a_no_op() -> None:
    registry = _registry_with("Globex")

    assert enrich_company(registry, ContactEnricher(), "Initech") == []
