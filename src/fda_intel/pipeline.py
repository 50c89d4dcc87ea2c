import hashlib
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from dataclasses import asdict
from datetime import datetime
from typing import Callable

from fda_intel.alerts.dispatcher import AlertNotifier
from fda_intel.alerts.watchlist import load_watchlist
from fda_intel.classify.classifier import apply_type_hint, classify
from fda_intel.companies.extractor import CompanyExtractor
from fda_intel.companies.registry import CompanyRegistry
from fda_intel.companies.resolver import is_sentinel
from fda_intel.config import AppConfig, load_config
from fda_intel.dates import parse_date, to_iso, utc_now
from fda_intel.enrichment.contacts import ContactEnricher, HunterEnricher, enrich_company
from fda_intel.errors import CycleInProgressError, PersistenceError, SourceFetchError
from fda_intel.links import clean_link
from fda_intel.models.schemas import (
    UNKNOWN_COMPANY,
    CycleResult,
    FeedSource,
    RawItem,
    RegulatoryItem,
)
from fda_intel.sources.feeds import fetch_source, load_sources
from fda_intel.storage.store import JsonDocumentStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[FeedSource, float], list[RawItem]]

# Per-type document keys, in the order they are written.
TYPE_DOCUMENTS = (
    ("warning_letters", "warning_letter"),
    ("crls", "crl"),
    ("form_483s", "form_483"),
)
FETCH_GRACE_SECONDS = 5


def item_id(link: str, title: str) -> str:
    basis = clean_link(link) or title
    return hashlib.sha1(basis.encode("utf-8")).hexdigest()[:16]


def _sort_key(item: RegulatoryItem) -> tuple[int, float]:
    when = parse_date(item.date)
    return item.severity, when.timestamp() if when else 0.0


def _source_label(source: FeedSource) -> str:
    return "FDA site" if source.kind == "fda_warning_letters" else "RSS"


class IngestionPipeline:
    """One refresh cycle: fetch, classify, extract, dedupe, upsert, persist, notify."""

    def __init__(
        self,
        config: AppConfig,
        registry: CompanyRegistry,
        store: JsonDocumentStore,
        sources: list[FeedSource],
        fetcher: Fetcher = fetch_source,
        notifier: AlertNotifier | None = None,
        enricher: ContactEnricher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.registry = registry
        self.store = store
        self.sources = sources
        self.fetcher = fetcher
        self.notifier = notifier
        self.enricher = enricher
        self.clock = clock
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run_cycle(self) -> CycleResult:
        if not self._lock.acquire(blocking=False):
            raise CycleInProgressError("A refresh cycle is already running")
        try:
            return self._run_cycle()
        finally:
            self._lock.release()

    def _run_cycle(self) -> CycleResult:
        raw_items, failed_sources = self.fetch_all()
        items = self.build_items(raw_items)
        unique_items = self.dedupe(items)

        new_items: list[RegulatoryItem] = []
        for item in unique_items:
            if not is_sentinel(item.raw_company_text):
                canonical = self.registry.resolve(item.raw_company_text)
                if not is_sentinel(canonical):
                    item.company = canonical
            if self.registry.upsert_violation(item):
                new_items.append(item)

        if self.enricher is not None:
            self._enrich(new_items)

        unique_items.sort(key=_sort_key, reverse=True)
        self.save(unique_items)

        alert_count = 0
        if self.notifier is not None:
            alert_count = len(self.notifier.notify(new_items))

        result = CycleResult(
            total_items=len(unique_items),
            new_violations=len(new_items),
            companies_tracked=len(self.registry),
            failed_sources=failed_sources,
            alerts=alert_count,
        )
        print(
            f"Total items: {result.total_items} | "
            f"New violations: {result.new_violations} | "
            f"Companies tracked: {result.companies_tracked}"
        )
        if failed_sources:
            print(f"Failed sources: {', '.join(failed_sources)}")
        return result

    def enabled_sources(self) -> list[FeedSource]:
        return [
            source
            for source in self.sources
            if source.enabled
            and (self.config.scrape_fda_site or source.kind != "fda_warning_letters")
        ]

    def fetch_all(self) -> tuple[list[RawItem], list[str]]:
        """Fetch every enabled source in bounded batches, keeping source order."""
        sources = self.enabled_sources()
        print(f"Sources processed: {len(sources)}")
        batch_size = max(1, self.config.fetch_batch_size)
        raw_items: list[RawItem] = []
        failed: list[str] = []
        for start in range(0, len(sources), batch_size):
            batch = sources[start : start + batch_size]
            batch_items, batch_failed = self._fetch_batch(batch)
            for items in batch_items:
                raw_items.extend(items)
            failed.extend(batch_failed)
        return raw_items, failed

    def _fetch_batch(self, batch: list[FeedSource]) -> tuple[list[list[RawItem]], list[str]]:
        timeout = self.config.fetch_timeout
        results: list[list[RawItem]] = [[] for _ in batch]
        failed_indexes: set[int] = set()
        executor = ThreadPoolExecutor(max_workers=len(batch))
        futures = {
            executor.submit(self.fetcher, source, timeout): index
            for index, source in enumerate(batch)
        }
        try:
            for future in as_completed(futures, timeout=timeout + FETCH_GRACE_SECONDS):
                index = futures[future]
                source = batch[index]
                label = _source_label(source)
                try:
                    items = future.result()
                except SourceFetchError as exc:
                    print(f"{label} {source.name}: fetch failed: {exc.reason}")
                    failed_indexes.add(index)
                    continue
                except Exception as exc:  # noqa: BLE001 - log and continue for failing sources
                    reason = str(exc).strip() or exc.__class__.__name__
                    print(f"{label} {source.name}: fetch failed: {reason}")
                    failed_indexes.add(index)
                    continue
                results[index] = items
                print(f"{label} {source.name}: fetched {len(items)} items")
        except FuturesTimeoutError:
            for future, index in futures.items():
                if not future.done():
                    source = batch[index]
                    print(f"{_source_label(source)} {source.name}: fetch failed: timed out")
                    failed_indexes.add(index)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results, [batch[index].name for index in sorted(failed_indexes)]

    def build_items(self, raw_items: list[RawItem]) -> list[RegulatoryItem]:
        extractor = CompanyExtractor()
        items: list[RegulatoryItem] = []
        for raw in raw_items:
            classification = apply_type_hint(classify(raw.title, raw.body), raw.type_hint)
            parsed = parse_date(raw.date)
            items.append(
                RegulatoryItem(
                    id=item_id(raw.link, raw.title),
                    title=raw.title,
                    link=raw.link,
                    raw_company_text=extractor.extract(raw.title, raw.body, raw.link),
                    date=to_iso(parsed) if parsed else "",
                    source=raw.source,
                    source_category=raw.source_category,
                    types=classification.types,
                    severity=classification.severity,
                    summary=raw.body,
                    company=UNKNOWN_COMPANY,
                    priority=raw.priority,
                )
            )
        return items

    @staticmethod
    def dedupe(items: list[RegulatoryItem]) -> list[RegulatoryItem]:
        seen: set[str] = set()
        unique: list[RegulatoryItem] = []
        for item in items:
            key = clean_link(item.link) or item.id
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique

    def save(self, items: list[RegulatoryItem]) -> bool:
        """Write the cycle's documents; stops at the first failed write."""
        rows = [asdict(item) for item in items]
        by_type = {
            key: [row for row in rows if type_name in row["types"]]
            for key, type_name in TYPE_DOCUMENTS
        }
        summary = {
            "last_update": to_iso(self.clock()),
            "total_items": len(rows),
            "companies_tracked": len(self.registry),
            "by_type": {key: len(value) for key, value in by_type.items()},
        }
        documents = [("items", rows), *by_type.items()]
        documents.append(("registry", self.registry.to_snapshot()))
        documents.append(("patterns", self.registry.detect_patterns().to_dict()))
        documents.append(("summary", summary))

        try:
            for key, value in documents:
                self.store.put(key, value)
        except PersistenceError as exc:
            logger.error("Cycle save aborted: %s", exc)
            return False
        return True

    def _enrich(self, new_items: list[RegulatoryItem]) -> None:
        companies = {item.company for item in new_items if not is_sentinel(item.company)}
        for name in sorted(companies):
            company = self.registry.get(name)
            if company is None or company.contacts:
                continue
            enrich_company(self.registry, self.enricher, name)


def build_pipeline(config: AppConfig) -> IngestionPipeline:
    store = JsonDocumentStore(config.data_dir)
    registry = CompanyRegistry.from_snapshot(
        store.get("registry"),
        max_violations=config.max_violations,
        fuzzy_threshold=config.fuzzy_threshold,
    )
    notifier = AlertNotifier(
        config.alerts_csv,
        load_watchlist(config.watchlist_csv),
        registry.resolve,
        channel=config.alert_channel,
        enabled=config.alerts_enabled,
        slack_webhook_url=config.slack_webhook_url,
        high_severity_threshold=config.high_severity_threshold,
    )
    enricher = HunterEnricher(config.hunter_api_key) if config.hunter_api_key else None
    return IngestionPipeline(
        config,
        registry,
        store,
        load_sources(config.sources_csv),
        notifier=notifier,
        enricher=enricher,
    )


def run_daily() -> None:
    logging.basicConfig(level=logging.WARNING)
    config = load_config()
    if (
        config.alerts_enabled
        and config.alert_channel == "slack"
        and not config.slack_webhook_url
    ):
        print(
            "ERROR: ALERTS_ENABLED=true and ALERT_CHANNEL=slack, but "
            "SLACK_WEBHOOK_URL is empty."
        )
        raise SystemExit(1)
    build_pipeline(config).run_cycle()


if __name__ == "__main__":
    run_daily()
