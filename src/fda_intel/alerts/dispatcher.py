from __future__ import annotations

from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import requests

from fda_intel.alerts.watchlist import (
    DEFAULT_HIGH_SEVERITY,
    build_alerts,
    index_watchlist,
)
from fda_intel.models.schemas import Alert, RegulatoryItem, WatchlistEntry
from fda_intel.storage.store import append_csv, read_csv, write_csv


def dispatch_alerts(
    alerts: list[Alert],
    channel: str,
    enabled: bool,
    slack_webhook_url: str,
) -> set[str]:
    """Print alerts to console and optionally dispatch to Slack."""
    if not alerts:
        print("No alerts generated.")
        return set()

    print(f"Alerts generated: {len(alerts)}")
    for alert in alerts:
        print(
            "ALERT | "
            f"{alert.company} | "
            f"{alert.type} | "
            f"severity {alert.severity} | "
            f"{alert.reason} | "
            f"{alert.link}"
        )

    if not enabled:
        print("Dispatch disabled. Set ALERTS_ENABLED=true to enable.")
        return set()

    if channel != "slack":
        return set()

    if not slack_webhook_url:
        print("Slack webhook URL not set. Skipping dispatch.")
        return set()

    sent_ids: set[str] = set()
    for alert in alerts:
        payload = {
            "text": (
                f"[{alert.type}] {alert.company} | severity {alert.severity} | "
                f"{alert.title} | {alert.link}"
            )
        }
        if _post(slack_webhook_url, payload, "Slack"):
            sent_ids.add(alert.alert_id)

    return sent_ids


def send_webhook(alert: Alert, webhook: str) -> bool:
    payload = {
        "company": alert.company,
        "type": alert.type,
        "severity": alert.severity,
        "title": alert.title,
        "link": alert.link,
        "date": alert.date,
    }
    return _post(webhook, payload, "Webhook")


def _post(url: str, payload: dict, label: str) -> bool:
    try:
        response = requests.post(url, json=payload, timeout=5)
    except requests.RequestException as exc:
        print(f"{label} send failed: {exc}")
        return False

    if not 200 <= response.status_code < 300:
        print(f"{label} send failed: status {response.status_code}")
        return False
    return True


def alert_fieldnames() -> list[str]:
    return [field.name for field in fields(Alert)]


def load_existing_alert_keys(path: Path) -> set[str]:
    return {row["dedupe_key"] for row in read_csv(path) if row.get("dedupe_key")}


def update_alert_statuses(path: Path, alert_ids: set[str], status: str) -> None:
    if not alert_ids:
        return

    rows = read_csv(path)
    if not rows:
        return

    for row in rows:
        if row.get("alert_id") in alert_ids:
            row["status"] = status

    write_csv(path, rows, list(rows[0].keys()), append=False)


class AlertNotifier:
    """Turns a cycle's new violations into deduplicated, dispatched alerts."""

    def __init__(
        self,
        alerts_csv: Path,
        watchlist: list[WatchlistEntry],
        resolve: Callable[[str], str],
        channel: str = "tbd",
        enabled: bool = False,
        slack_webhook_url: str = "",
        high_severity_threshold: int = DEFAULT_HIGH_SEVERITY,
    ) -> None:
        self.alerts_csv = alerts_csv
        self.watchlist = watchlist
        self.resolve = resolve
        self.channel = channel
        self.enabled = enabled
        self.slack_webhook_url = slack_webhook_url
        self.high_severity_threshold = high_severity_threshold

    def notify(self, items: list[RegulatoryItem]) -> list[Alert]:
        created_at = datetime.now(timezone.utc).isoformat()
        candidates = build_alerts(
            items,
            self.watchlist,
            self.resolve,
            self.high_severity_threshold,
            created_at,
        )

        known_keys = load_existing_alert_keys(self.alerts_csv)
        new_alerts: list[Alert] = []
        for alert in candidates:
            if alert.dedupe_key in known_keys:
                continue
            known_keys.add(alert.dedupe_key)
            new_alerts.append(alert)

        if new_alerts:
            append_csv(
                self.alerts_csv,
                [asdict(alert) for alert in new_alerts],
                alert_fieldnames(),
            )

        sent_ids = dispatch_alerts(
            new_alerts, self.channel, self.enabled, self.slack_webhook_url
        )
        sent_ids |= self._send_watchlist_webhooks(new_alerts)
        update_alert_statuses(self.alerts_csv, sent_ids, "sent")
        return new_alerts

    def _send_watchlist_webhooks(self, alerts: list[Alert]) -> set[str]:
        if not self.enabled:
            return set()
        watched = index_watchlist(self.watchlist, self.resolve)
        sent_ids: set[str] = set()
        for alert in alerts:
            entry = watched.get(alert.company)
            if alert.reason != "watchlist" or entry is None or not entry.webhook:
                continue
            if send_webhook(alert, entry.webhook):
                sent_ids.add(alert.alert_id)
        return sent_ids
