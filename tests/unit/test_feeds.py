from datetime import datetime, timezone
from pathlib import Path

import feedparser
import pytest
import requests

from fda_intel.errors import SourceFetchError
from fda_intel.models.schemas import FeedSource
from fda_intel.sources import feeds
from fda_intel.sources.feeds import fetch_source, html_to_text, load_sources

SNAPSHOT_PATH = Path(__file__).resolve().parents[2] / "data/rss_snapshots/fda_sample.xml"


def _source(**overrides) -> FeedSource:
    values = {
        "source_id": "s999",
        "name": "Test RSS",
        "kind": "rss",
        "url": "https://feeds.example.com/rss.xml",
        "category": "trade",
        "priority": 2,
    }
    values.update(overrides)
    return FeedSource(**values)


def test_rss_file_snapshot_is_parsed() -> None:
    source = _source(kind="rss_file", url=f"file://{SNAPSHOT_PATH.as_posix()}", category="official")

    items = fetch_source(source, timeout=5)

    assert len(items) == 4
    first = items[0]
    assert first.title == "Warning Letter to Acme Pharmaceuticals - 12/01/2023"
    assert first.source == "Test RSS"
    assert first.source_category == "official"
    assert first.date == "2023-12-01T14:00:00+00:00"
    assert first.body == "FDA cited cGMP manufacturing deviations at the facility in Newark, NJ."


def test_http_rss_goes_through_requests_with_certifi(monkeypatch) -> None:
    calls: list[dict] = []
    published = datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)
    entry = feedparser.FeedParserDict(
        {
            "title": "Globex receives FDA warning letter",
            "link": "https://feeds.example.com/globex",
            "published_parsed": published.utctimetuple(),
            "summary": "<p>Details</p>",
        }
    )

    def fake_get(url, headers, timeout, verify):
        calls.append({"url": url, "headers": headers, "timeout": timeout, "verify": verify})

        class Response:
            content = b"<rss/>"

            def raise_for_status(self) -> None:
                return None

        return Response()

    monkeypatch.setattr(feeds.requests, "get", fake_get)
    monkeypatch.setattr(
        feeds.feedparser,
        "parse",
        lambda _content: feedparser.FeedParserDict({"entries": [entry], "bozo": False}),
    )

    items = fetch_source(_source(type_hint="warning_letter"), timeout=7)

    assert len(calls) == 1
    assert calls[0]["timeout"] == 7
    assert calls[0]["verify"] == feeds.certifi.where()
    assert "User-Agent" in calls[0]["headers"]
    assert items[0].date == "2026-02-01T10:00:00+00:00"
    assert items[0].body == "Details"
    assert items[0].type_hint == "warning_letter"
    assert items[0].priority == 2


def test_network_failure_raises_source_fetch_error(monkeypatch) -> None:
    def fake_get(url, headers, timeout, verify):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(feeds.requests, "get", fake_get)

    with pytest.raises(SourceFetchError) as excinfo:
        fetch_source(_source(), timeout=5)

    assert excinfo.value.source_name == "Test RSS"
    assert "connection refused" in excinfo.value.reason


def test_missing_snapshot_raises_source_fetch_error(tmp_path: Path) -> None:
    source = _source(kind="rss_file", url=str(tmp_path / "missing.xml"))

    with pytest.raises(SourceFetchError):
        fetch_source(source, timeout=5)


def test_load_sources_skips_unknown_kinds(tmp_path: Path) -> None:
    path = tmp_path / "sources.csv"
    path.write_text(
        "source_id,name,kind,url,category,priority,type_hint,enabled\n"
        "s1,FDA Page,fda_warning_letters,https://www.fda.gov/wl,official,1,warning_letter,true\n"
        "s2,Trade,rss,https://trade.example.com/rss,trade,,,false\n"
        "s3,Broken,carrier_pigeon,https://x.example.com,trade,3,,true\n"
        "s4,No Url,rss,,trade,3,,true\n",
        encoding="utf-8",
    )

    sources = load_sources(path)

    assert [source.source_id for source in sources] == ["s1", "s2"]
    assert sources[0].type_hint == "warning_letter"
    assert sources[0].priority == 1
    assert sources[1].priority == 5
    assert sources[1].enabled is False


def test_bundled_catalogue_loads() -> None:
    sources = load_sources(Path(__file__).resolve().parents[2] / "data/sources.csv")

    assert sources[0].kind == "fda_warning_letters"
    assert any(source.type_hint == "crl" for source in sources)


def test_html_to_text_collapses_markup() -> None:
    assert html_to_text("<p>One <b>two</b></p>\n<p>three</p>") == "One two three"
    assert html_to_text("plain   text") == "plain text"
    assert html_to_text("") == ""


def test_undated_entry_keeps_empty_date(monkeypatch) -> None:
    entry = feedparser.FeedParserDict(
        {"title": "Initech recalls infusion pumps", "link": "https://feeds.example.com/initech"}
    )
    monkeypatch.setattr(feeds, "fetch_url_bytes", lambda url, timeout: b"<rss/>")
    monkeypatch.setattr(
        feeds.feedparser,
        "parse",
        lambda _content: feedparser.FeedParserDict({"entries": [entry], "bozo": False}),
    )

    items = fetch_source(_source(), timeout=5)

    assert items[0].date == ""
