"""
Tests for feeds.py - RSS/Atom download, normalisation and fallback parsing

Network calls go through an httpx MockTransport; backoff is instant.
"""
import asyncio
from datetime import datetime

import httpx
import pytest

from robotics_hub.core.errors import FeedFetchError, FeedParseError, RetriableError
from robotics_hub.services.feeds import (
    UNKNOWN_PUBLISHED_AT,
    UNTITLED,
    FeedFetcher,
    parse_feed,
)
from robotics_hub.services.retry import RetryPolicy

from tests.fixtures.etl_fixtures import (
    ATOM_DOCUMENT,
    BASIC_RSS,
    CONTENT_ENCODED_RSS,
    MALFORMED_FEED,
    MISSING_LINK_RSS,
    UNTITLED_UNDATED_RSS,
    RecordingHandler,
    mock_http_client,
)

FEED_URL = "https://feed.test/rss"


def _fetch(handler, fallback_content=None, retries=2):
    async def go():
        async with mock_http_client(handler) as http:
            fetcher = FeedFetcher(http, policy=RetryPolicy(retries=retries, base_delay=0))
            return await fetcher.fetch(FEED_URL, fallback_content=fallback_content)

    return asyncio.run(go())


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

class TestParseFeed:
    def test_basic_rss_items(self):
        items = parse_feed(BASIC_RSS)

        assert [i.url for i in items] == [
            "https://news.test/humanoid-series-b",
            "https://news.test/warehouse-grippers",
        ]
        assert items[0].title_raw == "Humanoid startup raises Series B"
        assert items[0].published_at == datetime(2025, 1, 6, 10, 0, 0)

    def test_summary_html_is_stripped(self):
        items = parse_feed(BASIC_RSS)
        assert items[0].content_raw == "Acme Robotics closed a $50M round."

    def test_full_content_preferred_over_summary(self):
        items = parse_feed(CONTENT_ENCODED_RSS)
        assert "The full article body." in items[0].content_raw
        assert "short summary" not in items[0].content_raw

    def test_missing_title_and_date_use_placeholders(self):
        """Undated items get the epoch sentinel, never the ingestion time."""
        [item] = parse_feed(UNTITLED_UNDATED_RSS)
        assert item.title_raw == UNTITLED
        assert item.published_at == UNKNOWN_PUBLISHED_AT
        assert item.content_raw == "Body only"

    def test_entries_without_link_are_dropped(self):
        items = parse_feed(MISSING_LINK_RSS)
        assert [i.url for i in items] == ["https://news.test/has-link"]

    def test_atom_feed(self):
        [item] = parse_feed(ATOM_DOCUMENT)
        assert item.url == "https://news.test/atom-entry"
        assert item.title_raw == "Atom entry"
        assert item.published_at == datetime(2025, 2, 1, 8, 0, 0)

    def test_unparseable_document_raises(self):
        with pytest.raises(FeedParseError):
            parse_feed(MALFORMED_FEED, origin="test")

    def test_bytes_input(self):
        assert len(parse_feed(BASIC_RSS.encode("utf-8"))) == 2


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

class TestFeedFetcher:
    def test_success(self):
        handler = RecordingHandler(httpx.Response(200, text=BASIC_RSS))
        items = _fetch(handler)

        assert len(items) == 2
        assert handler.calls == 1
        assert str(handler.requests[0].url) == FEED_URL

    def test_server_error_is_retried(self):
        handler = RecordingHandler(
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, text=BASIC_RSS),
        )
        items = _fetch(handler)

        assert len(items) == 2
        assert handler.calls == 2

    def test_rate_limit_is_retried(self):
        handler = RecordingHandler(
            httpx.Response(429, text="slow down"),
            httpx.Response(200, text=BASIC_RSS),
        )
        assert len(_fetch(handler)) == 2
        assert handler.calls == 2

    def test_client_error_is_terminal(self):
        handler = RecordingHandler(httpx.Response(404, text="gone"))

        with pytest.raises(FeedFetchError):
            _fetch(handler)
        assert handler.calls == 1

    def test_network_error_exhausts_budget(self):
        handler = RecordingHandler(httpx.ConnectError("connection refused"))

        with pytest.raises(httpx.ConnectError):
            _fetch(handler, retries=2)
        assert handler.calls == 3

    def test_persistent_5xx_surfaces_retriable_error(self):
        handler = RecordingHandler(httpx.Response(502, text="bad gateway"))

        with pytest.raises(RetriableError):
            _fetch(handler, retries=1)
        assert handler.calls == 2

    def test_fallback_used_after_network_failure(self):
        handler = RecordingHandler(httpx.ConnectError("connection refused"))
        items = _fetch(handler, fallback_content=BASIC_RSS)

        assert len(items) == 2
        assert handler.calls == 3

    def test_fallback_used_after_terminal_http_error(self):
        handler = RecordingHandler(httpx.Response(404, text="gone"))
        items = _fetch(handler, fallback_content=MISSING_LINK_RSS)

        assert [i.url for i in items] == ["https://news.test/has-link"]
        assert handler.calls == 1

    def test_malformed_body_is_not_retried(self):
        handler = RecordingHandler(httpx.Response(200, text=MALFORMED_FEED))

        with pytest.raises(FeedParseError):
            _fetch(handler)
        assert handler.calls == 1
