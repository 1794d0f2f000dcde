# backend/robotics_hub/services/feeds.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional
import logging

import feedparser
import httpx
from bs4 import BeautifulSoup

from ..core.errors import FeedFetchError, FeedParseError, RetriableError
from .retry import RetryPolicy, is_transient_network_error, with_retry

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"

# Stored when a feed entry carries no usable date. Using "now" instead would
# push undated items into every default lookback window.
UNKNOWN_PUBLISHED_AT = datetime(1970, 1, 1)

_DATE_FIELDS = ("published_parsed", "updated_parsed", "created_parsed")


@dataclass
class RawNewsData:
    title_raw: str
    content_raw: str
    url: str
    published_at: datetime


def _html_to_text(html: str) -> str:
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(separator=" ", strip=True)


def _extract_content(entry: Any) -> str:
    """
    Richest body first: full content (content:encoded), then the summary
    with markup stripped, then the raw summary/description.
    """
    for block in entry.get("content") or []:
        value = (block.get("value") or "").strip()
        if value:
            return value

    summary = entry.get("summary") or entry.get("description") or ""
    snippet = _html_to_text(summary)
    if snippet:
        return snippet
    return summary.strip()


def _extract_published_at(entry: Any) -> datetime:
    for field in _DATE_FIELDS:
        parsed = entry.get(field)
        if not parsed:
            continue
        try:
            # feedparser normalises to UTC struct_time
            return datetime(*parsed[:6])
        except (TypeError, ValueError, OverflowError):
            continue
    return UNKNOWN_PUBLISHED_AT


def normalize_entries(entries: List[Any]) -> List[RawNewsData]:
    items: List[RawNewsData] = []
    for entry in entries:
        url = (entry.get("link") or "").strip()
        if not url:
            continue
        title = (entry.get("title") or "").strip() or UNTITLED
        items.append(
            RawNewsData(
                title_raw=title,
                content_raw=_extract_content(entry),
                url=url,
                published_at=_extract_published_at(entry),
            )
        )
    return items


def parse_feed(document: str | bytes, *, origin: str = "<literal>") -> List[RawNewsData]:
    """
    Parse an RSS/Atom document into normalised raw items.

    feedparser is lenient: it flags broken XML via `bozo` but still returns
    whatever entries it recovered. Only a document that is broken *and*
    yields nothing is treated as a parse failure.
    """
    if isinstance(document, str):
        # A bare string that looks like a URL would make feedparser fetch it
        document = document.encode("utf-8")
    parsed = feedparser.parse(document)
    entries = parsed.get("entries") or []
    if parsed.get("bozo") and not entries:
        reason = parsed.get("bozo_exception")
        raise FeedParseError(f"Malformed feed from {origin}: {reason!r}")
    return normalize_entries(entries)


class FeedFetcher:
    """
    Downloads and normalises one RSS source.

    The httpx client is injected so the same connection pool is shared by
    every source in a batch (and so tests can swap in a MockTransport).
    The per-request timeout is passed to httpx; there is no extra
    cancellation boundary around feed downloads.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        timeout: float = 15.0,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.http = http_client
        self.timeout = timeout
        self.policy = policy or RetryPolicy(retries=2)

    async def _download_and_parse(self, url: str) -> List[RawNewsData]:
        resp = await self.http.get(url, follow_redirects=True, timeout=self.timeout)

        if resp.status_code == 429 or resp.status_code >= 500:
            raise RetriableError(f"Feed {url} returned HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise FeedFetchError(f"Feed {url} returned HTTP {resp.status_code}")

        return parse_feed(resp.content, origin=url)

    async def fetch(self, url: str, fallback_content: Optional[str] = None) -> List[RawNewsData]:
        def _log_retry(exc: BaseException, attempt: int) -> None:
            logger.warning(
                "RSS fetch attempt %s for %s failed: %s",
                attempt,
                url,
                exc,
                extra={"step": "ingest", "url": url, "attempt": attempt},
            )

        try:
            return await with_retry(
                lambda _attempt: self._download_and_parse(url),
                self.policy,
                should_retry=is_transient_network_error,
                on_retry=_log_retry,
            )
        except Exception as e:
            if fallback_content is None:
                raise
            logger.warning(
                "RSS fetch for %s failed (%s); parsing fallback content instead",
                url,
                e,
                extra={"step": "ingest", "url": url},
            )
            return parse_feed(fallback_content, origin=f"fallback for {url}")
