"""
Shared test data for the ETL tests.

Feed documents, LLM completion bodies and CoinGecko market payloads, plus
small builders for the httpx MockTransport handlers.
"""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx


# ---------------------------------------------------------------------------
# RSS / Atom documents
# ---------------------------------------------------------------------------

def rss_document(items: List[Dict[str, str]], title: str = "Robot Feed") -> str:
    """Build an RSS 2.0 document; each item dict may carry title/link/description/pubDate."""
    parts = []
    for item in items:
        fields = []
        for tag in ("title", "link", "pubDate"):
            if tag in item:
                fields.append(f"<{tag}>{item[tag]}</{tag}>")
        if "description" in item:
            fields.append(f"<description><![CDATA[{item['description']}]]></description>")
        if "content" in item:
            fields.append(f"<content:encoded><![CDATA[{item['content']}]]></content:encoded>")
        parts.append("<item>" + "".join(fields) + "</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">'
        f"<channel><title>{title}</title><link>https://feed.test/</link>"
        "<description>test feed</description>"
        + "".join(parts)
        + "</channel></rss>"
    )


BASIC_RSS = rss_document([
    {
        "title": "Humanoid startup raises Series B",
        "link": "https://news.test/humanoid-series-b",
        "description": "<p>Acme Robotics closed a <b>$50M</b> round.</p>",
        "pubDate": "Mon, 06 Jan 2025 10:00:00 GMT",
    },
    {
        "title": "Warehouse robots get new grippers",
        "link": "https://news.test/warehouse-grippers",
        "description": "Grippers for picking.",
        "pubDate": "Tue, 07 Jan 2025 12:30:00 GMT",
    },
])

# Same URL twice with different titles; the first wins
DUPLICATE_URL_RSS = rss_document([
    {"title": "First title", "link": "https://news.test/dup", "description": "one"},
    {"title": "Second title", "link": "https://news.test/dup", "description": "two"},
])

UNTITLED_UNDATED_RSS = rss_document([
    {"link": "https://news.test/no-title", "description": "Body only"},
])

MISSING_LINK_RSS = rss_document([
    {"title": "No link here", "description": "orphan"},
    {"title": "Has link", "link": "https://news.test/has-link", "description": "ok"},
])

CONTENT_ENCODED_RSS = rss_document([
    {
        "title": "Full body",
        "link": "https://news.test/full-body",
        "description": "<p>short summary</p>",
        "content": "<p>The full article body.</p>",
    },
])

ATOM_DOCUMENT = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<feed xmlns="http://www.w3.org/2005/Atom">'
    "<title>Atom Robots</title>"
    '<entry><title>Atom entry</title><link href="https://news.test/atom-entry"/>'
    "<updated>2025-02-01T08:00:00Z</updated><summary>Atom summary</summary></entry>"
    "</feed>"
)

MALFORMED_FEED = "this is not a feed at all <<<"


# ---------------------------------------------------------------------------
# LLM enrichment payloads
# ---------------------------------------------------------------------------

VALID_ENRICHMENT: Dict[str, Any] = {
    "title": "Acme Robotics raises $50M Series B",
    "summary_ai": "Acme Robotics closed a $50M Series B to scale humanoid production.",
    "category": "funding",
    "robot_tags": ["humanoid", "funding"],
    "importance_score": 72,
    "company_name": "Acme Robotics",
    "company_website": "https://acme.test",
}


def enrichment(**overrides: Any) -> Dict[str, Any]:
    payload = dict(VALID_ENRICHMENT)
    payload.update(overrides)
    return payload


def chat_completion_body(content: str, model: str = "grok-2-latest") -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1736150400,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20},
    }


def completion_response(payload: Any) -> httpx.Response:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(200, json=chat_completion_body(content))


# ---------------------------------------------------------------------------
# CoinGecko payloads
# ---------------------------------------------------------------------------

def market_entry(index: int, **overrides: Any) -> Dict[str, Any]:
    entry = {
        "id": f"robo-token-{index}",
        "symbol": f"rb{index}",
        "name": f"Robo Token {index}",
        "image": f"https://img.test/{index}.png",
        "current_price": 1.5 + index,
        "market_cap": 1_000_000.0 - index,
        "total_volume": 25_000.0,
        "price_change_percentage_1h_in_currency": 0.1,
        "price_change_percentage_24h_in_currency": -2.5,
        "price_change_percentage_7d_in_currency": 10.0,
        "market_cap_rank": index + 1,
    }
    entry.update(overrides)
    return entry


def market_entries(count: int) -> List[Dict[str, Any]]:
    return [market_entry(i) for i in range(count)]


# ---------------------------------------------------------------------------
# Transport helpers
# ---------------------------------------------------------------------------

class RecordingHandler:
    """
    MockTransport handler that replays queued responses and records requests.

    Each queued item is an httpx.Response, an exception instance to raise,
    or a callable taking the request. The last queued item repeats for any
    further requests.
    """

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)


def mock_http_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


FIXED_NOW = datetime(2025, 1, 8, 9, 0, 0)


class StepClock:
    """Deterministic clock: each call advances one minute from `start`."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or FIXED_NOW
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.current + timedelta(minutes=self.calls)
        self.calls += 1
        return value
