# backend/robotics_hub/services/market.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import logging

import httpx

from ..core.errors import ConfigurationError, MarketDataError, RetriableError
from .retry import RetryPolicy, is_transient_network_error, with_retry

logger = logging.getLogger(__name__)


@dataclass
class TokenData:
    coingecko_id: str
    symbol: str
    name: str
    image: Optional[str]
    price_usd: float
    market_cap_usd: float
    volume_24h_usd: float
    change_1h_pct: float
    change_24h_pct: float
    change_7d_pct: float
    rank: Optional[int]

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


def _num(value: Any, default: float = 0.0) -> float:
    return default if value is None else float(value)


def map_market_entry(entry: Dict[str, Any]) -> TokenData:
    """Rename one CoinGecko /coins/markets entry onto the internal shape."""
    return TokenData(
        coingecko_id=entry["id"],
        symbol=entry["symbol"],
        name=entry["name"],
        image=entry.get("image") or None,
        price_usd=_num(entry.get("current_price")),
        market_cap_usd=_num(entry.get("market_cap")),
        volume_24h_usd=_num(entry.get("total_volume")),
        change_1h_pct=_num(entry.get("price_change_percentage_1h_in_currency")),
        change_24h_pct=_num(entry.get("price_change_percentage_24h_in_currency")),
        change_7d_pct=_num(entry.get("price_change_percentage_7d_in_currency")),
        rank=entry.get("market_cap_rank"),
    )


class MarketSnapshotFetcher:
    """
    Robotics-category token markets from CoinGecko, ranked by market cap.

    Ranking and filtering are done provider-side through the query string;
    entries are mapped one-to-one and returned in provider order.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_key: Optional[str],
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 10.0,
        per_page: int = 250,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.http = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.per_page = per_page
        self.policy = policy or RetryPolicy()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("COINGECKO_API_KEY is not configured")
        return {
            "accept": "application/json",
            "x-cg-pro-api-key": self.api_key,
        }

    def _params(self) -> Dict[str, Any]:
        return {
            "category": "robotics",
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": self.per_page,
            "page": 1,
            "price_change_percentage": "1h,24h,7d",
        }

    async def _request(self, headers: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            # wait_for cancels the in-flight request when the deadline passes;
            # the shared client's own timeout is disabled so it cannot fire first
            resp = await asyncio.wait_for(
                self.http.get(
                    f"{self.base_url}/coins/markets",
                    params=self._params(),
                    headers=headers,
                    timeout=None,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RetriableError(
                f"CoinGecko request timed out after {self.timeout}s", cause=e
            ) from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise RetriableError(
                f"CoinGecko API error: {resp.status_code} - {resp.text[:200]}"
            )
        if not resp.is_success:
            raise MarketDataError(
                f"CoinGecko API error: {resp.status_code} - {resp.text[:200]}"
            )

        body = resp.json()
        if not isinstance(body, list):
            raise MarketDataError("CoinGecko API returned a non-list payload")
        return body

    async def fetch_robotics_tokens(self) -> List[TokenData]:
        # Raised before the retry loop: a missing key never heals by waiting
        headers = self._headers()

        def _log_retry(exc: BaseException, attempt: int) -> None:
            logger.warning(
                "CoinGecko attempt %s failed: %s",
                attempt,
                exc,
                extra={"step": "snapshot", "attempt": attempt},
            )

        entries = await with_retry(
            lambda _attempt: self._request(headers),
            self.policy,
            should_retry=is_transient_network_error,
            on_retry=_log_retry,
        )
        return [map_market_entry(e) for e in entries]
