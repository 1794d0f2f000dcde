# backend/robotics_hub/services/retry.py
from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.errors import RetriableError

T = TypeVar("T")

ShouldRetry = Callable[[BaseException], bool]
OnRetry = Callable[[BaseException, int], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with pure exponential backoff.

    `retries` is the number of *extra* attempts, so an operation runs at
    most `retries + 1` times. Delays are in seconds.
    """

    retries: int = 3
    base_delay: float = 0.5
    factor: float = 2.0
    max_delay: float = 5.0

    def wait(self) -> wait_exponential:
        return wait_exponential(
            multiplier=self.base_delay,
            exp_base=self.factor,
            max=self.max_delay,
        )


def is_retriable(exc: BaseException) -> bool:
    return isinstance(exc, RetriableError)


_NETWORK_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    asyncio.TimeoutError,
    ConnectionResetError,
    ConnectionRefusedError,
    socket.gaierror,
)


def is_transient_network_error(exc: BaseException) -> bool:
    """Timeouts, resets, unreachable hosts, DNS failures, or an explicit RetriableError."""
    return isinstance(exc, RetriableError) or isinstance(exc, _NETWORK_ERRORS)


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay slept after failed attempt number `attempt` (1-based)."""
    return min(policy.base_delay * policy.factor ** (attempt - 1), policy.max_delay)


async def with_retry(
    fn: Callable[[int], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    should_retry: ShouldRetry = is_retriable,
    on_retry: Optional[OnRetry] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run `fn(attempt)` until it succeeds, a failure is not retriable, or the
    attempt budget is spent.

    The exception that ends the loop is re-raised as-is (never wrapped in a
    tenacity RetryError), so callers always see the last real failure.
    """
    policy = policy or RetryPolicy()

    def _before_sleep(retry_state: RetryCallState) -> None:
        if on_retry is None or retry_state.outcome is None:
            return
        exc = retry_state.outcome.exception()
        if exc is not None:
            on_retry(exc, retry_state.attempt_number)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.retries + 1),
        wait=policy.wait(),
        retry=retry_if_exception(should_retry),
        before_sleep=_before_sleep,
        reraise=True,
        sleep=sleep,
    )

    async for attempt in retrying:
        with attempt:
            result = await fn(attempt.retry_state.attempt_number)
    return result
