"""
Tests for retry.py - bounded exponential backoff

Delays are recorded through an injected sleep so nothing actually waits.
"""
import asyncio
import socket

import httpx
import pytest

from robotics_hub.core.errors import FeedFetchError, RetriableError
from robotics_hub.services.retry import (
    RetryPolicy,
    backoff_delay,
    is_retriable,
    is_transient_network_error,
    with_retry,
)


def _run(coro):
    return asyncio.run(coro)


class _Recorder:
    def __init__(self):
        self.sleeps = []

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


class TestBackoffDelay:
    def test_schedule_doubles_then_caps(self):
        policy = RetryPolicy(retries=5, base_delay=1, factor=2, max_delay=5)
        assert [backoff_delay(n, policy) for n in range(1, 6)] == [1, 2, 4, 5, 5]

    def test_with_retry_sleeps_follow_the_schedule(self):
        policy = RetryPolicy(retries=5, base_delay=1, factor=2, max_delay=5)
        recorder = _Recorder()

        async def always_fails(attempt):
            raise RetriableError(f"attempt {attempt}")

        with pytest.raises(RetriableError):
            _run(with_retry(always_fails, policy, sleep=recorder.sleep))

        assert recorder.sleeps == [1, 2, 4, 5, 5]


class TestWithRetry:
    def test_first_success_makes_one_call(self):
        calls = []

        async def ok(attempt):
            calls.append(attempt)
            return "done"

        assert _run(with_retry(ok, RetryPolicy(base_delay=0))) == "done"
        assert calls == [1]

    def test_recovers_after_transient_failures(self):
        calls = []

        async def flaky(attempt):
            calls.append(attempt)
            if attempt < 3:
                raise RetriableError("try again")
            return attempt

        assert _run(with_retry(flaky, RetryPolicy(retries=3, base_delay=0))) == 3
        assert calls == [1, 2, 3]

    def test_exhaustion_surfaces_last_error(self):
        """retries=2 means three calls; the third call's error propagates unwrapped."""
        calls = []

        async def always_fails(attempt):
            calls.append(attempt)
            raise RetriableError(f"failure #{attempt}")

        with pytest.raises(RetriableError) as excinfo:
            _run(with_retry(always_fails, RetryPolicy(retries=2, base_delay=0)))

        assert len(calls) == 3
        assert str(excinfo.value) == "failure #3"

    def test_non_retriable_error_is_not_retried(self):
        calls = []

        async def fatal(attempt):
            calls.append(attempt)
            raise FeedFetchError("HTTP 404")

        with pytest.raises(FeedFetchError):
            _run(with_retry(fatal, RetryPolicy(retries=3, base_delay=0)))

        assert calls == [1]

    def test_on_retry_sees_each_failed_attempt(self):
        seen = []

        async def always_fails(attempt):
            raise RetriableError("boom")

        with pytest.raises(RetriableError):
            _run(
                with_retry(
                    always_fails,
                    RetryPolicy(retries=2, base_delay=0),
                    on_retry=lambda exc, attempt: seen.append((type(exc), attempt)),
                )
            )

        # No notification after the final attempt: nothing is retried then
        assert seen == [(RetriableError, 1), (RetriableError, 2)]

    def test_zero_retries_means_single_attempt(self):
        calls = []

        async def always_fails(attempt):
            calls.append(attempt)
            raise RetriableError("boom")

        with pytest.raises(RetriableError):
            _run(with_retry(always_fails, RetryPolicy(retries=0, base_delay=0)))

        assert calls == [1]


class TestClassifiers:
    def test_is_retriable_only_accepts_retriable_error(self):
        assert is_retriable(RetriableError("x"))
        assert not is_retriable(ValueError("x"))
        assert not is_retriable(FeedFetchError("x"))

    @pytest.mark.parametrize("exc", [
        httpx.ConnectTimeout("timed out"),
        httpx.ReadTimeout("timed out"),
        httpx.ConnectError("refused"),
        httpx.RemoteProtocolError("peer closed"),
        asyncio.TimeoutError(),
        ConnectionResetError(),
        ConnectionRefusedError(),
        socket.gaierror("dns"),
        RetriableError("HTTP 503"),
    ])
    def test_transient_network_errors(self, exc):
        assert is_transient_network_error(exc)

    @pytest.mark.parametrize("exc", [
        ValueError("bad"),
        FeedFetchError("HTTP 404"),
        KeyError("id"),
    ])
    def test_terminal_errors(self, exc):
        assert not is_transient_network_error(exc)

    def test_retriable_error_keeps_its_cause(self):
        cause = ValueError("root")
        err = RetriableError("wrapped", cause=cause)
        assert err.cause is cause
