"""
Unit tests for read retries and the latest-request-wins gate.
"""

import asyncio

import pytest

from app.core.exceptions import NotFoundError, RemoteFailureError, RemoteTimeoutError, RequestSupersededError
from app.core.requests import LatestRequestGate
from app.core.retry import RetryPolicy, retry_async


class _Flaky:
    """Fails a fixed number of times, then succeeds."""

    def __init__(self, failures: int, error: Exception = None):
        self.failures = failures
        self.error = error or RemoteFailureError("connection refused")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestRetryPolicy:
    def test_delays_grow_and_are_capped(self):
        policy = RetryPolicy(max_attempts=6, base_delay=1, multiplier=2, max_delay=5)

        assert [policy.delay_for(n) for n in range(1, 6)] == [1, 2, 4, 5, 5]

    def test_invalid_values_are_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(multiplier=0.5)


class TestRetryAsync:
    async def test_recovers_after_transient_failures(self):
        fn = _Flaky(failures=2)
        delays = []

        async def _sleep(delay):
            delays.append(delay)

        result = await retry_async(fn, RetryPolicy(max_attempts=3, base_delay=0.5), sleep=_sleep)

        assert result == "ok"
        assert fn.calls == 3
        assert delays == [0.5, 1.0]

    async def test_gives_up_after_max_attempts(self):
        fn = _Flaky(failures=5)

        with pytest.raises(RemoteFailureError):
            await retry_async(fn, RetryPolicy(max_attempts=3, base_delay=0))

        assert fn.calls == 3

    async def test_other_errors_are_not_retried(self):
        fn = _Flaky(failures=1, error=NotFoundError("Draft", "d1"))

        with pytest.raises(NotFoundError):
            await retry_async(fn, RetryPolicy(max_attempts=3, base_delay=0))

        assert fn.calls == 1

    async def test_timeouts_are_not_retried(self):
        fn = _Flaky(failures=1, error=RemoteTimeoutError(1.0))

        with pytest.raises(RemoteTimeoutError):
            await retry_async(fn, RetryPolicy(max_attempts=3, base_delay=0))

        assert fn.calls == 1


class TestLatestRequestGate:
    async def test_returns_result(self):
        gate = LatestRequestGate()

        async def _fetch():
            return [1, 2]

        assert await gate.run("k", _fetch, timeout=1) == [1, 2]
        assert gate.in_flight("k") is False

    async def test_slow_request_times_out(self):
        gate = LatestRequestGate()

        async def _hang():
            await asyncio.sleep(10)

        with pytest.raises(RemoteTimeoutError):
            await gate.run("k", _hang, timeout=0.05)
        assert gate.in_flight("k") is False

    async def test_newer_request_supersedes_older(self):
        gate = LatestRequestGate()
        release = asyncio.Event()

        async def _stale():
            await release.wait()
            return "stale"

        async def _fresh():
            return "fresh"

        older = asyncio.ensure_future(gate.run("k", _stale, timeout=5))
        await asyncio.sleep(0)
        assert gate.in_flight("k") is True

        newer = await gate.run("k", _fresh, timeout=5)
        release.set()

        assert newer == "fresh"
        with pytest.raises(RequestSupersededError) as excinfo:
            await older
        assert excinfo.value.status_code == 409
        assert excinfo.value.key == "k"

    async def test_different_keys_do_not_interfere(self):
        gate = LatestRequestGate()
        release = asyncio.Event()

        async def _slow():
            await release.wait()
            return "a"

        async def _fast():
            return "b"

        first = asyncio.ensure_future(gate.run("a", _slow, timeout=5))
        await asyncio.sleep(0)
        assert await gate.run("b", _fast, timeout=5) == "b"
        release.set()

        assert await first == "a"
