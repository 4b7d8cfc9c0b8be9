from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from loguru import logger

from deep_research.services.resilience import (
    ConcurrencyLimiter,
    get_limiter,
    is_rate_limit_error,
    limited_retry,
    retry_with_backoff,
)


def _waits(sleep_mock: AsyncMock) -> list[float]:
    return [call.args[0] for call in sleep_mock.await_args_list]


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_returns_value_after_transient_failures(self, no_sleep):
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            if calls <= 2:
                raise RuntimeError("connection reset")
            return "ok"

        result = await retry_with_backoff(flaky, retries=3, base_delay=2.0)

        assert result == "ok"
        assert calls == 3
        assert _waits(no_sleep) == [2.0, 4.0]
        assert sum(_waits(no_sleep)) == 2.0 * (2**2 - 1)

    @pytest.mark.asyncio
    async def test_raises_last_error_after_retries_exhausted(self, no_sleep):
        operation = AsyncMock(side_effect=[RuntimeError(f"fail {i}") for i in range(4)])

        with pytest.raises(RuntimeError, match="fail 3"):
            await retry_with_backoff(operation, retries=3, base_delay=1.0)

        assert operation.await_count == 4
        assert _waits(no_sleep) == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_zero_retries_fails_immediately(self, no_sleep):
        operation = AsyncMock(side_effect=RuntimeError("down"))

        with pytest.raises(RuntimeError):
            await retry_with_backoff(operation, retries=0, base_delay=1.0)

        assert operation.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        ["429 Too Many Requests", "Resource has been exhausted (e.g. check quota)."],
    )
    async def test_rate_limit_message_quadruples_first_wait(self, no_sleep, message):
        operation = AsyncMock(side_effect=[RuntimeError(message), "ok"])

        assert await retry_with_backoff(operation, retries=3, base_delay=2.0) == "ok"
        assert _waits(no_sleep) == [8.0]

    @pytest.mark.asyncio
    async def test_consecutive_rate_limits_keep_growing(self, no_sleep):
        operation = AsyncMock(side_effect=[RuntimeError("quota"), RuntimeError("quota"), "ok"])

        await retry_with_backoff(operation, retries=3, base_delay=1.0)

        assert _waits(no_sleep) == [4.0, 32.0]

    @pytest.mark.asyncio
    async def test_reset_hint_is_logged_but_not_used_for_wait(self, no_sleep):
        messages: list[str] = []
        handler_id = logger.add(messages.append, format="{message}")
        operation = AsyncMock(
            side_effect=[RuntimeError("429 rate limited (resets at 2026-10-17T12:00:00Z)"), "ok"]
        )
        try:
            await retry_with_backoff(operation, retries=1, base_delay=2.0, label="firecrawl")
        finally:
            logger.remove(handler_id)

        assert _waits(no_sleep) == [8.0]
        assert any("resets at 2026-10-17T12:00:00Z" in m for m in messages)


class TestRateLimitDetection:
    def test_status_code_attribute(self):
        class ApiError(Exception):
            status_code = 429

        assert is_rate_limit_error(ApiError("slow down"))

    def test_httpx_status_error_response(self):
        request = httpx.Request("POST", "https://api.firecrawl.dev/v1/search")
        error = httpx.HTTPStatusError(
            "boom",
            request=request,
            response=httpx.Response(429, request=request),
        )

        assert is_rate_limit_error(error)

    def test_other_errors_are_not_rate_limits(self):
        request = httpx.Request("POST", "https://api.firecrawl.dev/v1/search")
        error = httpx.HTTPStatusError(
            "server error",
            request=request,
            response=httpx.Response(500, request=request),
        )

        assert not is_rate_limit_error(error)
        assert not is_rate_limit_error(TimeoutError("timed out"))


class TestConcurrencyLimiter:
    @pytest.mark.asyncio
    async def test_never_exceeds_cap_and_admits_fifo(self):
        limiter = ConcurrencyLimiter(2, name="test")
        active = 0
        peak = 0
        started: list[int] = []

        async def task(i: int) -> int:
            nonlocal active, peak
            started.append(i)
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return i

        results = await asyncio.gather(*(limiter.run(lambda i=i: task(i)) for i in range(7)))

        assert results == list(range(7))
        assert started == list(range(7))
        assert peak == 2
        assert limiter.max_in_flight == 2
        assert limiter.in_flight == 0

    @pytest.mark.asyncio
    async def test_propagates_task_exception_and_frees_slot(self):
        limiter = ConcurrencyLimiter(1)

        async def boom():
            raise ValueError("bad")

        async def fine():
            return 5

        with pytest.raises(ValueError, match="bad"):
            await limiter.run(boom)
        assert limiter.in_flight == 0
        assert await limiter.run(fine) == 5

    @pytest.mark.asyncio
    async def test_limited_retry_holds_one_slot_across_retries(self, no_sleep):
        limiter = ConcurrencyLimiter(1)
        operation = AsyncMock(side_effect=[RuntimeError("flaky"), "done"])

        assert await limited_retry(limiter, operation, base_delay=1.0) == "done"
        assert limiter.max_in_flight == 1
        assert operation.await_count == 2


def test_named_limiters_are_shared_with_configured_caps():
    assert get_limiter("search") is get_limiter("search")
    assert get_limiter("search").max_concurrency == 2
    assert get_limiter("generation").max_concurrency == 2
    assert get_limiter("feedback").max_concurrency == 5


def test_unknown_limiter_name_raises():
    with pytest.raises(ValueError):
        get_limiter("nope")
