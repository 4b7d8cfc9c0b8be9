"""Bounded concurrency and retry-with-backoff for external API calls."""
from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from deep_research.config import settings

T = TypeVar("T")

RESET_HINT_PATTERN = re.compile(r"resets at ([^)]+)")


class ConcurrencyLimiter:
    """Caps how many wrapped tasks run at once; excess callers queue FIFO."""

    def __init__(self, max_concurrency: int, name: str = "default"):
        self.max_concurrency = max(int(max_concurrency), 1)
        self.name = name
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self.in_flight = 0
        self.max_in_flight = 0

    async def run(self, task_factory: Callable[[], Awaitable[T]]) -> T:
        async with self._semaphore:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                return await task_factory()
            finally:
                self.in_flight -= 1


def _limiter_capacity(name: str) -> int:
    capacities = {
        "search": settings.search_max_parallel_requests,
        "generation": settings.generation_max_parallel_requests,
        "feedback": settings.feedback_max_parallel_requests,
    }
    if name not in capacities:
        raise ValueError(f"Unknown limiter: {name}")
    return capacities[name]


_limiters: dict[str, ConcurrencyLimiter] = {}


def get_limiter(name: str) -> ConcurrencyLimiter:
    """Get or create the process-wide limiter for one external API path."""
    limiter = _limiters.get(name)
    if limiter is None:
        limiter = ConcurrencyLimiter(_limiter_capacity(name), name=name)
        _limiters[name] = limiter
    return limiter


def reset_limiters() -> None:
    _limiters.clear()


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def is_rate_limit_error(exc: BaseException) -> bool:
    if _status_code(exc) == 429:
        return True
    message = str(exc).lower()
    return "429" in message or "quota" in message


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int | None = None,
    base_delay: float = 2.0,
    label: str = "call",
) -> T:
    """Run operation, retrying failures with exponentially growing waits.

    The first wait is base_delay, or base_delay * 4 for rate-limit errors; every
    retry doubles the wait it just used. The last error is re-raised once the
    retries are spent.
    """
    remaining = settings.retry_max if retries is None else max(int(retries), 0)
    delay = float(base_delay)

    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0:
                logger.warning(f"{label} failed, no retries left: {exc}")
                raise

            rate_limited = is_rate_limit_error(exc)
            wait_time = delay * 4 if rate_limited else delay

            reset_hint = ""
            if rate_limited:
                match = RESET_HINT_PATTERN.search(str(exc))
                if match:
                    reset_hint = f" (resets at {match.group(1)})"
                logger.warning(
                    f"{label} rate limited, waiting {wait_time:g}s before retry{reset_hint}"
                )
            else:
                logger.warning(f"{label} failed ({exc}), waiting {wait_time:g}s before retry")

            await asyncio.sleep(wait_time)
            remaining -= 1
            delay = wait_time * 2


async def limited_retry(
    limiter: ConcurrencyLimiter,
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int | None = None,
    base_delay: float = 2.0,
    label: str = "call",
) -> T:
    """Run operation under limiter, with retries happening inside the slot."""
    return await limiter.run(
        lambda: retry_with_backoff(
            operation,
            retries=retries,
            base_delay=base_delay,
            label=label,
        )
    )
