"""Token-bucket limiter for outbound requests."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from .errors import RateLimitError, ShutdownError


class RateLimiter:
    """
    Token bucket refilled at ``requests_per_second`` up to ``burst`` permits.

    A caller that finds the bucket empty reserves the next permit by driving the
    balance negative and sleeps until that permit is due. Reservation happens
    without an await, so concurrent tasks on the same event loop never need a lock
    and each waiter sleeps a bounded time.
    """

    def __init__(
        self,
        requests_per_second: float,
        burst: Optional[int] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if requests_per_second <= 0:
            raise RateLimitError("requests_per_second must be greater than 0")
        capacity = burst if burst is not None else max(1, int(requests_per_second))
        if capacity < 1:
            raise RateLimitError("burst must allow at least one request")

        self.rate = float(requests_per_second)
        self.capacity = capacity
        self._cancel_event = cancel_event
        self._clock = clock
        self._tokens = float(capacity)
        self._updated = clock()

    def _reserve(self) -> float:
        """Take one permit and return how long the caller must wait for it."""
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated = now
        self._tokens -= 1.0
        if self._tokens >= 0:
            return 0.0
        return -self._tokens / self.rate

    async def acquire(self) -> None:
        """Suspend until a request slot is available."""
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ShutdownError()

        delay = self._reserve()
        if delay <= 0:
            return
        if self._cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise ShutdownError("Shutdown requested while waiting for a request slot")
