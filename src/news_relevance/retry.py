"""Timeout and bounded-retry wrapper for repeatable remote calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .config import Settings
from .errors import ConfigError, FetchError, FetchTimeoutError, ShutdownError
from .metrics import REQUESTS_ATTEMPTED, REQUESTS_FAILED, REQUESTS_SUCCEEDED, Counters
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


class RetryingFetcher:
    """
    Run a zero-argument async operation with a per-attempt timeout.

    Failed attempts (a ``FetchError`` or an elapsed timeout) are retried up to
    ``retry_attempts`` total attempts. The operation must be safe to invoke again;
    the fetch stage re-issues the same GET. Any other exception, cancellation
    included, propagates at once and is counted as a failed request.
    """

    def __init__(
        self,
        timeout: float,
        retry_attempts: int,
        retry_delay: float,
        *,
        backoff_factor: float = 1.0,
        counters: Optional[Counters] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        if timeout <= 0:
            raise ConfigError("http_timeout must be greater than 0")
        if retry_attempts < 1:
            raise ConfigError("retry_attempts must be at least 1")
        if retry_delay < 0:
            raise ConfigError("retry_delay_ms cannot be negative")
        if backoff_factor < 1:
            raise ConfigError("retry_backoff_factor must be >= 1")

        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.backoff_factor = backoff_factor
        self.counters = counters
        self.cancel_event = cancel_event

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        counters: Optional[Counters] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> "RetryingFetcher":
        return cls(
            timeout=settings.http_timeout,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay,
            backoff_factor=settings.retry_backoff_factor,
            counters=counters,
            cancel_event=cancel_event,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return self.retry_delay * self.backoff_factor ** (attempt - 1)

    async def execute(
        self,
        operation: Operation[T],
        *,
        context: str = "request",
        limiter: Optional[RateLimiter] = None,
    ) -> T:
        last_error: FetchError | None = None

        for attempt in range(1, self.retry_attempts + 1):
            self._raise_if_cancelled()
            if limiter is not None:
                await limiter.acquire()
            self._count(REQUESTS_ATTEMPTED)

            try:
                result = await asyncio.wait_for(operation(), timeout=self.timeout)
            except asyncio.TimeoutError:
                last_error = FetchTimeoutError(
                    f"Request to {context} timed out after {attempt} attempts"
                )
                logger.warning(
                    f"Request to {context} timed out (attempt {attempt}/{self.retry_attempts})"
                )
            except FetchError as exc:
                last_error = exc
                logger.warning(
                    f"Request to {context} failed (attempt {attempt}/{self.retry_attempts}): {exc}"
                )
            except BaseException:
                # Not retried, but every attempt ends as succeeded or failed.
                self._count(REQUESTS_FAILED)
                raise
            else:
                self._count(REQUESTS_SUCCEEDED)
                return result

            self._count(REQUESTS_FAILED)
            if attempt < self.retry_attempts:
                await self._pause(self.delay_for(attempt))

        logger.error(f"Failed to fetch {context} after {self.retry_attempts} attempts.")
        assert last_error is not None
        raise last_error

    def _count(self, name: str) -> None:
        if self.counters is not None:
            self.counters.increment(name)

    def _raise_if_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ShutdownError()

    async def _pause(self, delay: float) -> None:
        if delay <= 0:
            return
        if self.cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise ShutdownError("Shutdown requested while waiting to retry")
