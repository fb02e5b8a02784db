import asyncio
import time

import pytest

from news_relevance.errors import RateLimitError, ShutdownError
from news_relevance.rate_limiter import RateLimiter

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def test_rejects_misconfiguration():
    with pytest.raises(RateLimitError):
        RateLimiter(0)
    with pytest.raises(RateLimitError):
        RateLimiter(5, burst=0)


async def test_burst_defaults_to_refill_rate():
    assert RateLimiter(7).capacity == 7
    assert RateLimiter(0.5).capacity == 1


async def test_reservations_refill_at_configured_rate():
    clock = FakeClock()
    limiter = RateLimiter(2, burst=2, clock=clock)

    assert limiter._reserve() == 0.0
    assert limiter._reserve() == 0.0
    assert limiter._reserve() == pytest.approx(0.5)
    assert limiter._reserve() == pytest.approx(1.0)

    clock.now = 10.0
    # Refill is capped at the bucket capacity.
    assert limiter._reserve() == 0.0
    assert limiter._reserve() == 0.0
    assert limiter._reserve() == pytest.approx(0.5)


async def test_burst_is_served_immediately():
    limiter = RateLimiter(20, burst=5)

    start = time.monotonic()
    await asyncio.gather(*(limiter.acquire() for _ in range(5)))

    assert time.monotonic() - start < 0.5


async def test_twice_the_rate_takes_at_least_one_second():
    rate = 5
    limiter = RateLimiter(rate, burst=1)

    start = time.monotonic()
    await asyncio.gather(*(limiter.acquire() for _ in range(rate * 2)))

    assert time.monotonic() - start >= 1.0


async def test_acquire_refuses_after_cancellation():
    cancel_event = asyncio.Event()
    cancel_event.set()
    limiter = RateLimiter(10, cancel_event=cancel_event)

    with pytest.raises(ShutdownError):
        await limiter.acquire()


async def test_cancellation_wakes_waiting_callers():
    cancel_event = asyncio.Event()
    limiter = RateLimiter(1, burst=1, cancel_event=cancel_event)
    await limiter.acquire()

    async def cancel_soon():
        await asyncio.sleep(0.05)
        cancel_event.set()

    start = time.monotonic()
    canceller = asyncio.create_task(cancel_soon())
    with pytest.raises(ShutdownError):
        await limiter.acquire()
    await canceller

    assert time.monotonic() - start < 0.9
