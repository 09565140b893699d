"""Tests for EndpointRateLimiter."""
import asyncio
import time

import pytest

from frcsync.core.exceptions import SyncCancelledError
from frcsync.services.core.rate_limiter import EndpointRateLimiter


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestEndpointRateLimiter:

    def test_min_interval_from_rate(self):
        assert EndpointRateLimiter(20).min_interval == pytest.approx(3.0)
        assert EndpointRateLimiter(60).min_interval == pytest.approx(1.0)

    @pytest.mark.parametrize("rate", [None, 0, -5])
    def test_unset_or_non_positive_rate_defaults_to_20(self, rate):
        limiter = EndpointRateLimiter(rate)

        assert limiter.requests_per_minute == 20
        assert limiter.min_interval == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_first_call_returns_immediately(self):
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        waited = await limiter.acquire("events")

        assert waited == 0.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_consecutive_calls_spaced_by_min_interval(self):
        """At 20 rpm two acquire("events") calls are at least 3000 ms apart."""
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        await limiter.acquire("events")
        first = clock()
        await limiter.acquire("events")
        second = clock()

        assert second - first >= 3.0
        assert clock.sleeps == [pytest.approx(3.0)]

    @pytest.mark.asyncio
    async def test_only_remaining_interval_is_waited(self):
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        await limiter.acquire("events")
        clock.now += 2.0
        waited = await limiter.acquire("events")

        assert waited == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_keys_do_not_serialize_against_each_other(self):
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        await limiter.acquire("events")
        await limiter.acquire("team-events-254")
        await limiter.acquire("rankings-CASJ")

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_real_clock_spacing(self):
        """Wall-clock check with a fast rate (600 rpm -> 100 ms)."""
        limiter = EndpointRateLimiter(600)

        start = time.monotonic()
        await limiter.acquire("events")
        await limiter.acquire("events")
        elapsed = time.monotonic() - start

        assert elapsed >= 0.09

    @pytest.mark.asyncio
    async def test_concurrent_acquires_same_key_are_serialized(self):
        """Concurrent callers on one key each get their own slot."""
        limiter = EndpointRateLimiter(1200)  # 50 ms

        stamps = []

        async def call():
            await limiter.acquire("events")
            stamps.append(time.monotonic())

        await asyncio.gather(call(), call(), call())

        stamps.sort()
        assert stamps[1] - stamps[0] >= 0.04
        assert stamps[2] - stamps[1] >= 0.04

    @pytest.mark.asyncio
    async def test_cancel_waits_interrupts_pending_wait(self):
        """A blocked acquire surfaces SyncCancelledError instead of proceeding."""
        limiter = EndpointRateLimiter(1)  # 60 s interval
        await limiter.acquire("events")

        pending = asyncio.create_task(limiter.acquire("events"))
        await asyncio.sleep(0.01)
        limiter.cancel_waits()

        with pytest.raises(SyncCancelledError):
            await asyncio.wait_for(pending, timeout=1.0)

    @pytest.mark.asyncio
    async def test_acquire_refused_until_resume(self):
        limiter = EndpointRateLimiter(20)
        limiter.cancel_waits()

        with pytest.raises(SyncCancelledError):
            await limiter.acquire("events")

        limiter.resume()
        assert await limiter.acquire("events") == 0.0

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self):
        limiter = EndpointRateLimiter(1)
        await limiter.acquire("events")

        pending = asyncio.create_task(limiter.acquire("events"))
        await asyncio.sleep(0.01)
        pending.cancel()

        with pytest.raises(asyncio.CancelledError):
            await pending

    @pytest.mark.asyncio
    async def test_elapsed_keys_are_forgotten(self):
        """Many one-off keys do not accumulate once their interval has passed."""
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        for i in range(500):
            await limiter.acquire(f"rankings-X{i}")
            clock.now += limiter.min_interval

        assert len(limiter._last_call) <= 1
        assert len(limiter._key_locks) <= 1
        assert limiter._lock_users == {}

    @pytest.mark.asyncio
    async def test_keys_within_interval_still_spaced(self):
        clock = FakeClock()
        limiter = EndpointRateLimiter(20, clock=clock, sleep=clock.sleep)

        await limiter.acquire("events")
        clock.now += 1.0
        await limiter.acquire("rankings-CASJ")
        waited = await limiter.acquire("events")

        assert waited == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_refused_acquire_leaves_no_lock_behind(self):
        limiter = EndpointRateLimiter(20)
        limiter.cancel_waits()

        with pytest.raises(SyncCancelledError):
            await limiter.acquire("team-9999")

        assert limiter._key_locks == {}
        assert limiter._lock_users == {}
