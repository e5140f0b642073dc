"""Tests for the Call Rate Limiter (rolling 5-minute / 1-hour windows)."""

import asyncio

import pytest

from reflectai.gateway.rate_limiter import CallRateLimiter


@pytest.fixture
def limiter(clock):
    return CallRateLimiter(max_per_5min=10, max_per_hour=50, clock=clock)


async def _fill(limiter, count):
    for _ in range(count):
        assert (await limiter.admit()).allowed


class TestAdmission:
    @pytest.mark.asyncio
    async def test_empty_history_admits(self, limiter, clock):
        admission = await limiter.admit()
        assert admission.allowed
        assert admission.reason is None
        assert admission.slot == clock.now

    @pytest.mark.asyncio
    async def test_denies_after_ten_calls_in_five_minutes(self, limiter, clock):
        for _ in range(10):
            assert (await limiter.admit()).allowed
            clock.advance(10)

        admission = await limiter.admit()
        assert not admission.allowed
        assert admission.slot is None
        assert admission.reason == "Rate limit: 10/10 calls in 5 minutes"

    @pytest.mark.asyncio
    async def test_short_window_slides(self, limiter, clock):
        await _fill(limiter, 10)
        clock.advance(5 * 60 + 1)
        assert (await limiter.admit()).allowed

    @pytest.mark.asyncio
    async def test_hourly_budget(self, limiter, clock):
        # 50 calls spread so no 5-minute window holds more than 10
        for _ in range(50):
            assert (await limiter.admit()).allowed
            clock.advance(60)

        admission = await limiter.admit()
        assert not admission.allowed
        assert admission.reason.endswith("calls in 1 hour")

        clock.advance(60 * 60)
        assert (await limiter.admit()).allowed

    @pytest.mark.asyncio
    async def test_concurrent_admissions_never_exceed_budget(self, limiter):
        admissions = await asyncio.gather(*(limiter.admit() for _ in range(25)))

        assert sum(1 for a in admissions if a.allowed) == 10
        assert limiter.get_stats()["calls_last_5min"] == 10


class TestRelease:
    @pytest.mark.asyncio
    async def test_released_slot_is_reusable(self, limiter):
        admissions = [await limiter.admit() for _ in range(10)]
        assert not (await limiter.admit()).allowed

        await limiter.release(admissions[3].slot)

        assert limiter.get_stats()["calls_last_5min"] == 9
        assert (await limiter.admit()).allowed

    @pytest.mark.asyncio
    async def test_release_none_is_noop(self, limiter):
        await _fill(limiter, 2)
        await limiter.release(None)
        assert limiter.get_stats()["calls_last_5min"] == 2

    @pytest.mark.asyncio
    async def test_release_after_slot_aged_out(self, limiter, clock):
        admission = await limiter.admit()
        clock.advance(60 * 60)
        await _fill(limiter, 1)  # prunes the old slot

        await limiter.release(admission.slot)

        assert limiter.get_stats()["calls_last_hour"] == 1


class TestStats:
    @pytest.mark.asyncio
    async def test_get_stats(self, limiter, clock):
        await _fill(limiter, 1)
        clock.advance(6 * 60)
        await _fill(limiter, 1)

        stats = limiter.get_stats()
        assert stats == {
            "calls_last_5min": 1,
            "limit_5min": 10,
            "calls_last_hour": 2,
            "limit_hour": 50,
        }

    @pytest.mark.asyncio
    async def test_expired_calls_not_counted(self, limiter, clock):
        await _fill(limiter, 1)
        clock.advance(60 * 60)
        assert limiter.get_stats()["calls_last_hour"] == 0

    @pytest.mark.asyncio
    async def test_reset(self, limiter):
        await _fill(limiter, 10)
        await limiter.reset()
        assert (await limiter.admit()).allowed


def test_defaults():
    limiter = CallRateLimiter()
    assert limiter.max_per_5min == 10
    assert limiter.max_per_hour == 50
