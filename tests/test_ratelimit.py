"""Tests for the token bucket rate limiter."""

import pytest

from conftest import FakeClock
from sysinfo_server.errors import RateLimitExceeded
from sysinfo_server.ratelimit import RateLimiter


def test_budget_translation():
    limiter = RateLimiter(100, clock=FakeClock())

    assert limiter.capacity == 100
    assert limiter.refill_rate == 1


def test_refill_is_floor_divided():
    assert RateLimiter(600, clock=FakeClock()).refill_rate == 10
    assert RateLimiter(119, clock=FakeClock()).refill_rate == 1
    # Never zero, or the bucket would never refill
    assert RateLimiter(30, clock=FakeClock()).refill_rate == 1


def test_burst_then_reject():
    """101 instant requests against a fresh bucket: 100 pass, 1 is rejected."""
    limiter = RateLimiter(100, clock=FakeClock())

    results = [limiter.allow() for _ in range(101)]

    assert results.count(True) == 100
    assert results.count(False) == 1
    assert results[-1] is False


def test_refills_over_time():
    clock = FakeClock()
    limiter = RateLimiter(120, clock=clock)
    for _ in range(120):
        assert limiter.allow()
    assert not limiter.allow()

    clock.advance(1.0)

    assert limiter.allow()
    assert limiter.allow()
    assert not limiter.allow()


def test_refill_caps_at_capacity():
    clock = FakeClock()
    limiter = RateLimiter(5, clock=clock)
    clock.advance(3600)

    assert [limiter.allow() for _ in range(6)].count(True) == 5


def test_check_raises():
    limiter = RateLimiter(1, clock=FakeClock())
    limiter.check()

    with pytest.raises(RateLimitExceeded):
        limiter.check()
