"""Tests for the sliding-window rate limiter."""

import pytest

from storefront.common.ratelimit import SlidingWindowLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestSlidingWindow:
    def test_tenth_allowed_eleventh_rejected(self, clock):
        limiter = SlidingWindowLimiter(10, 900, clock=clock)
        decisions = [limiter.hit("1.2.3.4") for _ in range(11)]
        assert all(d.allowed for d in decisions[:10])
        assert decisions[9].remaining == 0
        assert decisions[10].allowed is False

    def test_keys_are_independent(self, clock):
        limiter = SlidingWindowLimiter(1, 900, clock=clock)
        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_window_slides(self, clock):
        limiter = SlidingWindowLimiter(2, 900, clock=clock)
        limiter.hit("a")
        clock.now += 600
        limiter.hit("a")
        assert not limiter.hit("a").allowed

        # First hit ages out; second is still inside the window.
        clock.now += 301
        assert limiter.hit("a").allowed
        assert not limiter.hit("a").allowed

    def test_rejections_not_recorded(self, clock):
        limiter = SlidingWindowLimiter(1, 900, clock=clock)
        limiter.hit("a")
        for _ in range(5):
            clock.now += 100
            assert not limiter.hit("a").allowed
        clock.now += 401
        assert limiter.hit("a").allowed

    def test_retry_after(self, clock):
        limiter = SlidingWindowLimiter(1, 900, clock=clock)
        limiter.hit("a")
        clock.now += 100
        decision = limiter.hit("a")
        assert decision.retry_after == 800

    def test_reset_single_key(self, clock):
        limiter = SlidingWindowLimiter(1, 900, clock=clock)
        limiter.hit("a")
        limiter.hit("b")
        limiter.reset("a")
        assert limiter.hit("a").allowed
        assert not limiter.hit("b").allowed

    def test_prune_drops_idle_keys(self, clock):
        limiter = SlidingWindowLimiter(1, 900, clock=clock)
        limiter.hit("a")
        clock.now += 901
        limiter.prune()
        assert limiter._hits == {}

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            SlidingWindowLimiter(0, 900)
