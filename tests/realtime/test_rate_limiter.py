"""Unit tests for src/realtime/rate_limiter.py"""

import pytest

from src.core.exceptions import RateLimitedError
from src.realtime.rate_limiter import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_budget_per_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(3, window_sec=60, clock=clock)
    assert [limiter.allow("alice") for _ in range(4)] == [True, True, True, False]
    # other identities have their own budget
    assert limiter.allow("bob")


def test_window_slides() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(2, window_sec=60, clock=clock)
    limiter.allow("alice")
    clock.now += 30
    limiter.allow("alice")
    assert not limiter.allow("alice")

    # the first message falls out of the window, the second one does not
    clock.now += 30
    assert limiter.allow("alice")
    assert not limiter.allow("alice")


def test_check_raises() -> None:
    limiter = SlidingWindowRateLimiter(1, clock=FakeClock())
    limiter.check("alice")
    with pytest.raises(RateLimitedError):
        limiter.check("alice")


def test_forget_resets_the_budget() -> None:
    limiter = SlidingWindowRateLimiter(1, clock=FakeClock())
    limiter.check("alice")
    limiter.forget("alice")
    limiter.check("alice")


def test_forgotten_identities_are_not_tracked() -> None:
    limiter = SlidingWindowRateLimiter(5, clock=FakeClock())
    for identity in ("alice", "bob"):
        limiter.check(identity)
    limiter.forget("alice")
    limiter.forget("carol")
    assert limiter.tracked_identities() == 1
