from __future__ import annotations

import time

import pytest

from src.geocoding.rate_limiter import NoopRateLimiter, RateLimiter


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_first_call_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)

    limiter.throttle()

    assert clock.sleeps == []


def test_second_call_waits_for_remaining_interval():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)

    limiter.throttle()
    clock.now += 0.3
    limiter.throttle()

    assert clock.sleeps == [pytest.approx(0.7)]
    assert clock.now == pytest.approx(101.0)


def test_no_wait_once_interval_has_elapsed():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)

    limiter.throttle()
    clock.now += 2.5
    limiter.throttle()

    assert clock.sleeps == []


def test_permitted_calls_are_spaced_by_min_interval():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)
    permitted = []

    for _ in range(4):
        limiter.throttle()
        permitted.append(clock.now)
        clock.now += 0.1

    gaps = [later - earlier for earlier, later in zip(permitted, permitted[1:])]
    assert all(gap >= 1.0 - 1e-9 for gap in gaps)


def test_real_clock_spacing():
    limiter = RateLimiter(min_interval=0.05)

    limiter.throttle()
    start = time.monotonic()
    limiter.throttle()

    assert time.monotonic() - start >= 0.05 - 1e-3


def test_noop_limiter_never_sleeps(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda _s: pytest.fail("should not sleep"))

    limiter = NoopRateLimiter()
    limiter.throttle()
    limiter.throttle()
