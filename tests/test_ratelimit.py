from __future__ import annotations

from contact_relay.ratelimit import FixedWindowRateLimiter, InMemoryRateLimitStore, RateLimitEntry


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_fourth_request_in_window_is_limited():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=3, clock=clock)

    assert [limiter.is_limited("1.2.3.4") for _ in range(3)] == [False, False, False]
    assert limiter.is_limited("1.2.3.4") is True
    assert limiter.is_limited("1.2.3.4") is True


def test_addresses_are_counted_independently():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=1, clock=clock)

    assert limiter.is_limited("a") is False
    assert limiter.is_limited("b") is False
    assert limiter.is_limited("a") is True


def test_window_resets_once_fully_elapsed():
    clock = FakeClock()
    store = InMemoryRateLimitStore()
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=3, store=store, clock=clock)

    for _ in range(4):
        limiter.is_limited("ip")
    assert store.get("ip").count == 4

    clock.now += 59.9
    assert limiter.is_limited("ip") is True

    clock.now = 1_000.0 + 60
    assert limiter.is_limited("ip") is False
    entry = store.get("ip")
    assert entry.count == 1
    assert entry.window_start == 1_060.0


def test_window_is_fixed_not_sliding():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=3, clock=clock)

    limiter.is_limited("ip")
    clock.now += 50
    limiter.is_limited("ip")
    limiter.is_limited("ip")
    # Window opened at t=1000, so t=1060 starts a new one even though two
    # hits landed only ten seconds ago.
    clock.now = 1_060.0
    assert limiter.is_limited("ip") is False


def test_allow_is_the_inverse_of_is_limited():
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=1, clock=FakeClock())
    assert limiter.allow("x") is True
    assert limiter.allow("x") is False


def test_sweep_removes_only_expired_entries():
    clock = FakeClock(now=500.0)
    store = InMemoryRateLimitStore()
    store.set("stale", RateLimitEntry(window_start=400.0, count=2))
    store.set("fresh", RateLimitEntry(window_start=480.0, count=1))
    limiter = FixedWindowRateLimiter(window_s=60, max_requests=3, store=store, clock=clock)

    assert limiter.sweep() == 1
    assert store.get("stale") is None
    assert store.get("fresh") is not None
    assert len(store) == 1


def test_periodic_sweep_runs_every_n_calls():
    clock = FakeClock(now=0.0)
    store = InMemoryRateLimitStore()
    limiter = FixedWindowRateLimiter(window_s=10, max_requests=3, store=store, clock=clock, sweep_every=2)

    limiter.is_limited("old")
    clock.now = 100.0
    limiter.is_limited("new")  # second call triggers the sweep before counting

    assert store.get("old") is None
    assert store.get("new").count == 1
