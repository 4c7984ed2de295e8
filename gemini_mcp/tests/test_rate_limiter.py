import time

import pytest

from gemini_mcp.domain.exceptions import RateLimitError
from gemini_mcp.middleware.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_limiter(clock, **kw):
    kw.setdefault("max_requests", 3)
    kw.setdefault("window_ms", 60000)
    return RateLimiter(clock=clock, sweep_interval_ms=None, **kw)


def test_allows_up_to_max_then_rejects():
    clock = FakeClock()
    limiter = make_limiter(clock)
    for _ in range(3):
        limiter.check()
    with pytest.raises(RateLimitError) as exc_info:
        limiter.check()
    err = exc_info.value
    assert err.code == -32002
    assert err.retry_after == 60
    assert err.message == "Rate limit exceeded. Try again in 60 seconds."
    assert err.data == {"retryAfter": 60}


def test_retry_after_rounds_up_to_whole_seconds():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1, window_ms=10000)
    limiter.check()
    clock.now += 8500
    with pytest.raises(RateLimitError) as exc_info:
        limiter.check()
    assert exc_info.value.retry_after == 2


def test_new_window_after_expiry():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=2, window_ms=1000)
    limiter.check()
    limiter.check()
    with pytest.raises(RateLimitError):
        limiter.check()
    clock.now += 1000
    limiter.check()
    usage = limiter.get_usage()
    assert usage["count"] == 1
    assert usage["reset_at"] == clock.now + 1000


def test_rejected_check_does_not_count():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1)
    limiter.check()
    for _ in range(3):
        with pytest.raises(RateLimitError):
            limiter.check()
    assert limiter.get_usage()["count"] == 1


def test_keys_are_independent():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1)
    limiter.check("a")
    limiter.check("b")
    with pytest.raises(RateLimitError):
        limiter.check("a")


def test_disabled_limiter_always_passes():
    limiter = make_limiter(FakeClock(), max_requests=1, enabled=False)
    for _ in range(10):
        limiter.check()
    assert len(limiter) == 0


def test_get_usage_for_unknown_key():
    clock = FakeClock()
    limiter = make_limiter(clock)
    assert limiter.get_usage("nobody") == {"count": 0, "limit": 3, "reset_at": clock.now + 60000}


def test_reset_clears_one_key():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1)
    limiter.check("a")
    limiter.check("b")
    limiter.reset("a")
    limiter.check("a")
    with pytest.raises(RateLimitError):
        limiter.check("b")


def test_sweep_removes_only_expired_entries():
    clock = FakeClock()
    limiter = make_limiter(clock, window_ms=1000)
    limiter.check("old")
    clock.now += 500
    limiter.check("new")
    clock.now += 600
    assert limiter.sweep() == 1
    assert len(limiter) == 1
    assert limiter.get_usage("new")["count"] == 1


def test_destroy_clears_entries_and_is_idempotent():
    limiter = RateLimiter(max_requests=5, window_ms=1000, sweep_interval_ms=60000)
    limiter.check()
    limiter.destroy()
    limiter.destroy()
    assert len(limiter) == 0
    assert limiter._timer is None


def test_background_sweep_runs_periodically():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_ms=1000, clock=clock, sweep_interval_ms=10)
    try:
        limiter.check()
        clock.now += 5000
        deadline = time.monotonic() + 2.0
        while len(limiter) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(limiter) == 0
    finally:
        limiter.destroy()
