"""Tests for fixed-window rate limiting."""

from payroute.ratelimit import FixedWindowRateLimiter, client_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFixedWindowRateLimiter:
    """Tests for per-key request windows."""

    def test_allows_up_to_max_requests(self):
        limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        assert [limiter.is_limited("a") for _ in range(4)] == [False, False, False, True]

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        assert not limiter.is_limited("a")
        assert limiter.is_limited("a")
        assert not limiter.is_limited("b")

    def test_window_resets_after_expiry(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert not limiter.is_limited("a")
        assert limiter.is_limited("a")

        clock.now += 60.5
        assert not limiter.is_limited("a")

    def test_still_limited_at_window_edge(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.is_limited("a")

        clock.now += 60
        assert limiter.is_limited("a")

    def test_reset_clears_windows(self):
        limiter = FixedWindowRateLimiter(max_requests=1, clock=FakeClock())
        limiter.is_limited("a")
        limiter.reset()

        assert not limiter.is_limited("a")


class TestClientKey:
    def test_first_forwarded_hop(self):
        assert client_key("203.0.113.7, 10.0.0.1", "127.0.0.1") == "203.0.113.7"

    def test_falls_back_to_peer(self):
        assert client_key(None, "127.0.0.1") == "127.0.0.1"
        assert client_key(" , 10.0.0.1", "127.0.0.1") == "127.0.0.1"

    def test_unknown_when_nothing_available(self):
        assert client_key(None, None) == "unknown"
