"""Tests for the TTL route cache."""

from payroute.routing.cache import RouteCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestRouteCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = RouteCache(ttl_seconds=30, clock=clock)
        cache.put("k", "value")

        clock.now += 29
        assert cache.get("k") == "value"

    def test_expired_entry_dropped_on_read(self):
        clock = FakeClock()
        cache = RouteCache(ttl_seconds=30, clock=clock)
        cache.put("k", "value")

        clock.now += 31
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_miss(self):
        assert RouteCache().get("missing") is None

    def test_key_ignores_argument_order(self):
        assert RouteCache.make_key(a=1, b="x") == RouteCache.make_key(b="x", a=1)
        assert RouteCache.make_key(a=1) != RouteCache.make_key(a=2)

    def test_sweep(self):
        clock = FakeClock()
        cache = RouteCache(ttl_seconds=10, clock=clock)
        cache.put("old", 1)
        clock.now += 5
        cache.put("new", 2)

        clock.now += 6
        assert cache.sweep() == 1
        assert cache.get("new") == 2
