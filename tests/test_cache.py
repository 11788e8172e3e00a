"""Tests for the in-memory TTL cache."""

from tradegate.cache import CacheProtocol, InMemoryCache


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryCache:
    def test_get_before_expiry(self):
        clock = _FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("k", [1, 2], ttl=60)
        clock.now += 59
        assert cache.get("k") == [1, 2]

    def test_expired_entry_dropped(self):
        clock = _FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("k", "v", ttl=60)
        clock.now += 60
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_missing_key(self):
        assert InMemoryCache().get("nope") is None

    def test_clear(self):
        cache = InMemoryCache()
        cache.set("a", 1, ttl=10)
        cache.set("b", 2, ttl=10)
        cache.clear()
        assert len(cache) == 0

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryCache(), CacheProtocol)

    def test_set_purges_expired_keys(self):
        clock = _FakeClock()
        cache = InMemoryCache(clock=clock)
        # One new key per minute, each living 60s: only the latest survives
        for minute in range(500):
            cache.set(f"kite:candles:{minute}", (), ttl=60)
            clock.now += 60
        assert len(cache) == 1

    def test_purge_expired_keeps_live_entries(self):
        clock = _FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("short", 1, ttl=10)
        cache.set("long", 2, ttl=100)
        clock.now += 50
        assert cache.purge_expired() == 1
        assert cache.get("long") == 2
