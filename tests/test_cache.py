"""Tests for the TTL cache and marketplace quota state."""

from pcbuilder_mcp.cache import QuotaState, TTLCache


class Clock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_get_set(self):
        cache = TTLCache(ttl=60)
        cache.set("key", "value")
        assert cache.get("key") == "value"

    def test_get_miss(self):
        cache = TTLCache(ttl=60)
        assert cache.get("missing") is None

    def test_expired_entry(self):
        clock = Clock()
        cache = TTLCache(ttl=10, clock=clock)
        cache.set("key", "value")
        clock.now = 9.9
        assert cache.get("key") == "value"
        clock.now = 10
        assert cache.get("key") is None
        assert len(cache) == 0

    def test_max_size_evicts_oldest_write(self):
        cache = TTLCache(ttl=3600, max_size=3)
        for i in range(5):
            cache.set(f"k{i}", i)
        assert len(cache) == 3
        assert cache.get("k1") is None
        assert cache.get("k4") == 4

    def test_rewrite_refreshes_position(self):
        cache = TTLCache(ttl=3600, max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        cache.set("c", 4)
        assert cache.get("a") == 3
        assert cache.get("b") is None

    def test_prefix_namespaces_keys(self):
        cache = TTLCache(ttl=60, prefix="aff:")
        cache.set("https://a", "https://aff/a")
        assert cache.get("https://a") == "https://aff/a"
        assert list(cache._entries) == ["aff:https://a"]

class TestQuotaState:
    def test_initially_clear(self):
        quota = QuotaState("Amazon", cooldown=100)
        assert not quota.is_exceeded(now=0)
        assert quota.retry_after(now=0) == 0

    def test_exceeded_until_cooldown_elapses(self):
        quota = QuotaState("Amazon", cooldown=100)
        quota.mark_exceeded(now=1000)
        assert quota.is_exceeded(now=1000)
        assert quota.is_exceeded(now=1099)
        assert not quota.is_exceeded(now=1100)

    def test_retry_after(self):
        quota = QuotaState("Amazon", cooldown=100)
        quota.mark_exceeded(now=1000)
        assert quota.retry_after(now=1040) == 60

    def test_mark_is_idempotent(self):
        quota = QuotaState("Amazon", cooldown=100)
        quota.mark_exceeded(now=1000)
        quota.mark_exceeded(now=1000)
        assert quota.is_exceeded(now=1050)

    def test_later_429_restarts_cooldown(self):
        quota = QuotaState("Amazon", cooldown=100)
        quota.mark_exceeded(now=1000)
        quota.mark_exceeded(now=1080)
        assert quota.is_exceeded(now=1150)

    def test_reset(self):
        quota = QuotaState("Amazon", cooldown=100)
        quota.mark_exceeded(now=1000)
        quota.reset()
        assert not quota.is_exceeded(now=1001)
