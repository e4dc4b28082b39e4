"""Tests for utils/cache.py — lightweight TTL cache."""
import time
from utils.cache import TTLCache


class TestTTLCache:
    def test_basic_set_get(self):
        cache = TTLCache()
        cache.set("key", "value")
        assert cache.get("key") == "value"

    def test_miss_returns_none(self):
        cache = TTLCache()
        assert cache.get("nonexistent") is None

    def test_default_ttl_is_five_minutes(self):
        assert TTLCache().ttl == 300

    def test_ttl_expiry(self):
        cache = TTLCache(ttl_seconds=0.05)
        cache.set("key", "value")
        assert cache.get("key") == "value"
        time.sleep(0.1)
        assert cache.get("key") is None

    def test_clear(self):
        cache = TTLCache()
        cache.set("k1", "v1")
        cache.set("k2", "v2")
        cache.clear()
        assert cache.get("k1") is None
        assert cache.get("k2") is None

    def test_clear_resets_counters(self):
        cache = TTLCache()
        cache.set("k", "v")
        cache.get("k")
        cache.get("x")
        cache.clear()
        assert cache.stats() == {"hits": 0, "misses": 0, "size": 0}

    def test_delete(self):
        cache = TTLCache()
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("absent")
        assert cache.get("k") is None

    def test_stats_tracks_hits_misses(self):
        cache = TTLCache()
        cache.set("k", "v")
        cache.get("k")   # hit
        cache.get("nope") # miss
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_stats_size(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.stats()["size"] == 2
        assert len(cache) == 2

    def test_keys_in_insertion_order(self):
        cache = TTLCache()
        cache.set("promocoes?anoPromocao=2025", 1)
        cache.set(("dashboard", "2025", ""), 2)
        assert cache.keys() == ["promocoes?anoPromocao=2025", ("dashboard", "2025", "")]

    def test_purge_expired(self):
        cache = TTLCache(ttl_seconds=0.05)
        cache.set("a", 1)
        cache.set("b", 2)
        time.sleep(0.1)
        assert cache.purge_expired() == 2
        assert cache.keys() == []

    def test_maxsize_eviction(self):
        cache = TTLCache(maxsize=2)
        cache.set("k1", "v1")
        cache.set("k2", "v2")
        cache.set("k3", "v3")  # evicts k1, the entry closest to expiry
        assert cache.get("k1") is None
        assert cache.get("k2") == "v2"
        assert cache.get("k3") == "v3"

    def test_overwrite_existing(self):
        cache = TTLCache(maxsize=1)
        cache.set("k", "old")
        cache.set("k", "new")
        assert cache.get("k") == "new"
        assert len(cache) == 1
