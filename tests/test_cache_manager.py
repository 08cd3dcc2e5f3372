from datetime import datetime, timedelta

from bookswap.cache_manager import CacheManager


def test_memory_cache_set_get_delete():
    cache = CacheManager()
    cache.redis_client = None

    assert cache.get("geocode:netanya") is None
    cache.set("geocode:netanya", {"latitude": 32.31, "longitude": 34.87}, ttl_seconds=60)
    assert cache.get("geocode:netanya") == {"latitude": 32.31, "longitude": 34.87}

    assert cache.delete("geocode:netanya") is True
    assert cache.delete("geocode:netanya") is False
    assert cache.get("geocode:netanya") is None


def test_expired_entries_are_dropped():
    cache = CacheManager()
    cache.redis_client = None
    cache.memory_cache["old"] = ("value", datetime.now() - timedelta(seconds=1))

    assert cache.get("old") is None
    assert "old" not in cache.memory_cache


def test_clear_and_stats():
    cache = CacheManager()
    cache.redis_client = None
    cache.set("a", 1)
    cache.get("a")
    cache.get("missing")

    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_ratio"] == 0.5
    assert stats["redis_available"] is False

    cache.clear()
    assert cache.get_stats()["memory_cache_size"] == 0
