"""
Tests for the per-context response cache.
"""

import time

from quickorder.context import Context
from quickorder.middleware.cache import CacheEntry, ResponseCache


def entry(context: Context, created_at: float | None = None, ttl: int = 300) -> CacheEntry:
    return CacheEntry(
        content=b"{}",
        content_type="application/json",
        status_code=200,
        created_at=time.time() if created_at is None else created_at,
        ttl=ttl,
        context=context,
    )


class TestResponseCache:
    def test_invalidate_context(self):
        cache = ResponseCache()
        cache.set("r1", entry(Context.REGULAR))
        cache.set("r2", entry(Context.REGULAR))
        cache.set("v1", entry(Context.VIRTUAL))

        assert cache.invalidate_context(Context.REGULAR) == 2
        assert cache.get("r1") is None
        assert cache.get("v1") is not None

    def test_invalidate_everything(self):
        cache = ResponseCache()
        cache.set("r1", entry(Context.REGULAR))
        cache.set("v1", entry(Context.VIRTUAL))

        assert cache.invalidate() == 2
        assert cache.cache == {}

    def test_expired_entries_are_dropped(self):
        cache = ResponseCache()
        cache.set("old", entry(Context.VIRTUAL, created_at=time.time() - 10, ttl=5))

        assert cache.get("old") is None
        assert "old" not in cache.cache

    def test_oldest_entry_evicted_when_full(self):
        cache = ResponseCache(max_size=2)
        now = time.time()
        cache.set("a", entry(Context.VIRTUAL, created_at=now - 2))
        cache.set("b", entry(Context.VIRTUAL, created_at=now - 1))
        cache.set("c", entry(Context.VIRTUAL, created_at=now))

        assert set(cache.cache) == {"b", "c"}

    def test_stats(self):
        cache = ResponseCache()
        cache.set("r1", entry(Context.REGULAR))
        cache.get("r1")
        cache.get("missing")

        stats = cache.stats()

        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["per_context"] == {"regular": 1, "virtual": 0}
