"""
Tests for the namespaced render cache.
"""
import pytest

from config import get_cache_ttl
from services.render_cache import CacheNamespace, RenderCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestCacheNamespace:
    """Tests for CacheNamespace keys"""

    def test_key_includes_version(self):
        assert CacheNamespace(3).key("leaderboard") == "kealoa_v3_leaderboard"

    def test_next_changes_every_key(self):
        namespace = CacheNamespace(3)
        assert namespace.next().key("leaderboard") != namespace.key("leaderboard")
        assert namespace.next().version == 4


class TestRenderCache:
    """Tests for RenderCache expiry and flushing"""

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = RenderCache(ttl=60, clock=clock)
        cache.set(CacheNamespace(1), "stats", {"a": 1})

        clock.now += 59
        assert cache.get(CacheNamespace(1), "stats") == (True, {"a": 1})

    def test_miss_after_ttl(self):
        clock = FakeClock()
        cache = RenderCache(ttl=60, clock=clock)
        cache.set(CacheNamespace(1), "stats", {"a": 1})

        clock.now += 60
        assert cache.get(CacheNamespace(1), "stats") == (False, None)
        assert cache.entries == {}

    def test_purge_expired_counts_removed_entries(self):
        """Only entries past their TTL are purged"""
        clock = FakeClock()
        cache = RenderCache(ttl=60, clock=clock)
        cache.set(CacheNamespace(1), "old", 1)
        clock.now += 30
        cache.set(CacheNamespace(1), "new", 2)

        clock.now += 30
        assert cache.purge_expired() == 1
        assert list(cache.entries) == ["kealoa_v1_new"]

    def test_entries_do_not_grow_across_flushes(self):
        """Repeated write/flush/expire cycles leave at most the latest entry behind"""
        clock = FakeClock()
        cache = RenderCache(ttl=60, clock=clock)
        namespace = CacheNamespace(1)

        for _ in range(100):
            cache.set(namespace, "leaderboard", "rendered")
            namespace = cache.flush(namespace)
            clock.now += 61

        assert len(cache.entries) <= 1
        cache.flush(namespace)
        assert cache.entries == {}

    def test_flush_keeps_old_entries_but_misses(self):
        cache = RenderCache(ttl=60, clock=FakeClock())
        namespace = CacheNamespace(1)
        cache.set(namespace, "stats", "old")

        new_namespace = cache.flush(namespace)

        assert cache.get(new_namespace, "stats") == (False, None)
        assert cache.get(namespace, "stats") == (True, "old")

    def test_default_ttl_comes_from_config(self):
        assert RenderCache().ttl == get_cache_ttl()

    @pytest.mark.asyncio
    async def test_get_cached_or_render_calls_renderer_once(self):
        cache = RenderCache(ttl=60, clock=FakeClock())
        namespace = CacheNamespace(1)
        calls = []

        async def render():
            calls.append(1)
            return len(calls)

        assert await cache.get_cached_or_render(namespace, "count", render) == 1
        assert await cache.get_cached_or_render(namespace, "count", render) == 1
        assert await cache.get_cached_or_render(namespace.next(), "count", render) == 2

    @pytest.mark.asyncio
    async def test_sync_renderer(self):
        cache = RenderCache(ttl=60, clock=FakeClock())
        assert await cache.get_cached_or_render(CacheNamespace(1), "plain", lambda: "value") == "value"
