"""
TTL cache for rendered statistics.

Keys are built from an explicit CacheNamespace that callers pass in. A flush
never deletes live entries: it returns the next namespace, whose keys differ
from every key written before. Entries are dropped once their TTL has passed,
on read, on write and on flush, so keys of old namespaces do not pile up.

Usage:
    cache = RenderCache(ttl=3600)
    namespace = CacheNamespace(1)

    data = await cache.get_cached_or_render(namespace, "leaderboard_scores", render)

    namespace = cache.flush(namespace)
"""
import inspect
import time
from collections import namedtuple

from loguru import logger

from config import get_cache_ttl

KEY_PREFIX = "kealoa"


class CacheNamespace(namedtuple('CacheNamespace', ['version'])):
    """Version stamp that every cache key is built from"""
    __slots__ = ()

    def key(self, name):
        return f"{KEY_PREFIX}_v{self.version}_{name}"

    def next(self):
        return CacheNamespace(self.version + 1)


class RenderCache:
    """Key-value store where every entry expires ttl seconds after it was set"""

    def __init__(self, ttl=None, clock=time.time):
        self.ttl = get_cache_ttl() if ttl is None else ttl
        self.clock = clock
        self.entries = {}

    def get(self, namespace, name):
        """Return (hit, data) for a name within a namespace"""
        entry = self.entries.get(namespace.key(name))
        if entry is None:
            return False, None

        data, stored_at = entry
        if self._expired(stored_at, self.clock()):
            del self.entries[namespace.key(name)]
            return False, None
        return True, data

    def set(self, namespace, name, data):
        self.purge_expired()
        self.entries[namespace.key(name)] = (data, self.clock())

    def _expired(self, stored_at, now):
        return now - stored_at >= self.ttl

    async def get_cached_or_render(self, namespace, name, renderer):
        """
        Return the cached value for name or render and store it.

        Args:
            namespace: CacheNamespace the key belongs to
            name: Fragment name, unique within a namespace
            renderer: Callable (sync or async) producing the value on a miss
        """
        hit, data = self.get(namespace, name)
        if hit:
            logger.debug(f"Cache hit for {namespace.key(name)}")
            return data

        data = renderer()
        if inspect.isawaitable(data):
            data = await data

        self.set(namespace, name, data)
        logger.debug(f"Cached {namespace.key(name)} for {self.ttl}s")
        return data

    def flush(self, namespace):
        """Return the namespace following this one; unexpired entries stay until their TTL passes"""
        new_namespace = namespace.next()
        purged = self.purge_expired()
        logger.info(
            f"Render cache flushed: v{namespace.version} -> v{new_namespace.version}, "
            f"{purged} expired entries dropped"
        )
        return new_namespace

    def purge_expired(self):
        """Drop expired entries and return how many were removed"""
        now = self.clock()
        expired = [key for key, (_data, stored_at) in self.entries.items() if self._expired(stored_at, now)]
        for key in expired:
            del self.entries[key]
        return len(expired)
