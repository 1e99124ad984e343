"""Request flow of the caching proxy.

For every request: build the cache key, serve a fresh cached entry if there is
one, otherwise call upstream and store the result before replying.
"""
from __future__ import annotations
from typing import Iterable, Optional

from apicache.cache import CacheBackend, CacheEntry, CacheError, CacheManager
from apicache.keys import DEFAULT_STRIP_PARAMS, make_cache_key, upstream_target
from apicache.upstream import UpstreamClient
from apicache.utils.logger import log_debug, log_error, log_request


class CachingProxy:
    """Serves requests from the active cache backend or the upstream API.

    Until the cache manager has selected a backend, every request is a forced
    cache miss: upstream is called and the result is not stored.
    """

    def __init__(self, cache_manager: CacheManager, upstream: UpstreamClient,
                 ttl_seconds: int, strip_params: Iterable[str] = DEFAULT_STRIP_PARAMS):
        self.cache_manager = cache_manager
        self.upstream = upstream
        self.ttl_seconds = ttl_seconds
        self.strip_params = tuple(strip_params)

    async def handle(self, method: str, path: str, query_string: str = "") -> CacheEntry:
        """Resolve one request to the entry that should be replied."""
        key = make_cache_key(method, path, query_string, self.strip_params)
        log_request("IN", method, key.split(" ", 1)[1])

        backend = self.cache_manager.backend
        if backend is None:
            log_debug("Cache not ready, bypassing", key=key)
        else:
            cached = await self._lookup(backend, key)
            if cached is not None:
                return cached

        target = upstream_target(path, query_string, self.strip_params)
        response = await self.upstream.request(method, target)
        entry = CacheEntry.create(response.data, response.status)

        if backend is not None:
            try:
                await backend.set(key, entry)
            except CacheError as e:
                log_error("Cache write failed", backend=backend.name, key=key, error=str(e))

        return entry

    async def _lookup(self, backend: CacheBackend, key: str) -> Optional[CacheEntry]:
        """Return a fresh entry, deleting a stale one. Cache errors are misses."""
        try:
            entry = await backend.get(key)
            if entry is None:
                return None
            if entry.is_fresh(self.ttl_seconds):
                log_debug("Cache hit", key=key, status=entry.status)
                return entry
            await backend.delete(key)
            log_debug("Stale cache entry removed", key=key)
        except CacheError as e:
            log_error("Cache lookup failed", backend=backend.name, key=key, error=str(e))
        return None
