"""Cache manager with one-time backend selection and fallback."""

import asyncio
from typing import Any, Optional, Dict

from apicache.utils.logger import log_info, log_warning, log_error
from .base import CacheBackend, CacheConnectionError, CacheError, CacheUnavailableError
from .redis_cache import RedisCacheBackend
from .file_cache import FileCacheBackend


class CacheManager:
    """Selects the active cache backend once and owns it for the process.

    Redis is preferred when a URL is configured and the server answers at
    startup; otherwise the file backend is used. There is no re-selection.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._backend: Optional[CacheBackend] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> "CacheManager":
        """Build a manager from the application Config."""
        return cls(
            {
                "ttl_seconds": config.cache_ttl_seconds,
                "cache_file": config.cache_file,
                "redis_url": config.redis_url,
                "redis_key_prefix": config.redis_key_prefix,
                "redis_socket_timeout": config.redis_socket_timeout,
            }
        )

    @property
    def backend(self) -> Optional[CacheBackend]:
        """The active backend, or None while selection has not completed."""
        return self._backend

    @property
    def is_ready(self) -> bool:
        return self._backend is not None

    async def initialize(self) -> CacheBackend:
        """Select the active backend. Later calls return the same backend.

        Raises:
            CacheUnavailableError: if neither backend can be built
        """
        async with self._lock:
            if self._backend is not None:
                return self._backend

            backend = await self._create_redis_backend()
            if backend is None:
                backend = self._create_file_backend()

            self._backend = backend
            log_info(
                "Cache manager initialized",
                active_backend=backend.name,
                ttl_seconds=self.config.get("ttl_seconds"),
            )
            return backend

    async def _create_redis_backend(self) -> Optional[RedisCacheBackend]:
        """Try the Redis factory; None means fall back."""
        redis_url = self.config.get("redis_url") or ""
        if not redis_url:
            log_info("No Redis URL configured, using file cache backend")
            return None

        try:
            return await RedisCacheBackend.connect(
                redis_url,
                ttl_seconds=self.config.get("ttl_seconds", 1800),
                key_prefix=self.config.get("redis_key_prefix", ""),
                socket_timeout=self.config.get("redis_socket_timeout", 5.0),
            )
        except CacheConnectionError as e:
            log_warning(
                "Redis unavailable, falling back to file cache backend",
                redis_url=redis_url,
                error=str(e),
            )
            return None

    def _create_file_backend(self) -> FileCacheBackend:
        cache_file = self.config.get("cache_file", "cache.json")
        try:
            backend = FileCacheBackend(cache_file=cache_file)
        except OSError as e:
            log_error("File cache backend could not be created", cache_file=cache_file, error=str(e))
            raise CacheUnavailableError(f"no cache backend available: {e}") from e

        log_info("File cache backend created", cache_file=cache_file, entries=len(backend.entries))
        return backend

    async def shutdown(self) -> None:
        """Persist once, then close the active backend.

        Persist failures are logged and not retried.
        """
        backend = self._backend
        if backend is None:
            return

        try:
            await backend.persist()
        except (CacheError, OSError) as e:
            log_error("Cache persist on shutdown failed", backend=backend.name, error=str(e))

        try:
            await backend.close()
        finally:
            self._backend = None
            log_info("Cache manager closed", backend=backend.name, hits=backend.hits, misses=backend.misses)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if self._backend is None:
            return {"status": "not_initialized"}

        stats = self._backend.get_stats()
        stats.update(
            {
                "manager_status": "active",
                "active_backend": self._backend.name,
            }
        )
        return stats
