"""Redis-based cache backend with native per-key expiry."""

import json
from typing import Any, Optional, Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from apicache.utils.logger import log_info, log_warning
from .base import (
    CacheBackend,
    CacheConnectionError,
    CacheDecodeError,
    CacheEntry,
    CacheOperationError,
    CacheStats,
)


class RedisCacheBackend(CacheBackend):
    """Redis-based cache backend.

    Build instances with :meth:`connect`; the constructor only wraps a client
    that is already known to be reachable.
    """

    def __init__(self, client: "redis.Redis", ttl_seconds: int,
                 key_prefix: str = "", name: str = "redis"):
        super().__init__(name)
        self.redis = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    @classmethod
    async def connect(cls, redis_url: str, ttl_seconds: int, key_prefix: str = "",
                      socket_timeout: float = 5.0, name: str = "redis") -> "RedisCacheBackend":
        """Connect to Redis and return a ready backend.

        Raises:
            CacheConnectionError: if the server cannot be reached
        """
        try:
            client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=socket_timeout,
                socket_timeout=socket_timeout,
            )
        except ValueError as e:
            raise CacheConnectionError(f"invalid Redis URL: {e}") from e

        try:
            await client.ping()
        except (RedisError, OSError) as e:
            await client.aclose()
            raise CacheConnectionError(f"could not connect to Redis: {e}") from e

        log_info("Redis cache backend connected", redis_url=redis_url)
        return cls(client, ttl_seconds, key_prefix=key_prefix, name=name)

    def _make_key(self, key: str) -> str:
        """Create Redis key with prefix."""
        return f"{self.key_prefix}{key}"

    async def contains(self, key: str) -> bool:
        """Check if key exists in Redis."""
        try:
            return await self.redis.exists(self._make_key(key)) > 0
        except RedisError as e:
            self._record_error()
            raise CacheOperationError(f"EXISTS failed: {e}") from e

    async def delete(self, key: str) -> bool:
        """Delete key from Redis."""
        try:
            return await self.redis.delete(self._make_key(key)) == 1
        except RedisError as e:
            self._record_error()
            raise CacheOperationError(f"DEL failed: {e}") from e

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get entry from Redis.

        Raises:
            CacheOperationError: on Redis failure
            CacheDecodeError: if the stored value is not a valid entry
        """
        try:
            raw = await self.redis.get(self._make_key(key))
        except RedisError as e:
            self._record_error()
            raise CacheOperationError(f"GET failed: {e}") from e
        except UnicodeDecodeError as e:
            # Raised by the client's response decoding
            self._record_error()
            raise CacheDecodeError(f"stored value for {key!r} is not UTF-8 text") from e

        if raw is None:
            self._record_miss()
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(raw))
        except ValueError as e:
            self._record_error()
            raise CacheDecodeError(f"stored value for {key!r} is not JSON") from e
        except CacheDecodeError:
            self._record_error()
            raise

        self._record_hit()
        return entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        """Store entry with the configured TTL."""
        payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        try:
            await self.redis.setex(self._make_key(key), self.ttl_seconds, payload)
        except RedisError as e:
            self._record_error()
            raise CacheOperationError(f"SETEX failed: {e}") from e

    async def persist(self) -> None:
        """Ask Redis to write its own snapshot."""
        try:
            await self.redis.save()
        except RedisError as e:
            self._record_error()
            raise CacheOperationError(f"SAVE failed: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        """Get Redis cache statistics."""
        stats = CacheStats.from_backend(self)
        return {
            **stats.to_dict(),
            "backend": self.name,
            "key_prefix": self.key_prefix,
            "ttl_seconds": self.ttl_seconds,
        }

    async def close(self) -> None:
        """Close Redis connection."""
        try:
            await self.redis.aclose()
        except RedisError as e:
            log_warning("Error closing Redis connection", error=str(e))
