"""Cache entry model, errors and the abstract backend contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Dict
import time


class CacheError(Exception):
    """Base class for cache failures."""


class CacheConnectionError(CacheError):
    """A backend could not be connected at construction time."""


class CacheOperationError(CacheError):
    """A single backend operation failed (network, server error)."""


class CacheDecodeError(CacheError):
    """A stored value exists but is not a valid cache entry."""


class CacheUnavailableError(CacheError):
    """No cache backend could be constructed."""


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class CacheEntry:
    """A cached upstream response.

    ``data`` is an opaque JSON document that the cache only transports.
    ``None`` means the upstream call produced no body.
    """

    data: Any
    time_stored: int
    status: int

    def is_fresh(self, ttl_seconds: int, now: Optional[int] = None) -> bool:
        """Check whether the entry is younger than the TTL."""
        if now is None:
            now = now_ms()
        return now - self.time_stored < ttl_seconds * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the storage/wire shape."""
        return {
            "data": self.data,
            "timeStored": self.time_stored,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, value: Any) -> "CacheEntry":
        """Build an entry from its storage shape.

        Raises:
            CacheDecodeError: if ``value`` is not a valid entry document
        """
        if not isinstance(value, dict):
            raise CacheDecodeError(f"entry must be an object, got {type(value).__name__}")
        missing = {"data", "timeStored", "status"} - value.keys()
        if missing:
            raise CacheDecodeError(f"entry is missing fields: {sorted(missing)}")
        if not _is_int(value["timeStored"]):
            raise CacheDecodeError("entry timeStored must be an integer")
        if not _is_int(value["status"]):
            raise CacheDecodeError("entry status must be an integer")
        return cls(data=value["data"], time_stored=value["timeStored"], status=value["status"])

    @classmethod
    def create(cls, data: Any, status: int) -> "CacheEntry":
        """Build an entry stamped with the current time."""
        return cls(data=data, time_stored=now_ms(), status=status)


class CacheBackend(ABC):
    """Abstract base class for cache backends."""

    def __init__(self, name: str):
        self.name = name
        self.hits = 0
        self.misses = 0
        self.errors = 0

    @abstractmethod
    async def contains(self, key: str) -> bool:
        """Check if a (possibly stale) entry exists for key."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache, returning whether it was present."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get the stored entry verbatim, without a freshness check."""
        pass

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry) -> None:
        """Insert or overwrite the entry for key."""
        pass

    @abstractmethod
    async def persist(self) -> None:
        """Flush buffered state to durable storage."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        pass

    async def close(self) -> None:
        """Close cache backend and cleanup resources."""
        return None

    # Utility methods

    def _record_hit(self) -> None:
        """Record cache hit."""
        self.hits += 1

    def _record_miss(self) -> None:
        """Record cache miss."""
        self.misses += 1

    def _record_error(self) -> None:
        """Record cache error."""
        self.errors += 1


class CacheStats:
    """Cache statistics data structure."""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.size = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate_percent": self.hit_rate,
            "size": self.size,
        }

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    @classmethod
    def from_backend(cls, backend: CacheBackend) -> "CacheStats":
        """Seed stats with a backend's counters."""
        stats = cls()
        stats.hits = backend.hits
        stats.misses = backend.misses
        stats.errors = backend.errors
        return stats
