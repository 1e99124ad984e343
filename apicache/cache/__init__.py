"""Response cache with interchangeable backends.

This package provides the cache used by the proxy:
- Redis: shared store with native per-key expiry
- File: in-memory store snapshotted to a JSON file

The cache manager picks Redis when it is reachable at startup and falls back
to the file backend otherwise.
"""

from .base import (
    CacheBackend,
    CacheConnectionError,
    CacheDecodeError,
    CacheEntry,
    CacheError,
    CacheOperationError,
    CacheUnavailableError,
)
from .manager import CacheManager
from .redis_cache import RedisCacheBackend
from .file_cache import FileCacheBackend, decode_entries, encode_entries

__all__ = [
    "CacheBackend",
    "CacheConnectionError",
    "CacheDecodeError",
    "CacheEntry",
    "CacheError",
    "CacheOperationError",
    "CacheUnavailableError",
    "CacheManager",
    "RedisCacheBackend",
    "FileCacheBackend",
    "decode_entries",
    "encode_entries",
]
