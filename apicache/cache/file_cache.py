"""In-memory cache backend with a JSON file snapshot.

The dict is the source of truth while the process runs. The snapshot file is
read once at construction and rewritten only by ``persist()``.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Dict

from apicache.utils.logger import log_info, log_warning
from .base import CacheBackend, CacheDecodeError, CacheEntry, CacheStats

MAP_TAG = "Map"


def encode_entries(entries: Dict[str, CacheEntry]) -> Dict[str, Any]:
    """Encode a key->entry mapping as a tagged array of pairs."""
    return {
        "dataType": MAP_TAG,
        "value": [[key, entry.to_dict()] for key, entry in entries.items()],
    }


def decode_entries(document: Any) -> Dict[str, CacheEntry]:
    """Decode a tagged array of pairs back into a key->entry mapping.

    Raises:
        CacheDecodeError: if the document is not a tagged map of entries
    """
    if not isinstance(document, dict) or document.get("dataType") != MAP_TAG:
        raise CacheDecodeError("snapshot is not a tagged map")

    pairs = document.get("value")
    if not isinstance(pairs, list):
        raise CacheDecodeError("snapshot map value must be a list of pairs")

    entries: Dict[str, CacheEntry] = {}
    for pair in pairs:
        if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[0], str):
            raise CacheDecodeError("snapshot pair must be [key, entry]")
        entries[pair[0]] = CacheEntry.from_dict(pair[1])
    return entries


class FileCacheBackend(CacheBackend):
    """Dict-backed cache persisted to a single JSON file."""

    def __init__(self, cache_file: str = "cache.json", name: str = "file"):
        super().__init__(name)
        self.cache_file = Path(cache_file)
        # Fails with OSError when the snapshot location is unusable
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

        self.entries: Dict[str, CacheEntry] = self._load()

    def _load(self) -> Dict[str, CacheEntry]:
        """Load the snapshot, starting empty when it is missing or corrupt."""
        if not self.cache_file.exists():
            log_info("No cache snapshot found, starting empty", cache_file=str(self.cache_file))
            return {}

        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                entries = decode_entries(json.load(f))
        except (OSError, ValueError, CacheDecodeError) as e:
            log_warning(
                "Cache snapshot unreadable, starting empty",
                cache_file=str(self.cache_file),
                error=str(e),
            )
            return {}

        log_info("Cache snapshot loaded", cache_file=str(self.cache_file), entries=len(entries))
        return entries

    def _write_snapshot(self, document: Dict[str, Any]) -> None:
        """Atomically replace the snapshot file."""
        fd, temp_path = tempfile.mkstemp(
            dir=self.cache_file.parent,
            prefix=".tmp_",
            suffix=self.cache_file.suffix,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False)
            os.replace(temp_path, self.cache_file)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    async def contains(self, key: str) -> bool:
        """Check if key exists in memory."""
        return key in self.entries

    async def delete(self, key: str) -> bool:
        """Delete key from memory."""
        return self.entries.pop(key, None) is not None

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get entry from memory."""
        entry = self.entries.get(key)
        if entry is None:
            self._record_miss()
        else:
            self._record_hit()
        return entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        """Set entry in memory."""
        self.entries[key] = entry

    async def persist(self) -> None:
        """Write the current mapping to the snapshot file."""
        async with self._lock:
            document = encode_entries(dict(self.entries))
            try:
                self._write_snapshot(document)
            except OSError:
                self._record_error()
                raise
            log_info(
                "Cache snapshot written",
                cache_file=str(self.cache_file),
                entries=len(document["value"]),
            )

    def get_stats(self) -> Dict[str, Any]:
        """Get file cache statistics."""
        stats = CacheStats.from_backend(self)
        stats.size = len(self.entries)
        return {
            **stats.to_dict(),
            "backend": self.name,
            "cache_file": str(self.cache_file),
        }
