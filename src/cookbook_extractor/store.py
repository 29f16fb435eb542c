"""Recipe stores backing the result cache.

A store keeps at most one ``CacheEntry`` per content hash. Saving an entry
for a hash that already exists replaces it, carrying over ``created_at`` and
incrementing ``version``.

Two backends are provided:
- ``InMemoryRecipeStore``: process-local dictionary, used in tests and
  for embedding in long-running processes
- ``FileRecipeStore``: one JSON document per hash under a directory

Example:
    >>> store = FileRecipeStore(Path(".cookbook-cache"))
    >>> await store.save(entry)
    >>> await store.count()
    1
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from pathlib import Path

from .exceptions import StoreError
from .models import CacheEntry

logger = logging.getLogger(__name__)

_HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def _check_hash(content_hash: str) -> str:
    if not _HASH_PATTERN.match(content_hash):
        raise StoreError("Content hash must be 64 lowercase hex characters", hash=content_hash)
    return content_hash


class InMemoryRecipeStore:
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, content_hash: str) -> CacheEntry | None:
        return self._entries.get(content_hash)

    async def save(self, entry: CacheEntry) -> CacheEntry:
        async with self._lock:
            previous = self._entries.get(entry.content_hash)
            stored = entry.superseding(previous) if previous else entry
            self._entries[entry.content_hash] = stored
        return stored

    async def delete(self, content_hash: str) -> bool:
        async with self._lock:
            return self._entries.pop(content_hash, None) is not None

    async def count(self) -> int:
        return len(self._entries)


class FileRecipeStore:
    """Store that writes one ``<hash>.json`` file per entry.

    File I/O runs in a worker thread so the event loop is never blocked.
    Writes go to a temporary file first and are moved into place, so readers
    never see a partial document.

    Attributes:
        directory: Directory holding the entry files
    """

    def __init__(self, directory: Path) -> None:
        """Initialize the store.

        Args:
            directory: Directory for entry files; created on first write
        """
        self.directory = Path(directory)
        self._lock = asyncio.Lock()

    def _path(self, content_hash: str) -> Path:
        return self.directory / f"{_check_hash(content_hash)}.json"

    def _read(self, content_hash: str) -> CacheEntry | None:
        path = self._path(content_hash)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return CacheEntry.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise StoreError(
                "Failed to read cache entry", path=str(path), error=str(e)
            ) from e

    def _write(self, entry: CacheEntry) -> CacheEntry:
        try:
            previous = self._read(entry.content_hash)
        except StoreError as e:
            logger.warning(f"Replacing unreadable cache entry: {e}")
            previous = None
        stored = entry.superseding(previous) if previous else entry

        path = self._path(entry.content_hash)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(stored.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(
                "Failed to write cache entry", path=str(path), error=str(e)
            ) from e

        logger.debug(f"Wrote cache entry {path.name} (version {stored.version})")
        return stored

    def _delete(self, content_hash: str) -> bool:
        path = self._path(content_hash)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError("Failed to delete cache entry", path=str(path), error=str(e)) from e
        return True

    def _count(self) -> int:
        if not self.directory.exists():
            return 0
        return sum(1 for _ in self.directory.glob("*.json"))

    async def get(self, content_hash: str) -> CacheEntry | None:
        """Entry for ``content_hash``, or None.

        Raises:
            StoreError: If the file exists but cannot be read
        """
        return await asyncio.to_thread(self._read, content_hash)

    async def save(self, entry: CacheEntry) -> CacheEntry:
        """Insert or replace the entry for ``entry.content_hash``.

        Returns:
            The entry as stored, with ``created_at`` and ``version`` carried
            over from any previous entry

        Raises:
            StoreError: If the file cannot be written
        """
        async with self._lock:
            return await asyncio.to_thread(self._write, entry)

    async def delete(self, content_hash: str) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._delete, content_hash)

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)
