"""Best-effort result cache keyed by content hash.

Every store call is bounded by a deadline. A lookup that times out or fails
is a miss, a write that times out or fails is skipped, and a count that
fails reports zero. Extraction never fails because of the cache.

Example:
    >>> cache = RecipeCache(InMemoryRecipeStore())
    >>> await cache.store_valid(content_hash, url, recipes)
    >>> entry = await cache.lookup(content_hash)
    >>> cache.recipes_from(entry)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .deadline import call_with_deadline
from .models import CacheEntry
from .recipe import Recipe, recipes_from_json, recipes_to_json

if TYPE_CHECKING:
    from .protocols import RecipeStore

logger = logging.getLogger(__name__)


class RecipeCache:
    """Deadline-bounded view of a ``RecipeStore``.

    Attributes:
        store: Backing store
        enabled: When False, lookups miss, writes are skipped and size is 0
        lookup_timeout: Seconds allowed for ``lookup``
        save_timeout: Seconds allowed for ``store_valid``/``store_invalid``/``evict``
        count_timeout: Seconds allowed for ``size``
    """

    def __init__(
        self,
        store: RecipeStore,
        enabled: bool = True,
        lookup_timeout_ms: int = 200,
        save_timeout_ms: int = 5000,
        count_timeout_ms: int = 1000,
    ) -> None:
        self.store = store
        self.enabled = enabled
        self.lookup_timeout = lookup_timeout_ms / 1000
        self.save_timeout = save_timeout_ms / 1000
        self.count_timeout = count_timeout_ms / 1000

    async def lookup(self, content_hash: str) -> CacheEntry | None:
        """Cached entry for ``content_hash``, or None on miss, timeout or error."""
        if not self.enabled:
            return None

        entry = await call_with_deadline(
            self.store.get(content_hash),
            timeout=self.lookup_timeout,
            default=None,
            operation="Cache lookup",
        )
        if entry is None:
            logger.debug(f"Cache miss for {content_hash[:12]}")
        else:
            logger.debug(
                f"Cache hit for {content_hash[:12]} (valid={entry.valid}, version={entry.version})"
            )
        return entry

    async def store_valid(self, content_hash: str, source_url: str, recipes: list[Recipe]) -> bool:
        """Cache extracted recipes. Returns whether the write succeeded."""
        return await self._save(
            content_hash, source_url, valid=True, payload=recipes_to_json(recipes)
        )

    async def store_invalid(self, content_hash: str, source_url: str) -> bool:
        """Cache a "not a recipe" marker. Returns whether the write succeeded."""
        return await self._save(content_hash, source_url, valid=False, payload=None)

    async def evict(self, content_hash: str) -> bool:
        """Remove the entry for ``content_hash``. Returns whether one was removed."""
        if not self.enabled:
            return False
        return await call_with_deadline(
            self.store.delete(content_hash),
            timeout=self.save_timeout,
            default=False,
            operation="Cache evict",
        )

    async def size(self) -> int:
        """Number of cached entries, or 0 on timeout or error."""
        if not self.enabled:
            return 0
        return await call_with_deadline(
            self.store.count(),
            timeout=self.count_timeout,
            default=0,
            operation="Cache count",
        )

    @staticmethod
    def recipes_from(entry: CacheEntry) -> list[Recipe] | None:
        """Recipes held by a valid entry.

        Returns:
            The cached recipes, or None when the entry is not valid, has no
            payload, or the payload no longer parses
        """
        if not entry.valid or not entry.payload:
            return None
        try:
            recipes = recipes_from_json(entry.payload)
        except ValidationError as e:
            logger.warning(
                f"Discarding unreadable cache payload for {entry.content_hash[:12]}: "
                f"{e.error_count()} errors"
            )
            return None
        return recipes or None

    async def _save(
        self, content_hash: str, source_url: str, valid: bool, payload: str | None
    ) -> bool:
        if not self.enabled:
            return False

        now = datetime.now(UTC)
        entry = CacheEntry(
            content_hash=content_hash,
            source_url=source_url,
            valid=valid,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        stored = await call_with_deadline(
            self.store.save(entry),
            timeout=self.save_timeout,
            default=None,
            operation="Cache save",
        )
        if stored is None:
            return False
        logger.debug(f"Cached {'recipes' if valid else 'not-recipe marker'} for {source_url}")
        return True
