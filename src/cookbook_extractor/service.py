"""Cache-aware entry point for recipe extraction.

``RecipeExtractionService.extract`` is what callers use: it hashes the URL,
answers from the cache when it can, otherwise runs the transformer and writes
the outcome back.

Example:
    >>> factory = ServiceFactory(ExtractionConfig.load())
    >>> service = factory.create_service()
    >>> response = await service.extract(html, "https://example.com/pie")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import ExtractionResponse

if TYPE_CHECKING:
    from .cache import RecipeCache
    from .hashing import ContentHasher
    from .protocols import Transformer

logger = logging.getLogger(__name__)


class RecipeExtractionService:
    """Hash, look up, transform, store.

    Only terminal outcomes are cached: recipes as a valid entry, anything
    else as a "not a recipe" marker. If the transformer raises (model
    failure, cancellation) nothing is written and the error propagates.

    Attributes:
        hasher: URL hasher producing cache keys
        cache: Result cache
        transformer: Usually an ``AdaptiveCleaningTransformer``
    """

    def __init__(self, hasher: ContentHasher, cache: RecipeCache, transformer: Transformer) -> None:
        self.hasher = hasher
        self.cache = cache
        self.transformer = transformer

    async def extract(self, html: str, url: str, use_cache: bool = True) -> ExtractionResponse:
        """Extract recipes for a page, using and filling the cache.

        Args:
            html: Raw page HTML
            url: Page URL (cache key after normalization)
            use_cache: When False the cache is neither read nor written

        Returns:
            Cached or freshly extracted response

        Raises:
            InvalidInputError: If ``url`` is malformed
            ExtractionError: If the model call fails
        """
        content_hash = self.hasher.hash(url)

        if use_cache:
            cached = await self.lookup(content_hash)
            if cached is not None:
                return cached

        response = await self.transformer.transform(html, url)

        if use_cache:
            if response.is_recipe:
                await self.cache.store_valid(content_hash, url, response.recipes)
            else:
                await self.cache.store_invalid(content_hash, url)

        return response

    async def lookup(self, content_hash: str) -> ExtractionResponse | None:
        """Response rebuilt from the cache, or None on a miss."""
        entry = await self.cache.lookup(content_hash)
        if entry is None:
            return None

        if not entry.valid:
            logger.info(f"Cached not-a-recipe marker for {entry.source_url}")
            return ExtractionResponse.not_recipe()

        recipes = self.cache.recipes_from(entry)
        if recipes is None:
            return None

        logger.info(f"Returning {len(recipes)} cached recipe(s) for {entry.source_url}")
        return ExtractionResponse.of_recipes(recipes)

    async def forget(self, url: str) -> bool:
        """Drop the cached outcome for ``url`` so the next call re-extracts."""
        return await self.cache.evict(self.hasher.hash(url))

    async def cache_size(self) -> int:
        return await self.cache.size()
