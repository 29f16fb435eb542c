"""Service factory for centralized dependency injection.

``ServiceFactory`` builds every pipeline component from one
``ExtractionConfig`` and shares expensive resources between them.

Benefits:
- Single OpenAI client instance (connection pooling)
- One place that maps configuration onto constructor arguments
- Easy testing via mock injection

Example:
    >>> from cookbook_extractor.config import ExtractionConfig
    >>> factory = ServiceFactory(ExtractionConfig.load())
    >>> service = factory.create_service()
    >>> response = await service.extract(html, url)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from ..cache import RecipeCache
    from ..cleaning import HtmlCleaner
    from ..config import ExtractionConfig
    from ..extractor import OpenAIRecipeExtractor
    from ..hashing import ContentHasher
    from ..pipeline import AdaptiveCleaningTransformer, ValidatingTransformer
    from ..postprocess import RecipePostProcessor
    from ..protocols import RecipeExtractor, RecipeStore
    from ..service import RecipeExtractionService
    from ..validator import RecipeValidator


@dataclass
class ServiceFactory:
    """Factory for creating service instances with shared dependencies.

    Attributes:
        config: Extraction configuration for all services

    Note:
        The OpenAI client, content hasher and recipe store are created lazily
        and cached, so every service built by one factory shares them.
    """

    config: ExtractionConfig

    @cached_property
    def client(self) -> AsyncOpenAI:
        """Get the shared async OpenAI client."""
        return AsyncOpenAI()

    @cached_property
    def hasher(self) -> ContentHasher:
        """Shared content hasher (its memo is reused across requests)."""
        from ..hashing import ContentHasher

        return ContentHasher()

    @cached_property
    def store(self) -> RecipeStore:
        """Shared file-backed recipe store under ``config.cache_dir``."""
        from ..store import FileRecipeStore

        return FileRecipeStore(self.config.cache_dir)

    def create_cleaner(self) -> HtmlCleaner:
        from ..cleaning import HtmlCleaner

        return HtmlCleaner(
            enabled=self.config.html_cleanup_enabled,
            structured_data_enabled=self.config.structured_data_enabled,
            structured_min_completeness=self.config.structured_min_completeness,
            section_based_enabled=self.config.section_based_enabled,
            section_min_confidence=self.config.section_min_confidence,
            section_keywords=self.config.section_keywords,
            min_output_size=self.config.min_output_size,
        )

    def create_extractor(self) -> OpenAIRecipeExtractor:
        """Create an LLM extractor using the shared client."""
        from ..extractor import OpenAIRecipeExtractor

        return OpenAIRecipeExtractor(
            client=self.client,
            model=self.config.model,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
        )

    def create_validator(self) -> RecipeValidator:
        from ..validator import RecipeValidator

        return RecipeValidator()

    def create_post_processor(self) -> RecipePostProcessor:
        from ..postprocess import RecipePostProcessor

        return RecipePostProcessor(schema_version=self.config.schema_version)

    def create_cache(self) -> RecipeCache:
        """Create a result cache over the shared store."""
        from ..cache import RecipeCache

        return RecipeCache(
            self.store,
            enabled=self.config.cache_enabled,
            lookup_timeout_ms=self.config.cache_lookup_timeout_ms,
            save_timeout_ms=self.config.cache_save_timeout_ms,
            count_timeout_ms=self.config.cache_count_timeout_ms,
        )

    def create_validating_transformer(
        self, extractor: RecipeExtractor | None = None
    ) -> ValidatingTransformer:
        from ..pipeline import ValidatingTransformer

        return ValidatingTransformer(
            extractor=extractor or self.create_extractor(),
            validator=self.create_validator(),
            post_processor=self.create_post_processor(),
            max_retries=self.config.validation_max_retries,
        )

    def create_transformer(self, extractor: RecipeExtractor | None = None) -> AdaptiveCleaningTransformer:
        """Create the full adaptive cleaning + validation transformer.

        Args:
            extractor: Extractor to use instead of the OpenAI one (tests,
                other vendors)
        """
        from ..pipeline import AdaptiveCleaningTransformer

        return AdaptiveCleaningTransformer(
            inner=self.create_validating_transformer(extractor),
            cleaner=self.create_cleaner(),
            enabled=self.config.adaptive_cleaning_enabled,
            threshold=self.config.confidence_threshold,
        )

    def create_service(self, extractor: RecipeExtractor | None = None) -> RecipeExtractionService:
        """Create the cache-aware extraction service.

        Example:
            >>> service = factory.create_service()
            >>> response = await service.extract(html, url)
        """
        from ..service import RecipeExtractionService

        return RecipeExtractionService(
            hasher=self.hasher,
            cache=self.create_cache(),
            transformer=self.create_transformer(extractor),
        )
