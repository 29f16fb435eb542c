"""Protocol definitions for cookbook_extractor.

The pipeline depends on these interfaces rather than on concrete classes, so
tests can pass in-memory fakes and alternative backends (another LLM vendor,
a database-backed store) can be swapped in through ``ServiceFactory``.

Example:
    >>> class FakeExtractor:
    ...     async def extract(self, html: str, url: str) -> ExtractionResponse:
    ...         return ExtractionResponse.not_recipe(0.9)
    ...     async def extract_with_feedback(self, html, prior_recipe, error_message):
    ...         return ExtractionResponse.not_recipe()
    >>> isinstance(FakeExtractor(), RecipeExtractor)
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .cleaning import CleaningResult
    from .models import CacheEntry, CleaningStrategy, ExtractionResponse, ValidationResult
    from .recipe import Recipe


@runtime_checkable
class ContentCleaner(Protocol):
    """Reduces raw HTML to the part worth sending to the model."""

    def clean_best(self, html: str, url: str) -> CleaningResult:
        """Clean with the most restrictive strategy that yields output."""
        ...

    def clean_with(self, html: str, url: str, strategy: CleaningStrategy) -> CleaningResult:
        """Clean with exactly ``strategy``."""
        ...


@runtime_checkable
class RecipeExtractor(Protocol):
    """Turns content into an ``ExtractionResponse`` using an LLM.

    Implementations raise ``ExtractionError`` on failure and never retry.
    """

    async def extract(self, html: str, url: str) -> ExtractionResponse:
        """Extract recipes from content.

        Args:
            html: Cleaned content
            url: Page URL

        Returns:
            Extraction response

        Raises:
            ExtractionError: If the model call fails
        """
        ...

    async def extract_with_feedback(
        self, html: str, prior_recipe: Recipe | None, error_message: str
    ) -> ExtractionResponse:
        """Extract again, given the rejected recipe and its validation errors.

        Raises:
            ExtractionError: If the model call fails
        """
        ...


@runtime_checkable
class Validator(Protocol):
    """Checks a recipe's structure."""

    def validate(self, recipe: Recipe | None) -> ValidationResult:
        """Return ``Valid`` or ``Invalid``; never raises."""
        ...


@runtime_checkable
class Transformer(Protocol):
    """Anything that turns page content into an extraction response."""

    async def transform(self, html: str, url: str) -> ExtractionResponse:
        """Transform content for ``url``.

        Raises:
            ExtractionError: Propagated from the extractor
        """
        ...


@runtime_checkable
class RecipeStore(Protocol):
    """Persistence for cache entries, one per content hash."""

    async def get(self, content_hash: str) -> CacheEntry | None:
        """Entry for ``content_hash``, or None."""
        ...

    async def save(self, entry: CacheEntry) -> CacheEntry:
        """Insert or replace the entry; returns it as stored."""
        ...

    async def delete(self, content_hash: str) -> bool:
        """Remove the entry; returns whether it existed."""
        ...

    async def count(self) -> int:
        """Number of stored entries."""
        ...
