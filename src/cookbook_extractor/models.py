"""Value types passed between pipeline stages.

- ``CleaningStrategy``: ranked HTML cleaning strategies, most restrictive first
- ``ExtractionResponse``: outcome of one extraction attempt
- ``ExtractionPayload``: structured output schema requested from the model
- ``Valid`` / ``Invalid``: result of structural validation
- ``CacheEntry``: persisted outcome for one content hash
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidInputError
from .recipe import Recipe


class CleaningStrategy(Enum):
    """HTML cleaning strategies ordered from most to least restrictive.

    The enum value is the strategy's rank. Call sites use ``adaptive_order``
    and ``less_restrictive`` rather than indexing into lists.
    """

    STRUCTURED_DATA = 0
    SECTION_BASED = 1
    CONTENT_FILTER = 2
    FALLBACK = 3

    @property
    def rank(self) -> int:
        """Position in the adaptive order (0 = most restrictive)."""
        return self.value

    @classmethod
    def adaptive_order(cls) -> list[CleaningStrategy]:
        """All strategies, most restrictive first."""
        return sorted(cls, key=lambda strategy: strategy.rank)

    def less_restrictive(self) -> list[CleaningStrategy]:
        """Strategies strictly after this one in the adaptive order."""
        return [s for s in self.adaptive_order() if s.rank > self.rank]


@dataclass(frozen=True)
class ExtractionResponse:
    """Outcome of one extraction attempt.

    A positive response always carries at least one recipe and a confidence
    of 1.0. A negative response carries no recipes; its confidence says how
    likely the page is still a recipe given more context.

    Attributes:
        is_recipe: Whether the model found a recipe
        confidence: Value in [0, 1]
        recipes: Extracted recipes in page order
        raw_text: Unparsed model output, kept for debugging
    """

    is_recipe: bool
    confidence: float
    recipes: list[Recipe] = field(default_factory=list)
    raw_text: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidInputError(
                "confidence must be between 0.0 and 1.0", confidence=self.confidence
            )
        if self.is_recipe and not self.recipes:
            raise InvalidInputError("a recipe response needs at least one recipe")
        if self.is_recipe and self.confidence != 1.0:
            raise InvalidInputError(
                "a recipe response must have confidence 1.0", confidence=self.confidence
            )
        if not self.is_recipe and self.recipes:
            raise InvalidInputError(
                "a not-recipe response cannot carry recipes", recipe_count=len(self.recipes)
            )

    @classmethod
    def not_recipe(cls, confidence: float = 0.0, raw_text: str | None = None) -> ExtractionResponse:
        """Negative response with the given residual confidence."""
        return cls(is_recipe=False, confidence=confidence, raw_text=raw_text)

    @classmethod
    def of_recipes(cls, recipes: list[Recipe], raw_text: str | None = None) -> ExtractionResponse:
        """Positive response for one or more recipes.

        Raises:
            InvalidInputError: If ``recipes`` is empty
        """
        if not recipes:
            raise InvalidInputError("recipes must not be empty")
        return cls(is_recipe=True, confidence=1.0, recipes=list(recipes), raw_text=raw_text)

    @property
    def first_recipe(self) -> Recipe | None:
        """First recipe, or None for a negative response."""
        return self.recipes[0] if self.recipes else None


class ExtractionPayload(BaseModel):
    """Structured output requested from the model for one page."""

    is_recipe: bool = Field(
        description="True only if the page contains at least one complete recipe"
    )
    recipe_confidence: float = Field(
        description=(
            "Probability between 0 and 1 that the page is a recipe page. When is_recipe "
            "is false, a high value means the recipe content may have been removed."
        )
    )
    internal_reasoning: str = Field(
        description="One or two sentences explaining the decision. Not shown to users."
    )
    recipes: list[Recipe] = Field(description="Extracted recipes; empty when is_recipe is false")

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class Valid:
    """Validation passed; carries the validated recipe."""

    recipe: Recipe


@dataclass(frozen=True)
class Invalid:
    """Validation failed; carries a human-readable error listing for the model."""

    error_message: str


ValidationResult = Valid | Invalid


@dataclass(frozen=True)
class CacheEntry:
    """Cached outcome for one content hash.

    Attributes:
        content_hash: SHA-256 hex of the normalized URL
        source_url: URL the outcome was produced for
        valid: True for recipes, False for an explicit "not a recipe" marker
        payload: JSON array of recipes when ``valid``, otherwise None
        created_at: When the hash was first cached
        updated_at: When this entry was written
        version: Number of writes for this hash
    """

    content_hash: str
    source_url: str
    valid: bool
    payload: str | None
    created_at: datetime
    updated_at: datetime
    version: int = 1

    def superseding(self, previous: CacheEntry) -> CacheEntry:
        """Copy of this entry that replaces ``previous`` for the same hash."""
        return replace(self, created_at=previous.created_at, version=previous.version + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_hash": self.content_hash,
            "source_url": self.source_url,
            "valid": self.valid,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            content_hash=data["content_hash"],
            source_url=data["source_url"],
            valid=bool(data["valid"]),
            payload=data.get("payload"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            version=int(data.get("version", 1)),
        )
