"""Stamp provenance onto extracted recipes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from .exceptions import InvalidInputError
from .recipe import Recipe, RecipeMetadata

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Recipe"


class RecipePostProcessor:
    """Overrides provenance fields on recipes returned to callers.

    The model is not trusted with the source URL, the creation date or the
    schema version; these are always set here. All other fields are left as
    the model produced them.

    Attributes:
        schema_version: Version written to ``schema_version``
        today: Clock returning the current date (injectable for tests)
    """

    def __init__(self, schema_version: str = "1.0.0", today: Callable[[], date] = date.today) -> None:
        self.schema_version = schema_version
        self.today = today

    def process(self, recipe: Recipe | None, source_url: str) -> Recipe:
        """Return a copy of ``recipe`` with provenance fields set.

        Args:
            recipe: Recipe produced by the model
            source_url: URL the recipe was extracted from

        Returns:
            New recipe with ``metadata.source``, ``metadata.date_created`` and
            ``schema_version`` overridden. Missing metadata is replaced by a
            minimal block titled "Untitled Recipe".

        Raises:
            InvalidInputError: If ``recipe`` is None
        """
        if recipe is None:
            raise InvalidInputError("Cannot post-process a null recipe", url=source_url)

        provenance = {"source": source_url, "date_created": self.today().isoformat()}
        if recipe.metadata is None:
            logger.warning(f"Recipe from {source_url} has no metadata; using '{UNTITLED}'")
            metadata = RecipeMetadata(title=UNTITLED, **provenance)
        else:
            metadata = recipe.metadata.model_copy(update=provenance)

        return recipe.model_copy(update={"metadata": metadata, "schema_version": self.schema_version})

    def process_all(self, recipes: list[Recipe], source_url: str) -> list[Recipe]:
        return [self.process(recipe, source_url) for recipe in recipes]
