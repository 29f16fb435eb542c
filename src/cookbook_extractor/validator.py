"""Structural validation of extracted recipes.

The validator walks a recipe and collects every constraint violation rather
than stopping at the first one, so the model receives a complete list of
problems in a single feedback round-trip.

Example:
    >>> validator = RecipeValidator()
    >>> match validator.validate(recipe):
    ...     case Valid(recipe=ok):
    ...         save(ok)
    ...     case Invalid(error_message=msg):
    ...         print(msg)
"""

import re
from dataclasses import dataclass
from typing import Any

from .models import Invalid, Valid, ValidationResult
from .recipe import Recipe

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
DURATION_PATTERN = re.compile(r"^(\d+d\s*)?(\d+h\s*)?(\d+m)?$")

NUTRITION_FIELDS = ("calories", "protein", "carbohydrates", "fat", "fiber", "sugar", "sodium")


@dataclass(frozen=True)
class Violation:
    """A single failed constraint.

    Attributes:
        path: Dotted field path (e.g., ``ingredients[2].item``)
        message: What is wrong
        value: Offending value
    """

    path: str
    message: str
    value: Any = None

    def __str__(self) -> str:
        return f"field '{self.path}': {self.message} (value: {self.value!r})"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class RecipeValidator:
    """Checks recipes against the schema's structural constraints.

    ``validate`` never raises: every problem, including a missing recipe, is
    reported as ``Invalid``.
    """

    def violations(self, recipe: Recipe) -> list[Violation]:
        """Collect all constraint violations of ``recipe``."""
        found: list[Violation] = []

        if recipe.is_recipe is None:
            found.append(Violation("is_recipe", "must not be null"))

        for name in ("schema_version", "recipe_version"):
            value = getattr(recipe, name)
            if value is None or not SEMVER_PATTERN.match(value):
                found.append(Violation(name, "must be a semantic version like 1.0.0", value))

        found.extend(self._metadata_violations(recipe))
        found.extend(self._ingredient_violations(recipe))
        found.extend(self._instruction_violations(recipe))

        if recipe.nutrition is not None:
            for name in NUTRITION_FIELDS:
                value = getattr(recipe.nutrition, name)
                if value is not None and value < 0:
                    found.append(Violation(f"nutrition.{name}", "must not be negative", value))

        return found

    def validate(self, recipe: Recipe | None) -> ValidationResult:
        """Validate ``recipe``.

        Args:
            recipe: Recipe to check (None is reported as invalid)

        Returns:
            ``Valid(recipe)`` or ``Invalid(error_message)`` where the message
            lists one violation per line
        """
        if recipe is None:
            return Invalid("recipe is null")

        found = self.violations(recipe)
        if not found:
            return Valid(recipe)

        lines = [f"Recipe has {len(found)} validation error(s):"]
        lines.extend(str(v) for v in found)
        return Invalid("\n".join(lines))

    def _metadata_violations(self, recipe: Recipe) -> list[Violation]:
        metadata = recipe.metadata
        if metadata is None:
            return [Violation("metadata", "must not be null")]

        found: list[Violation] = []
        if _blank(metadata.title):
            found.append(Violation("metadata.title", "must not be blank", metadata.title))
        if metadata.servings is not None and metadata.servings < 1:
            found.append(Violation("metadata.servings", "must be at least 1", metadata.servings))
        return found

    def _ingredient_violations(self, recipe: Recipe) -> list[Violation]:
        if not recipe.ingredients:
            return [Violation("ingredients", "must contain at least one ingredient", [])]

        found: list[Violation] = []
        for i, ingredient in enumerate(recipe.ingredients):
            if _blank(ingredient.item):
                found.append(Violation(f"ingredients[{i}].item", "must not be blank", ingredient.item))
            for j, sub in enumerate(ingredient.substitutions or []):
                if _blank(sub.item):
                    found.append(
                        Violation(f"ingredients[{i}].substitutions[{j}].item", "must not be blank", sub.item)
                    )
        return found

    def _instruction_violations(self, recipe: Recipe) -> list[Violation]:
        if not recipe.instructions:
            return [Violation("instructions", "must contain at least one step", [])]

        found: list[Violation] = []
        for i, instruction in enumerate(recipe.instructions):
            if _blank(instruction.description):
                found.append(
                    Violation(f"instructions[{i}].description", "must not be blank", instruction.description)
                )
            if instruction.step is not None and instruction.step < 1:
                found.append(Violation(f"instructions[{i}].step", "must be at least 1", instruction.step))
            if instruction.time is not None and not DURATION_PATTERN.match(instruction.time):
                found.append(
                    Violation(
                        f"instructions[{i}].time",
                        "must look like '1d 2h 30m', '2h' or '45m'",
                        instruction.time,
                    )
                )
        return found
