"""Pytest configuration and fixtures for cookbook_extractor tests.

Fixtures follow pytest best practices:
- Use yield for cleanup
- Use monkeypatch for environment manipulation
- Use tmp_path for file operations
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from cookbook_extractor.cleaning import CleaningMetrics, CleaningResult  # noqa: E402
from cookbook_extractor.models import CleaningStrategy, ExtractionResponse  # noqa: E402
from cookbook_extractor.recipe import (  # noqa: E402
    Ingredient,
    Instruction,
    Recipe,
    RecipeMetadata,
)

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all COOKBOOK_EXTRACTOR_* environment variables."""
    import os

    for key in list(os.environ.keys()):
        if key.startswith("COOKBOOK_EXTRACTOR_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Provide a helper to set COOKBOOK_EXTRACTOR_* environment variables.

    Example:
        def test_env_loading(mock_env):
            mock_env["MODEL"] = "gpt-5-mini"
            # COOKBOOK_EXTRACTOR_MODEL is now set
    """

    class EnvSetter(dict[str, str]):
        def __setitem__(self, key: str, value: str) -> None:
            super().__setitem__(key, value)
            monkeypatch.setenv(f"COOKBOOK_EXTRACTOR_{key}", value)

    return EnvSetter()


@pytest.fixture
def default_config():
    """Create a default ExtractionConfig instance."""
    from cookbook_extractor.config import ExtractionConfig

    return ExtractionConfig()


# ============================================================================
# Recipe Fixtures
# ============================================================================


def build_recipe(title: str = "Lemon Tart", **overrides: Any) -> Recipe:
    """Build a recipe that passes validation unless overridden."""
    fields: dict[str, Any] = {
        "is_recipe": True,
        "schema_version": "1.0.0",
        "recipe_version": "1.0.0",
        "metadata": RecipeMetadata(title=title, servings=8),
        "ingredients": [
            Ingredient(item="plain flour", amount="200", unit="g"),
            Ingredient(item="lemons", amount="3"),
        ],
        "instructions": [
            Instruction(step=1, description="Make the pastry.", time="30m"),
            Instruction(step=2, description="Bake the filling.", time="1h 10m"),
        ],
    }
    fields.update(overrides)
    return Recipe(**fields)


@pytest.fixture
def make_recipe() -> Callable[..., Recipe]:
    """Factory fixture returning ``build_recipe``."""
    return build_recipe


@pytest.fixture
def valid_recipe() -> Recipe:
    return build_recipe()


@pytest.fixture
def invalid_recipe() -> Recipe:
    """Recipe with no ingredients (fails validation)."""
    return build_recipe(title="Broken Tart", ingredients=[])


# ============================================================================
# Pipeline Fakes
# ============================================================================


class ScriptedExtractor:
    """Extractor returning queued responses and recording every call."""

    def __init__(
        self,
        responses: list[ExtractionResponse],
        feedback: list[ExtractionResponse] | None = None,
    ) -> None:
        self.responses = list(responses)
        self.feedback = list(feedback or [])
        self.calls: list[str] = []
        self.feedback_calls: list[tuple[str, Recipe | None, str]] = []

    async def extract(self, html: str, url: str) -> ExtractionResponse:
        self.calls.append(html)
        return self.responses.pop(0)

    async def extract_with_feedback(
        self, html: str, prior_recipe: Recipe | None, error_message: str
    ) -> ExtractionResponse:
        self.feedback_calls.append((html, prior_recipe, error_message))
        return self.feedback.pop(0)


class ScriptedTransformer:
    """Transformer returning queued responses and recording the content it saw."""

    def __init__(self, responses: list[ExtractionResponse]) -> None:
        self.responses = list(responses)
        self.seen: list[str] = []

    async def transform(self, html: str, url: str) -> ExtractionResponse:
        self.seen.append(html)
        return self.responses.pop(0)


class RecordingCleaner:
    """Cleaner that labels output with the strategy name and records calls."""

    def __init__(self, best: CleaningStrategy = CleaningStrategy.STRUCTURED_DATA) -> None:
        self.best = best
        self.forced: list[CleaningStrategy] = []

    def _result(self, html: str, strategy: CleaningStrategy) -> CleaningResult:
        cleaned = f"{strategy.name}:{html}"
        return CleaningResult(cleaned, strategy, CleaningMetrics.measure(strategy, html, cleaned))

    def clean_best(self, html: str, url: str) -> CleaningResult:
        return self._result(html, self.best)

    def clean_with(self, html: str, url: str, strategy: CleaningStrategy) -> CleaningResult:
        self.forced.append(strategy)
        return self._result(html, strategy)


# ============================================================================
# OpenAI Client Mocking Fixtures
# ============================================================================


@pytest.fixture
def mock_async_openai_client():
    """Create a mock AsyncOpenAI client for extraction tests."""
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.responses = MagicMock()
    client.responses.parse = AsyncMock()
    return client


@pytest.fixture
def scripted_extractor() -> type[ScriptedExtractor]:
    return ScriptedExtractor


@pytest.fixture
def scripted_transformer() -> type[ScriptedTransformer]:
    return ScriptedTransformer


@pytest.fixture
def recording_cleaner() -> type[RecordingCleaner]:
    return RecordingCleaner
