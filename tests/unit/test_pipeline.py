"""Unit tests for cookbook_extractor.pipeline module."""

import logging
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from cookbook_extractor.exceptions import ExtractionError
from cookbook_extractor.models import CleaningStrategy, ExtractionResponse
from cookbook_extractor.pipeline import AdaptiveCleaningTransformer, ValidatingTransformer
from cookbook_extractor.postprocess import RecipePostProcessor
from cookbook_extractor.protocols import Transformer
from cookbook_extractor.recipe import Recipe
from cookbook_extractor.validator import RecipeValidator

URL = "https://example.com/tart"
TODAY = date(2025, 6, 1)

B = CleaningStrategy.SECTION_BASED
C = CleaningStrategy.CONTENT_FILTER
F = CleaningStrategy.FALLBACK


def not_recipe(confidence: float) -> ExtractionResponse:
    return ExtractionResponse.not_recipe(confidence)


def validating(extractor, max_retries: int = 1, validator=None) -> ValidatingTransformer:
    return ValidatingTransformer(
        extractor,
        validator or RecipeValidator(),
        RecipePostProcessor(today=lambda: TODAY),
        max_retries=max_retries,
    )


# ============================================================================
# ValidatingTransformer
# ============================================================================


class TestValidatingTransformer:
    """Tests for the validation feedback loop."""

    def test_implements_protocol(self, scripted_extractor) -> None:
        """ValidatingTransformer satisfies Transformer."""
        assert isinstance(validating(scripted_extractor([])), Transformer)

    async def test_not_recipe_returned_unchanged(self, scripted_extractor) -> None:
        """Negative responses skip validation and post-processing."""
        response = not_recipe(0.3)
        extractor = scripted_extractor([response])

        assert await validating(extractor).transform("<p/>", URL) is response
        assert extractor.feedback_calls == []

    async def test_passes_first_time(self, scripted_extractor, valid_recipe: Recipe) -> None:
        """Valid recipes are post-processed and returned."""
        extractor = scripted_extractor([ExtractionResponse.of_recipes([valid_recipe], raw_text="raw")])

        response = await validating(extractor).transform("<p>tart</p>", URL)

        assert response.is_recipe is True
        assert response.raw_text == "raw"
        recipe = response.recipes[0]
        assert recipe.metadata is not None
        assert recipe.metadata.source == URL
        assert recipe.metadata.date_created == "2025-06-01"
        assert extractor.calls == ["<p>tart</p>"]
        assert extractor.feedback_calls == []

    async def test_zero_retries_skips_validation(self, scripted_extractor, invalid_recipe: Recipe) -> None:
        """With max_retries 0 the validator is never consulted."""
        validator = MagicMock()
        extractor = scripted_extractor([ExtractionResponse.of_recipes([invalid_recipe])])

        response = await validating(extractor, max_retries=0, validator=validator).transform("<p/>", URL)

        validator.validate.assert_not_called()
        assert response.is_recipe is True
        assert response.recipes[0].metadata is not None
        assert response.recipes[0].metadata.source == URL

    async def test_feedback_fixes_recipe(
        self, scripted_extractor, invalid_recipe: Recipe, valid_recipe: Recipe
    ) -> None:
        """The failed recipe and its errors are sent back once."""
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([invalid_recipe])],
            feedback=[ExtractionResponse.of_recipes([valid_recipe])],
        )

        response = await validating(extractor).transform("<p>tart</p>", URL)

        assert response.is_recipe is True
        assert response.recipes[0].title == "Lemon Tart"
        html, prior, error = extractor.feedback_calls[0]
        assert html == "<p>tart</p>"
        assert prior == invalid_recipe
        assert "field 'ingredients'" in error

    async def test_first_invalid_recipe_drives_feedback(
        self, scripted_extractor, make_recipe, invalid_recipe: Recipe
    ) -> None:
        """Every recipe is validated; the first failing one is sent back."""
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([make_recipe("Good"), invalid_recipe])],
            feedback=[not_recipe(0.0)],
        )

        await validating(extractor).transform("<p/>", URL)

        assert extractor.feedback_calls[0][1] == invalid_recipe

    async def test_feedback_not_recipe_returned(self, scripted_extractor, invalid_recipe: Recipe) -> None:
        """A negative answer on retry ends the loop immediately."""
        negative = not_recipe(0.6)
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([invalid_recipe])],
            feedback=[negative, not_recipe(0.0)],
        )

        response = await validating(extractor, max_retries=2).transform("<p/>", URL)

        assert response is negative
        assert len(extractor.feedback_calls) == 1

    async def test_passes_on_third_attempt(
        self, scripted_extractor, make_recipe, invalid_recipe: Recipe
    ) -> None:
        """A recipe fixed on the last retry still gets provenance overridden."""
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([invalid_recipe])],
            feedback=[
                ExtractionResponse.of_recipes([invalid_recipe]),
                ExtractionResponse.of_recipes([make_recipe("Third Try", schema_version="9.9.9")]),
            ],
        )
        transformer = ValidatingTransformer(
            extractor,
            RecipeValidator(),
            RecipePostProcessor(schema_version="2.0.0", today=lambda: TODAY),
            max_retries=3,
        )

        response = await transformer.transform("<p>tart</p>", URL)

        assert response.is_recipe is True
        recipe = response.recipes[0]
        assert recipe.title == "Third Try"
        assert recipe.schema_version == "2.0.0"
        assert recipe.metadata is not None
        assert recipe.metadata.source == URL
        assert recipe.metadata.date_created == "2025-06-01"
        assert len(extractor.feedback_calls) == 2

    async def test_exhausted_retries(
        self, scripted_extractor, make_recipe, invalid_recipe: Recipe, caplog: pytest.LogCaptureFixture
    ) -> None:
        """After max_retries failures the result is not a recipe with confidence 0."""
        still_broken = make_recipe("Still Broken", instructions=[])
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([invalid_recipe])],
            feedback=[
                ExtractionResponse.of_recipes([invalid_recipe]),
                ExtractionResponse.of_recipes([still_broken]),
            ],
        )

        with caplog.at_level(logging.ERROR, logger="cookbook_extractor.pipeline"):
            response = await validating(extractor, max_retries=2).transform("<p/>", URL)

        assert response == ExtractionResponse.not_recipe()
        assert len(extractor.feedback_calls) == 2
        # each retry sees the latest failure
        assert extractor.feedback_calls[1][1] == invalid_recipe
        assert "Validation failed after 2 retries" in caplog.text
        assert "Still Broken" in caplog.text

    async def test_extraction_errors_propagate(self) -> None:
        """Extractor exceptions are not swallowed."""
        extractor = AsyncMock()
        extractor.extract.side_effect = ExtractionError("down", reason="network")

        with pytest.raises(ExtractionError):
            await validating(extractor).transform("<p/>", URL)

    def test_error_preview_truncated(self) -> None:
        """Long error messages are flattened and cut for warnings."""
        preview = ValidatingTransformer._preview("line\n" * 100)
        assert "\n" not in preview
        assert preview.endswith("...")
        assert len(preview) == 203


# ============================================================================
# AdaptiveCleaningTransformer
# ============================================================================


class TestAdaptiveCleaningTransformer:
    """Tests for the confidence-driven cleaning cascade."""

    def test_implements_protocol(self, scripted_transformer, recording_cleaner) -> None:
        """AdaptiveCleaningTransformer satisfies Transformer."""
        assert isinstance(AdaptiveCleaningTransformer(scripted_transformer([]), recording_cleaner()), Transformer)

    async def test_recipe_on_first_attempt(self, scripted_transformer, recording_cleaner, valid_recipe: Recipe) -> None:
        """A recipe with the best strategy needs no retries."""
        inner = scripted_transformer([ExtractionResponse.of_recipes([valid_recipe])])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner).transform("<html/>", URL)

        assert response.is_recipe is True
        assert inner.seen == ["STRUCTURED_DATA:<html/>"]
        assert cleaner.forced == []

    async def test_high_confidence_then_recipe(
        self, scripted_transformer, recording_cleaner, valid_recipe: Recipe
    ) -> None:
        """High confidence retries with the next strategy, which finds the recipe."""
        inner = scripted_transformer([not_recipe(0.8), ExtractionResponse.of_recipes([valid_recipe])])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner, threshold=0.5).transform("<html/>", URL)

        assert response.is_recipe is True
        assert cleaner.forced == [B]
        assert inner.seen == ["STRUCTURED_DATA:<html/>", "SECTION_BASED:<html/>"]

    async def test_low_confidence_stops(self, scripted_transformer, recording_cleaner) -> None:
        """Confidence below the threshold makes exactly one call."""
        first = not_recipe(0.2)
        inner = scripted_transformer([first])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner, threshold=0.5).transform("<html/>", URL)

        assert response is first
        assert len(inner.seen) == 1
        assert cleaner.forced == []

    async def test_threshold_is_inclusive(self, scripted_transformer, recording_cleaner) -> None:
        """Confidence equal to the threshold keeps trying."""
        inner = scripted_transformer([not_recipe(0.5), not_recipe(0.1)])
        cleaner = recording_cleaner()

        await AdaptiveCleaningTransformer(inner, cleaner, threshold=0.5).transform("<html/>", URL)

        assert cleaner.forced == [B]

    async def test_all_strategies_exhausted(self, scripted_transformer, recording_cleaner) -> None:
        """Each strategy runs once; the last response is returned."""
        last = not_recipe(0.7)
        inner = scripted_transformer([not_recipe(0.9), not_recipe(0.9), not_recipe(0.8), last])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner).transform("<html/>", URL)

        assert response is last
        assert cleaner.forced == [B, C, F]
        assert len(inner.seen) == 4

    async def test_confidence_drops_mid_cascade(self, scripted_transformer, recording_cleaner) -> None:
        """A later low-confidence answer stops the cascade."""
        dropped = not_recipe(0.1)
        inner = scripted_transformer([not_recipe(0.9), dropped])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner).transform("<html/>", URL)

        assert response is dropped
        assert cleaner.forced == [B]

    async def test_starts_from_cleaner_choice(self, scripted_transformer, recording_cleaner) -> None:
        """Strategies more restrictive than the initial one are never tried."""
        inner = scripted_transformer([not_recipe(0.9), not_recipe(0.9)])
        cleaner = recording_cleaner(best=C)

        await AdaptiveCleaningTransformer(inner, cleaner).transform("<html/>", URL)

        assert cleaner.forced == [F]
        assert inner.seen == ["CONTENT_FILTER:<html/>", "FALLBACK:<html/>"]

    async def test_fallback_start_has_no_retries(self, scripted_transformer, recording_cleaner) -> None:
        """Starting at FALLBACK leaves nothing to retry."""
        inner = scripted_transformer([not_recipe(0.9)])
        cleaner = recording_cleaner(best=F)

        response = await AdaptiveCleaningTransformer(inner, cleaner).transform("<html/>", URL)

        assert response.confidence == 0.9
        assert cleaner.forced == []

    async def test_disabled(self, scripted_transformer, recording_cleaner) -> None:
        """With adaptive cleaning off only one attempt is made."""
        inner = scripted_transformer([not_recipe(0.95)])
        cleaner = recording_cleaner()

        response = await AdaptiveCleaningTransformer(inner, cleaner, enabled=False).transform("<html/>", URL)

        assert response.confidence == 0.95
        assert cleaner.forced == []

    async def test_composed_with_validation(
        self, scripted_extractor, recording_cleaner, invalid_recipe: Recipe
    ) -> None:
        """Exhausted validation yields confidence 0, which ends the cascade."""
        extractor = scripted_extractor(
            [ExtractionResponse.of_recipes([invalid_recipe])],
            feedback=[ExtractionResponse.of_recipes([invalid_recipe])],
        )
        cleaner = recording_cleaner()
        adaptive = AdaptiveCleaningTransformer(validating(extractor), cleaner)

        response = await adaptive.transform("<html/>", URL)

        assert response == ExtractionResponse.not_recipe()
        assert cleaner.forced == []
