"""Extraction loops wrapped around the LLM extractor.

Two transformers are composed, outermost first:

1. ``AdaptiveCleaningTransformer``: cleans the page with the most restrictive
   strategy that works and, when the model answers "not a recipe" with a
   confidence at or above the threshold, retries with each less restrictive
   strategy in turn.
2. ``ValidatingTransformer``: calls the extractor once, validates every
   returned recipe and sends validation errors back to the model up to
   ``max_retries`` times.

Both expose ``transform(html, url)`` and can be used on their own. Since
validation runs inside every cleaning attempt, one request can make up to
``strategies x (1 + max_retries)`` model calls.

Example:
    >>> validating = ValidatingTransformer(extractor, RecipeValidator(), RecipePostProcessor())
    >>> adaptive = AdaptiveCleaningTransformer(validating, HtmlCleaner(), threshold=0.5)
    >>> response = await adaptive.transform(raw_html, "https://example.com/pie")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import ExtractionResponse, Invalid
from .recipe import Recipe

if TYPE_CHECKING:
    from .postprocess import RecipePostProcessor
    from .protocols import ContentCleaner, RecipeExtractor, Transformer, Validator

logger = logging.getLogger(__name__)

ERROR_PREVIEW_CHARS = 200
RECIPE_DUMP_CHARS = 500


class ValidatingTransformer:
    """Extractor call plus validation feedback loop.

    Attributes:
        extractor: LLM extractor
        validator: Structural validator
        post_processor: Provenance stamping applied to returned recipes
        max_retries: Feedback round-trips after a failed validation; 0 skips
            validation entirely
    """

    def __init__(
        self,
        extractor: RecipeExtractor,
        validator: Validator,
        post_processor: RecipePostProcessor,
        max_retries: int = 1,
    ) -> None:
        self.extractor = extractor
        self.validator = validator
        self.post_processor = post_processor
        self.max_retries = max_retries

    async def transform(self, html: str, url: str) -> ExtractionResponse:
        """Extract, validate and correct recipes for one piece of content.

        Args:
            html: Cleaned content to extract from
            url: Page URL, written into each recipe's metadata

        Returns:
            - The extractor's response unchanged when it is not a recipe
            - Post-processed recipes once every recipe validates (or at once
              when ``max_retries`` is 0)
            - ``ExtractionResponse.not_recipe()`` when retries are exhausted

        Raises:
            ExtractionError: Propagated from the extractor
        """
        response = await self.extractor.extract(html, url)
        if not response.is_recipe:
            return response

        if self.max_retries == 0:
            return self._finish(response, url)

        failure = self._first_failure(response)
        if failure is None:
            logger.info(f"Validation passed on first attempt for {url}")
            return self._finish(response, url)

        failed_recipe, error_message = failure
        logger.warning(f"Validation failed for {url}: {self._preview(error_message)}")

        for attempt in range(1, self.max_retries + 1):
            logger.info(f"Validation retry {attempt}/{self.max_retries} for {url}")
            response = await self.extractor.extract_with_feedback(html, failed_recipe, error_message)

            if not response.is_recipe:
                logger.warning(f"Model reported not a recipe on retry {attempt} for {url}")
                return response

            failure = self._first_failure(response)
            if failure is None:
                logger.info(f"Validation passed on retry {attempt} for {url}")
                return self._finish(response, url)

            failed_recipe, error_message = failure
            logger.warning(
                f"Validation retry {attempt} failed for {url}: {self._preview(error_message)}"
            )

        logger.error(
            f"Validation failed after {self.max_retries} retries for {url}. "
            f"Last error: {error_message}"
        )
        logger.error(
            "Last rejected recipe: "
            f"{failed_recipe.model_dump_json(exclude_none=True)[:RECIPE_DUMP_CHARS]}"
        )
        return ExtractionResponse.not_recipe()

    def _first_failure(self, response: ExtractionResponse) -> tuple[Recipe, str] | None:
        for recipe in response.recipes:
            result = self.validator.validate(recipe)
            if isinstance(result, Invalid):
                return recipe, result.error_message
        return None

    def _finish(self, response: ExtractionResponse, url: str) -> ExtractionResponse:
        processed = self.post_processor.process_all(response.recipes, url)
        return ExtractionResponse.of_recipes(processed, raw_text=response.raw_text)

    @staticmethod
    def _preview(message: str) -> str:
        flat = message.replace("\n", "; ")
        if len(flat) <= ERROR_PREVIEW_CHARS:
            return flat
        return flat[:ERROR_PREVIEW_CHARS] + "..."


class AdaptiveCleaningTransformer:
    """Cleaning strategy cascade driven by the model's confidence.

    Attributes:
        inner: Transformer run on each cleaned version of the page
        cleaner: HTML cleaner
        enabled: When False only the first cleaning attempt is made
        threshold: Minimum not-a-recipe confidence that justifies another attempt
    """

    def __init__(
        self,
        inner: Transformer,
        cleaner: ContentCleaner,
        enabled: bool = True,
        threshold: float = 0.5,
    ) -> None:
        self.inner = inner
        self.cleaner = cleaner
        self.enabled = enabled
        self.threshold = threshold

    async def transform(self, html: str, url: str) -> ExtractionResponse:
        """Extract recipes, widening the cleaning strategy while the model is unsure.

        Each strategy is tried at most once, starting from the one the cleaner
        chose and moving only towards less restrictive ones.

        Args:
            html: Raw page HTML
            url: Page URL

        Returns:
            The first recipe response, the first response whose confidence is
            below the threshold, or the last response once strategies run out

        Raises:
            ExtractionError: Propagated from the inner transformer
        """
        initial = self.cleaner.clean_best(html, url)
        response = await self.inner.transform(initial.cleaned_html, url)

        if response.is_recipe or not self.enabled:
            return response
        if response.confidence < self.threshold:
            logger.info(
                f"Not a recipe with {initial.strategy_used.name} "
                f"(confidence {response.confidence:.2f} < {self.threshold:.2f}) for {url}"
            )
            return response

        logger.info(
            f"Confidence {response.confidence:.2f} with {initial.strategy_used.name} for {url}; "
            "trying less restrictive cleaning"
        )

        for strategy in initial.strategy_used.less_restrictive():
            cleaned = self.cleaner.clean_with(html, url, strategy)
            logger.info(f"Retrying {url} with {strategy.name}")
            response = await self.inner.transform(cleaned.cleaned_html, url)

            if response.is_recipe:
                logger.info(f"Recipe found with {strategy.name} for {url}")
                return response
            if response.confidence < self.threshold:
                logger.info(
                    f"Confidence dropped to {response.confidence:.2f} with {strategy.name} "
                    f"for {url}; stopping"
                )
                return response

        logger.info(f"All cleaning strategies exhausted for {url}")
        return response
