"""LLM recipe extraction using OpenAI structured output.

``OpenAIRecipeExtractor`` sends cleaned HTML to the Responses API and parses
the answer into ``ExtractionPayload``. Every failure is raised as
``ExtractionError`` with a ``reason`` so callers can tell a refusal from a
network problem; nothing is retried here.

Example:
    >>> extractor = OpenAIRecipeExtractor(AsyncOpenAI(), model="gpt-5-nano")
    >>> response = await extractor.extract(cleaned_html, "https://example.com/pie")
    >>> response.is_recipe, response.confidence
    (True, 1.0)
"""

from __future__ import annotations

import logging
from typing import Any

from openai import (
    APIConnectionError,
    AsyncOpenAI,
    ContentFilterFinishReasonError,
    LengthFinishReasonError,
    OpenAIError,
)
from openai.types.responses import EasyInputMessageParam
from pydantic import ValidationError

from .exceptions import ExtractionError
from .models import ExtractionPayload, ExtractionResponse
from .prompts import format_extraction_prompt, format_feedback_prompt
from .recipe import Recipe

logger = logging.getLogger(__name__)


def _refusal_text(response: Any) -> str | None:
    """Return the model's refusal message, if the response contains one."""
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "refusal":
                return getattr(part, "refusal", "") or "refused"
    return None


class OpenAIRecipeExtractor:
    """Extracts recipes from HTML with a single structured-output call.

    Attributes:
        client: Async OpenAI client (shared, see ``ServiceFactory``)
        model: Model name
        temperature: Sampling temperature, sent only to models that accept it
        max_output_tokens: Limit on generated tokens
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-5-nano",
        temperature: float = 0.0,
        max_output_tokens: int = 16000,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    async def extract(self, html: str, url: str) -> ExtractionResponse:
        """Extract recipes from cleaned page content.

        Args:
            html: Cleaned HTML (or JSON-LD) for the page
            url: Page URL

        Returns:
            Recipe response, or not-recipe with the model's confidence

        Raises:
            ExtractionError: If the API call fails or the output cannot be parsed
        """
        prompt = format_extraction_prompt(html, url)
        return await self._call(prompt, context=url)

    async def extract_with_feedback(
        self, html: str, prior_recipe: Recipe | None, error_message: str
    ) -> ExtractionResponse:
        """Re-run extraction showing the model its rejected recipe and the errors.

        Args:
            html: The same content that produced ``prior_recipe``
            prior_recipe: Recipe that failed validation
            error_message: Validation errors to fix

        Returns:
            Corrected response (not yet validated)

        Raises:
            ExtractionError: If the API call fails or the output cannot be parsed
        """
        previous = prior_recipe.model_dump_json(exclude_none=True, indent=2) if prior_recipe else "null"
        prompt = format_feedback_prompt(html, previous, error_message)
        return await self._call(prompt, context="feedback")

    async def _call(self, prompt: str, context: str) -> ExtractionResponse:
        kwargs: dict[str, Any] = {"max_output_tokens": self.max_output_tokens}
        if self.model.startswith("gpt-4"):
            kwargs["temperature"] = self.temperature
        else:
            kwargs["reasoning"] = {"effort": "low"}

        logger.debug(f"Extraction request ({context}): {len(prompt)} chars, model {self.model}")

        try:
            response = await self.client.responses.parse(
                model=self.model,
                input=[EasyInputMessageParam(role="user", content=prompt)],
                text_format=ExtractionPayload,
                **kwargs,
            )
        except ContentFilterFinishReasonError as e:
            raise ExtractionError("Response blocked by content filter", reason="blocked", model=self.model) from e
        except LengthFinishReasonError as e:
            raise ExtractionError(
                "Response truncated before it could be parsed", reason="parse_error", model=self.model
            ) from e
        except APIConnectionError as e:
            raise ExtractionError(f"Could not reach OpenAI: {e}", reason="network", model=self.model) from e
        except ValidationError as e:
            raise ExtractionError(
                "Model output does not match the extraction schema",
                reason="parse_error",
                model=self.model,
                errors=e.error_count(),
            ) from e
        except OpenAIError as e:
            raise ExtractionError(f"OpenAI request failed: {e}", reason="api_error", model=self.model) from e

        raw_text = getattr(response, "output_text", None)
        if not isinstance(raw_text, str):
            raw_text = None
        payload = response.output_parsed
        if payload is None:
            refusal = _refusal_text(response)
            if refusal is not None:
                raise ExtractionError(f"Model refused: {refusal}", reason="blocked", model=self.model)
            raise ExtractionError("Model returned no structured output", reason="parse_error", model=self.model)

        return self._to_response(payload, raw_text, context)

    @staticmethod
    def _to_response(payload: ExtractionPayload, raw_text: str | None, context: str) -> ExtractionResponse:
        confidence = min(1.0, max(0.0, payload.recipe_confidence))

        if payload.is_recipe and payload.recipes:
            logger.info(f"Model found {len(payload.recipes)} recipe(s) ({context})")
            return ExtractionResponse.of_recipes(payload.recipes, raw_text=raw_text)

        if payload.is_recipe:
            logger.warning(f"Model claimed a recipe but returned none ({context}); treating as not a recipe")
        else:
            logger.warning(
                f"Model says not a recipe ({context}), confidence {confidence:.2f}: "
                f"{payload.internal_reasoning[:200]}"
            )
        return ExtractionResponse.not_recipe(confidence, raw_text=raw_text)
