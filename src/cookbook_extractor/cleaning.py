"""HTML cleaning strategies.

Pages are reduced before they are sent to the model. Four strategies are
available, from most to least restrictive:

1. STRUCTURED_DATA: the schema.org Recipe object embedded as JSON-LD
2. SECTION_BASED: the single page section that looks most like a recipe
3. CONTENT_FILTER: the page body with navigation, ads, comments and other
   boilerplate removed
4. FALLBACK: the raw HTML

``HtmlCleaner.clean_best`` returns the first strategy that produces usable
output. ``HtmlCleaner.clean_with`` applies one strategy, which is how the
adaptive loop retries with more context.

Example:
    >>> cleaner = HtmlCleaner(min_output_size=200)
    >>> result = cleaner.clean_best(html, "https://example.com/pie")
    >>> result.strategy_used, result.metrics.message
    (<CleaningStrategy.SECTION_BASED: 1>, 'Strategy: SECTION_BASED, 48210 -> 3120 chars (93.5% reduction)')
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

from .config import DEFAULT_SECTION_KEYWORDS
from .models import CleaningStrategy

logger = logging.getLogger(__name__)

BOILERPLATE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "iframe", "embed", "object"]
SECTION_CANDIDATES = "article, section, main, div[class*=recipe], div[id*=recipe]"

# Attribute fragments that mark non-content blocks
AD_PATTERN = re.compile(r"(^|[-_\s])(ad|ads|advert|advertisement|sponsored|promo)([-_\s]|$)", re.I)
SOCIAL_PATTERN = re.compile(r"social|share", re.I)
COMMENT_PATTERN = re.compile(r"comment", re.I)
SIDEBAR_PATTERN = re.compile(r"sidebar", re.I)
HIDDEN_STYLE_PATTERN = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.I)

COMPLETENESS_WEIGHTS = {
    "name": 20,
    "recipeIngredient": 20,
    "recipeInstructions": 20,
    "totalTime": 10,
    "recipeYield": 10,
    "description": 10,
    "image": 10,
}


@dataclass(frozen=True)
class CleaningMetrics:
    """Size reduction achieved by a cleaning strategy.

    Attributes:
        original_size: Characters of raw HTML
        cleaned_size: Characters of cleaned output
        reduction_ratio: Percentage removed (0-100)
        message: One-line summary for logs
    """

    original_size: int
    cleaned_size: int
    reduction_ratio: float
    message: str

    @classmethod
    def measure(cls, strategy: CleaningStrategy, original: str, cleaned: str) -> CleaningMetrics:
        original_size = len(original)
        cleaned_size = len(cleaned)
        ratio = (1 - cleaned_size / original_size) * 100 if original_size else 0.0
        return cls(
            original_size=original_size,
            cleaned_size=cleaned_size,
            reduction_ratio=ratio,
            message=(
                f"Strategy: {strategy.name}, {original_size} -> {cleaned_size} chars "
                f"({ratio:.1f}% reduction)"
            ),
        )


@dataclass(frozen=True)
class CleaningResult:
    """Output of one cleaning run."""

    cleaned_html: str
    strategy_used: CleaningStrategy
    metrics: CleaningMetrics


def _attr_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _matches(tag: Tag, pattern: re.Pattern[str], attrs: Iterable[str] = ("class", "id")) -> bool:
    return any(pattern.search(_attr_text(tag, attr)) for attr in attrs)


def _is_noise(tag: Tag, include_sidebar: bool) -> bool:
    if _matches(tag, AD_PATTERN) or _matches(tag, COMMENT_PATTERN):
        return True
    if _matches(tag, SOCIAL_PATTERN, attrs=("class",)):
        return True
    if include_sidebar and _matches(tag, SIDEBAR_PATTERN):
        return True
    return bool(HIDDEN_STYLE_PATTERN.search(_attr_text(tag, "style")))


def strip_noise(root: Tag, include_sidebar: bool = False) -> None:
    """Remove boilerplate elements and presentational attributes in place."""
    for tag in root.find_all(BOILERPLATE_TAGS):
        if not tag.decomposed:
            tag.decompose()

    for comment in root.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in root.find_all(True):
        if not tag.decomposed and _is_noise(tag, include_sidebar):
            tag.decompose()

    for tag in root.find_all(True):
        tag.attrs = {
            key: value
            for key, value in tag.attrs.items()
            if key not in ("style", "class", "id")
            and not key.startswith("data-")
            and not key.startswith("on")
        }


def _is_recipe_node(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    node_type = node.get("@type")
    if isinstance(node_type, str):
        return node_type == "Recipe"
    if isinstance(node_type, list):
        return "Recipe" in node_type
    return False


def _candidate_nodes(data: Any) -> list[Any]:
    if isinstance(data, list):
        nodes: list[Any] = []
        for item in data:
            nodes.extend(_candidate_nodes(item))
        return nodes
    if isinstance(data, dict) and isinstance(data.get("@graph"), list):
        return list(data["@graph"])
    return [data]


def completeness_score(node: dict[str, Any]) -> int:
    """Score 0-100 for how complete a schema.org Recipe object is."""
    return min(100, sum(weight for key, weight in COMPLETENESS_WEIGHTS.items() if key in node))


class HtmlCleaner:
    """Applies cleaning strategies to raw HTML.

    Attributes:
        enabled: When False every call returns the raw HTML as FALLBACK
        structured_data_enabled: Whether STRUCTURED_DATA may produce output
        structured_min_completeness: Minimum JSON-LD completeness score
        section_based_enabled: Whether SECTION_BASED may produce output
        section_min_confidence: Minimum section score
        section_keywords: Lower-case words that signal recipe content
        min_output_size: Smallest accepted output for section and filter strategies
    """

    def __init__(
        self,
        enabled: bool = True,
        structured_data_enabled: bool = True,
        structured_min_completeness: int = 60,
        section_based_enabled: bool = True,
        section_min_confidence: int = 50,
        section_keywords: Iterable[str] = DEFAULT_SECTION_KEYWORDS,
        min_output_size: int = 500,
    ) -> None:
        self.enabled = enabled
        self.structured_data_enabled = structured_data_enabled
        self.structured_min_completeness = structured_min_completeness
        self.section_based_enabled = section_based_enabled
        self.section_min_confidence = section_min_confidence
        self.section_keywords = [word.lower() for word in section_keywords]
        self.min_output_size = min_output_size

    def clean_best(self, html: str, url: str) -> CleaningResult:
        """Clean with the most restrictive strategy that yields output.

        Args:
            html: Raw page HTML
            url: Page URL (used for logging)

        Returns:
            Cleaned HTML, the strategy that produced it, and size metrics
        """
        if not html:
            return self._result(CleaningStrategy.FALLBACK, "", "")
        if not self.enabled:
            logger.debug(f"HTML cleanup disabled, sending raw HTML for {url}")
            return self._result(CleaningStrategy.FALLBACK, html, html)

        for strategy in CleaningStrategy.adaptive_order():
            cleaned = self.apply(strategy, html)
            if cleaned is not None:
                result = self._result(strategy, html, cleaned)
                logger.info(f"{url}: {result.metrics.message}")
                return result

        # FALLBACK always produces output
        raise AssertionError("no cleaning strategy produced output")

    def clean_with(self, html: str, url: str, strategy: CleaningStrategy) -> CleaningResult:
        """Clean with exactly ``strategy``.

        If the strategy produces nothing usable the raw HTML is returned,
        still labelled with the requested strategy, so the caller's loop
        position is unaffected.
        """
        if not html:
            return self._result(strategy, "", "")

        cleaned = self.apply(strategy, html)
        if cleaned is None:
            logger.info(f"{url}: {strategy.name} produced no usable output, using raw HTML")
            cleaned = html

        result = self._result(strategy, html, cleaned)
        logger.info(f"{url}: {result.metrics.message}")
        return result

    def apply(self, strategy: CleaningStrategy, html: str) -> str | None:
        """Run a single strategy. Returns None when it has no usable output."""
        if strategy is CleaningStrategy.STRUCTURED_DATA:
            return self._structured_data(html)
        if strategy is CleaningStrategy.SECTION_BASED:
            return self._section_based(html)
        if strategy is CleaningStrategy.CONTENT_FILTER:
            return self._content_filter(html)
        return html

    def section_score(self, element: Tag) -> int:
        """Score 0-100 for how much ``element`` looks like a recipe."""
        text = element.get_text(" ", strip=True).lower()
        score = sum(10 for keyword in self.section_keywords if keyword in text)
        if len(element.find_all(["ul", "ol"])) >= 2:
            score += 20
        if len(element.find_all(["h2", "h3"])) >= 2:
            score += 10
        if len(text) > 1000:
            score += 10
        return min(100, score)

    def _structured_data(self, html: str) -> str | None:
        if not self.structured_data_enabled:
            return None

        soup = BeautifulSoup(html, "html.parser")
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                data = json.loads(script.get_text())
            except ValueError:
                logger.debug("Skipping invalid JSON-LD block")
                continue

            for node in _candidate_nodes(data):
                if not _is_recipe_node(node):
                    continue
                score = completeness_score(node)
                if score >= self.structured_min_completeness:
                    logger.debug(f"Found structured recipe data, completeness: {score}%")
                    return json.dumps(node, ensure_ascii=False)
        return None

    def _section_based(self, html: str) -> str | None:
        if not self.section_based_enabled:
            return None

        soup = BeautifulSoup(html, "html.parser")
        best: Tag | None = None
        best_score = 0
        for candidate in soup.select(SECTION_CANDIDATES):
            score = self.section_score(candidate)
            if score > best_score:
                best, best_score = candidate, score

        if best is None or best_score < self.section_min_confidence:
            return None

        strip_noise(best)
        cleaned = best.decode_contents().strip()
        if len(cleaned) < self.min_output_size:
            return None

        logger.debug(f"Section-based extraction, score: {best_score}, size: {len(cleaned)} chars")
        return cleaned

    def _content_filter(self, html: str) -> str | None:
        soup = BeautifulSoup(html, "html.parser")
        root: Tag = soup.body or soup
        strip_noise(root, include_sidebar=True)
        cleaned = root.decode_contents().strip()
        if len(cleaned) < self.min_output_size:
            return None
        return cleaned

    @staticmethod
    def _result(strategy: CleaningStrategy, original: str, cleaned: str) -> CleaningResult:
        return CleaningResult(
            cleaned_html=cleaned,
            strategy_used=strategy,
            metrics=CleaningMetrics.measure(strategy, original, cleaned),
        )
