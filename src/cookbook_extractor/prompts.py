"""Prompt templates for recipe extraction.

The extraction prompt follows the same rules as the structured output schema:
copy what the page says, never invent, and report an honest confidence when
the page does not contain a recipe. The feedback prompt appends the
validation errors and the previous answer so the model can correct itself.
"""

from __future__ import annotations

from datetime import date

EXTRACTION_PROMPT = """\
You convert web pages into structured recipe records.

<rules>
- Extract only recipes that are actually present on the page. Never invent
  ingredients, steps, timings or quantities.
- A recipe needs a title, at least one ingredient and at least one step.
  Article text, listicles, product pages and index pages are not recipes.
- If the page has several complete recipes, return each one in page order.
- Copy ingredient and step text faithfully; you may split an ingredient line
  into amount, unit and item.
- Write durations as '<days>d <hours>h <minutes>m' with only the parts that
  apply (for example '45m' or '1h 30m').
- Use schema_version "1.0.0" and recipe_version "1.0.0". Use date_created
  {today}.
- The content may be a JSON-LD Recipe object, a fragment of the page, or the
  whole page.
</rules>

<confidence>
Set is_recipe to true only when you return at least one recipe. When you set
it to false, recipe_confidence is your estimate that the page does contain a
recipe that is missing from the content you were given (for example because
the ingredient list was cut off). Use a value near 0.0 for pages that are
clearly not recipes.
</confidence>

<source_url>{url}</source_url>

<content>
{html}
</content>
"""

FEEDBACK_PROMPT = """

<previous_attempt>
Your previous answer failed validation with these errors:

{error_message}

Previous recipe:
{previous_recipe}
</previous_attempt>

Return a corrected answer for the same content. Fix every listed error using
only information from the content. If the content does not hold the missing
information, set is_recipe to false.
"""


def format_extraction_prompt(html: str, url: str | None = None, today: date | None = None) -> str:
    """Build the extraction prompt for one page.

    Args:
        html: Cleaned page content
        url: Page URL, when known
        today: Date written into ``date_created`` (defaults to today)

    Returns:
        Prompt text
    """
    return EXTRACTION_PROMPT.format(
        today=(today or date.today()).isoformat(),
        url=url or "unknown",
        html=html,
    )


def format_feedback_prompt(
    html: str, previous_recipe_json: str, error_message: str, today: date | None = None
) -> str:
    """Build the extraction prompt followed by validation feedback.

    Args:
        html: The same cleaned content that produced the previous answer
        previous_recipe_json: The rejected recipe serialized as JSON
        error_message: Validator output listing every violation
        today: Date written into ``date_created`` (defaults to today)

    Returns:
        Prompt text
    """
    return format_extraction_prompt(html, today=today) + FEEDBACK_PROMPT.format(
        error_message=error_message,
        previous_recipe=previous_recipe_json,
    )
