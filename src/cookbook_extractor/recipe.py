"""Recipe schema used for LLM structured output and cached results.

The models are deliberately lenient: every constraint beyond basic types is
checked by ``validator.RecipeValidator`` so that a structurally flawed model
answer still parses and can be sent back to the model with feedback.

Models are frozen. The post-processor produces modified copies with
``model_copy(update=...)``.
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

_MODEL_CONFIG = ConfigDict(extra="forbid", frozen=True)


class Substitution(BaseModel):
    """Alternative for an ingredient."""

    item: str = Field(description="Name of the substitute ingredient")
    amount: str | None = Field(None, description="Quantity of the substitute (e.g., '1', '1/2')")
    unit: str | None = Field(None, description="Unit of measurement (e.g., 'cup', 'g')")
    notes: str | None = Field(None, description="Notes on how the substitution changes the dish")
    ratio: str | None = Field(None, description="Substitution ratio (e.g., '1:1')")

    model_config = _MODEL_CONFIG


class Ingredient(BaseModel):
    """A single ingredient line."""

    item: str = Field(description="Ingredient name without quantity (e.g., 'plain flour')")
    amount: str | None = Field(None, description="Quantity as written (e.g., '200', '1 1/2')")
    unit: str | None = Field(None, description="Unit of measurement (e.g., 'g', 'tbsp')")
    notes: str | None = Field(
        None, description="Preparation notes (e.g., 'finely chopped', 'at room temperature')"
    )
    optional: bool | None = Field(None, description="True if the recipe marks it optional")
    substitutions: list[Substitution] | None = Field(
        None, description="Alternatives the recipe suggests for this ingredient"
    )
    component: str | None = Field(
        None,
        description=(
            "Which part of the dish this belongs to (e.g., 'main', 'sauce', 'dough'). "
            "Use 'main' when the recipe has a single ingredient list."
        ),
    )

    model_config = _MODEL_CONFIG


class Media(BaseModel):
    """Image or video attached to an instruction step."""

    type: str | None = Field(None, description="Media type: 'image' or 'video'")
    path: str | None = Field(None, description="URL of the media")
    alt: str | None = Field(None, description="Alternative text")

    model_config = _MODEL_CONFIG


class Instruction(BaseModel):
    """One numbered step of the method."""

    step: int | None = Field(None, description="Step number starting at 1")
    description: str = Field(description="What to do in this step, copied from the page")
    time: str | None = Field(
        None, description="Duration of the step in the form '1d 2h 30m', '45m' or '2h'"
    )
    temperature: str | None = Field(None, description="Cooking temperature (e.g., '180C')")
    media: list[Media] | None = Field(None, description="Media shown with the step")

    model_config = _MODEL_CONFIG


class CoverImage(BaseModel):
    """Main photo of the dish."""

    path: str | None = Field(None, description="URL of the image")
    alt: str | None = Field(None, description="Alternative text")

    model_config = _MODEL_CONFIG


class RecipeMetadata(BaseModel):
    """Descriptive information about a recipe."""

    title: str = Field(description="The recipe name exactly as written on the page")
    source: str | None = Field(None, description="URL the recipe was taken from")
    author: str | None = Field(None, description="Author or publication")
    language: str | None = Field(None, description="ISO 639-1 language code (e.g., 'en')")
    date_created: str | None = Field(None, description="Date the record was created (YYYY-MM-DD)")
    category: list[str] | None = Field(None, description="Course or dish categories")
    tags: list[str] | None = Field(None, description="Free-form tags (cuisine, diet, season)")
    servings: int | None = Field(None, description="Number of servings as an integer")
    prep_time: str | None = Field(None, description="Preparation time (e.g., '15m', '1h 10m')")
    cook_time: str | None = Field(None, description="Cooking time (e.g., '45m')")
    total_time: str | None = Field(None, description="Total time (e.g., '1h')")
    difficulty: str | None = Field(None, description="One of 'easy', 'medium', 'hard'")
    cover_image: CoverImage | None = Field(None, description="Main photo of the dish")

    model_config = _MODEL_CONFIG


class Nutrition(BaseModel):
    """Per-serving nutrition values."""

    serving_size: str | None = Field(None, description="Serving size the values refer to")
    calories: float | None = Field(None, description="Energy in kcal")
    protein: float | None = Field(None, description="Protein in grams")
    carbohydrates: float | None = Field(None, description="Carbohydrates in grams")
    fat: float | None = Field(None, description="Fat in grams")
    fiber: float | None = Field(None, description="Fiber in grams")
    sugar: float | None = Field(None, description="Sugar in grams")
    sodium: float | None = Field(None, description="Sodium in milligrams")
    notes: str | None = Field(None, description="Notes on how values were obtained")

    model_config = _MODEL_CONFIG


class Storage(BaseModel):
    """Storage guidance."""

    refrigerator: str | None = Field(None, description="How long and how to keep it chilled")
    freezer: str | None = Field(None, description="How long and how to freeze it")
    room_temperature: str | None = Field(None, description="How long it keeps at room temperature")

    model_config = _MODEL_CONFIG


class Recipe(BaseModel):
    """Complete structured recipe document."""

    is_recipe: bool | None = Field(None, description="True when this document is a real recipe")
    schema_version: str | None = Field(None, description="Schema version, e.g. '1.0.0'")
    recipe_version: str | None = Field(None, description="Recipe revision, e.g. '1.0.0'")
    metadata: RecipeMetadata | None = Field(None, description="Title, timings, servings and tags")
    description: str | None = Field(None, description="Introductory paragraph, if any")
    ingredients: list[Ingredient] = Field(
        default_factory=list, description="Every ingredient in the order listed"
    )
    equipment: list[str] | None = Field(None, description="Tools required")
    instructions: list[Instruction] = Field(
        default_factory=list, description="Every method step in order"
    )
    nutrition: Nutrition | None = Field(None, description="Nutrition values, if stated")
    notes: str | None = Field(None, description="Tips and variations")
    storage: Storage | None = Field(None, description="Storage guidance, if stated")

    model_config = _MODEL_CONFIG

    @property
    def title(self) -> str:
        """Recipe title, or an empty string when metadata is missing."""
        return self.metadata.title if self.metadata else ""


_RECIPE_LIST = TypeAdapter(list[Recipe])


def recipes_to_json(recipes: list[Recipe]) -> str:
    """Serialize recipes to a JSON array, omitting unset optional fields."""
    return _RECIPE_LIST.dump_json(recipes, exclude_none=True).decode("utf-8")


def recipes_from_json(payload: str) -> list[Recipe]:
    """Parse a JSON array produced by ``recipes_to_json``.

    Raises:
        pydantic.ValidationError: If the payload does not match the schema
    """
    return _RECIPE_LIST.validate_json(payload)
