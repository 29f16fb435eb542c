"""
Cookbook Extractor - Turn recipe web pages into structured recipe records.

This package cleans page HTML, asks an LLM for structured recipes, validates
the answer with feedback retries, widens the cleaning when the model is
unsure, and caches outcomes by normalized URL.
"""

__version__ = "0.1.0"

from .models import CleaningStrategy, ExtractionResponse, Invalid, Valid
from .recipe import Ingredient, Instruction, Recipe, RecipeMetadata
from .service import RecipeExtractionService

__all__ = [
    "CleaningStrategy",
    "ExtractionResponse",
    "Ingredient",
    "Instruction",
    "Invalid",
    "Recipe",
    "RecipeExtractionService",
    "RecipeMetadata",
    "Valid",
]
