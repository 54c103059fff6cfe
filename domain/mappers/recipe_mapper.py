"""
Recipe domain mappers.
Handles transformation between the Recipe ORM row and the RecipeData DTO.
"""

from typing import Any, Dict

from domain.models import Recipe
from domain.schemas.recipe_schemas import RecipeData


class RecipeMapper:
    """Mapper for recipe transformations."""

    @staticmethod
    def to_data(row: Recipe) -> RecipeData:
        return RecipeData.model_validate(row)

    @staticmethod
    def to_columns(recipe: RecipeData) -> Dict[str, Any]:
        """
        Column values for an insert or an in-place refresh.

        external_id is included so callers can build new rows from it; updates
        must never assign it.
        """
        return {
            "external_id": recipe.external_id,
            "name": recipe.name,
            "description": recipe.description,
            "image_url": recipe.image_url,
            "prep_minutes": recipe.prep_minutes,
            "cook_minutes": recipe.cook_minutes,
            "servings": recipe.servings,
            "ingredients": [i.model_dump() for i in recipe.ingredients],
            "instructions": list(recipe.instructions),
            "nutrition": dict(recipe.nutrition) if recipe.nutrition else None,
            "fetched_at": recipe.fetched_at,
        }
