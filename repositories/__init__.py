"""
Repositories package - Data access layer.
"""

from repositories.base import BaseRepository
from repositories.recipe_repository import RecipeRepository
from repositories.shopping_repository import (
    ShoppingListRepository,
    ShoppingListItemRepository,
)
from repositories.meal_plan_repository import MealPlanRepository, MealRepository

__all__ = [
    "BaseRepository",
    "RecipeRepository",
    "ShoppingListRepository",
    "ShoppingListItemRepository",
    "MealPlanRepository",
    "MealRepository",
]
