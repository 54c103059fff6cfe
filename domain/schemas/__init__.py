"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.recipe_schemas import (
    RecipeIngredient,
    RecipeData,
    RecipeSummary,
    RecipeResponse,
    RecipeSearchResponse,
)
from domain.schemas.plan_schemas import (
    CreatePlanRequest,
    PlanResponse,
    AddMealRequest,
    SwapMealRequest,
    MealResponse,
    MealView,
)
from domain.schemas.shopping_schemas import (
    ShoppingListItemResponse,
    ShoppingListResponse,
    ManualItemCreate,
    ShoppingListItemUpdate,
)

__all__ = [
    # Recipe schemas
    "RecipeIngredient",
    "RecipeData",
    "RecipeSummary",
    "RecipeResponse",
    "RecipeSearchResponse",
    # Plan schemas
    "CreatePlanRequest",
    "PlanResponse",
    "AddMealRequest",
    "SwapMealRequest",
    "MealResponse",
    "MealView",
    # Shopping schemas
    "ShoppingListItemResponse",
    "ShoppingListResponse",
    "ManualItemCreate",
    "ShoppingListItemUpdate",
]
