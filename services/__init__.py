"""Services package - Business logic layer"""

from services.concurrency import KeyedLock, SingleFlight, SwapSequencer
from services.recipe_cache import RecipeCache
from services.recipe_resolver import RecipeResolver, ResolvedRecipe, SearchResult
from services.planner_service import PlannerService
from services.shopping_service import ShoppingService

__all__ = [
    "SingleFlight",
    "SwapSequencer",
    "KeyedLock",
    "RecipeCache",
    "RecipeResolver",
    "ResolvedRecipe",
    "SearchResult",
    "PlannerService",
    "ShoppingService",
]
