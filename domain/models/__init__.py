"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    engine,
    SessionLocal,
    make_engine,
    init_database,
    get_db_session,
)
from domain.models.recipe import Recipe
from domain.models.meal_plan import (
    MealPlan,
    Meal,
    ShoppingList,
    ShoppingListItem,
)

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "init_database",
    "get_db_session",
    # Recipe models
    "Recipe",
    # Meal plan models
    "MealPlan",
    "Meal",
    "ShoppingList",
    "ShoppingListItem",
]
