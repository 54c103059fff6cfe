"""
Domain enums for MealCache.
Contains all enumeration types used across the domain models.
"""

import enum


class MealType(str, enum.Enum):
    """Meal slot within a day"""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class IngredientCategory(str, enum.Enum):
    """Shopping list category, declared in store-walk order"""

    PRODUCE = "produce"
    DAIRY = "dairy"
    MEAT = "meat"
    SEAFOOD = "seafood"
    BAKERY = "bakery"
    PANTRY = "pantry"
    FROZEN = "frozen"
    OTHER = "other"


# Shopping lists are ordered by this, not alphabetically.
CATEGORY_ORDER = {category: index for index, category in enumerate(IngredientCategory)}


class RecipeSource(str, enum.Enum):
    """Which tier answered a recipe lookup"""

    CACHE = "cache"
    STORE = "store"
    CATALOG = "catalog"
    STALE = "stale"
