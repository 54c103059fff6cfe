"""
Domain mappers package - ORM <-> DTO transformations.
"""

from domain.mappers.recipe_mapper import RecipeMapper
from domain.mappers.shopping_mapper import ShoppingMapper, item_sort_key

__all__ = ["RecipeMapper", "ShoppingMapper", "item_sort_key"]
