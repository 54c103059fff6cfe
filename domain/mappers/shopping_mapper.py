"""
Shopping list domain mappers.
Handles transformation between ORM models and DTOs for shopping-related entities.
"""

from domain.enums import CATEGORY_ORDER, IngredientCategory
from domain.models import ShoppingList, ShoppingListItem
from domain.schemas.shopping_schemas import (
    ShoppingListResponse,
    ShoppingListItemResponse,
)


def item_sort_key(item: ShoppingListItem):
    """Store-walk category order, then name, then unit; derived before manual."""
    category = IngredientCategory(item.category or IngredientCategory.OTHER.value)
    return (
        CATEGORY_ORDER[category],
        item.name.lower(),
        item.unit or "",
        item.is_manual,
    )


class ShoppingMapper:
    """Mapper for shopping list transformations."""

    @staticmethod
    def to_response(shopping_list: ShoppingList) -> ShoppingListResponse:
        """
        Convert ORM ShoppingList to ShoppingListResponse DTO.

        Args:
            shopping_list: ShoppingList ORM instance with items loaded

        Returns:
            ShoppingListResponse DTO with items in store-walk order
        """
        items = [
            ShoppingListItemResponse.model_validate(item)
            for item in sorted(shopping_list.items, key=item_sort_key)
        ]

        return ShoppingListResponse(
            list_id=shopping_list.list_id,
            plan_id=shopping_list.plan_id,
            user_id=shopping_list.user_id,
            source_version=shopping_list.source_version,
            has_stale_recipes=bool(shopping_list.has_stale_recipes),
            generated_at=shopping_list.generated_at,
            items=items,
        )
