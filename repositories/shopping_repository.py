"""
Shopping List Repository - Data access layer for shopping list operations
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import ShoppingList, ShoppingListItem


class ShoppingListRepository(BaseRepository[ShoppingList]):
    """Repository for shopping list data access"""

    def __init__(self, db: Session):
        super().__init__(db, ShoppingList)

    def get_by_id(self, list_id: UUID) -> Optional[ShoppingList]:
        """Get shopping list by ID"""
        return (
            self.db.query(ShoppingList).filter(ShoppingList.list_id == list_id).first()
        )

    def get_by_plan_id(self, plan_id: UUID) -> Optional[ShoppingList]:
        """Get the (single) shopping list of a plan"""
        return (
            self.db.query(ShoppingList).filter(ShoppingList.plan_id == plan_id).first()
        )

    def claim_version(
        self,
        list_id: UUID,
        version: int,
        has_stale_recipes: bool,
        generated_at: datetime,
        force: bool = False,
    ) -> bool:
        """
        Stamp the list as generated from ``version`` (not committed).

        Unless forced, the update only matches a list that is still behind
        ``version``, so of two concurrent rebuilds only one gets to write items.
        The row stays locked by the update until the caller commits.
        """
        query = self.db.query(ShoppingList).filter(ShoppingList.list_id == list_id)
        if not force:
            query = query.filter(
                or_(
                    ShoppingList.source_version.is_(None),
                    ShoppingList.source_version < version,
                )
            )
        claimed = query.update(
            {
                ShoppingList.source_version: version,
                ShoppingList.has_stale_recipes: has_stale_recipes,
                ShoppingList.generated_at: generated_at,
            },
            synchronize_session=False,
        )
        return claimed == 1


class ShoppingListItemRepository(BaseRepository[ShoppingListItem]):
    """Repository for shopping list item data access"""

    def __init__(self, db: Session):
        super().__init__(db, ShoppingListItem)

    def get_by_id(self, item_id: UUID) -> Optional[ShoppingListItem]:
        """Get shopping list item by ID"""
        return (
            self.db.query(ShoppingListItem)
            .filter(ShoppingListItem.item_id == item_id)
            .first()
        )

    def replace_derived(self, list_id: UUID, items: List[ShoppingListItem]) -> int:
        """
        Swap a list's derived items for new ones (not committed).

        Derived rows are removed with one bulk DELETE; manual items are not
        touched. Returns the number of rows removed.
        """
        removed = (
            self.db.query(ShoppingListItem)
            .filter(
                ShoppingListItem.list_id == list_id,
                ShoppingListItem.is_manual.is_(False),
            )
            .delete(synchronize_session=False)
        )
        for item in items:
            item.list_id = list_id
        self.db.add_all(items)
        self.db.flush()
        return removed
