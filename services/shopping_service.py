"""Shopping list service"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import (
    ForbiddenError,
    NotFoundError,
    RecipeNotFoundError,
    RecipeUnavailableError,
    ServiceValidationError,
)
from domain.enums import CATEGORY_ORDER, IngredientCategory
from domain.ingredient_categories import categorize, normalize_name, normalize_unit
from domain.models import MealPlan, ShoppingList, ShoppingListItem
from domain.schemas.recipe_schemas import RecipeData
from repositories import (
    MealPlanRepository,
    MealRepository,
    ShoppingListItemRepository,
    ShoppingListRepository,
)
from services.concurrency import KeyedLock
from services.recipe_resolver import RecipeResolver

logger = logging.getLogger("mealcache.shopping")


@dataclass
class AggregatedItem:
    name: str
    unit: Optional[str]
    quantity: Optional[Decimal]
    category: IngredientCategory


def aggregate_ingredients(
    recipes: Dict[str, RecipeData], occurrences: Counter
) -> List[AggregatedItem]:
    """
    Consolidate the ingredient lines of every meal.

    Lines are grouped by normalized name and canonical unit and summed once
    per meal occurrence. The same ingredient in different units stays as
    separate items; lines without a quantity only contribute the item.
    """
    groups: Dict[Tuple[str, Optional[str]], AggregatedItem] = {}

    for recipe_id, count in occurrences.items():
        recipe = recipes[recipe_id]
        for line in recipe.ingredients:
            name = normalize_name(line.name)
            if not name:
                continue
            unit = normalize_unit(line.unit)
            item = groups.get((name, unit))
            if item is None:
                item = groups[(name, unit)] = AggregatedItem(
                    name=name, unit=unit, quantity=None, category=categorize(name)
                )
            if line.quantity is not None:
                amount = Decimal(str(line.quantity)) * count
                item.quantity = amount if item.quantity is None else item.quantity + amount

    return sorted(
        groups.values(),
        key=lambda i: (CATEGORY_ORDER[i.category], i.name, i.unit or ""),
    )


class ShoppingService:
    """Business logic for shopping lists derived from meal plans."""

    def __init__(self, db: Session, resolver: RecipeResolver, locks: Optional[KeyedLock] = None):
        self.db = db
        self.resolver = resolver
        self.locks = locks or KeyedLock()
        self.plans = MealPlanRepository(db)
        self.meals = MealRepository(db)
        self.lists = ShoppingListRepository(db)
        self.items = ShoppingListItemRepository(db)

    def _owned_plan(self, user_id: UUID, plan_id: UUID) -> MealPlan:
        plan = self.plans.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        if plan.user_id != user_id:
            raise ForbiddenError("Plan belongs to another user")
        return plan

    def _list_for(self, plan: MealPlan) -> ShoppingList:
        shopping_list = self.lists.get_by_plan_id(plan.plan_id)
        if shopping_list is not None:
            return shopping_list
        try:
            return self.lists.create(
                ShoppingList(
                    plan_id=plan.plan_id,
                    user_id=plan.user_id,
                    source_version=None,
                    has_stale_recipes=False,
                )
            )
        except IntegrityError:
            # A concurrent request created the plan's list first
            self.lists.rollback()
            shopping_list = self.lists.get_by_plan_id(plan.plan_id)
            if shopping_list is None:
                raise
            logger.debug("Shopping list for plan %s created concurrently", plan.plan_id)
            return shopping_list

    def _resolve_all(self, recipe_ids: Iterable[str]):
        resolved = {}
        stale = False
        for recipe_id in recipe_ids:
            try:
                hit = self.resolver.resolve(recipe_id)
            except RecipeNotFoundError:
                raise RecipeUnavailableError(
                    f"Recipe {recipe_id} no longer exists",
                    details={"recipe_id": recipe_id},
                    reason="not_found",
                )
            resolved[recipe_id] = hit.recipe
            stale = stale or hit.stale
        return resolved, stale

    def generate(self, user_id: UUID, plan_id: UUID, force: bool = False) -> ShoppingList:
        """
        Bring the plan's shopping list up to date with its meals.

        Nothing is rebuilt when the list was generated from the current plan
        version (unless forced). Derived items are replaced wholesale; manual
        items are kept as they are. Concurrent callers for the same plan
        rebuild one at a time, and a caller that waited re-checks the version
        before doing any work.

        Raises:
            NotFoundError / ForbiddenError: plan missing or not the user's
            RecipeUnavailableError: a recipe of the plan cannot be resolved;
                the existing list is left untouched and stays out of date
        """
        plan = self._owned_plan(user_id, plan_id)
        shopping_list = self._list_for(plan)
        if not force and shopping_list.source_version == plan.version:
            return shopping_list

        with self.locks.hold(plan.plan_id):
            # New transaction: see what the previous holder committed
            self.db.rollback()
            plan = self._owned_plan(user_id, plan_id)
            shopping_list = self.lists.get_by_plan_id(plan_id)
            if not force and shopping_list.source_version == plan.version:
                return shopping_list
            return self._rebuild(plan, shopping_list, force)

    def _rebuild(self, plan: MealPlan, shopping_list: ShoppingList, force: bool) -> ShoppingList:
        # Version first, meals second: a meal added in between only makes the
        # list look older than it is, never newer.
        version = plan.version
        meals = self.meals.get_by_plan_id(plan.plan_id)
        occurrences = Counter(meal.recipe_id for meal in meals)

        try:
            recipes, stale = self._resolve_all(occurrences)
        except RecipeUnavailableError:
            self.db.rollback()
            logger.warning("Shopping list for plan %s left at v%s", plan.plan_id, shopping_list.source_version)
            raise

        claimed = self.lists.claim_version(
            shopping_list.list_id,
            version,
            has_stale_recipes=stale,
            generated_at=datetime.now(timezone.utc),
            force=force,
        )
        if not claimed:
            # Another worker process stamped this version first
            self.db.rollback()
            logger.debug("Shopping list for plan %s already at v%d", plan.plan_id, version)
            return shopping_list

        new_items = [
            ShoppingListItem(
                name=item.name,
                quantity=item.quantity,
                unit=item.unit,
                category=item.category.value,
                is_manual=False,
            )
            for item in aggregate_ingredients(recipes, occurrences)
        ]
        self.items.replace_derived(shopping_list.list_id, new_items)
        self.lists.commit()
        self.db.expire(shopping_list)

        logger.info(
            "Generated shopping list for plan %s v%d: %d items from %d meals%s",
            plan.plan_id, version, len(new_items), len(meals), " (stale recipes)" if stale else "",
        )
        return shopping_list

    def get_shopping_list(self, user_id: UUID, plan_id: UUID) -> ShoppingList:
        """Read the list, regenerating it first when the plan has changed"""
        return self.generate(user_id, plan_id)

    def add_manual_item(
        self,
        user_id: UUID,
        plan_id: UUID,
        name: str,
        quantity: Optional[Decimal] = None,
        unit: Optional[str] = None,
        category: Optional[IngredientCategory] = None,
    ) -> ShoppingListItem:
        plan = self._owned_plan(user_id, plan_id)
        name = name.strip()
        if not name:
            raise ServiceValidationError("Item name must not be empty")

        shopping_list = self._list_for(plan)
        item = ShoppingListItem(
            name=name,
            quantity=quantity,
            unit=normalize_unit(unit),
            category=(category or categorize(name)).value,
            is_manual=True,
        )
        shopping_list.items.append(item)
        self.lists.commit()
        return item

    def _owned_item(self, user_id: UUID, item_id: UUID) -> ShoppingListItem:
        item = self.items.get_by_id(item_id)
        if item is None:
            raise NotFoundError(f"Shopping list item {item_id} not found")
        if item.list.user_id != user_id:
            raise ForbiddenError("Shopping list belongs to another user")
        return item

    def set_item_checked(self, user_id: UUID, item_id: UUID, checked: bool) -> ShoppingListItem:
        item = self._owned_item(user_id, item_id)
        item.is_checked = checked
        self.items.commit()
        return item

    def remove_manual_item(self, user_id: UUID, item_id: UUID) -> None:
        item = self._owned_item(user_id, item_id)
        if not item.is_manual:
            raise ServiceValidationError(
                "Derived items are rebuilt from the plan and cannot be removed",
                details={"item_id": str(item_id)},
            )
        self.items.delete(item)
