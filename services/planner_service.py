import logging
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidRangeError,
    NotFoundError,
    RecipeNotFoundError,
    RecipeUnavailableError,
    ServiceValidationError,
)
from domain.enums import MealType
from domain.models import Meal, MealPlan
from domain.schemas.plan_schemas import MealView
from repositories import MealPlanRepository, MealRepository
from services.concurrency import SwapSequencer
from services.recipe_resolver import RecipeResolver, ResolvedRecipe

logger = logging.getLogger("mealcache.planner")


class PlannerService:
    """
    Meal plan engine:
    - one plan per (user, date range), created idempotently
    - meals are added or swapped only after their recipe resolves
    - every change to a plan's meals bumps the plan version in the same
      transaction; shopping lists compare against that version
    """

    def __init__(
        self,
        db: Session,
        resolver: RecipeResolver,
        sequencer: Optional[SwapSequencer] = None,
    ):
        self.db: Session = db
        self.resolver = resolver
        self.sequencer = sequencer or SwapSequencer()
        self.plans = MealPlanRepository(db)
        self.meals = MealRepository(db)

    # ---------- plans ----------

    def create_plan(self, user_id: uuid.UUID, start_date: date, end_date: date) -> MealPlan:
        """
        Create a plan for the range, or return the one that already exists.

        Raises:
            InvalidRangeError: end_date is before start_date
        """
        if end_date < start_date:
            raise InvalidRangeError(
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
            )

        existing = self.plans.get_by_range(user_id, start_date, end_date)
        if existing:
            return existing

        plan = MealPlan(user_id=user_id, start_date=start_date, end_date=end_date, version=0)
        try:
            plan = self.plans.create(plan)
        except IntegrityError:
            # Race condition - a concurrent request created the same plan
            self.plans.rollback()
            existing = self.plans.get_by_range(user_id, start_date, end_date)
            if existing is None:
                raise
            return existing

        logger.info("Created plan %s for user %s (%s..%s)", plan.plan_id, user_id, start_date, end_date)
        return plan

    def get_plan(self, user_id: uuid.UUID, plan_id: uuid.UUID) -> MealPlan:
        plan = self.plans.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        if plan.user_id != user_id:
            raise ForbiddenError("Plan belongs to another user")
        return plan

    def list_plans(self, user_id: uuid.UUID) -> List[MealPlan]:
        return self.plans.get_by_user(user_id)

    def current_plan(self, user_id: uuid.UUID, on_date: date) -> Optional[MealPlan]:
        return self.plans.get_covering(user_id, on_date)

    def upcoming_plans(self, user_id: uuid.UUID, after: date) -> List[MealPlan]:
        return self.plans.get_starting_after(user_id, after)

    # ---------- meals ----------

    def _resolve_for_write(self, recipe_id: str) -> ResolvedRecipe:
        """Resolve a recipe that is about to be written into a plan"""
        try:
            return self.resolver.resolve(recipe_id)
        except RecipeNotFoundError:
            raise RecipeUnavailableError(
                f"Recipe {recipe_id} does not exist",
                details={"recipe_id": recipe_id},
                reason="not_found",
            )

    def add_meal(
        self,
        user_id: uuid.UUID,
        plan_id: uuid.UUID,
        day: date,
        meal_type: MealType,
        recipe_id: str,
        position: Optional[int] = None,
    ) -> Meal:
        """
        Add a meal to a plan.

        Raises:
            NotFoundError / ForbiddenError: plan missing or not the user's
            ServiceValidationError: day outside the plan range
            RecipeUnavailableError: recipe cannot be resolved
            ConflictError: the explicit position is already taken
        """
        plan = self.get_plan(user_id, plan_id)
        if not plan.covers(day):
            raise ServiceValidationError(
                f"{day} is outside the plan range {plan.start_date}..{plan.end_date}",
                details={"date": day.isoformat()},
            )
        meal_type = MealType(meal_type)

        self._resolve_for_write(recipe_id)

        if position is None:
            position = self.meals.next_position(plan.plan_id, day, meal_type.value)
        elif self.meals.get_slot(plan.plan_id, day, meal_type.value, position):
            raise ConflictError(
                "Meal slot already taken",
                details={"date": day.isoformat(), "meal_type": meal_type.value, "position": position},
            )

        meal = Meal(
            plan_id=plan.plan_id,
            recipe_id=recipe_id,
            meal_type=meal_type.value,
            date=day,
            position=position,
        )
        try:
            self.meals.create(meal, commit=False)
            self.plans.bump_version(plan)
            self.plans.commit()
        except IntegrityError:
            self.plans.rollback()
            raise ConflictError(
                "Meal slot already taken",
                details={"date": day.isoformat(), "meal_type": meal_type.value, "position": position},
            )

        logger.info("Added %s %s on %s to plan %s (v%d)", meal_type.value, recipe_id, day, plan_id, plan.version)
        return meal

    def swap_meal(self, meal_id: uuid.UUID, new_recipe_id: str, requesting_user_id: uuid.UUID) -> Meal:
        """
        Replace a meal's recipe.

        Ownership is checked before anything else happens. The recipe is then
        resolved outside any lock; if resolution fails the meal is left as it
        was. Of several concurrent swaps on the same meal, the one that
        started last wins and overtaken ones raise ConflictError.
        """
        meal = self.meals.get_by_id(meal_id)
        if meal is None:
            raise NotFoundError(f"Meal {meal_id} not found")
        if meal.plan.user_id != requesting_user_id:
            raise ForbiddenError("Meal belongs to another user")

        ticket = self.sequencer.begin(meal_id)
        try:
            self._resolve_for_write(new_recipe_id)
            return self.sequencer.apply(meal_id, ticket, lambda: self._write_swap(meal_id, new_recipe_id))
        finally:
            self.sequencer.finish(meal_id)

    def _write_swap(self, meal_id: uuid.UUID, new_recipe_id: str) -> Meal:
        # Another request may have swapped it since we loaded it.
        self.db.expire_all()
        meal = self.meals.get_by_id(meal_id)
        if meal is None:
            raise NotFoundError(f"Meal {meal_id} not found")

        previous = meal.recipe_id
        meal.recipe_id = new_recipe_id
        version = self.plans.bump_version(meal.plan)
        self.plans.commit()
        logger.info("Swapped meal %s: %s -> %s (plan v%d)", meal_id, previous, new_recipe_id, version)
        return meal

    def get_meals(self, user_id: uuid.UUID, start: date, end: Optional[date] = None) -> List[MealView]:
        """
        Meals of all the user's plans on a date (or inclusive date range),
        ordered by date then position, each with its resolved recipe.
        """
        end = start if end is None else end
        if end < start:
            raise InvalidRangeError(details={"start": start.isoformat(), "end": end.isoformat()})

        meals = self.meals.get_for_user_between(user_id, start, end)
        resolved = self.resolver.resolve_many(m.recipe_id for m in meals)

        views = []
        for meal in meals:
            hit = resolved.get(meal.recipe_id)
            view = MealView.model_validate(meal)
            views.append(
                view.model_copy(
                    update={
                        "recipe": hit.recipe if hit else None,
                        "recipe_stale": bool(hit and hit.stale),
                    }
                )
            )
        return views
