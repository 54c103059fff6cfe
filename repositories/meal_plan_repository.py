"""
Meal Plan Repository - Data access layer for meal plan operations
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import MealPlan, Meal


class MealPlanRepository(BaseRepository[MealPlan]):
    """Repository for meal plan data access"""

    def __init__(self, db: Session):
        super().__init__(db, MealPlan)

    def get_by_id(self, plan_id: UUID) -> Optional[MealPlan]:
        """Get meal plan by ID"""
        return self.db.query(MealPlan).filter(MealPlan.plan_id == plan_id).first()

    def get_by_range(self, user_id: UUID, start_date: date, end_date: date) -> Optional[MealPlan]:
        return (
            self.db.query(MealPlan)
            .filter(
                MealPlan.user_id == user_id,
                MealPlan.start_date == start_date,
                MealPlan.end_date == end_date,
            )
            .first()
        )

    def get_by_user(self, user_id: UUID) -> List[MealPlan]:
        """Get all plans for a user, newest range first"""
        return (
            self.db.query(MealPlan)
            .filter(MealPlan.user_id == user_id)
            .order_by(MealPlan.start_date.desc(), MealPlan.end_date.desc())
            .all()
        )

    def get_covering(self, user_id: UUID, on_date: date) -> Optional[MealPlan]:
        """Plan whose range contains the date; latest start wins"""
        return (
            self.db.query(MealPlan)
            .filter(
                MealPlan.user_id == user_id,
                MealPlan.start_date <= on_date,
                MealPlan.end_date >= on_date,
            )
            .order_by(MealPlan.start_date.desc())
            .first()
        )

    def get_starting_after(self, user_id: UUID, after: date) -> List[MealPlan]:
        return (
            self.db.query(MealPlan)
            .filter(MealPlan.user_id == user_id, MealPlan.start_date > after)
            .order_by(MealPlan.start_date.asc())
            .all()
        )

    def bump_version(self, plan: MealPlan) -> int:
        """Increment the plan version in the current transaction (not committed)"""
        plan.version = MealPlan.version + 1
        self.db.flush()
        self.db.refresh(plan, attribute_names=["version"])
        return plan.version


class MealRepository(BaseRepository[Meal]):
    """Repository for meal data access"""

    def __init__(self, db: Session):
        super().__init__(db, Meal)

    def get_by_id(self, meal_id: UUID) -> Optional[Meal]:
        """Get meal by ID"""
        return self.db.query(Meal).filter(Meal.meal_id == meal_id).first()

    def get_by_plan_id(self, plan_id: UUID) -> List[Meal]:
        """Get all meals for a plan"""
        return (
            self.db.query(Meal)
            .filter(Meal.plan_id == plan_id)
            .order_by(Meal.date, Meal.position, Meal.meal_type)
            .all()
        )

    def get_slot(self, plan_id: UUID, day: date, meal_type: str, position: int) -> Optional[Meal]:
        return (
            self.db.query(Meal)
            .filter(
                Meal.plan_id == plan_id,
                Meal.date == day,
                Meal.meal_type == meal_type,
                Meal.position == position,
            )
            .first()
        )

    def next_position(self, plan_id: UUID, day: date, meal_type: str) -> int:
        """First position after the highest used one for the slot"""
        highest = (
            self.db.query(func.max(Meal.position))
            .filter(Meal.plan_id == plan_id, Meal.date == day, Meal.meal_type == meal_type)
            .scalar()
        )
        return 0 if highest is None else highest + 1

    def get_for_user_between(self, user_id: UUID, start: date, end: date) -> List[Meal]:
        """Meals across all of a user's plans in the inclusive date range"""
        return (
            self.db.query(Meal)
            .join(MealPlan, Meal.plan_id == MealPlan.plan_id)
            .filter(MealPlan.user_id == user_id, Meal.date >= start, Meal.date <= end)
            .order_by(Meal.date, Meal.position, Meal.meal_type, Meal.meal_id)
            .all()
        )
