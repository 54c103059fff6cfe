import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.enums import MealType
from domain.schemas.recipe_schemas import RecipeData


class CreatePlanRequest(BaseModel):
    user_id: UUID
    start_date: datetime.date
    end_date: datetime.date


class PlanResponse(BaseModel):
    plan_id: UUID
    user_id: UUID
    start_date: datetime.date
    end_date: datetime.date
    version: int

    model_config = {"from_attributes": True}


class AddMealRequest(BaseModel):
    date: datetime.date
    meal_type: MealType
    recipe_id: str = Field(..., min_length=1, max_length=100)
    position: Optional[int] = Field(default=None, ge=0)


class SwapMealRequest(BaseModel):
    recipe_id: str = Field(..., min_length=1, max_length=100)


class MealResponse(BaseModel):
    meal_id: UUID
    plan_id: UUID
    recipe_id: str
    meal_type: MealType
    date: datetime.date
    position: int

    model_config = {"from_attributes": True}


class MealView(MealResponse):
    """Meal joined with its resolved recipe; recipe is None when it cannot be resolved."""

    recipe: Optional[RecipeData] = None
    recipe_stale: bool = False

