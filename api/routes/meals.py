"""Meal read and swap routes"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from domain.schemas.plan_schemas import MealResponse, MealView, SwapMealRequest
from api.dependencies import get_planner_service
from services.planner_service import PlannerService

router = APIRouter(prefix="/meals", tags=["Meals"])
logger = logging.getLogger("mealcache.api.meals")


@router.get("", response_model=List[MealView])
def get_meals(
    user_id: UUID = Query(...),
    start: date = Query(...),
    end: Optional[date] = Query(default=None),
    service: PlannerService = Depends(get_planner_service),
):
    """
    Meals across all of the user's plans for a date, or for the inclusive
    range start..end. Recipes that cannot be resolved come back as null.
    """
    return service.get_meals(user_id, start, end)


@router.put("/{meal_id}/recipe", response_model=MealResponse)
def swap_meal(
    meal_id: UUID,
    body: SwapMealRequest,
    user_id: UUID = Query(...),
    service: PlannerService = Depends(get_planner_service),
):
    meal = service.swap_meal(meal_id, body.recipe_id, user_id)
    return MealResponse.model_validate(meal)
