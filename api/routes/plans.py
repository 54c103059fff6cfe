import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from domain.schemas.plan_schemas import (
    AddMealRequest,
    CreatePlanRequest,
    MealResponse,
    PlanResponse,
)
from api.dependencies import get_planner_service
from services.planner_service import PlannerService

router = APIRouter(prefix="/plans", tags=["Meal Planning"])
logger = logging.getLogger("mealcache.api.plans")


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(body: CreatePlanRequest, service: PlannerService = Depends(get_planner_service)):
    """
    Create a meal plan for a date range.

    Idempotent: asking again for the same user and range returns the
    existing plan.
    """
    plan = service.create_plan(body.user_id, body.start_date, body.end_date)
    return PlanResponse.model_validate(plan)


@router.get("", response_model=List[PlanResponse])
def list_plans(
    user_id: UUID = Query(...),
    on: Optional[date] = Query(default=None, description="Only the plan covering this date"),
    after: Optional[date] = Query(default=None, description="Only plans starting after this date"),
    service: PlannerService = Depends(get_planner_service),
):
    if on is not None:
        plan = service.current_plan(user_id, on)
        return [PlanResponse.model_validate(plan)] if plan else []
    if after is not None:
        return [PlanResponse.model_validate(p) for p in service.upcoming_plans(user_id, after)]
    return [PlanResponse.model_validate(p) for p in service.list_plans(user_id)]


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: UUID, user_id: UUID = Query(...), service: PlannerService = Depends(get_planner_service)):
    return PlanResponse.model_validate(service.get_plan(user_id, plan_id))


@router.post("/{plan_id}/meals", response_model=MealResponse, status_code=status.HTTP_201_CREATED)
def add_meal(
    plan_id: UUID,
    body: AddMealRequest,
    user_id: UUID = Query(...),
    service: PlannerService = Depends(get_planner_service),
):
    logger.info("Adding %s %s on %s to plan %s", body.meal_type.value, body.recipe_id, body.date, plan_id)
    meal = service.add_meal(user_id, plan_id, body.date, body.meal_type, body.recipe_id, body.position)
    return MealResponse.model_validate(meal)
