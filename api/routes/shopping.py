"""Shopping list routes"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from domain.mappers import ShoppingMapper
from domain.schemas.shopping_schemas import (
    ManualItemCreate,
    ShoppingListItemResponse,
    ShoppingListItemUpdate,
    ShoppingListResponse,
)
from api.dependencies import get_shopping_service
from services.shopping_service import ShoppingService

router = APIRouter(tags=["Shopping"])
logger = logging.getLogger("mealcache.api.shopping")


@router.get("/plans/{plan_id}/shopping-list", response_model=ShoppingListResponse)
def get_shopping_list(
    plan_id: UUID,
    user_id: UUID = Query(...),
    service: ShoppingService = Depends(get_shopping_service),
):
    """Shopping list of a plan, rebuilt first if the plan changed since it was generated."""
    return ShoppingMapper.to_response(service.get_shopping_list(user_id, plan_id))


@router.post("/plans/{plan_id}/shopping-list/regenerate", response_model=ShoppingListResponse)
def regenerate_shopping_list(
    plan_id: UUID,
    user_id: UUID = Query(...),
    service: ShoppingService = Depends(get_shopping_service),
):
    return ShoppingMapper.to_response(service.generate(user_id, plan_id, force=True))


@router.post(
    "/plans/{plan_id}/shopping-list/items",
    response_model=ShoppingListItemResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_manual_item(
    plan_id: UUID,
    body: ManualItemCreate,
    user_id: UUID = Query(...),
    service: ShoppingService = Depends(get_shopping_service),
):
    item = service.add_manual_item(
        user_id, plan_id, body.name, quantity=body.quantity, unit=body.unit, category=body.category
    )
    return ShoppingListItemResponse.model_validate(item)


@router.patch("/shopping-list/items/{item_id}", response_model=ShoppingListItemResponse)
def update_item(
    item_id: UUID,
    body: ShoppingListItemUpdate,
    user_id: UUID = Query(...),
    service: ShoppingService = Depends(get_shopping_service),
):
    return ShoppingListItemResponse.model_validate(service.set_item_checked(user_id, item_id, body.is_checked))


@router.delete("/shopping-list/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_item(
    item_id: UUID,
    user_id: UUID = Query(...),
    service: ShoppingService = Depends(get_shopping_service),
):
    service.remove_manual_item(user_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
