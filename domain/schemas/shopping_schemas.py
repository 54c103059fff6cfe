"""Schemas for shopping lists derived from meal plans"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.enums import IngredientCategory


class ShoppingListItemResponse(BaseModel):
    item_id: UUID
    name: str
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None
    category: IngredientCategory
    is_checked: bool
    is_manual: bool

    model_config = {"from_attributes": True}


class ShoppingListResponse(BaseModel):
    list_id: UUID
    plan_id: UUID
    user_id: UUID
    source_version: Optional[int] = None
    has_stale_recipes: bool = False
    generated_at: Optional[datetime] = None
    items: List[ShoppingListItemResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ManualItemCreate(BaseModel):
    """User-entered item; survives every regeneration"""

    name: str = Field(..., min_length=1, max_length=200)
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=30)
    category: Optional[IngredientCategory] = None


class ShoppingListItemUpdate(BaseModel):
    is_checked: bool
