"""Pydantic schemas for recipes as they travel between catalog, cache, store and API."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.enums import RecipeSource


class RecipeIngredient(BaseModel):
    """One ingredient line of a recipe."""

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None


class RecipeData(BaseModel):
    """Complete recipe record keyed by the catalog's external id."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    external_id: str = Field(..., min_length=1)
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_minutes: Optional[int] = Field(default=None, ge=0)
    cook_minutes: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    ingredients: List[RecipeIngredient] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    nutrition: Optional[Dict[str, Any]] = None
    fetched_at: datetime

    @field_validator("fetched_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        """SQLite hands back naive timestamps; treat them as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class RecipeSummary(BaseModel):
    """Search hit as returned by the catalog."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    external_id: str
    name: str
    image_url: Optional[str] = None
    prep_minutes: Optional[int] = None
    cook_minutes: Optional[int] = None


class RecipeResponse(RecipeData):
    """Recipe returned by the API, flagged when it came from a stale fallback."""

    stale: bool = False
    source: RecipeSource


class RecipeSearchResponse(BaseModel):
    query: str
    stale: bool = False
    results: List[RecipeSummary] = Field(default_factory=list)
