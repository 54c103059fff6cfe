"""Health check and utility routes"""

from fastapi import APIRouter, Depends

from adapters.catalog_client import CatalogClient
from api.dependencies import get_catalog_client, get_recipe_cache
from app.config import settings
from services.recipe_cache import RecipeCache

router = APIRouter(tags=["Health"])


@router.get("/health-check")
def health_check(
    catalog: CatalogClient = Depends(get_catalog_client),
    cache: RecipeCache = Depends(get_recipe_cache),
):
    """Service status plus cache and catalog budget counters"""
    return {
        "status": "ok",
        "service": settings.app_name,
        "cache": cache.stats(),
        "catalog": {
            "daily_budget": catalog.budget.limit,
            "calls_made": catalog.calls_made,
            "budget_remaining": catalog.budget_remaining(),
        },
    }
