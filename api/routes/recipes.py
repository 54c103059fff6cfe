"""Recipe lookup and search routes"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from domain.schemas.recipe_schemas import RecipeResponse, RecipeSearchResponse
from api.dependencies import get_recipe_resolver
from services.recipe_resolver import RecipeResolver

router = APIRouter(prefix="/recipes", tags=["Recipes"])
logger = logging.getLogger("mealcache.api.recipes")


@router.get("/search", response_model=RecipeSearchResponse)
def search_recipes(
    query: str = Query(..., min_length=1, max_length=200),
    tags: Optional[List[str]] = Query(default=None),
    max_minutes: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    resolver: RecipeResolver = Depends(get_recipe_resolver),
):
    """
    Search recipes by free text.

    When the catalog cannot be reached, locally stored recipes matching the
    query by name are returned with stale=true.
    """
    filters = {"tags": tags, "max_minutes": max_minutes}
    result = resolver.search(query, filters=filters, limit=limit)
    return RecipeSearchResponse(query=query, stale=result.stale, results=result.results)


@router.get("/{recipe_id}", response_model=RecipeResponse)
def get_recipe(recipe_id: str, resolver: RecipeResolver = Depends(get_recipe_resolver)):
    resolved = resolver.resolve(recipe_id)
    return RecipeResponse(
        **resolved.recipe.model_dump(),
        stale=resolved.stale,
        source=resolved.source,
    )
