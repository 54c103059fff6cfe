"""
API dependencies for dependency injection

The catalog client, cache, store, resolver, swap sequencer and shopping
list locks are process-wide: every request thread shares the same budget,
cache entries and in-flight bookkeeping. Sessions are per request.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from adapters.catalog_client import CatalogClient
from app.config import settings
from domain.models import SessionLocal, get_db_session
from repositories.recipe_repository import RecipeRepository
from services.concurrency import KeyedLock, SwapSequencer
from services.planner_service import PlannerService
from services.recipe_cache import RecipeCache
from services.recipe_resolver import RecipeResolver
from services.shopping_service import ShoppingService


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI routes.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            # Use db session here
            pass
    """
    yield from get_db_session()


@lru_cache
def get_catalog_client() -> CatalogClient:
    return CatalogClient.from_settings(settings)


@lru_cache
def get_recipe_cache() -> RecipeCache:
    return RecipeCache.from_settings(settings)


@lru_cache
def get_recipe_resolver() -> RecipeResolver:
    return RecipeResolver(
        catalog=get_catalog_client(),
        cache=get_recipe_cache(),
        store=RecipeRepository(SessionLocal),
        staleness=timedelta(days=settings.recipe_staleness_days),
        wait_timeout=settings.resolver_wait_timeout_sec,
    )


@lru_cache
def get_swap_sequencer() -> SwapSequencer:
    return SwapSequencer()


@lru_cache
def get_shopping_list_locks() -> KeyedLock:
    return KeyedLock()


def get_planner_service(
    db: Session = Depends(get_db),
    resolver: RecipeResolver = Depends(get_recipe_resolver),
    sequencer: SwapSequencer = Depends(get_swap_sequencer),
) -> PlannerService:
    return PlannerService(db, resolver, sequencer)


def get_shopping_service(
    db: Session = Depends(get_db),
    resolver: RecipeResolver = Depends(get_recipe_resolver),
    locks: KeyedLock = Depends(get_shopping_list_locks),
) -> ShoppingService:
    return ShoppingService(db, resolver, locks)
