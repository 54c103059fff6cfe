"""
Recipe Repository - durable store for recipes fetched from the catalog.

Unlike the other repositories this one is not bound to a request session:
it is shared by the resolver across worker threads, so every call opens
its own short-lived session from the factory.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.mappers.recipe_mapper import RecipeMapper
from domain.models import Recipe
from domain.schemas.recipe_schemas import RecipeData, RecipeSummary

logger = logging.getLogger("mealcache.store")


class RecipeRepository:
    """System of record for recipes, keyed by external id. No TTL."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def get(self, external_id: str) -> Optional[RecipeData]:
        """Get recipe by external id"""
        with self._session() as db:
            row = db.get(Recipe, external_id)
            return RecipeMapper.to_data(row) if row else None

    def get_many(self, external_ids: Iterable[str]) -> Dict[str, RecipeData]:
        ids = list(dict.fromkeys(external_ids))
        if not ids:
            return {}
        with self._session() as db:
            rows = db.query(Recipe).filter(Recipe.external_id.in_(ids)).all()
            return {row.external_id: RecipeMapper.to_data(row) for row in rows}

    def _apply(self, db: Session, recipe: RecipeData) -> Recipe:
        columns = RecipeMapper.to_columns(recipe)
        row = db.get(Recipe, recipe.external_id)
        if row is None:
            row = Recipe(**columns)
            db.add(row)
        else:
            columns.pop("external_id")
            for key, value in columns.items():
                setattr(row, key, value)
        return row

    def upsert(self, recipe: RecipeData) -> RecipeData:
        """
        Insert a recipe or refresh its content in place.

        The external id never changes. If a concurrent writer inserts the same
        id first, the insert is retried as an update.
        """
        with self._session() as db:
            self._apply(db, recipe)
            try:
                db.commit()
            except IntegrityError:
                # Race condition - another thread stored it first
                db.rollback()
                self._apply(db, recipe)
                db.commit()
            logger.debug("Stored recipe %s (fetched_at=%s)", recipe.external_id, recipe.fetched_at)
        return recipe

    def search_by_name(self, query: str, limit: int = 20) -> List[RecipeSummary]:
        """Case-insensitive substring match on the recipe name"""
        needle = " ".join(query.lower().split())
        with self._session() as db:
            rows = (
                db.query(Recipe)
                .filter(func.lower(Recipe.name).contains(needle, autoescape=True))
                .order_by(Recipe.name)
                .limit(limit)
                .all()
            )
            return [RecipeSummary.model_validate(row) for row in rows]
