"""
Recipe Resolver - tiered recipe lookup: cache, then store, then catalog.

The resolver is the only component that talks to the catalog on behalf of
the rest of the application. Fetching and storing a recipe happens at most
once per key at a time, however many requests ask for it concurrently.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from adapters.catalog_client import (
    CatalogClient,
    CatalogNotFoundError,
    CatalogUnavailableError,
)
from app.exceptions import RecipeNotFoundError, RecipeUnavailableError, ServiceError
from domain.enums import RecipeSource
from domain.schemas.recipe_schemas import RecipeData, RecipeSummary
from repositories.recipe_repository import RecipeRepository
from services.concurrency import SingleFlight
from services.recipe_cache import RecipeCache, recipe_key, search_key

logger = logging.getLogger("mealcache.resolver")


@dataclass(frozen=True)
class ResolvedRecipe:
    recipe: RecipeData
    stale: bool
    source: RecipeSource


@dataclass(frozen=True)
class SearchResult:
    results: List[RecipeSummary]
    stale: bool = False


class RecipeResolver:
    """Resolves recipe ids and searches through cache, store and catalog."""

    def __init__(
        self,
        catalog: CatalogClient,
        cache: RecipeCache,
        store: RecipeRepository,
        staleness: timedelta = timedelta(days=7),
        wait_timeout: Optional[float] = 30.0,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.catalog = catalog
        self.cache = cache
        self.store = store
        self.staleness = staleness
        self.wait_timeout = wait_timeout
        self._now = now
        self._flight = SingleFlight()

    # ------------------------------------------------------------------
    # Single recipe
    # ------------------------------------------------------------------

    def resolve(self, recipe_id: str) -> ResolvedRecipe:
        """
        Resolve a recipe id.

        Raises:
            RecipeNotFoundError: the catalog says the id does not exist
            RecipeUnavailableError: the catalog cannot answer and nothing
                was ever stored for this id
        """
        cached = self._from_cache(recipe_id)
        if cached is not None:
            return cached

        key = recipe_key(recipe_id)
        return self._flight.do(
            key,
            lambda: self._load(recipe_id),
            timeout=self.wait_timeout,
            on_timeout=lambda: RecipeUnavailableError(
                "Timed out waiting for recipe",
                details={"recipe_id": recipe_id},
                reason="timeout",
            ),
        )

    def _from_cache(self, recipe_id: str) -> Optional[ResolvedRecipe]:
        entry = self.cache.get(recipe_key(recipe_id))
        if entry is None:
            return None
        if entry.negative:
            raise RecipeNotFoundError(details={"recipe_id": recipe_id})
        if entry.stale:
            return ResolvedRecipe(entry.value, True, RecipeSource.STALE)
        return ResolvedRecipe(entry.value, False, RecipeSource.CACHE)

    def _is_fresh(self, recipe: RecipeData) -> bool:
        return self._now() - recipe.fetched_at <= self.staleness

    def _load(self, recipe_id: str) -> ResolvedRecipe:
        # A previous leader may have filled the cache while we queued for the key.
        cached = self._from_cache(recipe_id)
        if cached is not None:
            return cached

        stored = self.store.get(recipe_id)
        if stored is not None and self._is_fresh(stored):
            self.cache.set_recipe(recipe_id, stored)
            return ResolvedRecipe(stored, False, RecipeSource.STORE)

        try:
            fetched = self.catalog.fetch(recipe_id)
        except CatalogNotFoundError:
            self.cache.set_negative(recipe_id)
            raise RecipeNotFoundError(details={"recipe_id": recipe_id})
        except CatalogUnavailableError as exc:
            if stored is not None:
                logger.warning(
                    "Catalog unavailable (%s); serving stale copy of %s fetched %s",
                    exc.reason, recipe_id, stored.fetched_at.isoformat(),
                )
                self.cache.set_stale(recipe_id, stored)
                return ResolvedRecipe(stored, True, RecipeSource.STALE)
            logger.warning("Recipe %s unavailable: %s", recipe_id, exc)
            raise RecipeUnavailableError(
                details={"recipe_id": recipe_id},
                reason=exc.reason,
            )

        self.store.upsert(fetched)
        self.cache.set_recipe(recipe_id, fetched)
        return ResolvedRecipe(fetched, False, RecipeSource.CATALOG)

    def resolve_many(self, recipe_ids: Iterable[str]) -> Dict[str, ResolvedRecipe]:
        """
        Resolve several ids, each distinct id once.

        Cache misses are read from the store in one query; only ids the store
        cannot serve fresh go through resolve(). Ids that are not found or
        unavailable are left out of the result.
        """
        resolved: Dict[str, ResolvedRecipe] = {}
        pending: List[str] = []
        for recipe_id in dict.fromkeys(recipe_ids):
            try:
                cached = self._from_cache(recipe_id)
            except RecipeNotFoundError as exc:
                logger.info("Skipping recipe %s: %s", recipe_id, exc.code)
                continue
            if cached is not None:
                resolved[recipe_id] = cached
            else:
                pending.append(recipe_id)

        stored = self.store.get_many(pending) if pending else {}
        for recipe_id in pending:
            recipe = stored.get(recipe_id)
            if recipe is not None and self._is_fresh(recipe):
                self.cache.set_recipe(recipe_id, recipe)
                resolved[recipe_id] = ResolvedRecipe(recipe, False, RecipeSource.STORE)
                continue
            try:
                resolved[recipe_id] = self.resolve(recipe_id)
            except ServiceError as exc:
                logger.info("Skipping recipe %s: %s", recipe_id, exc.code)
        return resolved

    def invalidate(self, recipe_id: str) -> bool:
        return self.cache.invalidate(recipe_key(recipe_id))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: int = 20,
    ) -> SearchResult:
        """
        Search recipes.

        Order: cache, then catalog; when the catalog is unavailable the local
        store's name search is returned flagged stale.
        """
        key = search_key(query, {**(filters or {}), "limit": limit})
        entry = self.cache.get(key)
        if entry is not None:
            return SearchResult(list(entry.value))

        return self._flight.do(
            key,
            lambda: self._search(key, query, filters, limit),
            timeout=self.wait_timeout,
            on_timeout=lambda: RecipeUnavailableError("Timed out waiting for search", reason="timeout"),
        )

    def _search(self, key: str, query: str, filters: Optional[Mapping[str, Any]], limit: int) -> SearchResult:
        entry = self.cache.get(key)
        if entry is not None:
            return SearchResult(list(entry.value))

        try:
            results = self.catalog.search(query, filters=filters, limit=limit)
        except CatalogUnavailableError as exc:
            local = self.store.search_by_name(query, limit=limit)
            if local:
                logger.warning("Catalog search unavailable (%s); %d local matches", exc.reason, len(local))
                return SearchResult(local, stale=True)
            raise RecipeUnavailableError(
                "Recipe search unavailable",
                details={"query": query},
                reason=exc.reason,
            )

        self.cache.set_search(key, tuple(results))
        return SearchResult(results)
