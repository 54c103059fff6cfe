"""HTTP client for the external recipe catalog.

The catalog allows a fixed number of requests per rolling 24 hour window.
Every request actually sent counts against that budget (retries and failed
responses included); once it is spent, calls fail immediately with
CatalogBudgetExhaustedError and no network I/O happens.

Outcomes:
    fetch()  -> RecipeData | CatalogNotFoundError | CatalogUnavailableError
    search() -> list[RecipeSummary] | CatalogUnavailableError

CatalogBudgetExhaustedError is a CatalogUnavailableError with
reason="budget_exhausted", so callers that only care about "catalog down"
can catch the base class.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from domain.schemas.recipe_schemas import RecipeData, RecipeSummary

logger = logging.getLogger("mealcache.catalog")

WINDOW_SECONDS = 24 * 60 * 60
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


# =============================================================================
# EXCEPTIONS
# =============================================================================


class CatalogError(Exception):
    """Base exception for catalog client errors."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.insert(0, f"[{self.operation}]")
        if self.details:
            parts.append("(" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")")
        return " ".join(parts)


class CatalogNotFoundError(CatalogError):
    """The catalog answered and says the recipe does not exist."""


class CatalogUnavailableError(CatalogError):
    """The catalog could not be reached or gave no usable answer."""

    reason = "transient"


class CatalogBudgetExhaustedError(CatalogUnavailableError):
    """The daily request budget is spent; nothing was sent."""

    reason = "budget_exhausted"


# =============================================================================
# BUDGET
# =============================================================================


class CallBudget:
    """
    Thread-safe request counter over a rolling window.

    The window opens with the first counted call and the counter resets once
    the window has fully elapsed. reserve() is the only mutation and happens
    under the lock, so concurrent callers can never overrun the limit.
    """

    def __init__(self, limit: int, window_seconds: float = WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._window_start: Optional[float] = None
        self._used = 0

    def _roll(self, now: float) -> None:
        if self._window_start is not None and now - self._window_start >= self.window_seconds:
            self._window_start = None
            self._used = 0

    def reserve(self) -> bool:
        """Count one call if the budget allows it. Returns False when exhausted."""
        with self._lock:
            now = self._clock()
            self._roll(now)
            if self._used >= self.limit:
                return False
            if self._window_start is None:
                self._window_start = now
            self._used += 1
            return True

    @property
    def used(self) -> int:
        with self._lock:
            self._roll(self._clock())
            return self._used

    def remaining(self) -> int:
        return max(self.limit - self.used, 0)


# =============================================================================
# PAYLOAD MAPPING
# =============================================================================


def _first(doc: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if doc.get(key) is not None:
            return doc[key]
    return None


def _parse_ingredients(raw: Any) -> List[Dict[str, Any]]:
    items = []
    for entry in raw or []:
        if isinstance(entry, str):
            items.append({"name": entry})
        elif isinstance(entry, Mapping) and entry.get("name"):
            items.append({
                "name": entry["name"],
                "quantity": _first(entry, "quantity", "amount"),
                "unit": entry.get("unit") or None,
            })
    return items


def _parse_instructions(raw: Any) -> List[str]:
    steps = []
    for entry in raw or []:
        if isinstance(entry, str):
            steps.append(entry)
        elif isinstance(entry, Mapping):
            text = _first(entry, "text", "instruction", "step")
            if isinstance(text, str):
                steps.append(text)
    return steps


def recipe_from_payload(doc: Mapping[str, Any], fetched_at: datetime) -> RecipeData:
    """Convert a catalog recipe document into RecipeData."""
    return RecipeData(
        external_id=str(_first(doc, "id", "external_id")),
        name=_first(doc, "name", "title") or "",
        description=doc.get("description"),
        image_url=_first(doc, "image_url", "image"),
        prep_minutes=_first(doc, "prep_minutes", "prep_time"),
        cook_minutes=_first(doc, "cook_minutes", "cook_time"),
        servings=doc.get("servings"),
        ingredients=_parse_ingredients(doc.get("ingredients")),
        instructions=_parse_instructions(_first(doc, "instructions", "steps")),
        nutrition=doc.get("nutrition"),
        fetched_at=fetched_at,
    )


def summary_from_payload(doc: Mapping[str, Any]) -> RecipeSummary:
    return RecipeSummary(
        external_id=str(_first(doc, "id", "external_id")),
        name=_first(doc, "name", "title") or "",
        image_url=_first(doc, "image_url", "image"),
        prep_minutes=_first(doc, "prep_minutes", "prep_time"),
        cook_minutes=_first(doc, "cook_minutes", "cook_time"),
    )


# =============================================================================
# CLIENT
# =============================================================================


class CatalogClient:
    """
    Budgeted, retrying client for the recipe catalog.

    Features:
    - HTTP connection pooling via httpx.Client
    - Bounded exponential backoff for network errors, 429 and 5xx
    - Shared daily call budget (see CallBudget)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        daily_budget: int = 150,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 4.0,
        transport: Optional[httpx.BaseTransport] = None,
        budget: Optional[CallBudget] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-Api-Key"] = api_key
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.budget = budget or CallBudget(daily_budget)
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._sleep = sleep
        self._now = now

        logger.debug("CatalogClient initialized: base_url=%s budget=%d", base_url, self.budget.limit)

    @classmethod
    def from_settings(cls, settings, **overrides) -> "CatalogClient":
        options = dict(
            base_url=settings.catalog_base_url,
            api_key=settings.catalog_api_key,
            daily_budget=settings.catalog_daily_budget,
            timeout=settings.catalog_timeout_sec,
            max_attempts=settings.catalog_max_attempts,
            backoff_base=settings.catalog_backoff_base_sec,
            backoff_max=settings.catalog_backoff_max_sec,
        )
        options.update(overrides)
        return cls(**options)

    def close(self) -> None:
        """Clean up connections."""
        self._http.close()

    @property
    def calls_made(self) -> int:
        return self.budget.used

    def budget_remaining(self) -> int:
        return self.budget.remaining()

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    def _get(self, path: str, operation: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        Send a GET with budget accounting and retries.

        Returns the final response for 2xx and 404; raises
        CatalogUnavailableError for anything else.
        """
        last_error: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            if not self.budget.reserve():
                logger.warning("Catalog budget exhausted; %s not sent", operation)
                raise CatalogBudgetExhaustedError(
                    "Daily catalog budget exhausted",
                    operation=operation,
                    details={"limit": self.budget.limit},
                )

            try:
                response = self._http.get(path, params=params)
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "Catalog %s attempt %d/%d failed: %s",
                    operation, attempt, self.max_attempts, last_error,
                )
            else:
                if response.status_code < 400 or response.status_code == 404:
                    return response
                last_error = f"HTTP {response.status_code}"
                if response.status_code not in RETRY_STATUS_CODES:
                    raise CatalogUnavailableError(
                        "Catalog rejected the request",
                        operation=operation,
                        details={"status_code": response.status_code},
                    )
                logger.warning(
                    "Catalog %s attempt %d/%d got %s",
                    operation, attempt, self.max_attempts, last_error,
                )

            if attempt < self.max_attempts:
                self._sleep(self._backoff(attempt))

        raise CatalogUnavailableError(
            "Catalog unavailable",
            operation=operation,
            details={"attempts": self.max_attempts, "error": last_error},
        )

    def _json(self, response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError:
            raise CatalogUnavailableError("Catalog returned malformed JSON", operation=operation)

    def fetch(self, recipe_id: str) -> RecipeData:
        """Fetch one recipe by its catalog id."""
        operation = "fetch"
        response = self._get(f"/recipes/{quote(recipe_id, safe='')}", operation)

        if response.status_code == 404:
            logger.info("Catalog has no recipe %s", recipe_id)
            raise CatalogNotFoundError("Recipe not found in catalog", operation=operation, details={"recipe_id": recipe_id})

        doc = self._json(response, operation)
        if not isinstance(doc, Mapping):
            raise CatalogUnavailableError("Unexpected catalog payload", operation=operation)
        doc = {**doc, "id": doc.get("id") or recipe_id}

        try:
            recipe = recipe_from_payload(doc, self._now())
        except ValidationError as exc:
            raise CatalogUnavailableError(
                "Catalog payload failed validation",
                operation=operation,
                details={"recipe_id": recipe_id, "errors": exc.error_count()},
            )

        if recipe.external_id != recipe_id:
            # The id we asked for is the identity we keep.
            recipe = recipe.model_copy(update={"external_id": recipe_id})

        logger.info("Fetched recipe %s from catalog", recipe_id)
        return recipe

    def search(self, query: str, filters: Optional[Mapping[str, Any]] = None, limit: int = 20) -> List[RecipeSummary]:
        """Search the catalog. Results keep the catalog's ordering."""
        operation = "search"
        params: Dict[str, Any] = {"query": query, "limit": limit}
        for key, value in (filters or {}).items():
            if value is None:
                continue
            if key in params:
                logger.debug("Ignoring search filter %r; it would shadow a reserved parameter", key)
                continue
            params[key] = ",".join(map(str, value)) if isinstance(value, (list, tuple, set)) else value

        response = self._get("/recipes/search", operation, params=params)
        if response.status_code == 404:
            return []

        doc = self._json(response, operation)
        rows = doc.get("results", []) if isinstance(doc, Mapping) else doc
        if not isinstance(rows, list):
            raise CatalogUnavailableError("Unexpected catalog payload", operation=operation)

        results = []
        for row in rows:
            try:
                results.append(summary_from_payload(row))
            except (ValidationError, AttributeError, TypeError):
                logger.debug("Skipping malformed search row: %r", row)
        logger.info("Catalog search %r returned %d results", query, len(results))
        return results[:limit]
