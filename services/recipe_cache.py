"""
In-memory TTL cache for recipes and search results.

Keys:
    recipe:{external_id}   -> RecipeData (or a negative marker)
    search:{fingerprint}   -> list[RecipeSummary]

Expiry is checked lazily on read; there are no background timers. The cache
is bounded and evicts the least recently used entry when full.
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger("mealcache.cache")


def recipe_key(external_id: str) -> str:
    return f"recipe:{external_id}"


def _normalize_text(value: str) -> str:
    return " ".join(value.lower().split())


def _normalize_filter(value: Any) -> Any:
    if isinstance(value, str):
        return _normalize_text(value)
    if isinstance(value, (list, tuple, set)):
        return sorted(_normalize_filter(v) for v in value if v not in (None, ""))
    return value


def search_fingerprint(query: str, filters: Optional[Mapping[str, Any]] = None) -> str:
    """
    Stable hash of a search request.

    Queries differing only by case or whitespace, or filters differing only by
    key order, list order or empty values, share one fingerprint.
    """
    normalized = {}
    for key in sorted(filters or {}):
        value = _normalize_filter(filters[key])
        if value in (None, "", []):
            continue
        normalized[key] = value
    canonical = json.dumps(
        {"query": _normalize_text(query), "filters": normalized},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def search_key(query: str, filters: Optional[Mapping[str, Any]] = None) -> str:
    return f"search:{search_fingerprint(query, filters)}"


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float
    negative: bool = False
    stale: bool = False


class RecipeCache:
    """Thread-safe, bounded TTL cache"""

    def __init__(
        self,
        recipe_ttl: float = 3600,
        negative_ttl: float = 300,
        search_ttl: float = 900,
        max_entries: int = 2048,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.recipe_ttl = recipe_ttl
        self.negative_ttl = negative_ttl
        self.search_ttl = search_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def from_settings(cls, settings) -> "RecipeCache":
        return cls(
            recipe_ttl=settings.cache_recipe_ttl_sec,
            negative_ttl=settings.cache_negative_ttl_sec,
            search_ttl=settings.cache_search_ttl_sec,
            max_entries=settings.cache_max_entries,
        )

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for key, or None on a miss or expiry"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def set(self, key: str, value: Any, ttl: float, negative: bool = False, stale: bool = False) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value,
                expires_at=self._clock() + ttl,
                negative=negative,
                stale=stale,
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry %s", evicted)

    def set_recipe(self, external_id: str, recipe: Any) -> None:
        self.set(recipe_key(external_id), recipe, self.recipe_ttl)

    def set_negative(self, external_id: str) -> None:
        self.set(recipe_key(external_id), None, self.negative_ttl, negative=True)

    def set_stale(self, external_id: str, recipe: Any) -> None:
        """Cache a fallback copy briefly so an outage does not hammer the store"""
        self.set(recipe_key(external_id), recipe, self.negative_ttl, stale=True)

    def set_search(self, key: str, results: Any) -> None:
        self.set(key, results, self.search_ttl)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
