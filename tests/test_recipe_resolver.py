"""
Tests for tiered recipe resolution.

Resolution order: cache -> store (fresh within 7 days) -> catalog, with the
stored copy served as a flagged stale fallback when the catalog is down.
"""

import threading
import time
from datetime import timedelta

import pytest

from app.exceptions import RecipeNotFoundError, RecipeUnavailableError
from domain.enums import RecipeSource
from services.recipe_resolver import RecipeResolver
from test_fixtures import make_recipe, utcnow


# =============================================================================
# TIERS
# =============================================================================


def test_catalog_hit_is_stored_and_cached(resolver, fake_catalog, store):
    resolved = resolver.resolve("r-rice-bowl")

    assert resolved.source == RecipeSource.CATALOG
    assert resolved.stale is False
    assert store.get("r-rice-bowl").name == "Chicken Rice Bowl"

    again = resolver.resolve("r-rice-bowl")
    assert again.source == RecipeSource.CACHE
    assert fake_catalog.fetch_calls == ["r-rice-bowl"]


def test_fresh_store_copy_avoids_catalog(resolver, fake_catalog, store, recipes):
    store.upsert(recipes["r-pancakes"].model_copy(update={"fetched_at": utcnow() - timedelta(days=6)}))

    resolved = resolver.resolve("r-pancakes")

    assert resolved.source == RecipeSource.STORE
    assert resolved.stale is False
    assert fake_catalog.fetch_calls == []
    # Populated the cache on the way out
    assert resolver.resolve("r-pancakes").source == RecipeSource.CACHE


def test_old_store_copy_is_refreshed_from_catalog(resolver, fake_catalog, store, recipes):
    old = utcnow() - timedelta(days=8)
    store.upsert(recipes["r-pancakes"].model_copy(update={"fetched_at": old}))

    resolved = resolver.resolve("r-pancakes")

    assert resolved.source == RecipeSource.CATALOG
    assert fake_catalog.fetch_calls == ["r-pancakes"]
    assert store.get("r-pancakes").fetched_at > old


def test_stale_fallback_when_catalog_down(resolver, fake_catalog, store, recipes):
    store.upsert(recipes["r-salmon"].model_copy(update={"fetched_at": utcnow() - timedelta(days=30)}))
    fake_catalog.go_down()

    resolved = resolver.resolve("r-salmon")

    assert resolved.stale is True
    assert resolved.source == RecipeSource.STALE
    assert resolved.recipe.name == "Roast Salmon"

    # The fallback is cached briefly: no second catalog call, still flagged
    again = resolver.resolve("r-salmon")
    assert again.stale is True
    assert fake_catalog.fetch_calls == ["r-salmon"]


def test_unavailable_without_fallback(resolver, fake_catalog):
    fake_catalog.go_down()

    with pytest.raises(RecipeUnavailableError) as exc_info:
        resolver.resolve("r-rice-bowl")

    assert exc_info.value.reason == "transient"


def test_budget_exhaustion_reason_is_propagated(resolver, fake_catalog):
    fake_catalog.go_down(budget=True)

    with pytest.raises(RecipeUnavailableError) as exc_info:
        resolver.resolve("r-rice-bowl")

    assert exc_info.value.reason == "budget_exhausted"


def test_not_found_is_cached_negatively(resolver, fake_catalog):
    with pytest.raises(RecipeNotFoundError):
        resolver.resolve("does-not-exist")
    with pytest.raises(RecipeNotFoundError):
        resolver.resolve("does-not-exist")

    assert fake_catalog.fetch_calls == ["does-not-exist"]


def test_invalidate_forgets_negative_entry(resolver, fake_catalog):
    with pytest.raises(RecipeNotFoundError):
        resolver.resolve("late-arrival")

    fake_catalog.recipes["late-arrival"] = make_recipe("late-arrival", "Late Soup", [("water", 1, "l")])
    assert resolver.invalidate("late-arrival") is True

    assert resolver.resolve("late-arrival").recipe.name == "Late Soup"


def test_cache_expiry_goes_back_to_store(fake_catalog, store):
    from services.recipe_cache import RecipeCache

    clock = {"now": 0.0}
    cache = RecipeCache(recipe_ttl=3600, clock=lambda: clock["now"])
    resolver = RecipeResolver(fake_catalog, cache, store)

    resolver.resolve("r-rice-bowl")
    clock["now"] = 3600

    resolved = resolver.resolve("r-rice-bowl")
    assert resolved.source == RecipeSource.STORE
    assert fake_catalog.fetch_calls == ["r-rice-bowl"]


# =============================================================================
# BATCH
# =============================================================================


def test_resolve_many_deduplicates_and_omits_failures(resolver, fake_catalog):
    result = resolver.resolve_many(["r-rice-bowl", "missing", "r-rice-bowl", "r-pancakes"])

    assert set(result) == {"r-rice-bowl", "r-pancakes"}
    assert sorted(fake_catalog.fetch_calls) == ["missing", "r-pancakes", "r-rice-bowl"]


def test_resolve_many_reads_the_store_in_one_batch(resolver, fake_catalog, store, recipes):
    store.upsert(recipes["r-rice-bowl"])
    store.upsert(recipes["r-pancakes"])
    store.upsert(recipes["r-salmon"].model_copy(update={"fetched_at": utcnow() - timedelta(days=30)}))
    resolver.resolve("r-pancakes")

    result = resolver.resolve_many(["r-pancakes", "r-rice-bowl", "r-salmon", "missing"])

    assert result["r-pancakes"].source == RecipeSource.CACHE
    assert result["r-rice-bowl"].source == RecipeSource.STORE
    assert result["r-salmon"].source == RecipeSource.CATALOG
    assert "missing" not in result
    assert sorted(fake_catalog.fetch_calls) == ["missing", "r-salmon"]


# =============================================================================
# STAMPEDE GUARD
# =============================================================================


def test_concurrent_misses_fetch_once(resolver, fake_catalog):
    fake_catalog.gate = threading.Event()
    results, errors = [], []

    def worker():
        try:
            results.append(resolver.resolve("r-fried-rice"))
        except Exception as exc:  # pragma: no cover - surfaced by the assert below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    time.sleep(0.2)
    fake_catalog.gate.set()
    for t in threads:
        t.join(5)

    assert errors == []
    assert len(results) == 8
    assert fake_catalog.fetch_calls == ["r-fried-rice"]
    assert {r.recipe.external_id for r in results} == {"r-fried-rice"}


def test_waiters_share_the_leaders_failure(resolver, fake_catalog):
    fake_catalog.gate = threading.Event()
    fake_catalog.go_down()
    errors = []

    def worker():
        try:
            resolver.resolve("r-fried-rice")
        except RecipeUnavailableError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    time.sleep(0.2)
    fake_catalog.gate.set()
    for t in threads:
        t.join(5)

    assert len(errors) == 4
    assert fake_catalog.fetch_calls == ["r-fried-rice"]


def test_unrelated_keys_do_not_block_each_other(resolver, fake_catalog, store, recipes):
    store.upsert(recipes["r-pancakes"])
    fake_catalog.gate = threading.Event()

    blocked = threading.Thread(target=lambda: resolver.resolve("r-fried-rice"))
    blocked.start()
    try:
        time.sleep(0.1)
        # Served from the store while another key is stuck on the catalog
        assert resolver.resolve("r-pancakes").source == RecipeSource.STORE
    finally:
        fake_catalog.gate.set()
        blocked.join(5)


def test_waiter_times_out(fake_catalog, cache, store):
    resolver = RecipeResolver(fake_catalog, cache, store, wait_timeout=0.1)
    fake_catalog.gate = threading.Event()

    leader = threading.Thread(target=lambda: resolver.resolve("r-salmon"))
    leader.start()
    try:
        time.sleep(0.05)
        with pytest.raises(RecipeUnavailableError) as exc_info:
            resolver.resolve("r-salmon")
        assert exc_info.value.reason == "timeout"
    finally:
        fake_catalog.gate.set()
        leader.join(5)

    # The leader still finished and populated the cache
    assert resolver.resolve("r-salmon").source == RecipeSource.CACHE


# =============================================================================
# SEARCH
# =============================================================================


def test_search_is_cached(resolver, fake_catalog):
    first = resolver.search("Rice")
    second = resolver.search("  rice ")

    assert {r.external_id for r in first.results} == {"r-rice-bowl", "r-fried-rice"}
    assert second.results == first.results
    assert first.stale is False
    assert fake_catalog.search_calls == ["Rice"]


def test_search_falls_back_to_store_when_catalog_down(resolver, fake_catalog, store, recipes):
    store.upsert(recipes["r-pancakes"])
    fake_catalog.go_down()

    result = resolver.search("pancake")

    assert result.stale is True
    assert [r.external_id for r in result.results] == ["r-pancakes"]


def test_search_unavailable_without_local_matches(resolver, fake_catalog):
    fake_catalog.go_down()

    with pytest.raises(RecipeUnavailableError):
        resolver.search("anything")
