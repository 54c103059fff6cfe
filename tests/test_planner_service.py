"""
Tests for the meal plan engine (PlannerService).

Verifies:
- idempotent plan creation and range validation
- ownership checks (ForbiddenError, never NotFound for someone else's plan)
- add_meal positions, range checks and recipe resolution
- swap_meal version bumps, failure atomicity and concurrent swap ordering
- get_meals ordering and resolved recipes
"""

import threading
import time
import uuid
from datetime import date, timedelta

import pytest

from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidRangeError,
    NotFoundError,
    RecipeUnavailableError,
    ServiceValidationError,
)
from domain.enums import MealType
from domain.models import Meal, MealPlan
from services.concurrency import SwapSequencer
from services.planner_service import PlannerService
from services.recipe_resolver import RecipeResolver
from test_fixtures import WEEK_END, WEEK_START, FakeCatalog, utcnow


# =============================================================================
# PLANS
# =============================================================================


def test_create_plan_is_idempotent(planner, user_id, db_session):
    first = planner.create_plan(user_id, WEEK_START, WEEK_END)
    second = planner.create_plan(user_id, WEEK_START, WEEK_END)

    assert first.plan_id == second.plan_id
    assert first.version == 0
    assert db_session.query(MealPlan).count() == 1


def test_create_plan_rejects_inverted_range(planner, user_id, db_session):
    with pytest.raises(InvalidRangeError) as exc_info:
        planner.create_plan(user_id, WEEK_END, WEEK_START)

    assert exc_info.value.code == "INVALID_RANGE"
    assert db_session.query(MealPlan).count() == 0


def test_single_day_plan_is_valid(planner, user_id):
    plan = planner.create_plan(user_id, WEEK_START, WEEK_START)
    assert plan.covers(WEEK_START)


def test_concurrent_duplicate_create_returns_existing(session_factory, resolver, user_id):
    barrier = threading.Barrier(4)
    plan_ids, errors = [], []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            plan_ids.append(PlannerService(session, resolver).create_plan(user_id, WEEK_START, WEEK_END).plan_id)
        except Exception as exc:  # pragma: no cover - surfaced by the assert below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert errors == []
    assert len(set(plan_ids)) == 1


def test_get_plan_checks_owner(planner, plan, user_id):
    assert planner.get_plan(user_id, plan.plan_id).plan_id == plan.plan_id

    with pytest.raises(ForbiddenError):
        planner.get_plan(uuid.uuid4(), plan.plan_id)
    with pytest.raises(NotFoundError):
        planner.get_plan(user_id, uuid.uuid4())


def test_plan_listing_queries(planner, user_id):
    march = planner.create_plan(user_id, date(2024, 3, 1), date(2024, 3, 7))
    april = planner.create_plan(user_id, date(2024, 4, 1), date(2024, 4, 7))
    may = planner.create_plan(user_id, date(2024, 5, 1), date(2024, 5, 7))
    planner.create_plan(uuid.uuid4(), date(2024, 3, 1), date(2024, 3, 7))

    assert [p.plan_id for p in planner.list_plans(user_id)] == [may.plan_id, april.plan_id, march.plan_id]
    assert planner.current_plan(user_id, date(2024, 4, 3)).plan_id == april.plan_id
    assert planner.current_plan(user_id, date(2024, 6, 1)) is None
    assert [p.plan_id for p in planner.upcoming_plans(user_id, date(2024, 3, 15))] == [april.plan_id, may.plan_id]


# =============================================================================
# ADD MEAL
# =============================================================================


def test_add_meal_assigns_next_position_and_bumps_version(planner, plan, user_id):
    first = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl")
    second = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-fried-rice")
    lunch = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.LUNCH, "r-salmon")

    assert (first.position, second.position, lunch.position) == (0, 1, 0)
    assert planner.get_plan(user_id, plan.plan_id).version == 3


def test_add_meal_explicit_position_conflict(planner, plan, user_id):
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl", position=2)

    with pytest.raises(ConflictError):
        planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-salmon", position=2)

    assert planner.get_plan(user_id, plan.plan_id).version == 1


def test_add_meal_outside_range(planner, plan, user_id):
    with pytest.raises(ServiceValidationError):
        planner.add_meal(user_id, plan.plan_id, WEEK_END + timedelta(days=1), MealType.LUNCH, "r-rice-bowl")


def test_add_meal_with_unknown_recipe(planner, plan, user_id, db_session):
    with pytest.raises(RecipeUnavailableError) as exc_info:
        planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.LUNCH, "no-such-recipe")

    assert exc_info.value.reason == "not_found"
    assert db_session.query(Meal).count() == 0


def test_add_meal_to_foreign_plan(planner, plan):
    with pytest.raises(ForbiddenError):
        planner.add_meal(uuid.uuid4(), plan.plan_id, WEEK_START, MealType.LUNCH, "r-rice-bowl")


# =============================================================================
# SWAP MEAL
# =============================================================================


def test_swap_meal_updates_recipe_and_version(planner, plan, user_id):
    meal = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl")
    before = planner.get_plan(user_id, plan.plan_id).version

    swapped = planner.swap_meal(meal.meal_id, "r-salmon", user_id)

    assert swapped.recipe_id == "r-salmon"
    assert planner.get_plan(user_id, plan.plan_id).version == before + 1


def test_swap_meal_forbidden_does_not_resolve(planner, plan, user_id, fake_catalog):
    meal = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl")
    calls_before = list(fake_catalog.fetch_calls)

    with pytest.raises(ForbiddenError):
        planner.swap_meal(meal.meal_id, "r-salmon", uuid.uuid4())

    assert fake_catalog.fetch_calls == calls_before
    assert planner.meals.get_by_id(meal.meal_id).recipe_id == "r-rice-bowl"


def test_swap_missing_meal(planner, user_id):
    with pytest.raises(NotFoundError):
        planner.swap_meal(uuid.uuid4(), "r-salmon", user_id)


def test_swap_to_unavailable_recipe_leaves_meal_unchanged(planner, plan, user_id, fake_catalog):
    meal = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl")
    version = planner.get_plan(user_id, plan.plan_id).version
    fake_catalog.go_down()

    with pytest.raises(RecipeUnavailableError):
        planner.swap_meal(meal.meal_id, "r-pancakes", user_id)

    assert planner.meals.get_by_id(meal.meal_id).recipe_id == "r-rice-bowl"
    assert planner.get_plan(user_id, plan.plan_id).version == version
    assert planner.sequencer.tracked() == 0


def test_concurrent_swaps_last_started_wins(session_factory, cache, store, recipes, user_id):
    """
    A swap that started earlier but finished resolving later must not
    overwrite the newer swap: it is discarded with a conflict.
    """
    catalog = FakeCatalog(recipes)
    resolver = RecipeResolver(catalog, cache, store, wait_timeout=5)
    sequencer = SwapSequencer()

    setup = session_factory()
    planner = PlannerService(setup, resolver, sequencer)
    plan = planner.create_plan(user_id, WEEK_START, WEEK_END)
    meal = planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl")
    setup.close()

    # Slow swap: its recipe has to come from the (gated) catalog
    catalog.gate = threading.Event()
    outcome = {}

    def slow_swap():
        session = session_factory()
        try:
            PlannerService(session, resolver, sequencer).swap_meal(meal.meal_id, "r-pancakes", user_id)
            outcome["slow"] = "applied"
        except ConflictError as exc:
            outcome["slow"] = exc.code
        finally:
            session.close()

    slow = threading.Thread(target=slow_swap)
    slow.start()
    time.sleep(0.1)

    # Fast swap: started later, recipe already cached
    fast_session = session_factory()
    try:
        PlannerService(fast_session, resolver, sequencer).swap_meal(meal.meal_id, "r-rice-bowl", user_id)
    finally:
        fast_session.close()

    catalog.gate.set()
    slow.join(5)

    check = session_factory()
    try:
        assert outcome["slow"] == "swap_superseded"
        assert check.get(Meal, meal.meal_id).recipe_id == "r-rice-bowl"
        assert check.get(MealPlan, plan.plan_id).version == 2
    finally:
        check.close()
    assert sequencer.tracked() == 0


# =============================================================================
# GET MEALS
# =============================================================================


def test_get_meals_orders_by_date_and_position(planner, plan, user_id):
    d2 = WEEK_START + timedelta(days=1)
    planner.add_meal(user_id, plan.plan_id, d2, MealType.DINNER, "r-salmon")
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.DINNER, "r-rice-bowl", position=1)
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.BREAKFAST, "r-pancakes", position=0)

    views = planner.get_meals(user_id, WEEK_START, WEEK_END)

    assert [(v.date, v.position, v.recipe_id) for v in views] == [
        (WEEK_START, 0, "r-pancakes"),
        (WEEK_START, 1, "r-rice-bowl"),
        (d2, 0, "r-salmon"),
    ]
    assert views[0].recipe.name == "Buttermilk Pancakes"
    assert all(v.recipe_stale is False for v in views)


def test_get_meals_single_day_and_other_users(planner, plan, user_id):
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.LUNCH, "r-rice-bowl")
    planner.add_meal(user_id, plan.plan_id, WEEK_END, MealType.LUNCH, "r-salmon")

    assert [v.recipe_id for v in planner.get_meals(user_id, WEEK_START)] == ["r-rice-bowl"]
    assert planner.get_meals(uuid.uuid4(), WEEK_START, WEEK_END) == []


def test_get_meals_rejects_inverted_range(planner, user_id):
    with pytest.raises(InvalidRangeError):
        planner.get_meals(user_id, WEEK_END, WEEK_START)


def test_get_meals_with_unresolvable_recipe(planner, plan, user_id, resolver, fake_catalog, store):
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.LUNCH, "r-rice-bowl")
    # The recipe disappears upstream after the stored copy has gone stale
    old = store.get("r-rice-bowl").model_copy(update={"fetched_at": utcnow() - timedelta(days=30)})
    store.upsert(old)
    del fake_catalog.recipes["r-rice-bowl"]
    resolver.invalidate("r-rice-bowl")

    views = planner.get_meals(user_id, WEEK_START)

    assert len(views) == 1
    assert views[0].recipe is None
    assert views[0].recipe_id == "r-rice-bowl"


def test_get_meals_flags_stale_recipes(planner, plan, user_id, resolver, fake_catalog, store):
    planner.add_meal(user_id, plan.plan_id, WEEK_START, MealType.LUNCH, "r-rice-bowl")
    store.upsert(store.get("r-rice-bowl").model_copy(update={"fetched_at": utcnow() - timedelta(days=30)}))
    resolver.invalidate("r-rice-bowl")
    fake_catalog.go_down()

    views = planner.get_meals(user_id, WEEK_START)

    assert views[0].recipe.name == "Chicken Rice Bowl"
    assert views[0].recipe_stale is True
