"""
Cross-request coordination primitives.

SingleFlight collapses concurrent work on the same key into one call.
SwapSequencer orders concurrent recipe swaps on the same meal.
KeyedLock serializes work on one key (shopping list rebuilds).
All of them keep per-key state only while work for that key is in flight.
"""

import itertools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Hashable, Iterator, Optional

from app.exceptions import ConflictError

logger = logging.getLogger("mealcache.concurrency")


class _Call:
    def __init__(self):
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    """
    Per-key stampede guard.

    The first caller for a key becomes the leader and runs fn; callers that
    arrive while it runs wait for the leader's result or exception instead of
    running fn themselves. Different keys never block each other.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, _Call] = {}

    def do(
        self,
        key: Hashable,
        fn: Callable[[], Any],
        timeout: Optional[float] = None,
        on_timeout: Optional[Callable[[], BaseException]] = None,
    ) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            if not call.done.wait(timeout):
                logger.warning("Gave up waiting for in-flight %s after %ss", key, timeout)
                if on_timeout is not None:
                    raise on_timeout()
                raise TimeoutError(f"timed out waiting for {key}")
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
            return call.result
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)


class _MealState:
    def __init__(self):
        self.lock = threading.Lock()
        self.applied = 0
        self.pending = 0


class SwapSequencer:
    """
    Last-started-wins ordering for writes to the same meal.

    begin() hands out a ticket when a swap starts (before recipe resolution,
    which may block on the catalog). apply() runs the write under the meal's
    lock; a swap overtaken by a newer one that already committed is discarded
    with ConflictError(code="swap_superseded").
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tickets = itertools.count(1)
        self._meals: Dict[Hashable, _MealState] = {}

    def begin(self, meal_id: Hashable) -> int:
        with self._lock:
            state = self._meals.setdefault(meal_id, _MealState())
            state.pending += 1
            return next(self._tickets)

    def apply(self, meal_id: Hashable, ticket: int, write: Callable[[], Any]) -> Any:
        with self._lock:
            state = self._meals[meal_id]
        with state.lock:
            if ticket < state.applied:
                logger.info("Swap ticket %d on meal %s superseded by %d", ticket, meal_id, state.applied)
                raise ConflictError(
                    "A newer swap of this meal has already been applied",
                    details={"meal_id": str(meal_id)},
                    code="swap_superseded",
                )
            result = write()
            state.applied = ticket
            return result

    def finish(self, meal_id: Hashable) -> None:
        """Release the ticket taken by begin(); always call it in a finally block"""
        with self._lock:
            state = self._meals.get(meal_id)
            if state is None:
                return
            state.pending -= 1
            if state.pending <= 0:
                del self._meals[meal_id]

    def tracked(self) -> int:
        with self._lock:
            return len(self._meals)


class _KeyState:
    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLock:
    """
    One mutex per key, created on first use and dropped when the last holder
    leaves. Used to rebuild a plan's shopping list one request at a time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Dict[Hashable, _KeyState] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._lock:
            state = self._keys.setdefault(key, _KeyState())
            state.holders += 1
        try:
            with state.lock:
                yield
        finally:
            with self._lock:
                state.holders -= 1
                if state.holders <= 0:
                    self._keys.pop(key, None)

    def tracked(self) -> int:
        with self._lock:
            return len(self._keys)
