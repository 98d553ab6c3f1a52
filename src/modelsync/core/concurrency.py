"""Insert-only shared containers and a phase runner on a thread pool.

Phases are joined with a strict barrier: ``PhaseRunner.map`` returns only
after every unit of work submitted for the phase has finished.
"""

from __future__ import annotations

import contextvars
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger()

K = TypeVar("K")
V = TypeVar("V")
T = TypeVar("T")
R = TypeVar("R")


class InsertOnlyMap(Generic[K, V]):
    """Thread-safe map where an entry, once inserted, is never replaced."""

    def __init__(self) -> None:
        self._data: dict[K, V] = {}
        self._lock = threading.Lock()

    def try_add(self, key: K, value: V) -> bool:
        """Insert ``key`` if absent. Returns False if another writer won."""
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def get(self, key: K, default: V | None = None) -> V | None:
        with self._lock:
            return self._data.get(key, default)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def snapshot(self) -> dict[K, V]:
        """Copy of the current contents."""
        with self._lock:
            return dict(self._data)


class InsertOnlySet(Generic[T]):
    """Thread-safe set that only grows."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._data: set[T] = set(items)
        self._lock = threading.Lock()

    def try_add(self, item: T) -> bool:
        with self._lock:
            if item in self._data:
                return False
            self._data.add(item)
            return True

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[T]:
        with self._lock:
            return iter(sorted(self._data, key=str))


@dataclass
class PhaseOutcome(Generic[T, R]):
    """Result of one unit of work inside a phase."""

    item: T
    result: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PhaseRunner:
    """Runs each phase's units of work on a bounded thread pool.

    Design:
    - One executor per runner, reused across phases
    - ``map`` is the barrier: it waits for every future of the phase
    - Worker exceptions are captured per item; the caller decides severity
    - Units run in a copy of the submitting context, so bound log fields follow
    """

    max_workers: int = 8
    _executor: ThreadPoolExecutor | None = field(default=None, init=False)

    def __enter__(self) -> PhaseRunner:
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="modelsync-worker",
        )
        logger.debug("phase_runner_started", max_workers=self.max_workers)
        return self

    def __exit__(self, *exc: object) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.debug("phase_runner_stopped")

    def map(
        self,
        phase: str,
        fn: Callable[[T], R],
        items: Iterable[T],
    ) -> list[PhaseOutcome[T, R]]:
        """Run ``fn`` over ``items`` in parallel and wait for all of them."""
        items = list(items)
        if not items:
            return []

        if self._executor is None or self.max_workers == 1:
            outcomes = [self._run_one(fn, item) for item in items]
        else:
            # a fresh copy per unit: one Context cannot be entered by two threads at once
            futures = [
                self._executor.submit(contextvars.copy_context().run, self._run_one, fn, item)
                for item in items
            ]
            outcomes = [f.result() for f in futures]

        failed = sum(1 for o in outcomes if not o.ok)
        logger.debug("phase_joined", phase=phase, units=len(outcomes), failed=failed)
        return outcomes

    def run_concurrently(self, *fns: Callable[[], object]) -> list[object]:
        """Run independent thunks together and return their results in order.

        The first exception raised by any thunk is re-raised after all of
        them finish.
        """
        if self._executor is None or self.max_workers == 1:
            return [fn() for fn in fns]
        futures = [self._executor.submit(contextvars.copy_context().run, fn) for fn in fns]
        errors = [f.exception() for f in futures]
        for err in errors:
            if err is not None:
                raise err
        return [f.result() for f in futures]

    @staticmethod
    def _run_one(fn: Callable[[T], R], item: T) -> PhaseOutcome[T, R]:
        try:
            return PhaseOutcome(item=item, result=fn(item))
        except Exception as e:
            return PhaseOutcome(item=item, error=e)
