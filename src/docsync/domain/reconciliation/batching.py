"""Batch planning, timing and callback contracts for synchronization runs."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from itertools import batched
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from .collection import ReconciliationCollection


def count_batches(item_count: int, batch_size: int) -> int:
    """Return ``ceil(item_count / batch_size)``; an unbatched run is one batch."""

    if item_count <= 0:
        return 0
    if batch_size <= 0:
        return 1
    return -(-item_count // batch_size)


def partition[T](items: Sequence[T], batch_size: int) -> Iterator[tuple[T, ...]]:
    """Yield consecutive fixed-size slices of ``items``; the last may be smaller."""

    if not items:
        return
    if batch_size <= 0:
        yield tuple(items)
        return
    yield from batched(items, batch_size)


@dataclass(frozen=True, slots=True)
class TimeTable:
    """Elapsed time of a run and the linear estimate of what is left."""

    elapsed: timedelta
    remaining: timedelta = timedelta(0)

    @property
    def total(self) -> timedelta:
        return self.elapsed + self.remaining

    @classmethod
    def estimate(cls, elapsed: timedelta, *, completed: int, total: int) -> TimeTable:
        """Extrapolate the remaining time from ``completed`` out of ``total`` iterations."""

        if completed <= 0 or total <= completed:
            return cls(elapsed=elapsed)
        return cls(elapsed=elapsed, remaining=(elapsed / completed) * (total - completed))


@dataclass(slots=True)
class Stopwatch:
    """Monotonic wall-clock timer."""

    clock: Callable[[], float] = time.perf_counter
    _started_at: float | None = field(default=None, init=False)
    _accumulated: float = field(default=0.0, init=False)

    def start(self) -> Stopwatch:
        if self._started_at is None:
            self._started_at = self.clock()
        return self

    def stop(self) -> timedelta:
        if self._started_at is not None:
            self._accumulated += self.clock() - self._started_at
            self._started_at = None
        return self.elapsed

    def restart(self) -> Stopwatch:
        self._accumulated = 0.0
        self._started_at = None
        return self.start()

    @property
    def elapsed(self) -> timedelta:
        running = self.clock() - self._started_at if self._started_at is not None else 0.0
        return timedelta(seconds=self._accumulated + running)

    def time_table(self, *, completed: int, total: int) -> TimeTable:
        return TimeTable.estimate(self.elapsed, completed=completed, total=total)


@dataclass(frozen=True, slots=True)
class BatchReport:
    """What a batch callback learns about the batch that just finished.

    ``elapsed`` covers this batch alone; ``time_table`` covers the run so far.
    """

    iteration: int
    total: int
    batch: ReconciliationCollection[Any, Any]
    batch_size: int
    elapsed: timedelta
    time_table: TimeTable


type BatchCallback = Callable[[BatchReport], None]
type AsyncBatchCallback = Callable[[BatchReport], Awaitable[None]]
