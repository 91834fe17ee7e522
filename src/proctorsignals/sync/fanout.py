"""Split a frame's face list into per-face items and join them back in order."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, wait
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from proctorsignals.errors import SynchronizationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class LoopItem(Generic[T]):
    timestamp_ms: int
    index: int
    count: int
    value: T


def begin_loop(timestamp_ms: int, items: Sequence[T]) -> list[LoopItem[T]]:
    count = len(items)
    return [
        LoopItem(timestamp_ms=int(timestamp_ms), index=idx, count=count, value=value)
        for idx, value in enumerate(items)
    ]


def attach_context(item: LoopItem[Any], result: R) -> LoopItem[R]:
    """Carry ``result`` with the timestamp and position of the item it came from."""
    return LoopItem(timestamp_ms=item.timestamp_ms, index=item.index, count=item.count, value=result)


class EndLoopCollector(Generic[T]):
    """Gather per-element loop outputs of one timestamp into an ordered list.

    One timestamp is in flight at a time. An item for a newer timestamp while
    the current one is incomplete discards the incomplete frame and raises
    :class:`SynchronizationError`; partial lists are never emitted.
    """

    def __init__(self, name: str = "loop") -> None:
        self.name = name
        self._timestamp: Optional[int] = None
        self._count = 0
        self._values: dict[int, T] = {}
        self._last_emitted: Optional[int] = None

    @property
    def pending_timestamp(self) -> Optional[int]:
        return self._timestamp

    def _check_fresh(self, timestamp_ms: int) -> None:
        if self._last_emitted is not None and timestamp_ms <= self._last_emitted:
            raise SynchronizationError(
                f"{self.name}: timestamp {timestamp_ms} is not after last emitted "
                f"timestamp {self._last_emitted}"
            )

    def _open(self, timestamp_ms: int, count: int) -> None:
        if self._timestamp is not None and self._timestamp != timestamp_ms:
            stale = self._timestamp
            received = len(self._values)
            expected = self._count
            self._discard()
            raise SynchronizationError(
                f"{self.name}: frame {stale} incomplete ({received}/{expected} items) "
                f"when timestamp {timestamp_ms} arrived"
            )
        if self._timestamp == timestamp_ms and self._count != count:
            raise SynchronizationError(
                f"{self.name}: timestamp {timestamp_ms} expected {self._count} items, got count={count}"
            )
        self._timestamp = timestamp_ms
        self._count = count

    def _discard(self) -> None:
        self._timestamp = None
        self._count = 0
        self._values = {}

    def _emit(self) -> list[T]:
        ordered = [self._values[idx] for idx in range(self._count)]
        self._last_emitted = self._timestamp
        self._discard()
        return ordered

    def expect(self, timestamp_ms: int, count: int) -> Optional[list[T]]:
        """Announce how many items ``timestamp_ms`` has; an empty frame emits at once."""
        if count < 0:
            raise SynchronizationError(f"{self.name}: count must be >= 0, got {count}")
        self._check_fresh(timestamp_ms)
        if count == 0:
            if self._timestamp is not None:
                self._open(timestamp_ms, count)
            self._last_emitted = timestamp_ms
            return []
        self._open(timestamp_ms, count)
        return None

    def add(self, item: LoopItem[T]) -> Optional[list[T]]:
        self._check_fresh(item.timestamp_ms)
        if item.count <= 0:
            raise SynchronizationError(f"{self.name}: loop item carries count={item.count}")
        self._open(item.timestamp_ms, item.count)
        if item.index < 0 or item.index >= self._count:
            raise SynchronizationError(
                f"{self.name}: index {item.index} out of range for {self._count} items"
            )
        if item.index in self._values:
            raise SynchronizationError(
                f"{self.name}: duplicate index {item.index} for timestamp {item.timestamp_ms}"
            )
        self._values[item.index] = item.value
        if len(self._values) == self._count:
            return self._emit()
        return None


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    executor: Optional[Executor] = None,
) -> list[R]:
    """Index-aligned map that waits for every element before returning.

    With an executor, all elements are submitted and awaited even when one
    fails; the first failure in index order is then raised.
    """
    if executor is None or len(items) <= 1:
        return [fn(item) for item in items]

    futures: list[Future[R]] = [executor.submit(fn, item) for item in items]
    wait(futures)
    for idx, future in enumerate(futures):
        exc = future.exception()
        if exc is not None:
            logger.debug("Per-element task %d of %d failed: %s", idx, len(futures), exc)
            raise exc
    return [future.result() for future in futures]
