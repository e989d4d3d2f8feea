"""
Per-phase result collection.

Each phase owns one :class:`Aggregator`.  Concurrent workers hand their
records to it with :meth:`Aggregator.add`; once the phase has drained, the
orchestrator calls :meth:`Aggregator.drain` exactly once to obtain the
records sorted by host identifier.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Aggregator(Generic[T]):
    """Collect records from concurrent producers, sorted on drain.

    There is no deduplication: every worker runs once per input record, so
    each host appears at most once already.

    Args:
        key:  Extracts the host identifier from a record.  Sorting is
              case-insensitive on this value.
        name: Label used in error messages.
    """

    def __init__(self, key: Callable[[T], str], name: str = "aggregator") -> None:
        self._key = key
        self.name = name
        self._queue: asyncio.Queue[T] = asyncio.Queue()
        self._drained: bool = False

    def add(self, item: T) -> None:
        """Hand *item* over to the aggregator.

        Raises:
            RuntimeError: If the aggregator has already been drained.
        """
        if self._drained:
            raise RuntimeError(f"{self.name} already drained; late record rejected")
        self._queue.put_nowait(item)

    def __len__(self) -> int:
        return self._queue.qsize()

    def drain(self) -> list[T]:
        """Return every collected record, sorted by identifier (case-insensitive).

        Raises:
            RuntimeError: On a second call.
        """
        if self._drained:
            raise RuntimeError(f"{self.name} already drained")
        self._drained = True

        items: list[T] = []
        while not self._queue.empty():
            items.append(self._queue.get_nowait())
        items.sort(key=lambda item: self._key(item).casefold())
        return items
