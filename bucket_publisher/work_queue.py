"""Thread-safe, unbounded, closeable buffer of pending Items."""

from __future__ import annotations

from collections import deque
from threading import Condition, Lock
from typing import Final

from bucket_publisher.errors import QueueClosedError
from bucket_publisher.types import Item


class _Empty:
    def __repr__(self) -> str:
        return "EMPTY"

    def __bool__(self) -> bool:
        return False


EMPTY: Final = _Empty()


class WorkQueue:
    """Multi-producer, multi-consumer queue of Items.

    ``try_pop`` never waits and returns ``EMPTY`` when nothing is queued.
    ``pop`` waits for an item and returns ``EMPTY`` only once the queue has
    been closed and drained, so consumers never exit while a producer is
    still pushing.
    """

    def __init__(self) -> None:
        self._items: deque[Item] = deque()
        self._lock = Lock()
        self._not_empty = Condition(self._lock)
        self._closed = False

    def push(self, item: Item) -> None:
        with self._not_empty:
            if self._closed:
                raise QueueClosedError(f"queue is closed; cannot push '{item.key}'")
            self._items.append(item)
            self._not_empty.notify()

    def try_pop(self) -> Item | _Empty:
        with self._lock:
            if not self._items:
                return EMPTY
            return self._items.popleft()

    def pop(self) -> Item | _Empty:
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if self._items:
                return self._items.popleft()
            return EMPTY

    def close(self) -> None:
        with self._not_empty:
            self._closed = True
            self._not_empty.notify_all()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
