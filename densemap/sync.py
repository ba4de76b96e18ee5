"""Thread-safe queue and stack whose readers can be stalled."""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class _Stallable(Generic[T]):
    """Shared state and locking for the stallable containers."""

    def __init__(self) -> None:
        self._items: deque[T] = deque()
        self._stalled = False
        self._cond = threading.Condition()

    def _push(self, item: T) -> None:
        with self._cond:
            self._items.append(item)
            self._cond.notify()

    def _stall(self) -> None:
        with self._cond:
            self._stalled = True

    def _unstall(self) -> None:
        with self._cond:
            self._stalled = False
            self._cond.notify_all()

    def _size(self) -> int:
        with self._cond:
            return len(self._items)

    def _wait_for(self, count: int) -> None:
        self._cond.wait_for(lambda: len(self._items) >= count and not self._stalled)


class StallableQueue(_Stallable[T]):
    """First-in first-out queue with blocking, stallable reads."""

    def push(self, item: T) -> None:
        """Add an item and wake one waiting reader."""
        self._push(item)

    def pop(self) -> T:
        """Remove and return the oldest item, waiting if necessary."""
        with self._cond:
            self._wait_for(1)
            item = self._items.popleft()
            if self._items:
                self._cond.notify()
            return item

    def read_stall(self) -> None:
        """Block readers until read_unstall is called."""
        self._stall()

    def read_unstall(self) -> None:
        """Let readers proceed again."""
        self._unstall()

    def __len__(self) -> int:
        return self._size()


class StallableStack(_Stallable[T]):
    """Last-in first-out stack with blocking, stallable reads."""

    def push(self, item: T) -> None:
        """Add an item and wake one waiting reader."""
        self._push(item)

    def pop(self) -> T:
        """Remove and return the newest item, waiting if necessary."""
        with self._cond:
            self._wait_for(1)
            item = self._items.pop()
            if self._items:
                self._cond.notify()
            return item

    def peek(self) -> T:
        """Return the newest item without removing it, waiting if necessary."""
        with self._cond:
            self._wait_for(1)
            return self._items[-1]

    def peekn(self, n: int = 1) -> list[T]:
        """Return the newest ``n`` items, oldest first, waiting until present."""
        with self._cond:
            self._wait_for(n)
            if n <= 0:
                return []
            return list(self._items)[-n:]

    def read_stall(self) -> None:
        """Block readers until read_unstall is called."""
        self._stall()

    def read_unstall(self) -> None:
        """Let readers proceed again."""
        self._unstall()

    def __len__(self) -> int:
        return self._size()