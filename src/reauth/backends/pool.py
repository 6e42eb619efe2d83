"""Bounded, non-blocking pool of reusable connections."""

from __future__ import annotations

import queue
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class ConnectionPool(Generic[T]):
    """Holds at most ``size`` idle connections.

    Neither :meth:`take` nor :meth:`give` ever blocks: an empty pool hands out
    nothing and a full pool refuses the connection, leaving the caller to dial
    or to close. Safe for concurrent use from worker threads.
    """

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("pool size must be greater than 0")
        self._size = size
        self._idle: queue.Queue[T] = queue.Queue(maxsize=size)

    @property
    def size(self) -> int:
        return self._size

    def take(self) -> T | None:
        """Pop an idle connection, or None if there is none."""
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            return None

    def give(self, conn: T) -> bool:
        """Park ``conn`` for reuse. Returns False if the pool is full."""
        try:
            self._idle.put_nowait(conn)
        except queue.Full:
            return False
        return True

    def idle(self) -> int:
        """Approximate number of idle connections."""
        return self._idle.qsize()

    def drain(self, close: Callable[[T], None]) -> int:
        """Remove every idle connection, passing each to ``close``."""
        count = 0
        while (conn := self.take()) is not None:
            close(conn)
            count += 1
        return count
