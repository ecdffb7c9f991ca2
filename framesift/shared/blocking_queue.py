"""
FrameSift — Blocking Queue
framesift/shared/blocking_queue.py

FIFO handoff between two pipeline stages.

    producer ── push() ──▶ [ a b c ] ── wait_and_pop() ──▶ consumer
                                 │
                              close()

Unlike queue.Queue, this queue has an explicit closed state:
  - the producer calls close() when it is done (on every exit path)
  - wait_and_pop() returns CLOSED once the queue is closed and drained,
    so consumers terminate instead of blocking forever
  - a consumer that gives up can close() its input queue too; blocked and
    later push() calls then return False so the producer can stop early

maxsize=0 means unbounded (the default). maxsize > 0 makes push() block
while the queue is full.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class _Closed:
    """Singleton returned by wait_and_pop() once the queue is closed and empty."""

    _instance: Optional["_Closed"] = None

    def __new__(cls) -> "_Closed":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLOSED"

    def __bool__(self) -> bool:
        return False


CLOSED = _Closed()


class BlockingQueue(Generic[T]):
    """
    Thread-safe FIFO with blocking pop and a closed flag.

    Items and the closed flag live under one lock; both condition variables
    share it, so a close() can never slip between a waiter's check and its wait.
    """

    def __init__(self, maxsize: int = 0, name: str = "queue"):
        if maxsize < 0:
            raise ValueError(f"maxsize must be >= 0, got {maxsize}")
        self._name = name
        self._maxsize = maxsize
        self._items: deque[T] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    # ── Producer side ────────────────────────────────────────────────────────

    def push(self, item: T) -> bool:
        """
        Append item at the tail and wake one waiting consumer.

        Blocks while a bounded queue is full. Returns False (item discarded)
        if the queue is closed, including when it is closed while waiting.
        """
        if item is None:
            raise ValueError(f"{self._name}: None cannot be pushed")

        with self._not_full:
            while self._full() and not self._closed:
                self._not_full.wait()
            if self._closed:
                return False
            self._items.append(item)
            self._not_empty.notify()
            return True

    def close(self) -> None:
        """Mark the queue closed and wake every waiter. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    # ── Consumer side ────────────────────────────────────────────────────────

    def try_pop(self) -> Optional[T]:
        """Return and remove the head item, or None if the queue is empty."""
        with self._lock:
            if not self._items:
                return None
            return self._pop_locked()

    def wait_and_pop(self) -> Union[T, _Closed]:
        """
        Block until an item is available or the queue is closed and empty.

        Returns the head item, or CLOSED. Items pushed before close() are
        still delivered in order before CLOSED is returned.
        """
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if self._items:
                return self._pop_locked()
            return CLOSED

    # ── Introspection (advisory — may be stale by the time it is read) ──────

    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return (
            f"BlockingQueue(name={self._name!r}, size={len(self)}, "
            f"maxsize={self._maxsize}, closed={self.closed})"
        )

    # ── Internals (caller holds the lock) ─────────────────────────────────────

    def _full(self) -> bool:
        return self._maxsize > 0 and len(self._items) >= self._maxsize

    def _pop_locked(self) -> T:
        item = self._items.popleft()
        self._not_full.notify()
        return item
