"""FIFO queue of targets waiting to be requested."""

import threading
from collections import deque


class TargetQueue:
    """
    Unbounded FIFO of not-yet-started targets with a pending gauge.

    ``pending`` counts queued targets plus requests that have been taken
    off the queue but not yet settled by the request processor. Producers
    may call add() from any thread or coroutine, including while a run is
    active; the request processor is the only consumer.
    """

    def __init__(self) -> None:
        self._items: deque[str] = deque()
        self._pending = 0
        self._lock = threading.Lock()

    def add(self, target: str) -> None:
        """Append a target to the tail of the queue."""
        if not target:
            raise ValueError("target is required")
        with self._lock:
            self._items.append(target)
            self._pending += 1

    def pop(self) -> str:
        """Remove and return the oldest target. Raises IndexError when empty."""
        with self._lock:
            return self._items.popleft()

    def settle(self, count: int = 1) -> None:
        """Mark ``count`` dequeued requests as no longer in flight."""
        with self._lock:
            self._pending = max(0, self._pending - count)

    @property
    def pending(self) -> int:
        return self._pending

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
