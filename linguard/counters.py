"""Thread-safe integer counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass


class AtomicCounter:
    """An integer that can be incremented from many threads without loss."""

    def __init__(self, value: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = value

    def increment(self, amount: int = 1) -> int:
        """Add *amount* and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self._value})"


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    entries: int


class CacheCounters:
    """Process-wide cache hit and miss counts.

    Independent of the cache's own lock; the two values may be momentarily out
    of step with each other but no increment is ever lost.
    """

    def __init__(self) -> None:
        self.hits = AtomicCounter()
        self.misses = AtomicCounter()

    def record_hit(self) -> int:
        return self.hits.increment()

    def record_miss(self) -> int:
        return self.misses.increment()

    def reset(self) -> None:
        self.hits.reset()
        self.misses.reset()
