"""Short-lived read-through cache for the ledger balance.

Summing the record set is cheap, but the presentation layer asks for the
balance on every render. The cache keeps the last computed value for a fixed
window measured on the wall clock; any mutation clears it at once, so a read
right after a write always recomputes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with the time it was computed."""

    value: T
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class BalanceCache(Generic[T]):
    """Single-slot cache with a time window and explicit invalidation.

    Example:
        cache = BalanceCache(window_seconds=0.1)
        total = cache.get_or_compute(lambda: sum(r.value for r in records))
        cache.invalidate()  # after any mutation
    """

    def __init__(
        self,
        window_seconds: float = 0.1,
        clock: Callable[[], float] | None = None,
    ):
        self.window_seconds = window_seconds
        self._clock = clock or time.time
        self._entry: CacheEntry[T] | None = None
        self.hits = 0
        self.misses = 0

    def get(self) -> T | None:
        """Return the cached value if still inside the window."""
        entry = self._entry
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entry = None
            return None
        return entry.value

    def set(self, value: T) -> None:
        now = self._clock()
        self._entry = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + self.window_seconds,
        )

    def get_or_compute(self, compute: Callable[[], T]) -> T:
        """Return the cached value or compute, store and return a fresh one."""
        cached = self.get()
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        value = compute()
        self.set(value)
        return value

    def invalidate(self) -> None:
        self._entry = None

    @property
    def is_valid(self) -> bool:
        return self.get() is not None

    def stats(self) -> dict[str, float | int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "window_seconds": self.window_seconds,
        }


__all__ = ["BalanceCache", "CacheEntry"]
