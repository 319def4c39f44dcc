"""In-memory, bounded rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Memory is bounded by two independent mechanisms: a lazy sweep of expired
  windows (at most once per cleanup interval, triggered by get/set) and a bulk
  capacity eviction when a new identifier arrives at a full store.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable

from recipe_gate.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitEntry, now_ms

logger = logging.getLogger(__name__)


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed store mapping client identifiers to window counters.

    Capacity eviction removes ``floor(max_size * eviction_fraction)`` entries,
    soonest-to-expire first. When that product is below one nothing is
    removed, so a small store can grow past ``max_size`` (soft cap).
    """

    def __init__(
        self,
        *,
        max_size: int = 5000,
        cleanup_interval_ms: int = 60_000,
        eviction_fraction: float = 0.2,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the store.

        Args:
            max_size: Maximum number of distinct identifiers retained.
            cleanup_interval_ms: Minimum time between two expiry sweeps.
            eviction_fraction: Share of capacity removed by capacity eviction.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If any argument is out of range.
        """
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        if cleanup_interval_ms < 0:
            raise ValueError("cleanup_interval_ms must be >= 0")
        if not 0 <= eviction_fraction <= 1:
            raise ValueError("eviction_fraction must be between 0 and 1")

        self._max_size = max_size
        self._cleanup_interval_ms = cleanup_interval_ms
        self._eviction_fraction = eviction_fraction
        self._eviction_count = math.floor(max_size * eviction_fraction)
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._last_cleanup_time = clock()
        self._swept = 0
        self._evicted = 0

        if self._eviction_count < 1:
            logger.warning(
                "rate_limit.soft_cap",
                extra={
                    "max_size": max_size,
                    "eviction_fraction": eviction_fraction,
                },
            )

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryRateLimitStore(max_size={self._max_size}, "
            f"cleanup_interval_ms={self._cleanup_interval_ms}, "
            f"eviction_fraction={self._eviction_fraction}, size={len(self._entries)})"
        )

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def last_cleanup_time(self) -> int:
        return self._last_cleanup_time

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            self.maybe_cleanup()
            return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self.maybe_cleanup()
            if key not in self._entries and len(self._entries) >= self._max_size:
                self._evict_for_capacity_locked()
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def maybe_cleanup(self) -> int:
        """Sweep expired windows if the cleanup interval has elapsed.

        Returns:
            Number of entries removed (0 when the sweep was skipped).
        """

        with self._lock:
            now = self._clock()
            if now - self._last_cleanup_time < self._cleanup_interval_ms:
                return 0

            self._last_cleanup_time = now
            expired = [k for k, entry in self._entries.items() if entry.reset_time < now]
            for key in expired:
                del self._entries[key]

            self._swept += len(expired)
            if expired:
                logger.debug(
                    "rate_limit.sweep",
                    extra={"removed": len(expired), "size": len(self._entries)},
                )
            return len(expired)

    def stats(self) -> dict[str, int | float]:
        """Return store metrics without exposing identifiers."""

        with self._lock:
            return {
                "entries": len(self._entries),
                "max_size": self._max_size,
                "cleanup_interval_ms": self._cleanup_interval_ms,
                "eviction_fraction": self._eviction_fraction,
                "last_cleanup_time": self._last_cleanup_time,
                "swept": self._swept,
                "evicted": self._evicted,
            }

    def _evict_for_capacity_locked(self) -> None:
        count = min(len(self._entries), self._eviction_count)
        if count == 0:
            return

        # sorted() is stable: equal reset times fall back to insertion order
        oldest = sorted(self._entries.items(), key=lambda item: item[1].reset_time)[:count]
        for key, _ in oldest:
            del self._entries[key]

        self._evicted += count
        logger.info(
            "rate_limit.capacity_eviction",
            extra={"removed": count, "size": len(self._entries), "max_size": self._max_size},
        )
