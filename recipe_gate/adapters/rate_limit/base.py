"""Rate limiter data model and store interface.

The admission logic depends on this abstraction (not the concrete store) so a
shared backend can be plugged in later with minimal changes.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


def now_ms() -> int:
    """Return the current UNIX time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    """Per-client counter for the current window.

    Attributes:
        count: Requests observed in the current window.
        reset_time: UNIX epoch milliseconds at which the window ends.
    """

    count: int
    reset_time: int


@dataclass(frozen=True)
class RateLimitPolicy:
    """Named admission policy.

    ``max_requests`` is deliberately not validated: a zero limit rejects every
    request once a window exists for the client.

    Attributes:
        name: Policy name (e.g., strict, write, read, upload).
        interval_ms: Window length in milliseconds.
        max_requests: Requests admitted per window.
    """

    name: str
    interval_ms: int
    max_requests: int


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the applied policy.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch milliseconds when the client's window ends.
        retry_after_seconds: Whole seconds until the window ends, only when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None = None


class AbstractRateLimitStore(ABC):
    """Interface for client-id -> RateLimitEntry stores."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry for ``key`` or None.

        The entry may belong to an expired window; callers compare
        ``reset_time`` against their own clock.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Insert or overwrite the entry for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        raise NotImplementedError

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of distinct identifiers currently retained."""
        raise NotImplementedError

    def stats(self) -> dict[str, int | float]:
        """Backend metrics; concrete stores may report more."""
        return {"entries": self.size}

    def __len__(self) -> int:
        return self.size
