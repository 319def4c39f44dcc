"""Fixed-window admission check on top of a rate limit store."""

from __future__ import annotations

import math
import threading
from typing import Callable

from recipe_gate.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitPolicy,
    RateLimitResult,
    now_ms,
)


class RateLimiter:
    """Admit or reject requests per client identifier.

    A window starts with the first request from a client and lasts
    ``policy.interval_ms``. Rejected requests never touch the stored entry, so
    a blocked client is released exactly at the original ``reset_time`` no
    matter how many requests it keeps sending.

    Important:
        State lives in the store, which is per-process for the in-memory
        backend. With N workers the effective limit is N * max_requests.
    """

    def __init__(
        self,
        store: AbstractRateLimitStore,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._clock = clock
        # Guards the read-modify-write for callers on worker threads (sync routes or dependencies).
        self._lock = threading.Lock()

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def check(self, client_id: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Run one admission check for ``client_id`` under ``policy``.

        Args:
            client_id: Caller identifier (usually the client IP).
            policy: Window length and request budget to apply.

        Returns:
            RateLimitResult with the decision and remaining budget.
        """

        with self._lock:
            now = self._clock()
            entry = self._store.get(client_id)

            if entry is None or entry.reset_time < now:
                entry = RateLimitEntry(count=1, reset_time=now + policy.interval_ms)
                self._store.set(client_id, entry)
                return RateLimitResult(
                    allowed=True,
                    limit=policy.max_requests,
                    remaining=max(0, policy.max_requests - 1),
                    reset_at=entry.reset_time,
                )

            if entry.count >= policy.max_requests:
                return RateLimitResult(
                    allowed=False,
                    limit=policy.max_requests,
                    remaining=0,
                    reset_at=entry.reset_time,
                    retry_after_seconds=math.ceil((entry.reset_time - now) / 1000),
                )

            entry.count += 1
            self._store.set(client_id, entry)
            return RateLimitResult(
                allowed=True,
                limit=policy.max_requests,
                remaining=policy.max_requests - entry.count,
                reset_at=entry.reset_time,
            )


def check_rate_limit(
    limiter: RateLimiter, client_id: str, policy: RateLimitPolicy
) -> RateLimitResult:
    """Functional entry point equivalent to ``limiter.check(client_id, policy)``."""
    return limiter.check(client_id, policy)
