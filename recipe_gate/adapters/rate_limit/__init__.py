"""Rate limiting adapters.

The gateway starts with a process-local store; the abstract store interface
lets a shared backend (e.g., Redis) replace it without touching the HTTP layer.
"""

from recipe_gate.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitPolicy,
    RateLimitResult,
)
from recipe_gate.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from recipe_gate.adapters.rate_limit.limiter import RateLimiter, check_rate_limit

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitEntry",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimiter",
    "check_rate_limit",
]
