from __future__ import annotations

from fastapi import APIRouter, Depends

from recipe_gate.core.policies import READ
from recipe_gate.core.rate_limit import RateLimitRegistry, get_registry, require_rate_limit

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring; never rate limited.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get(
    "/health/rate-limit",
    dependencies=[Depends(require_rate_limit(READ))],
)
def rate_limit_stats(registry: RateLimitRegistry = Depends(get_registry)) -> dict:
    """Per-policy budgets and store metrics, without client identifiers."""

    return {"enabled": registry.enabled, "policies": registry.stats()}
