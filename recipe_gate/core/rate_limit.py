"""Rate limiting wiring for the HTTP layer.

Design goals:
- Owned state: one registry per app instance (``app.state.rate_limits``),
  never a module global, so tests build isolated limiters per case.
- Independent counters: every named policy gets its own store, so a client's
  auth attempts never consume its read budget.
- Two entry points: a path-based middleware for the API surface and a route
  dependency for endpoints that opt in explicitly.
"""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Awaitable, Callable, Mapping, Sequence

from fastapi import Request, Response

from recipe_gate.adapters.rate_limit.base import RateLimitPolicy, RateLimitResult, now_ms
from recipe_gate.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from recipe_gate.adapters.rate_limit.limiter import RateLimiter
from recipe_gate.core.config import RateLimitSettings
from recipe_gate.core.errors import ErrorDetails, RateLimitAppError, ValidationAppError
from recipe_gate.core.exception_handlers import rate_limit_error_handler
from recipe_gate.core.policies import DEFAULT_RULES, PolicyRule, build_policies, resolve_policy, validate_rules

logger = logging.getLogger(__name__)


def parse_header_list(headers_string: str | None) -> list[str]:
    """Parse a comma-separated header list, keeping order.

    Examples:
        >>> parse_header_list("X-Forwarded-For, x-real-ip")
        ['x-forwarded-for', 'x-real-ip']
        >>> parse_header_list(None)
        []
    """
    if not headers_string:
        return []
    return [name.strip().lower() for name in headers_string.split(",") if name.strip()]


def client_identifier(
    headers: Mapping[str, str],
    header_names: Sequence[str],
    fallback: str = "anonymous",
) -> str:
    """Derive the client identifier from proxy headers.

    The first non-empty header wins. For ``x-forwarded-for`` only the first
    hop (the original client) is used. Clients without any of the headers
    share the ``fallback`` identifier and therefore one counter.
    """

    for name in header_names:
        value = headers.get(name)
        if not value:
            continue
        if name == "x-forwarded-for":
            value = value.split(",", 1)[0]
        value = value.strip()
        if value:
            return value
    return fallback


def _hash_client_id(client_id: str) -> str:
    """Hash the client identifier for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


class RateLimitRegistry:
    """Per-app rate limit state: policies, their stores and the path rules."""

    def __init__(
        self,
        policies: Mapping[str, RateLimitPolicy],
        *,
        rules: Sequence[PolicyRule] = DEFAULT_RULES,
        enabled: bool = True,
        include_headers: bool = True,
        client_id_headers: Sequence[str] = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip"),
        fallback_client_id: str = "anonymous",
        max_size: int = 5000,
        cleanup_interval_ms: int = 60_000,
        eviction_fraction: float = 0.2,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        validate_rules(rules, policies)

        self.enabled = enabled
        self.include_headers = include_headers
        self.rules = tuple(rules)
        self.client_id_headers = tuple(h.lower() for h in client_id_headers)
        self.fallback_client_id = fallback_client_id
        self._policies = dict(policies)
        self._limiters = {
            name: RateLimiter(
                InMemoryRateLimitStore(
                    max_size=max_size,
                    cleanup_interval_ms=cleanup_interval_ms,
                    eviction_fraction=eviction_fraction,
                    clock=clock,
                ),
                clock=clock,
            )
            for name in self._policies
        }

    @classmethod
    def from_settings(
        cls,
        rate_limit_settings: RateLimitSettings,
        *,
        rules: Sequence[PolicyRule] = DEFAULT_RULES,
        clock: Callable[[], int] = now_ms,
    ) -> "RateLimitRegistry":
        cfg = rate_limit_settings
        return cls(
            build_policies(cfg),
            rules=rules,
            enabled=cfg.enabled,
            include_headers=cfg.include_headers,
            client_id_headers=parse_header_list(cfg.client_id_headers),
            fallback_client_id=cfg.fallback_client_id,
            max_size=cfg.store_max_size,
            cleanup_interval_ms=cfg.cleanup_interval_ms,
            eviction_fraction=cfg.eviction_fraction,
            clock=clock,
        )

    def policy(self, name: str) -> RateLimitPolicy:
        try:
            return self._policies[name]
        except KeyError:
            raise ValidationAppError(
                code="unknown_rate_limit_policy",
                message=f"Unknown rate limit policy '{name}'",
                details={"policy": name, "known_policies": sorted(self._policies)},
            ) from None

    def limiter(self, name: str) -> RateLimiter:
        self.policy(name)
        return self._limiters[name]

    def check(self, name: str, client_id: str) -> RateLimitResult:
        return self.limiter(name).check(client_id, self.policy(name))

    def enforce(self, name: str, headers: Mapping[str, str]) -> RateLimitResult:
        """Run an admission check for the request headers under policy ``name``.

        Raises:
            RateLimitAppError: When the client is over budget.
        """

        client_id = client_identifier(headers, self.client_id_headers, self.fallback_client_id)
        result = self.check(name, client_id)
        client_hash = _hash_client_id(client_id)

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "policy": name,
                    "client_hash": client_hash,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return result

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "policy": name,
                "client_hash": client_hash,
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )

        details: ErrorDetails = {"policy": name}
        if result.retry_after_seconds is not None:
            details["retry_after"] = result.retry_after_seconds
        if self.include_headers:
            details["limit"] = result.limit
            details["reset_at"] = math.ceil(result.reset_at / 1000)

        raise RateLimitAppError(
            code="rate_limited",
            message="Too many requests. Please try again later.",
            details=details,
        )

    def stats(self) -> dict[str, dict[str, object]]:
        """Per-policy budget and store metrics (no identifiers)."""

        return {
            name: {
                "interval_ms": policy.interval_ms,
                "max_requests": policy.max_requests,
                "store": self._limiters[name].store.stats(),
            }
            for name, policy in self._policies.items()
        }

    def clear(self) -> None:
        for limiter in self._limiters.values():
            limiter.store.clear()


def get_registry(request: Request) -> RateLimitRegistry:
    return request.app.state.rate_limits


async def rate_limit_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Apply the policy selected by the path rules, answering 429 when over budget.

    Paths without a matching rule pass through untouched.
    """

    registry: RateLimitRegistry | None = getattr(request.app.state, "rate_limits", None)
    if registry is None or not registry.enabled:
        return await call_next(request)

    policy_name = resolve_policy(registry.rules, request.url.path, request.method)
    if policy_name is None:
        return await call_next(request)

    try:
        registry.enforce(policy_name, request.headers)
    except RateLimitAppError as exc:
        # Middleware runs outside FastAPI's exception handling, so answer here.
        return await rate_limit_error_handler(request, exc)

    return await call_next(request)


def require_rate_limit(policy_name: str) -> Callable[[Request], Awaitable[None]]:
    """Build a route dependency enforcing ``policy_name``.

    Usage:
        @router.get("/stats", dependencies=[Depends(require_rate_limit("read"))])
    """

    async def enforce_rate_limit(request: Request) -> None:
        registry = get_registry(request)
        if registry.enabled:
            registry.enforce(policy_name, request.headers)

    # Lets the OpenAPI customization find routes that can answer 429.
    enforce_rate_limit.rate_limit_policy = policy_name  # type: ignore[attr-defined]
    return enforce_rate_limit
