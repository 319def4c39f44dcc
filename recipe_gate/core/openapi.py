"""OpenAPI customization.

Adds tag metadata and documents the shared 429 response on the operations
the rate limiter can reject: those matched by a path rule and those guarded
by a ``require_rate_limit`` dependency.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from fastapi import FastAPI
from fastapi.routing import APIRoute

from recipe_gate.core.policies import DEFAULT_RULES, PolicyRule, resolve_policy

TOO_MANY_REQUESTS_RESPONSE: Dict[str, Any] = {
    "description": "Rate limit exceeded for the client identifier.",
    "headers": {
        "Retry-After": {
            "description": "Seconds until the client's window resets.",
            "schema": {"type": "integer"},
        },
        "X-RateLimit-Remaining": {
            "description": "Always 0 on a rejected request.",
            "schema": {"type": "integer"},
        },
    },
}


def _has_rate_limit_dependency(route: APIRoute) -> bool:
    return any(
        getattr(dep.call, "rate_limit_policy", None) is not None
        for dep in route.dependant.dependencies
    )


def limited_operations(app: FastAPI, rules: Sequence[PolicyRule]) -> set[tuple[str, str]]:
    """Return ``(path, lowercase method)`` pairs that can answer 429."""

    operations: set[tuple[str, str]] = set()
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        guarded = _has_rate_limit_dependency(route)
        for method in route.methods:
            if guarded or resolve_policy(rules, route.path, method) is not None:
                operations.add((route.path, method.lower()))
    return operations


def apply_openapi_customizations(
    app: FastAPI, rules: Sequence[PolicyRule] = DEFAULT_RULES
) -> None:
    """Patch FastAPI's OpenAPI generation.

    - Registers ``components.responses.TooManyRequests``
    - References it from every limitable operation
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("responses", {}).setdefault(
            "TooManyRequests", TOO_MANY_REQUESTS_RESPONSE
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in (
            {"name": "Health", "description": "Liveness checks and rate limiter diagnostics."},
        ):
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, method in limited_operations(app, rules):
            method_obj = paths.get(path, {}).get(method)
            if isinstance(method_obj, dict):
                method_obj.setdefault("responses", {}).setdefault(
                    "429", {"$ref": "#/components/responses/TooManyRequests"}
                )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
