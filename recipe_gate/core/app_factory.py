"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own settings, rules and clock.
"""

from __future__ import annotations

from typing import Callable, Sequence

from fastapi import FastAPI

from recipe_gate.adapters.rate_limit.base import now_ms
from recipe_gate.api.routes import health_router
from recipe_gate.core.config import Settings, settings as default_settings
from recipe_gate.core.exception_handlers import setup_exception_handlers
from recipe_gate.core.logging import configure_logging
from recipe_gate.core.middleware import request_id_middleware
from recipe_gate.core.openapi import apply_openapi_customizations
from recipe_gate.core.policies import DEFAULT_RULES, PolicyRule
from recipe_gate.core.rate_limit import RateLimitRegistry, rate_limit_middleware


def create_app(
    settings: Settings | None = None,
    *,
    rules: Sequence[PolicyRule] = DEFAULT_RULES,
    clock: Callable[[], int] = now_ms,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings override; defaults to the environment-loaded settings.
        rules: Path rules mapping requests onto named policies.
        clock: Millisecond time source shared by every rate limit store.

    Returns:
        Configured FastAPI app with its own rate limit registry.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title=cfg.app.title,
        description=(
            "Admission-control gateway for the recipe sharing API. Applies "
            "per-client fixed-window rate limits (strict, write, read, upload) "
            "selected by request path and method."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
    )

    app.state.request_id_header = cfg.log.request_id_header
    app.state.rate_limits = RateLimitRegistry.from_settings(
        cfg.rate_limit, rules=rules, clock=clock
    )

    # The last registered middleware is outermost: request ids wrap rate limiting.
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)

    apply_openapi_customizations(app, rules=rules)

    return app
