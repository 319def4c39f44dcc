"""Tests for global exception handlers.

Validates that domain errors map to the right status codes, that 429s carry
the retry headers, and that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from recipe_gate.core.errors import AppError, ErrorDetails, RateLimitAppError, ValidationAppError
from recipe_gate.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="unknown_rate_limit_policy",
                message="Unknown rate limit policy 'burst'",
                details={"policy": "burst"},
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "unknown_rate_limit_policy"
        assert error["details"]["policy"] == "burst"
        assert "request_id" in error

    def test_details_omitted_when_absent(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise ValidationAppError(code="test", message="test")

        error = client.get("/test-format").json()["error"]

        assert set(error) == {"code", "message", "request_id"}


class TestRateLimitErrorHandler:
    def test_returns_429_with_retry_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-limited")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limited",
                message="Too many requests. Please try again later.",
                details={"policy": "write", "retry_after": 12, "limit": 30, "reset_at": 1700000000},
            )

        response = client.get("/test-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "12"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Limit"] == "30"
        assert response.headers["X-RateLimit-Reset"] == "1700000000"
        assert response.json()["error"]["code"] == "rate_limited"

    def test_retry_after_defaults_to_60(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-limited-default")
        async def test_endpoint():
            raise RateLimitAppError(code="rate_limited", message="Too many requests.")

        response = client.get("/test-limited-default")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert "X-RateLimit-Limit" not in response.headers

    def test_zero_retry_after_is_kept(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-limited-zero")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limited", message="Too many requests.", details={"retry_after": 0}
            )

        assert client.get("/test-limited-zero").headers["Retry-After"] == "0"


class TestGeneralExceptionHandler:
    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("store exploded: 10.0.0.1")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "10.0.0.1" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_unexpected_error_through_app(self, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def test_endpoint():
            raise ValueError("Test error with details")

        response = TestClient(app_with_handlers, raise_server_exceptions=False).get("/boom")

        assert response.status_code == 500
        assert "Traceback" not in response.text
        assert "ValueError" not in response.text


def test_setup_registers_handlers(app_with_handlers: FastAPI):
    assert RateLimitAppError in app_with_handlers.exception_handlers
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers


def test_error_details_keys_match_what_the_gateway_emits():
    assert ErrorDetails.__optional_keys__ == frozenset(
        {"policy", "known_policies", "retry_after", "limit", "reset_at"}
    )
