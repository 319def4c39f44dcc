"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from recipe_gate.core.config import LogSettings, RateLimitSettings, Settings


def test_rate_limit_defaults():
    cfg = RateLimitSettings()

    assert cfg.enabled is True
    assert cfg.store_max_size == 5000
    assert cfg.cleanup_interval_ms == 60_000
    assert cfg.eviction_fraction == 0.2
    assert cfg.fallback_client_id == "anonymous"
    assert cfg.client_id_headers == "x-forwarded-for,x-real-ip,cf-connecting-ip"


def test_rate_limit_settings_read_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RATE_LIMIT_STRICT_MAX_REQUESTS", "3")
    monkeypatch.setenv("RATE_LIMIT_STORE_MAX_SIZE", "100")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")

    cfg = RateLimitSettings()

    assert cfg.strict_max_requests == 3
    assert cfg.store_max_size == 100
    assert cfg.enabled is False


def test_zero_request_budget_is_accepted():
    assert RateLimitSettings(write_max_requests=0).write_max_requests == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"store_max_size": 0},
        {"eviction_fraction": 1.5},
        {"cleanup_interval_ms": -1},
        {"read_interval_ms": 0},
    ],
)
def test_invalid_store_settings_rejected(kwargs: dict):
    with pytest.raises(ValidationError):
        RateLimitSettings(**kwargs)


def test_log_settings_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LOG_FORMAT", "plain")
    monkeypatch.setenv("LOG_REQUEST_ID_HEADER", "X-Correlation-ID")

    cfg = LogSettings()

    assert cfg.format == "plain"
    assert cfg.request_id_header == "X-Correlation-ID"


def test_settings_container_composes_groups():
    cfg = Settings(rate_limit=RateLimitSettings(read_max_requests=7))

    assert cfg.app_env == "testing"
    assert cfg.rate_limit.read_max_requests == 7
    assert cfg.log.request_id_header == "X-Request-ID"
