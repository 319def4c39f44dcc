from __future__ import annotations

from fastapi.testclient import TestClient

from recipe_gate.core.app_factory import create_app
from recipe_gate.core.config import LogSettings, Settings
from recipe_gate.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_health_body():
    assert client.get("/health").json() == {"status": "ok"}


def test_uses_header_name_from_app_settings():
    custom = TestClient(create_app(Settings(log=LogSettings(request_id_header="X-Correlation-ID"))))

    resp = custom.get("/health", headers={"X-Correlation-ID": "abc"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Correlation-ID") == "abc"
    assert "X-Request-ID" not in resp.headers
