from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from isocert.core.config import Settings
from isocert.core.telemetry import (
    PLATFORM_ATTRIBUTE,
    SOURCE_DEADLINE_ATTRIBUTE,
    build_resource,
    parse_headers,
    setup_api_telemetry,
    setup_telemetry,
    shutdown_api_telemetry,
    shutdown_telemetry,
)


def test_parse_headers_skips_malformed_items() -> None:
    assert parse_headers("authorization=Bearer abc, x-team = search ,broken,=empty") == {
        "authorization": "Bearer abc",
        "x-team": "search",
    }
    assert parse_headers(None) == {}


def test_resource_carries_platform_and_source_deadline() -> None:
    resource = build_resource(Settings(environment="prod"), {"VERCEL": "1", "VERCEL_ENV": "production"})

    assert resource.attributes["service.name"] == "isocert"
    assert resource.attributes[PLATFORM_ATTRIBUTE] == "vercel"
    assert resource.attributes[SOURCE_DEADLINE_ATTRIBUTE] == 8.0


def test_resource_uses_explicit_deadline_override() -> None:
    resource = build_resource(Settings(source_deadline_seconds=2.5), {"NETLIFY": "true"})

    assert resource.attributes[PLATFORM_ATTRIBUTE] == "netlify"
    assert resource.attributes[SOURCE_DEADLINE_ATTRIBUTE] == 2.5


def test_disabled_telemetry_is_a_noop() -> None:
    runtime = setup_telemetry(Settings(otel_enabled=False))

    assert runtime.enabled is False
    assert runtime.provider is None
    shutdown_telemetry(runtime)


def test_api_telemetry_instruments_app_and_tags_resource(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "NETLIFY",
        "VERCEL",
        "ISO_SOURCE_DEADLINE_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    app = FastAPI()

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "ok"}

    runtime = setup_api_telemetry(app, Settings(otel_enabled=True, otel_exporter_otlp_endpoint=None))
    try:
        response = TestClient(app).get("/ping")
    finally:
        shutdown_api_telemetry(app, runtime)

    assert response.status_code == 200
    assert runtime.enabled is True
    assert runtime.provider is not None
    assert runtime.provider.resource.attributes[PLATFORM_ATTRIBUTE] == "local"
    assert runtime.provider.resource.attributes[SOURCE_DEADLINE_ATTRIBUTE] == 5.0


def test_disabled_api_telemetry_leaves_app_untouched() -> None:
    app = FastAPI()

    runtime = setup_api_telemetry(app, Settings(otel_enabled=False))

    assert runtime.enabled is False
    shutdown_api_telemetry(app, runtime)
