"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and DB readiness probe works in test mode.
- Ensure the keepalive endpoint is guarded by the cron secret.
"""

from __future__ import annotations

import pytest

from conftest import serve


@pytest.mark.asyncio
async def test_health_endpoints(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.get("/healthz")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

        r = await client.get("/readyz")
        assert r.status_code == 200
        assert r.json()["status"] == "ready"
        assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_request_id_is_propagated(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.get("/healthz", headers={"x-request-id": "trace-123"})
        assert r.headers["x-request-id"] == "trace-123"

        r = await client.get("/healthz", headers={"x-request-id": "x" * 200})
        assert r.headers["x-request-id"] != "x" * 200


@pytest.mark.asyncio
async def test_keepalive_requires_configured_secret(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.get("/api/keepalive", headers={"Authorization": "Bearer anything"})
        assert r.status_code == 500
        assert r.json()["code"] == "config_missing"


@pytest.mark.asyncio
async def test_keepalive_checks_bearer_and_reports_count(make_app) -> None:
    async with serve(make_app(cron_secret="cron-s3cret")) as client:
        r = await client.get("/api/keepalive")
        assert r.status_code == 401

        r = await client.get("/api/keepalive", headers={"Authorization": "Bearer wrong"})
        assert r.status_code == 401

        r = await client.get("/api/keepalive", headers={"Authorization": "Bearer cron-s3cret"})
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        assert body["table"] == "community_cards"
        assert body["count"] == 0
        assert body["durationMs"] >= 0
        assert body["timestamp"]
        assert r.headers["cache-control"] == "no-store"


# --- Module Notes -----------------------------------------------------------
# Endpoint-level behaviour lives in the per-router test modules.
