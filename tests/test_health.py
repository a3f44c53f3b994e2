"""Health check endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "tenantguard-api"
    assert data["version"] == "0.4.0"
    assert "sharing" in data["catalogs"]


@pytest.mark.asyncio
async def test_trace_id_echoed(client):
    response = await client.get("/api/v1/health/live", headers={"X-Trace-Id": "trc_fromcaller"})
    assert response.headers["X-Trace-Id"] == "trc_fromcaller"
