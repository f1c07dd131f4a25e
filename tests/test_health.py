"""Health endpoint tests."""

import pytest

from tasktrack import __version__


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status, version and database state."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["version"] == __version__


@pytest.mark.asyncio
async def test_health_is_open(client):
    """No token needed."""
    resp = await client.get("/api/health", headers={"Authorization": "Bearer junk"})
    assert resp.status_code == 200
