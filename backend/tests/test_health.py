"""Health check and general endpoint tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert data["app"] == "Deep Terminal"
    assert data["database"] in ("ok", "error")
    assert data["redis"] in ("ok", "error")


@pytest.mark.asyncio
async def test_nonexistent_endpoint(client: AsyncClient):
    """Test 404 for nonexistent endpoint."""
    response = await client.get("/api/cron/nonexistent")
    assert response.status_code == 404
