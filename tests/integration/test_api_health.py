"""Integration tests for health check endpoints."""
from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestHealthAPI:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Test GET /api/health."""
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["cache"] == "healthy"
        assert data["pending_indexing"] == 0

    async def test_cache_outage_is_not_fatal(self, client: AsyncClient, fake_redis):
        fake_redis.available = False

        response = await client.get("/api/health")

        data = response.json()
        assert data["status"] == "healthy"
        assert data["cache"] == "unavailable"

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/api/health"
