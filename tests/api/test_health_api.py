"""Tests for health endpoints."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from pdv_sync.api.dependencies import get_probe
from pdv_sync.api.main import app
from pdv_sync.core.interfaces import ProbeResult


@pytest.fixture
def mock_probe():
    probe = AsyncMock()
    probe.check.return_value = ProbeResult(
        reachable=True, target="https://probe.test/", latency_ms=12.5
    )
    return probe


@pytest.fixture
async def health_client(mock_probe):
    app.dependency_overrides[get_probe] = lambda: mock_probe
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_probe, None)


async def test_root_health_check(health_client: AsyncClient):
    response = await health_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


async def test_api_health_check(health_client: AsyncClient):
    response = await health_client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "uptime_seconds" in data
    # Lifespan does not run under ASGITransport, so no worker was started
    assert data["details"]["sync_worker"] == "STOPPED"


async def test_connectivity_online(health_client: AsyncClient):
    response = await health_client.get("/api/health/connectivity")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["connectivity"]["available"] is True
    assert data["connectivity"]["latency_ms"] == 12.5


async def test_connectivity_offline_is_degraded(health_client: AsyncClient, mock_probe):
    mock_probe.check.return_value = ProbeResult(
        reachable=False, target="https://probe.test/", error="timed out"
    )

    response = await health_client.get("/api/health/connectivity")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["connectivity"]["error"] == "timed out"


async def test_db_health(health_client: AsyncClient, db_pool: Path):
    response = await health_client.get("/api/health/db")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"]["available"] is True
