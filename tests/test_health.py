"""
Tests for the /health endpoint and the API root.

Verifies:
  - Returns HTTP 200 with status="ok" (API liveness check)
  - Reports warehouse "unavailable" when no BigQuery client was built
  - Reports "connected" when a client is installed
  - Root / endpoint returns API metadata

The lifespan does not run under ASGITransport, so no BigQuery client is
ever constructed here.
"""

import pytest

from tests.factories import make_bigquery_client


@pytest.mark.asyncio
async def test_health_returns_200(client):
    """Health endpoint must always return 200 if the API process is alive."""
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_response_schema(client):
    response = await client.get("/health")
    data = response.json()

    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert "warehouse" in data
    assert data["environment"] == "test"


@pytest.mark.asyncio
async def test_health_unavailable_without_client(client):
    """No lifespan → no client → 'unavailable', not an exception."""
    data = (await client.get("/health")).json()
    assert data["warehouse"] == "unavailable"


@pytest.mark.asyncio
async def test_health_connected_with_client(client):
    from eventmap.core.warehouse import WarehouseConnection, get_warehouse
    from eventmap.main import app

    app.dependency_overrides[get_warehouse] = lambda: WarehouseConnection(client=make_bigquery_client())
    data = (await client.get("/health")).json()
    assert data["warehouse"] == "connected"


@pytest.mark.asyncio
async def test_health_does_not_query(client, warehouse):
    """BigQuery bills per job; the health check must never run one."""
    from eventmap.core.warehouse import get_warehouse
    from eventmap.main import app

    app.dependency_overrides[get_warehouse] = lambda: warehouse
    await client.get("/health")
    warehouse.client.query.assert_not_called()


@pytest.mark.asyncio
async def test_root_endpoint(client):
    response = await client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "running"
    assert data["dashboard"] == "/dashboard"
    assert "version" in data


@pytest.mark.asyncio
async def test_docs_available_in_test_env(client):
    response = await client.get("/docs")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unknown_route_returns_404(client):
    response = await client.get("/does-not-exist")
    assert response.status_code == 404
