"""
pytest configuration and shared fixtures for the EventMap tests.

Key concern: tests must not require BigQuery credentials or a map provider
account. We achieve this by:
  1. Building WarehouseConnection objects around a MagicMock BigQuery client
     whose query().result() yields plain dict rows (tests/factories.py).
  2. Injecting them through FastAPI's dependency_overrides, or app.state
     for the dashboard session, which reads the connection directly.
  3. Setting a dummy MAP_API_KEY. pydeck only embeds it in the page.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("MAP_API_KEY", "test-map-key")

from tests.factories import make_bigquery_client, make_row  # noqa: E402


@pytest.fixture()
def sample_rows():
    return [
        make_row(1, tone=3.5, mentions=40, place="Tokyo, Japan",
                 url="https://news.example.com/world/Tokyo-Rally_Draws-Crowds"),
        make_row(2, lat=51.5, lng=-0.12, tone=-4.0, mentions=2, place="London, UK",
                 url="https://news.example.com/uk/strike-action.html"),
        make_row(3, lat=-33.9, lng=151.2, tone=0.5, url=None),
    ]


@pytest.fixture()
def warehouse(sample_rows):
    from eventmap.core.warehouse import WarehouseConnection

    return WarehouseConnection(client=make_bigquery_client(sample_rows))


@pytest.fixture(autouse=True)
def reset_app_state():
    """
    Give every test a clean app: no overrides, no leftover session or
    warehouse on app.state, and empty rate-limit counters.
    """
    from eventmap.core.rate_limit import limiter
    from eventmap.main import app

    limiter.reset()
    yield
    app.dependency_overrides.clear()
    for attr in ("overlay_session", "warehouse"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)


@pytest.fixture()
async def client():
    """
    HTTPX async test client wired to the FastAPI app. The lifespan does not
    run, so the warehouse is "unavailable" unless a test installs one.
    """
    from eventmap.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
