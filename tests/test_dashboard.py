"""
test_dashboard.py — Tests for the server-held /dashboard routes.

The real pydeck provider is used (MAP_API_KEY is a dummy set in conftest;
pydeck only embeds it in the page). Events come from a MagicMock BigQuery
client installed on app.state, which is where the dashboard session reads
its connection from.
"""

import pytest

from eventmap.core.config import settings
from eventmap.core.warehouse import WarehouseConnection
from eventmap.renderer.pydeck_provider import LAYER_ID
from tests.factories import make_bigquery_client


@pytest.fixture()
def installed(warehouse):
    from eventmap.main import app

    app.state.warehouse = warehouse
    return warehouse


class TestDashboardPage:

    async def test_page_renders_html(self, client, installed):
        r = await client.get("/dashboard")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/html")
        assert LAYER_ID in r.text
        assert "https://news.example.com/world/Tokyo-Rally_Draws-Crowds" in r.text

    async def test_page_wires_marker_clicks(self, client, installed):
        """Clicking a marker opens its source URL and reports the pick."""
        html = (await client.get("/dashboard")).text
        assert "onClick" in html
        assert "window.open(url, '_blank')" in html
        assert 'const pickUrl = "/dashboard/pick"' in html
        # The hook is attached to the deck the template has already created.
        assert html.index("createDeck(") < html.index("deckInstance.setProps")
        assert html.rstrip().endswith("</html>")

    async def test_first_visit_loads_once(self, client, installed):
        await client.get("/dashboard")
        await client.get("/dashboard")
        assert installed.client.query.call_count == 1

    async def test_missing_api_key_is_503(self, client, installed, monkeypatch):
        monkeypatch.setattr(settings, "map_api_key", "")
        r = await client.get("/dashboard")
        assert r.status_code == 503
        assert r.json() == {
            "error": "Map API key is not configured.",
            "details": "Set MAP_API_KEY in the environment or .env file.",
        }
        state = (await client.get("/dashboard/state")).json()
        assert state["state"] == "uninitialized"
        installed.client.query.assert_not_called()

    async def test_unavailable_warehouse_shows_error(self, client):
        r = await client.get("/dashboard")
        assert r.status_code == 200
        state = (await client.get("/dashboard/state")).json()
        assert state["state"] == "surface_ready"
        assert state["error"] == "BigQuery client not initialized."
        assert state["marker_count"] == 0


class TestDashboardState:

    async def test_state_before_mount(self, client, installed):
        data = (await client.get("/dashboard/state")).json()
        assert data["state"] == "uninitialized"
        assert data["loading"] is False
        assert data["marker_count"] == 0
        assert data["last_loaded_at"] is None

    async def test_state_after_mount(self, client, installed):
        await client.get("/dashboard")
        data = (await client.get("/dashboard/state")).json()
        assert data["state"] == "data_loaded"
        assert data["marker_count"] == 3
        assert data["error"] is None
        assert data["last_loaded_at"] is not None


class TestDashboardReload:

    async def test_reload_before_page_mounts_and_loads(self, client, installed):
        r = await client.post("/dashboard/reload")
        assert r.status_code == 200
        assert r.json()["state"] == "data_loaded"
        assert installed.client.query.call_count == 1

    async def test_reload_refetches(self, client, installed):
        await client.get("/dashboard")
        await client.post("/dashboard/reload")
        assert installed.client.query.call_count == 2

    async def test_failed_reload_keeps_markers(self, client, installed):
        await client.get("/dashboard")
        installed.client.query.return_value.result.side_effect = RuntimeError("quota exceeded")

        data = (await client.post("/dashboard/reload")).json()

        assert data["error"] == "Failed to fetch data from BigQuery."
        assert data["marker_count"] == 3
        assert data["state"] == "data_loaded"

    async def test_error_banner_in_page(self, client):
        from eventmap.main import app

        app.state.warehouse = WarehouseConnection(client=make_bigquery_client(error=RuntimeError("boom")))
        r = await client.get("/dashboard")
        assert "Failed to fetch data from BigQuery." in r.text


class TestDashboardMarkers:

    async def test_markers_json(self, client, installed):
        await client.get("/dashboard")
        markers = (await client.get("/dashboard/markers")).json()

        assert len(markers) == 3
        first = markers[0]
        assert first["fill_color"] == [0, 255, 0]
        assert (first["longitude"], first["latitude"]) == (139.0, 35.0)
        assert first["title"] == "Tokyo Rally Draws Crowds"
        assert markers[1]["fill_color"] == [255, 0, 0]
        assert markers[2]["fill_color"] == [0, 0, 255]

    async def test_markers_empty_before_mount(self, client, installed):
        assert (await client.get("/dashboard/markers")).json() == []


class TestDashboardPick:

    async def test_hover_returns_tooltip(self, client, installed):
        await client.get("/dashboard")
        data = (await client.post("/dashboard/pick", json={"kind": "hover", "index": 1, "x": 12, "y": 34})).json()

        assert data["navigate_to"] is None
        tooltip = data["tooltip"]
        assert tooltip["title"] == "Strike Action"
        assert tooltip["place_name"] == "London, UK"
        assert tooltip["tone"] == -4.0
        assert (tooltip["x"], tooltip["y"]) == (12, 34)

    async def test_hover_empty_map_clears_tooltip(self, client, installed):
        await client.get("/dashboard")
        await client.post("/dashboard/pick", json={"kind": "hover", "index": 0})
        data = (await client.post("/dashboard/pick", json={"kind": "hover", "index": None})).json()
        assert data["tooltip"] is None

    async def test_click_navigates_to_source(self, client, installed):
        await client.get("/dashboard")
        data = (await client.post("/dashboard/pick", json={"kind": "click", "index": 0})).json()
        assert data["navigate_to"] == "https://news.example.com/world/Tokyo-Rally_Draws-Crowds"

    async def test_click_without_url_does_not_navigate(self, client, installed):
        await client.get("/dashboard")
        data = (await client.post("/dashboard/pick", json={"kind": "click", "index": 2})).json()
        assert data["navigate_to"] is None

    async def test_pick_before_mount_is_noop(self, client, installed):
        data = (await client.post("/dashboard/pick", json={"kind": "click", "index": 0})).json()
        assert data == {"tooltip": None, "navigate_to": None}

    @pytest.mark.parametrize("payload", [{"kind": "drag"}, {"kind": "click", "index": -1}, {}])
    async def test_invalid_pick_422(self, client, installed, payload):
        r = await client.post("/dashboard/pick", json=payload)
        assert r.status_code == 422
