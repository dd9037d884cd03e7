"""
pydeck_provider.py — MapProvider backed by pydeck (deck.gl for Python).

The surface is one pdk.Deck over a Google Maps basemap; the overlay is one
ScatterplotLayer attached to it. Refreshing data swaps the layer's `data`
in place; neither the Deck nor the layer is recreated.

Layer settings mirror the dashboard's original scatter layer: pickable,
stroked + filled, 0.8 opacity, radius in pixels clamped to
[radius_min_pixels, radius_max_pixels], 1 px black outline.
"""

import logging
from typing import Any, Optional, Sequence

import pydeck as pdk

from eventmap.core.errors import ConfigurationError
from eventmap.models.marker import VisualMarker
from eventmap.renderer.base import EventKind, PickHandler, PickInfo, SurfaceOptions, Unsubscribe

logger = logging.getLogger(__name__)

LAYER_ID = "scatterplot-layer"

TOOLTIP = {
    "html": """
        <div style="font-family: system-ui, sans-serif; max-width: 300px; word-wrap: break-word;">
            <div style="font-weight: 600; margin-bottom: 4px;">{title}</div>
            <div style="color: #94a3b8;">{place_name}</div>
            <div>Tone: <b>{tone}</b> &middot; Mentions: {mentions}</div>
            <div style="font-size: 0.85em; color: #cbd5e1;">{source_url}</div>
        </div>
    """,
    "style": {
        "backgroundColor": "rgba(0, 0, 0, 0.8)",
        "color": "white",
        "padding": "8px",
        "border-radius": "4px",
        "font-size": "0.9em",
    },
}


class PydeckSurface:
    """A pdk.Deck plus the pointer-event subscriptions registered on it."""

    def __init__(self, deck: pdk.Deck, mount_point: Any):
        self.deck = deck
        self.mount_point = mount_point
        self.destroyed = False
        self._handlers: dict[str, list[PickHandler]] = {"hover": [], "click": []}

    def subscribe(self, kind: EventKind, handler: PickHandler) -> Unsubscribe:
        if kind not in self._handlers:
            raise ValueError(f"Unknown surface event: {kind}")
        self._handlers[kind].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[kind]:
                self._handlers[kind].remove(handler)

        return unsubscribe

    def dispatch(self, kind: EventKind, pick: PickInfo) -> None:
        for handler in list(self._handlers.get(kind, ())):
            handler(pick)

    def handler_count(self, kind: EventKind) -> int:
        return len(self._handlers.get(kind, ()))

    def add_layer(self, layer: pdk.Layer) -> None:
        self.deck.layers.append(layer)

    def render_html(self, description: Optional[str] = None, scripts: str = "") -> str:
        """
        Render the surface to a standalone HTML document.

        `scripts` is appended after the template's own script, where the
        `deckInstance` it creates is in scope.
        """
        self.deck.description = description
        html = self.deck.to_html(as_string=True, notebook_display=False)
        if not scripts:
            return html
        head, sep, tail = html.rpartition("</html>")
        if not sep:
            return html + scripts
        return head + scripts + sep + tail

    def destroy(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
        self.deck.layers = []
        self.destroyed = True
        logger.info("Map surface destroyed (%s)", self.mount_point)


class PydeckOverlay:
    """The single ScatterplotLayer bound to a surface."""

    def __init__(self, surface: PydeckSurface, options: SurfaceOptions):
        self.surface = surface
        self.layer = pdk.Layer(
            "ScatterplotLayer",
            id=LAYER_ID,
            data=[],
            pickable=True,
            opacity=0.8,
            stroked=True,
            filled=True,
            radius_units="pixels",
            radius_min_pixels=options.radius_min_pixels,
            radius_max_pixels=options.radius_max_pixels,
            line_width_min_pixels=1,
            get_position="position",
            get_radius="radius",
            get_fill_color="fill_color",
            get_line_color="line_color",
        )
        surface.add_layer(self.layer)

    def set_markers(self, markers: Sequence[VisualMarker]) -> None:
        self.layer.data = [m.to_layer_datum() for m in markers]

    @property
    def marker_count(self) -> int:
        return len(self.layer.data or [])


class PydeckMapProvider:
    """
    Builds pydeck surfaces. The map API key is mandatory: without it the
    basemap cannot initialise, which is a fatal configuration error.
    """

    def __init__(self, api_key: str, map_provider: str = "google_maps"):
        self.api_key = api_key
        self.map_provider = map_provider
        self._options = SurfaceOptions()

    def create_surface(self, mount_point: Any, options: SurfaceOptions) -> PydeckSurface:
        if not self.api_key:
            logger.error("Map API key missing; cannot create the drawing surface")
            raise ConfigurationError(
                "Map API key is not configured.",
                "Set MAP_API_KEY in the environment or .env file.",
            )
        self._options = options
        deck = pdk.Deck(
            layers=[],
            initial_view_state=pdk.ViewState(
                latitude=options.latitude,
                longitude=options.longitude,
                zoom=options.zoom,
                pitch=0,
                bearing=0,
            ),
            map_provider=self.map_provider,
            map_style=options.map_style,
            api_keys={self.map_provider: self.api_key},
            tooltip=TOOLTIP,
        )
        logger.info("Map surface created (%s, provider: %s)", mount_point, self.map_provider)
        return PydeckSurface(deck, mount_point)

    def create_overlay(self, surface: PydeckSurface) -> PydeckOverlay:
        return PydeckOverlay(surface, self._options)
