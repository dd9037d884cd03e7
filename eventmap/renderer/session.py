"""
session.py — OverlaySession: the long-lived map surface + overlay lifecycle.

State machine
─────────────
    UNINITIALIZED ──attach()──▶ SURFACE_READY ──first successful fetch──▶ DATA_LOADED
          │                                                                  │
          └──────────────────────────── close() ──────────────────▶ CLOSED ◀─┘

  - `loading` is true while any fetch is in flight (overlaps every state).
  - `error` is set by a failed fetch and cleared by the next successful one;
    it never clears the markers already on screen.

Ordering
────────
Each fetch takes a ticket from a monotonically increasing counter. When a
response arrives, it is applied only if its ticket is still the latest one
issued; anything older is discarded, whether it succeeded or failed. All
mutation after the await runs synchronously on the event loop, so no lock is
needed around the record/marker swap.

TESTING
────────
    pytest tests/test_overlay_session.py -v
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from eventmap.core.errors import EventMapError
from eventmap.models.dashboard import DashboardState
from eventmap.models.event import EventRecord
from eventmap.models.marker import MarkerStyle, VisualMarker
from eventmap.renderer.base import MapProvider, Overlay, PickInfo, Surface, SurfaceOptions, Unsubscribe
from eventmap.renderer.sources import EventSource
from eventmap.services.visual_mapping import derive_markers

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SURFACE_READY = "surface_ready"
    DATA_LOADED = "data_loaded"
    CLOSED = "closed"


@dataclass(frozen=True)
class Tooltip:
    """The single tooltip currently shown, anchored at the pointer."""

    x: float
    y: float
    marker: VisualMarker

    @property
    def record(self) -> EventRecord:
        return self.marker.record


class OverlaySession:
    """
    Owns one drawing surface and one overlay for the life of the session and
    keeps them in sync with the most recent successful fetch.
    """

    def __init__(
        self,
        provider: MapProvider,
        source: EventSource,
        *,
        style: MarkerStyle = MarkerStyle(),
        surface_options: SurfaceOptions = SurfaceOptions(),
        open_url: Optional[Callable[[str], Any]] = None,
    ):
        self._provider = provider
        self._source = source
        self._style = style
        self._surface_options = surface_options
        self._open_url = open_url

        self.state = SessionState.UNINITIALIZED
        self.surface: Optional[Surface] = None
        self.overlay: Optional[Overlay] = None
        self.records: list[EventRecord] = []
        self.markers: list[VisualMarker] = []
        self.error: Optional[str] = None
        self.tooltip: Optional[Tooltip] = None
        self.last_navigation: Optional[str] = None
        self.last_loaded_at: Optional[datetime] = None

        self._issued = 0
        self._in_flight = 0
        self._subscriptions: list[Unsubscribe] = []

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def attach(self, mount_point: Any) -> bool:
        """
        Create the surface and bind its overlay. Runs once per session;
        later calls return False without touching anything.

        Raises ConfigurationError if the provider cannot create a surface
        (e.g. no map API key). The session then stays UNINITIALIZED.
        """
        if self.state is SessionState.CLOSED:
            raise RuntimeError("Overlay session is closed")
        if self.surface is not None:
            logger.debug("Surface already attached; ignoring repeated mount")
            return False

        surface = self._provider.create_surface(mount_point, self._surface_options)
        try:
            overlay = self._provider.create_overlay(surface)
        except Exception:
            surface.destroy()
            raise
        self.surface, self.overlay = surface, overlay
        self._subscriptions = [
            surface.subscribe("hover", self._on_hover),
            surface.subscribe("click", self._on_click),
        ]
        self.state = SessionState.SURFACE_READY
        if self.markers:
            # A fetch completed before the surface existed.
            overlay.set_markers(self.markers)
            self.state = SessionState.DATA_LOADED
        logger.info("Overlay session attached to %s", mount_point)
        return True

    async def mount(self, mount_point: Any) -> bool:
        """attach() and, the first time only, load data immediately."""
        if not self.attach(mount_point):
            return False
        await self.fetch_and_render()
        return True

    async def fetch_and_render(self) -> bool:
        """
        Fetch a fresh dataset and swap it into the overlay.

        Returns True when this call's result was applied. A stale result
        (a newer fetch was issued meanwhile) or a failure returns False.
        """
        self._issued += 1
        ticket = self._issued
        self._in_flight += 1
        try:
            records = await self._source.fetch_events()
        except EventMapError as exc:
            if ticket != self._issued:
                logger.info("Discarding stale fetch failure #%d: %s", ticket, exc.message)
                return False
            self.error = exc.message
            logger.warning("Failed to fetch events (fetch #%d): %s", ticket, exc.message)
            return False
        finally:
            self._in_flight -= 1

        if ticket != self._issued:
            logger.info("Discarding stale fetch #%d (latest is #%d)", ticket, self._issued)
            return False
        if self.state is SessionState.CLOSED:
            logger.debug("Session closed while fetch #%d was in flight", ticket)
            return False
        self._apply(list(records))
        return True

    async def reload(self) -> bool:
        """Manual refresh (the "Reload Data" control)."""
        return await self.fetch_and_render()

    def _apply(self, records: list[EventRecord]) -> None:
        self.records = records
        self.markers = derive_markers(records, self._style)
        self.error = None
        self.tooltip = None
        self.last_loaded_at = datetime.now(tz=timezone.utc)
        if self.overlay is not None:
            self.overlay.set_markers(self.markers)
            self.state = SessionState.DATA_LOADED
        logger.info("Rendered %d markers", len(self.markers))

    def close(self) -> None:
        """Release every event subscription and tear the surface down."""
        if self.state is SessionState.CLOSED:
            return
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []
        if self.surface is not None:
            self.surface.destroy()
        self.tooltip = None
        self.state = SessionState.CLOSED
        logger.info("Overlay session closed")

    # ── Interaction ───────────────────────────────────────────────────────────

    def pick(self, kind: str, pick: PickInfo) -> Optional[str]:
        """
        Feed a pointer event through the surface's subscriptions.

        Returns the URL a click navigated to, if any.
        """
        if self.surface is None:
            return None
        self.last_navigation = None
        self.surface.dispatch(kind, pick)
        return self.last_navigation if kind == "click" else None

    def _marker_at(self, index: Optional[int]) -> Optional[VisualMarker]:
        if index is None or not 0 <= index < len(self.markers):
            return None
        return self.markers[index]

    def _on_hover(self, pick: PickInfo) -> None:
        marker = self._marker_at(pick.index)
        self.tooltip = Tooltip(x=pick.x, y=pick.y, marker=marker) if marker else None

    def _on_click(self, pick: PickInfo) -> None:
        marker = self._marker_at(pick.index)
        if marker is None or not marker.record.source_url:
            return
        url = marker.record.source_url
        self.last_navigation = url
        if self._open_url is not None:
            self._open_url(url)

    # ── Reporting ─────────────────────────────────────────────────────────────

    def snapshot(self) -> DashboardState:
        return DashboardState(
            state=self.state.value,
            loading=self.loading,
            error=self.error,
            marker_count=len(self.markers),
            last_loaded_at=self.last_loaded_at,
        )
