"""
dashboard.py — Server-held map dashboard.

Routes:
  GET  /dashboard          — HTML map page (mounts the surface on first visit)
  GET  /dashboard/state    — lifecycle snapshot: state, loading, error, counts
  POST /dashboard/reload   — manual refresh ("Reload Data")
  GET  /dashboard/markers  — current marker set as JSON
  POST /dashboard/pick     — forward a hover/click from the page

HOW THE DATA FLOWS
──────────────────
1. One OverlaySession lives on app.state for the life of the process. Its
   pydeck surface and scatter layer are created on the first GET /dashboard
   and reused afterwards.
2. The first mount loads data automatically; after that, data only changes
   when someone hits Reload (no polling).
3. The session reads events straight from the warehouse (no HTTP hop).
   A failed refresh keeps the previous markers and shows the error banner.

A missing MAP_API_KEY is a fatal configuration error: the page answers 503
with {"error", "details"} and the session stays unmounted.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from eventmap.core.config import settings
from eventmap.core.warehouse import current_warehouse
from eventmap.models.dashboard import DashboardState, PickRequest, PickResponse, TooltipOut
from eventmap.models.marker import MarkerOut
from eventmap.renderer.base import PickInfo, SurfaceOptions
from eventmap.renderer.page import render_dashboard_page
from eventmap.renderer.pydeck_provider import PydeckMapProvider
from eventmap.renderer.session import OverlaySession
from eventmap.renderer.sources import WarehouseEventSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

MOUNT_POINT = "dashboard"
RELOAD_PATH = f"{router.prefix}/reload"
PICK_PATH = f"{router.prefix}/pick"


def build_dashboard_session(app) -> OverlaySession:
    """Create the process-wide session: pydeck surface over the warehouse."""
    return OverlaySession(
        PydeckMapProvider(settings.map_api_key, settings.map_provider),
        WarehouseEventSource(lambda: current_warehouse(app), settings.default_event_filter()),
        style=settings.marker_style(),
        surface_options=SurfaceOptions.from_settings(settings),
    )


def get_overlay_session(request: Request) -> OverlaySession:
    """FastAPI dependency — the session stored on app.state, created on first use."""
    session = getattr(request.app.state, "overlay_session", None)
    if session is None:
        session = build_dashboard_session(request.app)
        request.app.state.overlay_session = session
    return session


@router.get("", response_class=HTMLResponse)
async def dashboard_page(session: OverlaySession = Depends(get_overlay_session)):
    """
    Render the map. The first call creates the surface and awaits the
    initial load, so that page arrives with markers (or the error banner)
    rather than "Loading...". The Loading state shows on a page rendered
    while another request's reload is still in flight.
    """
    await session.mount(MOUNT_POINT)
    return HTMLResponse(render_dashboard_page(session, reload_url=RELOAD_PATH, pick_url=PICK_PATH))


@router.get("/state", response_model=DashboardState)
async def dashboard_state(session: OverlaySession = Depends(get_overlay_session)):
    return session.snapshot()


@router.post("/reload", response_model=DashboardState)
async def reload_dashboard(session: OverlaySession = Depends(get_overlay_session)):
    """
    Manual refresh. Mounts first if nobody has opened the page yet (the
    mount's automatic load is the refresh in that case).
    """
    if not await session.mount(MOUNT_POINT):
        await session.reload()
    return session.snapshot()


@router.get("/markers", response_model=list[MarkerOut])
async def dashboard_markers(session: OverlaySession = Depends(get_overlay_session)):
    return [MarkerOut.from_marker(m) for m in session.markers]


@router.post("/pick", response_model=PickResponse)
async def dashboard_pick(payload: PickRequest, session: OverlaySession = Depends(get_overlay_session)):
    """
    Hover updates (or clears) the single tooltip; click on a marker with a
    source URL returns it as navigate_to for the page to open in a new tab.
    """
    navigate_to = session.pick(payload.kind, PickInfo(index=payload.index, x=payload.x, y=payload.y))
    tooltip = None
    if session.tooltip is not None:
        record = session.tooltip.record
        tooltip = TooltipOut(
            x=session.tooltip.x,
            y=session.tooltip.y,
            title=session.tooltip.marker.title,
            source_url=record.source_url,
            place_name=record.place_name,
            tone=record.tone,
        )
    return PickResponse(tooltip=tooltip, navigate_to=navigate_to)
