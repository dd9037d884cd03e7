"""
dashboard.py — Pydantic models for the server-held map dashboard routes.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DashboardState(BaseModel):
    """Snapshot of the overlay session returned by /dashboard/state and /reload."""

    state: str                      # "uninitialized" | "surface_ready" | "data_loaded" | "closed"
    loading: bool
    error: Optional[str] = None
    marker_count: int
    last_loaded_at: Optional[datetime] = None


class PickRequest(BaseModel):
    """A hover or click forwarded from the map page."""

    kind: Literal["hover", "click"]
    index: Optional[int] = Field(default=None, ge=0)   # None = pointer over empty map
    x: float = 0
    y: float = 0


class TooltipOut(BaseModel):
    x: float
    y: float
    title: str
    source_url: Optional[str] = None
    place_name: Optional[str] = None
    tone: float


class PickResponse(BaseModel):
    tooltip: Optional[TooltipOut] = None
    navigate_to: Optional[str] = None
