"""
marker.py — Derived visual types for the map overlay.

VisualMarker is never persisted: it is recomputed from the current
EventRecord set on every refresh (see services/visual_mapping.py).
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from eventmap.models.event import EventRecord

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class MarkerStyle:
    """Radius policy for the scatter layer."""

    size_by_mentions: bool = False
    radius_scale: float = 3.0
    radius_min_pixels: float = 5.0
    radius_max_pixels: float = 100.0


@dataclass(frozen=True)
class VisualMarker:
    """The positioned, coloured, sized representation of one EventRecord."""

    position: tuple[float, float]   # (longitude, latitude)
    fill_color: RGB
    radius: float                   # on-screen pixels
    line_color: RGB
    line_width: float
    title: str
    record: EventRecord

    def to_layer_datum(self) -> dict:
        """Flatten to the plain dict a deck.gl layer consumes."""
        return {
            "position": list(self.position),
            "fill_color": list(self.fill_color),
            "line_color": list(self.line_color),
            "radius": self.radius,
            "title": self.title,
            "source_url": self.record.source_url or "",
            "place_name": self.record.place_name or "",
            "tone": round(self.record.tone, 2),
            "mentions": self.record.mention_count if self.record.mention_count is not None else "",
            "event_id": str(self.record.id),
        }


class MarkerOut(BaseModel):
    """JSON shape of one marker returned by GET /dashboard/markers."""

    event_id: str
    longitude: float
    latitude: float
    fill_color: list[int]
    radius: float
    title: str
    source_url: Optional[str] = None

    @classmethod
    def from_marker(cls, marker: VisualMarker) -> "MarkerOut":
        return cls(
            event_id=str(marker.record.id),
            longitude=marker.position[0],
            latitude=marker.position[1],
            fill_color=list(marker.fill_color),
            radius=marker.radius,
            title=marker.title,
            source_url=marker.record.source_url,
        )
