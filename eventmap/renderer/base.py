"""
Capability interfaces between the overlay session and a map engine.

The session only talks to these protocols, so a test double (or a different
engine) can stand in for the pydeck implementation:

    MapProvider.create_surface(mount_point, options) -> Surface
    MapProvider.create_overlay(surface)              -> Overlay

Pointer events flow the other way: the engine delivers them to the surface
via dispatch(), and the surface fans them out to subscribed handlers. Every
subscription returns an unsubscribe callable that the session releases on
teardown.
"""

from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Protocol, Sequence

from eventmap.models.marker import VisualMarker

EventKind = Literal["hover", "click"]


@dataclass(frozen=True)
class PickInfo:
    """What the engine's picking resolved under the pointer."""

    index: Optional[int]    # marker index, None when over empty map
    x: float = 0.0
    y: float = 0.0


PickHandler = Callable[[PickInfo], Any]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class SurfaceOptions:
    """Initial view and basemap settings for a drawing surface."""

    latitude: float = 35.68
    longitude: float = 139.76
    zoom: float = 5
    map_style: str = "roadmap"
    radius_min_pixels: float = 5.0
    radius_max_pixels: float = 100.0

    @classmethod
    def from_settings(cls, settings) -> "SurfaceOptions":
        return cls(
            latitude=settings.initial_latitude,
            longitude=settings.initial_longitude,
            zoom=settings.initial_zoom,
            map_style=settings.map_style,
            radius_min_pixels=settings.marker_radius_min_pixels,
            radius_max_pixels=settings.marker_radius_max_pixels,
        )


class Surface(Protocol):
    def subscribe(self, kind: EventKind, handler: PickHandler) -> Unsubscribe: ...

    def dispatch(self, kind: EventKind, pick: PickInfo) -> None: ...

    def destroy(self) -> None: ...


class Overlay(Protocol):
    def set_markers(self, markers: Sequence[VisualMarker]) -> None: ...


class MapProvider(Protocol):
    def create_surface(self, mount_point: Any, options: SurfaceOptions) -> Surface: ...

    def create_overlay(self, surface: Surface) -> Overlay: ...
