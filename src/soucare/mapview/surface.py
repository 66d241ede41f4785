"""Rendering surface capabilities consumed by the map reconciler.

The actual drawing library lives outside soucare. Anything that can
create a map, place circle markers and polylines, and fit a bounding box
satisfies :class:`RenderingSurface`. :class:`RecordingSurface` is an
in-process implementation that only records what would be drawn; the
console monitor and the tests use it.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from soucare._constants import ROUTE_COLOR

Coordinate = tuple[float, float]

_MAX_ZOOM = 18


@dataclass(frozen=True, slots=True)
class MarkerStyle:
    color: str
    radius: int = 10
    weight: int = 2
    fill_opacity: float = 0.65


@dataclass(frozen=True, slots=True)
class PolylineStyle:
    color: str = ROUTE_COLOR
    weight: int = 4
    opacity: float = 0.8


@dataclass(frozen=True, slots=True)
class Bounds:
    """Axis-aligned lat/lng box."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_points(cls, points: Iterable[Coordinate]) -> Bounds:
        lats: list[float] = []
        lngs: list[float] = []
        for lat, lng in points:
            lats.append(lat)
            lngs.append(lng)
        if not lats:
            raise ValueError("Bounds need at least one point")
        return cls(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))

    def pad(self, ratio: float) -> Bounds:
        """Grow each side by *ratio* of the span, like Leaflet's ``LatLngBounds.pad``."""
        lat_buffer = abs(self.north - self.south) * ratio
        lng_buffer = abs(self.east - self.west) * ratio
        return Bounds(
            south=self.south - lat_buffer,
            west=self.west - lng_buffer,
            north=self.north + lat_buffer,
            east=self.east + lng_buffer,
        )

    def contains(self, point: Coordinate) -> bool:
        lat, lng = point
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    @property
    def center(self) -> Coordinate:
        return ((self.south + self.north) / 2, (self.west + self.east) / 2)


class Layer(Protocol):
    def remove(self) -> None:
        ...


class MapHandle(Protocol):
    """A live map instance."""

    @property
    def center(self) -> Coordinate:
        ...

    @property
    def zoom(self) -> float:
        ...

    def set_view(self, center: Coordinate, zoom: float) -> None:
        ...

    def fit_bounds(self, bounds: Bounds) -> None:
        ...

    def add_circle_marker(
        self,
        coordinate: Coordinate,
        style: MarkerStyle,
        popup_html: str,
        on_click: Callable[[], None],
    ) -> Layer:
        ...

    def add_polyline(self, points: Sequence[Coordinate], style: PolylineStyle) -> Layer:
        ...

    def remove(self) -> None:
        ...


class RenderingSurface(Protocol):
    def create_map(self, center: Coordinate, zoom: float) -> MapHandle:
        ...


@dataclass(eq=False)
class RecordedMarker:
    owner: RecordingMap
    coordinate: Coordinate
    style: MarkerStyle
    popup_html: str
    on_click: Callable[[], None]
    removed: bool = False

    def click(self) -> None:
        self.on_click()

    def remove(self) -> None:
        self.removed = True
        self.owner._discard(self)


@dataclass(eq=False)
class RecordedPolyline:
    owner: RecordingMap
    points: tuple[Coordinate, ...]
    style: PolylineStyle
    removed: bool = False

    def remove(self) -> None:
        self.removed = True
        self.owner._discard(self)


def zoom_for_bounds(bounds: Bounds, *, width_px: int, height_px: int, tile_size: int = 256) -> float:
    """Largest integer zoom at which *bounds* fits a viewport (equirectangular estimate)."""
    lng_span = max(bounds.east - bounds.west, 1e-9)
    lat_span = max(bounds.north - bounds.south, 1e-9)
    by_width = math.log2(360.0 * width_px / (lng_span * tile_size))
    by_height = math.log2(180.0 * height_px / (lat_span * tile_size))
    return float(max(0, min(_MAX_ZOOM, math.floor(min(by_width, by_height)))))


@dataclass(eq=False)
class RecordingMap:
    center: Coordinate
    zoom: float
    width_px: int = 800
    height_px: int = 520
    markers: list[RecordedMarker] = field(default_factory=list)
    polylines: list[RecordedPolyline] = field(default_factory=list)
    fitted: list[Bounds] = field(default_factory=list)
    removed: bool = False

    def set_view(self, center: Coordinate, zoom: float) -> None:
        self.center = center
        self.zoom = zoom

    def fit_bounds(self, bounds: Bounds) -> None:
        self.fitted.append(bounds)
        self.center = bounds.center
        self.zoom = zoom_for_bounds(bounds, width_px=self.width_px, height_px=self.height_px)

    def add_circle_marker(
        self,
        coordinate: Coordinate,
        style: MarkerStyle,
        popup_html: str,
        on_click: Callable[[], None],
    ) -> RecordedMarker:
        marker = RecordedMarker(self, coordinate, style, popup_html, on_click)
        self.markers.append(marker)
        return marker

    def add_polyline(self, points: Sequence[Coordinate], style: PolylineStyle) -> RecordedPolyline:
        line = RecordedPolyline(self, tuple(points), style)
        self.polylines.append(line)
        return line

    def remove(self) -> None:
        self.removed = True
        self.markers.clear()
        self.polylines.clear()

    def _discard(self, layer: RecordedMarker | RecordedPolyline) -> None:
        if isinstance(layer, RecordedMarker):
            if layer in self.markers:
                self.markers.remove(layer)
        elif layer in self.polylines:
            self.polylines.remove(layer)


@dataclass(eq=False)
class RecordingSurface:
    """Headless surface; every created map is kept in ``maps``."""

    width_px: int = 800
    height_px: int = 520
    maps: list[RecordingMap] = field(default_factory=list)

    def create_map(self, center: Coordinate, zoom: float) -> RecordingMap:
        created = RecordingMap(center=center, zoom=zoom, width_px=self.width_px, height_px=self.height_px)
        self.maps.append(created)
        return created
