"""Map projection of the derived rows."""

from soucare.mapview.reconciler import MapReconciler, RouteFetcher, marker_style, popup_html
from soucare.mapview.surface import (
    Bounds,
    Coordinate,
    Layer,
    MapHandle,
    MarkerStyle,
    PolylineStyle,
    RecordingSurface,
    RenderingSurface,
)

__all__ = [
    "Bounds",
    "Coordinate",
    "Layer",
    "MapHandle",
    "MapReconciler",
    "MarkerStyle",
    "PolylineStyle",
    "RecordingSurface",
    "RenderingSurface",
    "RouteFetcher",
    "marker_style",
    "popup_html",
]
