"""Marker and route-overlay reconciliation.

:class:`MapReconciler` exclusively owns the map instance, its markers and
the route overlay. Nothing else may add or remove layers on that map.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from html import escape
from typing import Any

from soucare._api._fallback import FallbackOutcome
from soucare._constants import ROUTE_UNAVAILABLE_MESSAGE, STATUS_COLORS
from soucare.config import SoucareConfig
from soucare.exceptions import SoucareError
from soucare.mapview.surface import Bounds, Coordinate, Layer, MapHandle, MarkerStyle, PolylineStyle, RenderingSurface
from soucare.models.route import RoutePoint
from soucare.models.row import DerivedRow, DeviceStatus

_logger = logging.getLogger(__name__)

RouteFetcher = Callable[[int], Awaitable[FallbackOutcome[list[RoutePoint]]]]


def marker_style(status: DeviceStatus) -> MarkerStyle:
    return MarkerStyle(color=STATUS_COLORS.get(status.value, STATUS_COLORS[DeviceStatus.GREEN.value]))


def popup_html(row: DerivedRow) -> str:
    """Popup body for *row*; every text value is HTML-escaped."""
    return (
        '<div style="min-width:180px">'
        f'<div style="font-weight:700">{escape(row.label)}</div>'
        f'<div style="font-size:12px;opacity:.8">Last seen: {escape(row.last_seen_text)}</div>'
        f'<div style="font-size:12px;opacity:.8">Battery: {escape(row.battery_text)}</div>'
        f'<div style="font-size:12px;opacity:.8">Lat/Lng: {row.lat:.5f}, {row.lng:.5f}</div>'
        "</div>"
    )


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def initial_center(rows: Sequence[DerivedRow], default: Coordinate) -> Coordinate:
    for row in rows:
        if row.has_fix:
            return (row.lat, row.lng)  # type: ignore[return-value]
    return default


class MapReconciler:
    """Keeps one map in step with the latest derived rows.

    Usage::

        reconciler = MapReconciler(fetch_route, config)
        reconciler.attach(surface, rows)
        reconciler.reconcile(new_rows)
        await reconciler.select(device_id)
        reconciler.detach()
    """

    def __init__(self, route_fetcher: RouteFetcher | None = None, config: SoucareConfig | None = None) -> None:
        self._route_fetcher = route_fetcher
        self._config = config or SoucareConfig()
        self._map: MapHandle | None = None
        self._markers: list[Layer] = []
        self._overlay: Layer | None = None
        self._rows: tuple[DerivedRow, ...] | None = None
        self._selected: int | None = None
        self._selection_generation = 0
        self._route_message = ""
        self._route_tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def attached(self) -> bool:
        return self._map is not None

    @property
    def map(self) -> MapHandle | None:
        return self._map

    @property
    def markers(self) -> tuple[Layer, ...]:
        return tuple(self._markers)

    @property
    def overlay(self) -> Layer | None:
        return self._overlay

    @property
    def selected_device_id(self) -> int | None:
        return self._selected

    @property
    def route_message(self) -> str:
        return self._route_message

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self, surface: RenderingSurface, rows: Sequence[DerivedRow] = ()) -> MapHandle:
        """Create the map once; later calls while attached return the same map.

        A selection that survived a :meth:`detach` gets its route redrawn on
        the new map.
        """
        if self._map is not None:
            return self._map
        center = initial_center(rows, self._config.default_center)
        self._map = surface.create_map(center, self._config.initial_zoom)
        _logger.debug("Map created at %s zoom=%s", center, self._config.initial_zoom)
        self._rows = None
        self.reconcile(rows)
        if self._selected is not None and self._route_fetcher is not None:
            if _loop_running():
                self._spawn(self.reload_route())
            else:
                _logger.debug("Map attached outside an event loop; route for %s not reloaded", self._selected)
        return self._map

    def detach(self) -> None:
        """Drop every layer and the map; pending route loads are cancelled."""
        self._selection_generation += 1
        for task in list(self._route_tasks):
            task.cancel()
        self._route_tasks.clear()
        self._clear_markers()
        self._retire_overlay()
        if self._map is not None:
            self._map.remove()
        self._map = None
        self._rows = None

    # ------------------------------------------------------------------
    # Markers and viewport
    # ------------------------------------------------------------------

    def reconcile(self, rows: Sequence[DerivedRow]) -> None:
        """Replace all markers with one per row that has a fix, then fit the view."""
        if self._map is None:
            return
        snapshot = tuple(rows)
        if snapshot == self._rows:
            return
        self._rows = snapshot

        self._clear_markers()
        valid = [row for row in snapshot if row.has_fix]
        for row in valid:
            marker = self._map.add_circle_marker(
                (row.lat, row.lng),  # type: ignore[arg-type]
                marker_style(row.status),
                popup_html(row),
                functools.partial(self._on_marker_click, row.device_id),
            )
            self._markers.append(marker)

        self._fit_view([(row.lat, row.lng) for row in valid])  # type: ignore[misc]

    def _fit_view(self, coordinates: Sequence[Coordinate]) -> None:
        if self._map is None or not coordinates:
            return
        if len(coordinates) == 1:
            self._map.set_view(coordinates[0], self._config.single_marker_zoom)
            return
        self._map.fit_bounds(Bounds.from_points(coordinates).pad(self._config.fit_padding))

    def _clear_markers(self) -> None:
        markers, self._markers = self._markers, []
        for marker in markers:
            marker.remove()

    # ------------------------------------------------------------------
    # Selection and route overlay
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._route_tasks.add(task)
        task.add_done_callback(self._route_tasks.discard)

    def _on_marker_click(self, device_id: int) -> None:
        if not _loop_running():
            _logger.debug("Marker click outside an event loop; route not loaded")
            self._begin_selection(device_id)
            return
        self._spawn(self.select(device_id))

    async def wait_for_route(self) -> None:
        """Wait for route loads started by marker clicks or a re-attach."""
        if self._route_tasks:
            await asyncio.gather(*list(self._route_tasks), return_exceptions=True)

    def _begin_selection(self, device_id: int | None) -> int:
        self._selection_generation += 1
        self._selected = device_id
        self._route_message = ""
        self._retire_overlay()
        return self._selection_generation

    def _retire_overlay(self) -> None:
        overlay, self._overlay = self._overlay, None
        if overlay is not None:
            overlay.remove()

    async def select(self, device_id: int | None) -> None:
        """Select *device_id* and draw its route; no-op if it is already selected."""
        if device_id == self._selected:
            return
        await self._load_route(self._begin_selection(device_id), device_id)

    async def reload_route(self) -> None:
        """Fetch and redraw the route of the current selection."""
        device_id = self._selected
        await self._load_route(self._begin_selection(device_id), device_id)

    async def _load_route(self, generation: int, device_id: int | None) -> None:
        if device_id is None or self._map is None or self._route_fetcher is None:
            return
        try:
            points = (await self._route_fetcher(device_id)).unwrap()
        except SoucareError as exc:
            if generation == self._selection_generation:
                _logger.debug("Route for device %s unavailable: %s", device_id, exc)
                self._route_message = ROUTE_UNAVAILABLE_MESSAGE
            return

        if generation != self._selection_generation or self._map is None:
            _logger.debug("Discarding route for device %s, selection changed", device_id)
            return
        coordinates = [point.as_tuple() for point in points if point.has_fix]
        if len(coordinates) < 2:
            return
        self._overlay = self._map.add_polyline(coordinates, PolylineStyle())
