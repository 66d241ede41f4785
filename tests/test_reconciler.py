from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from soucare._api._fallback import FallbackOutcome
from soucare._constants import DEFAULT_CENTER, ROUTE_COLOR, ROUTE_UNAVAILABLE_MESSAGE, STATUS_COLORS
from soucare.exceptions import SoucareError, SoucareNetworkError
from soucare.mapview import MapReconciler, RecordingSurface
from soucare.mapview.reconciler import initial_center, popup_html
from soucare.mapview.surface import Bounds, Layer, RecordingMap
from soucare.models import DerivedRow, DeviceStatus, RoutePoint


def _row(device_id: int, lat: float | None = -23.5, lng: float | None = -46.6, **overrides: object) -> DerivedRow:
    values: dict[str, object] = {
        "device_id": device_id,
        "label": f"Device {device_id}",
        "status": DeviceStatus.GREEN,
        "last_seen_text": "now",
        "battery_text": "50%",
        "lat": lat,
        "lng": lng,
    }
    values.update(overrides)
    return DerivedRow.model_validate(values)


@dataclass
class FakeRoutes:
    routes: dict[int, list[tuple[float, float]]] = field(default_factory=dict)
    errors: dict[int, SoucareError] = field(default_factory=dict)
    gates: dict[int, asyncio.Event] = field(default_factory=dict)
    calls: list[int] = field(default_factory=list)
    overlay_at_call: list[Layer | None] = field(default_factory=list)
    reconciler: MapReconciler | None = None

    async def __call__(self, device_id: int) -> FallbackOutcome[list[RoutePoint]]:
        self.calls.append(device_id)
        if self.reconciler is not None:
            self.overlay_at_call.append(self.reconciler.overlay)
        gate = self.gates.get(device_id)
        if gate is not None:
            await gate.wait()
        if device_id in self.errors:
            return FallbackOutcome(errors=[("proxy", self.errors[device_id])])
        points = [RoutePoint(latitude=lat, longitude=lng) for lat, lng in self.routes.get(device_id, [])]
        return FallbackOutcome(value=points, strategy="proxy")


def _attached(rows: list[DerivedRow], routes: FakeRoutes | None = None) -> tuple[MapReconciler, RecordingMap]:
    reconciler = MapReconciler(routes)
    if routes is not None:
        routes.reconciler = reconciler
    surface = RecordingSurface()
    reconciler.attach(surface, rows)
    return reconciler, surface.maps[0]


def test_attach_creates_the_map_once() -> None:
    surface = RecordingSurface()
    reconciler = MapReconciler()
    first = reconciler.attach(surface, [_row(1)])
    second = reconciler.attach(surface, [_row(1), _row(2, -23.6, -46.7)])
    assert first is second
    assert len(surface.maps) == 1
    assert reconciler.attached


def test_initial_center_prefers_first_row_with_a_fix() -> None:
    rows = [_row(1, None, None), _row(2, -22.9, -43.2)]
    assert initial_center(rows, DEFAULT_CENTER) == (-22.9, -43.2)
    assert initial_center([_row(1, None, None)], DEFAULT_CENTER) == DEFAULT_CENTER


def test_no_valid_rows_leaves_the_view_alone() -> None:
    reconciler, recording = _attached([_row(1, None, None)])
    assert recording.center == DEFAULT_CENTER
    assert recording.zoom == 13
    assert recording.markers == []
    assert recording.fitted == []
    assert reconciler.markers == ()


def test_single_row_centers_at_street_zoom() -> None:
    _, recording = _attached([_row(1, -23.1, -46.2), _row(2, None, None)])
    assert recording.center == (-23.1, -46.2)
    assert recording.zoom == 16
    assert len(recording.markers) == 1


def test_many_rows_fit_padded_bounds() -> None:
    coordinates = [(-23.50, -46.60), (-23.58, -46.70), (-23.52, -46.65)]
    _, recording = _attached([_row(i, lat, lng) for i, (lat, lng) in enumerate(coordinates)])
    bounds = recording.fitted[-1]
    assert all(bounds.contains(coordinate) for coordinate in coordinates)
    tight = Bounds.from_points(coordinates)
    assert bounds.south < tight.south and bounds.north > tight.north
    assert bounds.west < tight.west and bounds.east > tight.east


def test_reconcile_replaces_every_marker() -> None:
    reconciler, recording = _attached([_row(1), _row(2, -23.6, -46.7), _row(3, -23.7, -46.8)])
    old = list(recording.markers)

    reconciler.reconcile([_row(4, -23.9, -46.9)])

    assert all(marker.removed for marker in old)
    assert [marker.coordinate for marker in recording.markers] == [(-23.9, -46.9)]
    assert len(reconciler.markers) == 1


def test_reconcile_with_identical_rows_keeps_markers() -> None:
    rows = [_row(1), _row(2, -23.6, -46.7)]
    reconciler, recording = _attached(rows)
    before = list(recording.markers)
    reconciler.reconcile(list(rows))
    assert recording.markers == before
    assert len(recording.fitted) == 1


def test_marker_style_and_popup_follow_the_row() -> None:
    row = _row(1, status=DeviceStatus.YELLOW, label="<b>Ana</b>", battery_text="12%", last_seen_text="3 min")
    _, recording = _attached([row])
    (marker,) = recording.markers
    assert marker.style.color == STATUS_COLORS["yellow"]
    assert "&lt;b&gt;Ana&lt;/b&gt;" in marker.popup_html
    assert "<b>Ana" not in marker.popup_html
    assert "Battery: 12%" in marker.popup_html
    assert "Last seen: 3 min" in marker.popup_html
    assert "-23.50000, -46.60000" in popup_html(row)


@pytest.mark.asyncio
async def test_select_draws_the_route_overlay() -> None:
    routes = FakeRoutes(routes={3: [(-23.5, -46.6), (-23.51, -46.61)]})
    reconciler, recording = _attached([_row(3)], routes)

    await reconciler.select(3)

    assert reconciler.selected_device_id == 3
    (line,) = recording.polylines
    assert line is reconciler.overlay
    assert line.points == ((-23.5, -46.6), (-23.51, -46.61))
    assert line.style.color == ROUTE_COLOR

    await reconciler.select(3)
    assert routes.calls == [3]


@pytest.mark.asyncio
async def test_previous_overlay_is_removed_before_the_next_fetch() -> None:
    routes = FakeRoutes(routes={3: [(0.0, 0.0), (1.0, 1.0)], 7: [(2.0, 2.0), (3.0, 3.0)]})
    reconciler, recording = _attached([_row(3), _row(7, -23.6, -46.7)], routes)

    await reconciler.select(3)
    first = reconciler.overlay
    await reconciler.select(7)

    assert routes.overlay_at_call == [None, None]
    assert first is not None and first.removed
    assert [line.points[0] for line in recording.polylines] == [(2.0, 2.0)]


@pytest.mark.asyncio
async def test_short_route_draws_nothing() -> None:
    routes = FakeRoutes(routes={3: [(0.0, 0.0)]})
    reconciler, recording = _attached([_row(3)], routes)

    await reconciler.select(3)

    assert reconciler.overlay is None
    assert recording.polylines == []
    assert reconciler.route_message == ""


@pytest.mark.asyncio
async def test_route_failure_sets_message_and_keeps_map() -> None:
    routes = FakeRoutes(errors={3: SoucareNetworkError("down")}, routes={4: [(0.0, 0.0), (1.0, 1.0)]})
    reconciler, recording = _attached([_row(3), _row(4, -23.6, -46.7)], routes)

    await reconciler.select(3)
    assert reconciler.route_message == ROUTE_UNAVAILABLE_MESSAGE
    assert reconciler.overlay is None
    assert len(recording.markers) == 2

    await reconciler.select(4)
    assert reconciler.route_message == ""
    assert reconciler.overlay is not None


@pytest.mark.asyncio
async def test_superseded_selection_never_draws() -> None:
    routes = FakeRoutes(
        routes={3: [(0.0, 0.0), (1.0, 1.0)], 7: [(2.0, 2.0), (3.0, 3.0)]},
        gates={3: asyncio.Event()},
    )
    reconciler, recording = _attached([_row(3), _row(7, -23.6, -46.7)], routes)

    slow = asyncio.create_task(reconciler.select(3))
    await asyncio.sleep(0)
    await reconciler.select(7)
    routes.gates[3].set()
    await slow

    assert reconciler.selected_device_id == 7
    assert [line.points[0] for line in recording.polylines] == [(2.0, 2.0)]


@pytest.mark.asyncio
async def test_marker_click_selects_the_device() -> None:
    routes = FakeRoutes(routes={2: [(0.0, 0.0), (1.0, 1.0)]})
    reconciler, recording = _attached([_row(1), _row(2, -23.6, -46.7)], routes)

    recording.markers[1].click()
    for _ in range(3):
        await asyncio.sleep(0)

    assert reconciler.selected_device_id == 2
    assert routes.calls == [2]
    assert len(recording.polylines) == 1


@pytest.mark.asyncio
async def test_reload_route_fetches_again() -> None:
    routes = FakeRoutes(routes={3: [(0.0, 0.0), (1.0, 1.0)]})
    reconciler, recording = _attached([_row(3)], routes)

    await reconciler.select(3)
    await reconciler.reload_route()

    assert routes.calls == [3, 3]
    assert len(recording.polylines) == 1


def test_detach_releases_the_map() -> None:
    reconciler, recording = _attached([_row(1), _row(2, -23.6, -46.7)])

    reconciler.detach()

    assert recording.removed
    assert not reconciler.attached
    assert reconciler.markers == ()
    reconciler.reconcile([_row(3)])
    assert recording.markers == []


def test_reattach_after_detach_creates_a_new_map() -> None:
    surface = RecordingSurface()
    reconciler = MapReconciler()
    reconciler.attach(surface, [_row(1)])
    reconciler.detach()
    reconciler.attach(surface, [_row(1)])
    assert len(surface.maps) == 2
    assert len(surface.maps[1].markers) == 1


@pytest.mark.asyncio
async def test_reattach_redraws_the_selected_route() -> None:
    routes = FakeRoutes(routes={3: [(0.0, 0.0), (1.0, 1.0)]})
    surface = RecordingSurface()
    reconciler = MapReconciler(routes)
    routes.reconciler = reconciler
    reconciler.attach(surface, [_row(3)])
    await reconciler.select(3)

    reconciler.detach()
    reconciler.attach(surface, [_row(3)])
    await reconciler.wait_for_route()

    assert reconciler.selected_device_id == 3
    assert routes.calls == [3, 3]
    (line,) = surface.maps[1].polylines
    assert line is reconciler.overlay
    assert surface.maps[0].polylines == []
