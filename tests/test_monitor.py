from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from soucare.client import SoucareClient
from soucare.config import EndpointSet, SoucareConfig
from soucare.exceptions import SoucareError
from soucare.live import DataSourceMode
from soucare.mapview import RecordingSurface
from soucare.models import AuthMode, Credential
from soucare.monitor import Monitor

ENDPOINTS = EndpointSet()


@dataclass
class FakeBackend:
    route_calls: list[dict[str, str]] = field(default_factory=list)
    calls: dict[str, int] = field(default_factory=dict)

    async def call(self, endpoint: str, *, credential: Credential, params: Any = None, **_kwargs: Any) -> Any:
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1
        if credential.mode == AuthMode.NONE:
            return None
        stamp = datetime.now(UTC).isoformat()
        if endpoint == ENDPOINTS.login:
            return {"token": "tok-e2e"}
        if endpoint == ENDPOINTS.devices:
            return [{"id": 1, "name": "Ana"}, {"id": 2, "name": "Bia"}, {"id": 3, "name": "Caio"}]
        if endpoint == ENDPOINTS.positions:
            return [
                {"id": 10, "deviceId": 1, "latitude": -23.55, "longitude": -46.63, "deviceTime": stamp},
                {"id": 20, "deviceId": 2, "latitude": -23.56, "longitude": -46.64, "deviceTime": stamp},
            ]
        if endpoint == ENDPOINTS.route:
            self.route_calls.append(dict(params))
            offset = int(params["deviceId"]) / 100
            return [
                {"latitude": -23.5 - offset, "longitude": -46.6},
                {"latitude": -23.51 - offset, "longitude": -46.61},
            ]
        return None


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_live_session_end_to_end() -> None:
    backend = FakeBackend()
    surface = RecordingSurface()
    client = SoucareClient(SoucareConfig(), transport=backend)
    credential = await client.login("nurse@example.com", "pw")
    assert credential == Credential.bearer("tok-e2e")

    async with Monitor(client) as monitor:
        await monitor.start(credential, surface)
        await monitor.source.wait_for_poll()
        await monitor.wait_for_route()

        recording = surface.maps[0]
        assert [row.device_id for row in monitor.rows] == [1, 2, 3]
        assert len(recording.markers) == 2
        assert (monitor.counts.green, monitor.counts.gray) == (2, 1)
        assert monitor.reconciler.selected_device_id == 1
        assert [call["deviceId"] for call in backend.route_calls] == ["1"]
        assert len(recording.polylines) == 1

        recording.markers[1].click()
        for _ in range(5):
            await asyncio.sleep(0)

        assert monitor.reconciler.selected_device_id == 2
        assert [call["deviceId"] for call in backend.route_calls] == ["1", "2"]
        (line,) = recording.polylines
        assert line.points[0] == pytest.approx((-23.52, -46.6))

    assert recording.removed
    assert monitor.source.mode == DataSourceMode.CLOSED


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_demo_session_end_to_end() -> None:
    backend = FakeBackend()
    surface = RecordingSurface()
    client = SoucareClient(SoucareConfig(), transport=backend)

    async with Monitor(client) as monitor:
        await monitor.start(client.enter_demo(), surface)
        await monitor.wait_for_route()

        recording = surface.maps[0]
        assert len(recording.markers) == 3
        assert monitor.counts.green == 3
        assert monitor.reconciler.selected_device_id == 101
        assert recording.polylines == []
        assert monitor.reconciler.route_message == ""
    assert backend.route_calls == []


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_switching_sessions_resets_the_selection() -> None:
    backend = FakeBackend()
    surface = RecordingSurface()
    client = SoucareClient(SoucareConfig(), transport=backend)

    async with Monitor(client) as monitor:
        await monitor.start(Credential.bearer("abc"), surface)
        await monitor.source.wait_for_poll()
        await monitor.wait_for_route()
        recording = surface.maps[0]
        assert len(recording.polylines) == 1

        await monitor.start(Credential.demo())
        await monitor.wait_for_route()

        assert len(surface.maps) == 1
        assert monitor.reconciler.selected_device_id == 101
        assert recording.polylines == []
        assert [marker.coordinate[0] for marker in recording.markers] == [
            position.latitude for position in monitor.source.positions
        ]


@pytest.mark.asyncio
async def test_client_requires_a_session() -> None:
    client = SoucareClient(SoucareConfig(), transport=FakeBackend())
    with pytest.raises(SoucareError):
        await client.fetch_frame()
    client.enter_demo()
    outcome = await client.fetch_frame()
    assert outcome.ok
    assert outcome.value is not None and outcome.value.devices == ()


@pytest.mark.asyncio
async def test_client_without_context_manager_fails() -> None:
    client = SoucareClient(SoucareConfig())
    with pytest.raises(SoucareError):
        await client.login("a@example.com", "pw")


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_remounted_map_gets_the_route_back() -> None:
    backend = FakeBackend()
    surface = RecordingSurface()
    client = SoucareClient(SoucareConfig(), transport=backend)

    async with Monitor(client) as monitor:
        await monitor.start(Credential.bearer("abc"), surface)
        await monitor.source.wait_for_poll()
        await monitor.wait_for_route()

        monitor.detach()
        monitor.attach(surface)
        await monitor.wait_for_route()

        remounted = surface.maps[1]
        assert len(remounted.markers) == 2
        assert len(remounted.polylines) == 1
        assert monitor.reconciler.selected_device_id == 1
        assert [call["deviceId"] for call in backend.route_calls] == ["1", "1"]
