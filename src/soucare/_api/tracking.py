"""Device and position endpoints.

Endpoints (proxy, then direct):
  - /api/traccar/devices, /api/devices
  - /api/traccar/positions, /api/positions
"""

from __future__ import annotations

import asyncio
import logging

from soucare._api._fallback import EndpointStrategy, FallbackOutcome, attempt_in_order
from soucare._transport import Transport
from soucare.config import SoucareConfig
from soucare.exceptions import SoucareError
from soucare.ingestion.payloads import parse_devices, parse_positions
from soucare.models.credential import Credential
from soucare.models.device import Device
from soucare.models.frame import TrackingFrame
from soucare.models.position import Position

_logger = logging.getLogger(__name__)


async def fetch_devices(transport: Transport, endpoint: str, credential: Credential) -> list[Device]:
    payload = await transport.call(endpoint, credential=credential)
    return parse_devices(payload, endpoint=endpoint)


async def fetch_positions(transport: Transport, endpoint: str, credential: Credential) -> list[Position]:
    payload = await transport.call(endpoint, credential=credential)
    return parse_positions(payload, endpoint=endpoint)


async def fetch_frame_pair(
    transport: Transport,
    credential: Credential,
    *,
    devices_endpoint: str,
    positions_endpoint: str,
) -> TrackingFrame:
    """Fetch devices and positions concurrently; fail if either fails."""
    results = await asyncio.gather(
        fetch_devices(transport, devices_endpoint, credential),
        fetch_positions(transport, positions_endpoint, credential),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, SoucareError):
            raise result
    for result in results:
        if isinstance(result, SoucareError):
            raise result
    devices, positions = results
    return TrackingFrame(devices=tuple(devices), positions=tuple(positions))  # type: ignore[arg-type]


def frame_strategies(
    config: SoucareConfig,
    transport: Transport,
    credential: Credential,
) -> list[EndpointStrategy[TrackingFrame]]:
    endpoints = config.endpoints

    async def _proxy() -> TrackingFrame:
        return await fetch_frame_pair(
            transport,
            credential,
            devices_endpoint=endpoints.devices,
            positions_endpoint=endpoints.positions,
        )

    async def _direct() -> TrackingFrame:
        return await fetch_frame_pair(
            transport,
            credential,
            devices_endpoint=endpoints.devices_direct,
            positions_endpoint=endpoints.positions_direct,
        )

    return [EndpointStrategy("proxy", _proxy), EndpointStrategy("direct", _direct)]


async def fetch_frame(
    config: SoucareConfig,
    transport: Transport,
    credential: Credential,
) -> FallbackOutcome[TrackingFrame]:
    """Poll devices and positions, proxy pair first, direct pair second."""
    outcome = await attempt_in_order(frame_strategies(config, transport, credential))
    if outcome.ok:
        frame = outcome.value
        assert frame is not None  # noqa: S101
        _logger.debug(
            "Frame via %s: devices=%d positions=%d",
            outcome.strategy,
            len(frame.devices),
            len(frame.positions),
        )
    return outcome
