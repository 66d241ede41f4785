"""Route report endpoint.

Endpoints (proxy, then direct):
  - /api/traccar/reports/route
  - /api/reports/route

The direct endpoint answers with a spreadsheet unless JSON is requested
explicitly.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from soucare._api._fallback import EndpointStrategy, FallbackOutcome, attempt_in_order
from soucare._transport import Transport
from soucare.config import SoucareConfig
from soucare.ingestion.normalize import isoformat_utc
from soucare.ingestion.payloads import parse_route
from soucare.models.credential import Credential
from soucare.models.route import RoutePoint


def route_params(device_id: int, *, now: datetime, window: timedelta) -> dict[str, str]:
    return {
        "deviceId": str(device_id),
        "from": isoformat_utc(now - window),
        "to": isoformat_utc(now),
    }


async def fetch_route(
    config: SoucareConfig,
    transport: Transport,
    credential: Credential,
    device_id: int,
    *,
    now: datetime | None = None,
    window: timedelta | None = None,
) -> FallbackOutcome[list[RoutePoint]]:
    """Fetch the route of *device_id* over ``[now - window, now]``."""
    if now is None:
        now = datetime.now(UTC)
    if window is None:
        window = timedelta(hours=config.route_window)
    params = route_params(device_id, now=now, window=window)
    endpoints = config.endpoints

    async def _proxy() -> list[RoutePoint]:
        payload = await transport.call(endpoints.route, credential=credential, params=params)
        return parse_route(payload, endpoint=endpoints.route)

    async def _direct() -> list[RoutePoint]:
        payload = await transport.call(
            endpoints.route_direct,
            credential=credential,
            params=params,
            headers={"Accept": "application/json"},
        )
        return parse_route(payload, endpoint=endpoints.route_direct)

    return await attempt_in_order([EndpointStrategy("proxy", _proxy), EndpointStrategy("direct", _direct)])
