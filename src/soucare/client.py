"""High-level async client for the tracking backend."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

import aiohttp

from soucare._api import reports as _reports_api
from soucare._api import session as _session_api
from soucare._api import tracking as _tracking_api
from soucare._api._fallback import FallbackOutcome
from soucare._transport import HttpTransport, Transport
from soucare.config import SoucareConfig
from soucare.exceptions import SoucareError
from soucare.models.credential import Credential
from soucare.models.device import Device
from soucare.models.frame import TrackingFrame
from soucare.models.position import Position
from soucare.models.route import RoutePoint

_logger = logging.getLogger(__name__)


class SoucareClient:
    """Async client for the device tracking API.

    Usage::

        async with SoucareClient(config) as client:
            await client.login("user@example.com", "secret")
            outcome = await client.fetch_frame()
    """

    def __init__(
        self,
        config: SoucareConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        credential: Credential | None = None,
    ) -> None:
        self._config = config or SoucareConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None
        self._credential = credential

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SoucareClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    @property
    def config(self) -> SoucareConfig:
        return self._config

    @property
    def credential(self) -> Credential | None:
        return self._credential

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Credential:
        """Authenticate and keep the resulting credential."""
        self._credential = await _session_api.login(self._config, self._require_transport(), email, password)
        _logger.debug("Logged in with %s credential", self._credential.mode)
        return self._credential

    def enter_demo(self) -> Credential:
        """Switch to the offline demo credential."""
        self._credential = Credential.demo()
        return self._credential

    def logout(self) -> None:
        _logger.debug("Logging out")
        self._credential = None
        if isinstance(self._transport, HttpTransport):
            self._transport.clear_cookies()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise SoucareError("Client not initialized. Use 'async with SoucareClient(...) as client:'")
        return self._transport

    def _require_credential(self) -> Credential:
        if self._credential is None:
            raise SoucareError("Not logged in. Call login() or enter_demo() first")
        return self._credential

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------

    async def get_devices(self, *, direct: bool = False) -> list[Device]:
        endpoints = self._config.endpoints
        endpoint = endpoints.devices_direct if direct else endpoints.devices
        return await _tracking_api.fetch_devices(self._require_transport(), endpoint, self._require_credential())

    async def get_positions(self, *, direct: bool = False) -> list[Position]:
        endpoints = self._config.endpoints
        endpoint = endpoints.positions_direct if direct else endpoints.positions
        return await _tracking_api.fetch_positions(self._require_transport(), endpoint, self._require_credential())

    async def fetch_frame(self, credential: Credential | None = None) -> FallbackOutcome[TrackingFrame]:
        """Poll devices and positions with proxy-then-direct fallback."""
        return await _tracking_api.fetch_frame(
            self._config,
            self._require_transport(),
            credential or self._require_credential(),
        )

    async def get_route(
        self,
        device_id: int,
        *,
        now: datetime | None = None,
        window: timedelta | None = None,
        credential: Credential | None = None,
    ) -> FallbackOutcome[list[RoutePoint]]:
        """Historical route of *device_id*, default window from config."""
        return await _reports_api.fetch_route(
            self._config,
            self._require_transport(),
            credential or self._require_credential(),
            device_id,
            now=now,
            window=window,
        )
