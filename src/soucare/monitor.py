"""Wiring between the live data source and the map."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from soucare._api._fallback import FallbackOutcome
from soucare.client import SoucareClient
from soucare.exceptions import SoucareError
from soucare.index import StatusCounts, status_counts
from soucare.live import LiveDataSource, LiveSnapshot
from soucare.mapview.reconciler import MapReconciler
from soucare.mapview.surface import RenderingSurface
from soucare.models.credential import Credential
from soucare.models.route import RoutePoint
from soucare.models.row import DerivedRow

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Monitor:
    """One operator session: live data feeding rows and a map.

    Rows are recomputed on every snapshot and pushed to the reconciler.
    When the first rows arrive and nothing is selected yet, the first
    device is selected so its route is shown.
    """

    def __init__(
        self,
        client: SoucareClient,
        *,
        source: LiveDataSource | None = None,
        reconciler: MapReconciler | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._clock = clock
        self._source = source or LiveDataSource(client, clock=clock)
        self._reconciler = reconciler or MapReconciler(self._fetch_route, client.config)
        self._credential: Credential | None = None
        self._rows: list[DerivedRow] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> Monitor:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def source(self) -> LiveDataSource:
        return self._source

    @property
    def reconciler(self) -> MapReconciler:
        return self._reconciler

    @property
    def rows(self) -> list[DerivedRow]:
        return list(self._rows)

    @property
    def counts(self) -> StatusCounts:
        return status_counts(self._rows)

    async def _fetch_route(self, device_id: int) -> FallbackOutcome[list[RoutePoint]]:
        if self._credential is None:
            raise SoucareError("No active session")
        return await self._client.get_route(device_id, credential=self._credential)

    async def start(self, credential: Credential, surface: RenderingSurface | None = None) -> None:
        """Start (or switch) the session and optionally mount the map."""
        self._credential = credential
        # A new session starts without the previous session's selection.
        await self._reconciler.select(None)
        if self._unsubscribe is None:
            self._unsubscribe = self._source.add_listener(self._on_snapshot)
        await self._source.start(credential)
        if surface is not None:
            self.attach(surface)

    def attach(self, surface: RenderingSurface) -> None:
        self._reconciler.attach(surface, self._rows)
        self._ensure_selection()

    def detach(self) -> None:
        self._reconciler.detach()

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._source.close()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._reconciler.detach()
        self._credential = None

    async def wait_for_route(self) -> None:
        """Wait for pending route loads, including ones started from the map."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._reconciler.wait_for_route()

    def _on_snapshot(self, snapshot: LiveSnapshot) -> None:
        self._rows = self._source.rows(self._clock())
        _logger.debug(
            "Snapshot mode=%s rows=%d loading=%s error=%s",
            snapshot.mode,
            len(self._rows),
            snapshot.loading,
            snapshot.error or "-",
        )
        self._reconciler.reconcile(self._rows)
        self._ensure_selection()

    def _ensure_selection(self) -> None:
        if not self._reconciler.attached or self._reconciler.selected_device_id is not None or not self._rows:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._reconciler.select(self._rows[0].device_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
