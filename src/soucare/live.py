"""Polling orchestrator for device and position state.

One :class:`LiveDataSource` drives one operator session. It is either
replaying the offline demo world or polling the backend, and it owns the
timer and the in-flight poll for that mode.

Guarantees:

* at most one poll is in flight; timer ticks that land while one is
  pending are skipped and manual refreshes are not queued;
* devices and positions from a poll are applied together as one
  :class:`LiveSnapshot`;
* a failed poll keeps the last good devices/positions and only sets
  ``error``;
* after a mode switch or :meth:`LiveDataSource.close`, nothing started
  earlier can touch the state (every task carries the generation it was
  started in and is cancelled on switch);
* overlapping ``start``/``stop``/``close`` calls are serialized and applied in
  call order, leaving exactly one timer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from soucare.client import SoucareClient
from soucare.demo import DemoSimulator
from soucare.exceptions import SoucareError
from soucare.index import build_rows
from soucare.models.credential import Credential
from soucare.models.device import Device
from soucare.models.frame import TrackingFrame
from soucare.models.position import Position
from soucare.models.row import DerivedRow

_logger = logging.getLogger(__name__)

_DEFAULT_POLL_ERROR = "Failed to load tracking data"

SnapshotListener = Callable[["LiveSnapshot"], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def _await_poll(task: asyncio.Task[None]) -> bool:
    """Wait for *task* without letting its cancellation leak into the caller.

    Returns ``False`` when the poll was cancelled by a teardown.
    """
    try:
        await asyncio.shield(task)
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if task.cancelled() and (current is None or not current.cancelling()):
            return False
        raise
    return True


class DataSourceMode(StrEnum):
    IDLE = "idle"
    DEMO = "demo"
    LIVE = "live"
    CLOSED = "closed"


class LiveSnapshot(BaseModel):
    """Everything a view needs, replaced wholesale on every change."""

    model_config = ConfigDict(frozen=True)

    mode: DataSourceMode = DataSourceMode.IDLE
    devices: tuple[Device, ...] = Field(default_factory=tuple)
    positions: tuple[Position, ...] = Field(default_factory=tuple)
    loading: bool = False
    error: str = ""
    updated_at: datetime | None = None


class LiveDataSource:
    """Demo/live state machine with polling and teardown.

    Usage::

        async with SoucareClient(config) as client:
            credential = await client.login(email, password)
            async with LiveDataSource(client) as source:
                source.add_listener(print)
                await source.start(credential)
                ...
    """

    def __init__(
        self,
        client: SoucareClient,
        *,
        simulator_factory: Callable[[], DemoSimulator] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._config = client.config
        self._simulator_factory = simulator_factory or (lambda: DemoSimulator(self._config.demo))
        self._clock = clock
        self._mode = DataSourceMode.IDLE
        self._snapshot = LiveSnapshot()
        self._credential: Credential | None = None
        self._simulator: DemoSimulator | None = None
        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._poll: asyncio.Task[None] | None = None
        self._listeners: list[SnapshotListener] = []
        # Serializes start/stop/close so overlapping switches cannot leak timers.
        self._lifecycle_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LiveDataSource:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> DataSourceMode:
        return self._mode

    @property
    def snapshot(self) -> LiveSnapshot:
        return self._snapshot

    @property
    def devices(self) -> tuple[Device, ...]:
        return self._snapshot.devices

    @property
    def positions(self) -> tuple[Position, ...]:
        return self._snapshot.positions

    @property
    def loading(self) -> bool:
        return self._snapshot.loading

    @property
    def error(self) -> str:
        return self._snapshot.error

    @property
    def poll_in_flight(self) -> bool:
        return self._poll is not None and not self._poll.done()

    def rows(self, now: datetime | None = None) -> list[DerivedRow]:
        """Derived rows for the current snapshot."""
        snapshot = self._snapshot
        return build_rows(
            snapshot.devices,
            snapshot.positions,
            now=now or self._clock(),
            stale_after=self._config.stale_after,
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* after every snapshot change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Mode control
    # ------------------------------------------------------------------

    async def start(self, credential: Credential) -> None:
        """Enter demo or live mode for *credential*, tearing down the previous mode."""
        async with self._lifecycle_lock:
            if self._mode == DataSourceMode.CLOSED:
                raise SoucareError("LiveDataSource is closed")
            await self._teardown()
            self._enter(credential)

    def _enter(self, credential: Credential) -> None:
        self._credential = credential
        generation = self._generation

        if credential.is_demo:
            self._mode = DataSourceMode.DEMO
            self._simulator = self._simulator_factory()
            frame = self._simulator.initial_frame(self._clock())
            self._publish(
                LiveSnapshot(
                    mode=self._mode,
                    devices=frame.devices,
                    positions=frame.positions,
                    updated_at=self._clock(),
                )
            )
            self._timer = asyncio.create_task(self._run_timer(self._config.demo_interval, self._demo_tick, generation))
            _logger.debug("Started demo mode (generation=%d)", generation)
            return

        self._mode = DataSourceMode.LIVE
        self._simulator = None
        self._publish(LiveSnapshot(mode=self._mode, loading=True))
        self._launch_poll()
        self._timer = asyncio.create_task(self._run_timer(self._config.live_interval, self._live_tick, generation))
        _logger.debug("Started live mode (generation=%d)", generation)

    async def stop(self) -> None:
        """End the session and return to idle with empty state."""
        async with self._lifecycle_lock:
            if self._mode == DataSourceMode.CLOSED:
                return
            await self._teardown()
            self._mode = DataSourceMode.IDLE
            self._credential = None
            self._publish(LiveSnapshot())

    async def close(self) -> None:
        """Terminal teardown; no state changes happen after this returns."""
        async with self._lifecycle_lock:
            if self._mode == DataSourceMode.CLOSED:
                return
            await self._teardown()
            self._mode = DataSourceMode.CLOSED
            self._credential = None
            self._listeners.clear()

    async def refresh(self) -> bool:
        """Poll now.

        Returns ``False`` without doing anything in demo/idle mode or when a
        poll is already in flight; otherwise waits for the poll and returns
        ``True``.
        """
        if self._mode != DataSourceMode.LIVE:
            return False
        if self.poll_in_flight:
            _logger.debug("Refresh ignored, a poll is already in flight")
            return False
        return await _await_poll(self._launch_poll())

    async def wait_for_poll(self) -> None:
        """Wait until the in-flight poll (if any) has been applied."""
        task = self._poll
        if task is not None and not task.done():
            await _await_poll(task)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _teardown(self) -> None:
        self._generation += 1
        tasks = [task for task in (self._timer, self._poll) if task is not None and not task.done()]
        self._timer = None
        self._poll = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _publish(self, snapshot: LiveSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.exception("Snapshot listener failed")

    async def _run_timer(self, interval: float, tick: Callable[[int], None], generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                return
            try:
                tick(generation)
            except Exception:
                _logger.exception("Timer tick failed, keeping the timer alive")

    def _demo_tick(self, generation: int) -> None:
        simulator = self._simulator
        if simulator is None or generation != self._generation:
            return
        frame = simulator.step(self._clock())
        self._apply_frame(frame)

    def _live_tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        if self.poll_in_flight:
            _logger.debug("Skipping poll tick, previous poll still in flight")
            return
        self._launch_poll()

    def _launch_poll(self) -> asyncio.Task[None]:
        task = asyncio.create_task(self._poll_live(self._generation))
        self._poll = task
        return task

    def _apply_frame(self, frame: TrackingFrame) -> None:
        self._publish(
            self._snapshot.model_copy(
                update={
                    "devices": frame.devices,
                    "positions": frame.positions,
                    "loading": False,
                    "error": "",
                    "updated_at": self._clock(),
                }
            )
        )

    async def _poll_live(self, generation: int) -> None:
        credential = self._credential
        if credential is None:
            return
        if not self._snapshot.loading:
            self._publish(self._snapshot.model_copy(update={"loading": True}))

        try:
            outcome = await self._client.fetch_frame(credential)
        except Exception as exc:
            if generation != self._generation:
                return
            _logger.exception("Poll failed unexpectedly")
            self._publish(
                self._snapshot.model_copy(update={"loading": False, "error": str(exc) or _DEFAULT_POLL_ERROR})
            )
            return

        if generation != self._generation:
            _logger.debug("Discarding poll result from generation %d", generation)
            return

        if outcome.ok and outcome.value is not None:
            self._apply_frame(outcome.value)
            return

        message = str(outcome.last_error or "") or _DEFAULT_POLL_ERROR
        _logger.warning("Polling failed on every endpoint pair: %s", message)
        self._publish(self._snapshot.model_copy(update={"loading": False, "error": message}))
