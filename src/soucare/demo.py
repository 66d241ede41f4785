"""Offline demo world.

The simulator keeps its state as backend-shaped JSON and pushes every
frame through the same payload parsers live polling uses, so downstream
code cannot tell the two sources apart.
"""

from __future__ import annotations

import copy
import random
from datetime import UTC, datetime
from typing import Any

from soucare.config import DemoConfig
from soucare.ingestion.normalize import isoformat_utc, safe_int
from soucare.ingestion.payloads import parse_devices, parse_positions
from soucare.models.frame import TrackingFrame

DEMO_DEVICES: tuple[dict[str, Any], ...] = (
    {"id": 101, "name": "Paciente João (DEMO)", "uniqueId": "HR-001"},
    {"id": 102, "name": "Paciente Maria (DEMO)", "uniqueId": "HR-002"},
    {"id": 103, "name": "Paciente Ana (DEMO)", "uniqueId": "HR-003"},
)

_INITIAL_BATTERY = 90
_BATTERY_STEP_BY_INDEX = 7
_MISSING_BATTERY = 80


def initial_positions(config: DemoConfig, now: datetime) -> list[dict[str, Any]]:
    """Deterministic first frame: each device offset by its index."""
    stamp = isoformat_utc(now)
    positions: list[dict[str, Any]] = []
    for idx, device in enumerate(DEMO_DEVICES):
        jitter = 0.01 * (idx + 1)
        positions.append(
            {
                "id": 1000 + device["id"],
                "deviceId": device["id"],
                "latitude": config.base_lat + jitter * 0.1,
                "longitude": config.base_lng - jitter * 0.1,
                "deviceTime": stamp,
                "attributes": {"batteryLevel": _INITIAL_BATTERY - idx * _BATTERY_STEP_BY_INDEX},
            }
        )
    return positions


class DemoSimulator:
    """Synthetic device/position source.

    Usage::

        sim = DemoSimulator(DemoConfig(seed=1))
        frame = sim.initial_frame()
        frame = sim.step()
    """

    def __init__(self, config: DemoConfig | None = None, *, rng: random.Random | None = None) -> None:
        self._config = config or DemoConfig()
        self._rng = rng or random.Random(self._config.seed)
        self._devices: list[dict[str, Any]] = [dict(d) for d in DEMO_DEVICES]
        self._positions: list[dict[str, Any]] = []

    @property
    def config(self) -> DemoConfig:
        return self._config

    def _frame(self) -> TrackingFrame:
        return TrackingFrame(
            devices=tuple(parse_devices(copy.deepcopy(self._devices), endpoint="demo")),
            positions=tuple(parse_positions(copy.deepcopy(self._positions), endpoint="demo")),
        )

    def initial_frame(self, now: datetime | None = None) -> TrackingFrame:
        """Reset the world and return its first frame."""
        self._positions = initial_positions(self._config, now or datetime.now(UTC))
        return self._frame()

    def _next_battery(self, idx: int, current: Any) -> int:
        battery = safe_int(current)
        if battery is None:
            battery = _MISSING_BATTERY
        if idx == self._config.reference_index:
            return battery
        return max(self._config.battery_floor, battery - 1)

    def step(self, now: datetime | None = None) -> TrackingFrame:
        """Advance one tick: move, refresh timestamps, drain batteries."""
        if not self._positions:
            return self.initial_frame(now)
        stamp = isoformat_utc(now or datetime.now(UTC))
        delta = self._config.step_delta
        moved: list[dict[str, Any]] = []
        for idx, position in enumerate(self._positions):
            attributes = dict(position.get("attributes") or {})
            attributes["batteryLevel"] = self._next_battery(idx, attributes.get("batteryLevel"))
            moved.append(
                {
                    **position,
                    "latitude": position["latitude"] + self._rng.uniform(-delta, delta),
                    "longitude": position["longitude"] + self._rng.uniform(-delta, delta),
                    "deviceTime": stamp,
                    "attributes": attributes,
                }
            )
        self._positions = moved
        return self._frame()
