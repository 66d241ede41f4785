"""Join of the device snapshot with the latest positions.

Everything here is pure: given the same devices, positions and ``now``
the same rows come out, in device order.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from soucare._constants import PLACEHOLDER
from soucare.ingestion.normalize import parse_timestamp
from soucare.models.device import Device
from soucare.models.position import Position
from soucare.models.row import DerivedRow, DeviceStatus


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def latest_positions(positions: Iterable[Position]) -> dict[int, Position]:
    """Map device id to its position; later entries in the batch win."""
    by_device: dict[int, Position] = {}
    for position in positions:
        by_device[position.device_id] = position
    return by_device


def age_seconds(value: Any, now: datetime) -> float | None:
    """Seconds elapsed since *value*, clamped at zero; ``None`` if unparseable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    reference = parse_timestamp(now)
    if reference is None:
        return None
    return max(0.0, (reference - parsed).total_seconds())


def time_ago(value: Any, now: datetime) -> str:
    """Bucket the age of *value* into ``now``, ``N min``, ``N h`` or ``N d``.

    Anything younger than a full minute reads ``now`` (45 seconds is not
    ``1 min``). Past that, each unit is rounded half-up from the rounded
    previous unit, so 90 seconds reads ``2 min`` and 90 minutes ``2 h``.
    """
    elapsed = age_seconds(value, now)
    if elapsed is None:
        return PLACEHOLDER
    if elapsed < 60:
        return "now"
    minutes = _round_half_up(elapsed / 60)
    if minutes < 60:
        return f"{minutes} min"
    hours = _round_half_up(minutes / 60)
    if hours < 24:
        return f"{hours} h"
    days = _round_half_up(hours / 24)
    return f"{days} d"


def battery_text(position: Position | None) -> str:
    if position is None or position.battery_level is None:
        return PLACEHOLDER
    return f"{position.battery_level}%"


def derive_status(position: Position | None, now: datetime, stale_after: float | None = None) -> DeviceStatus:
    """Gray without a position, green with one.

    With *stale_after* set, a position older than that many seconds (or
    without a usable timestamp) is yellow.
    """
    if position is None:
        return DeviceStatus.GRAY
    if stale_after is None:
        return DeviceStatus.GREEN
    elapsed = age_seconds(position.device_time, now)
    if elapsed is None or elapsed > stale_after:
        return DeviceStatus.YELLOW
    return DeviceStatus.GREEN


def build_row(
    device: Device,
    position: Position | None,
    *,
    now: datetime,
    stale_after: float | None = None,
) -> DerivedRow:
    if position is None:
        return DerivedRow(
            device_id=device.id,
            label=device.label,
            status=DeviceStatus.GRAY,
            last_seen_text=PLACEHOLDER,
            battery_text=PLACEHOLDER,
        )
    return DerivedRow(
        device_id=device.id,
        label=device.label,
        status=derive_status(position, now, stale_after),
        last_seen_text=time_ago(position.device_time, now),
        battery_text=battery_text(position),
        lat=position.latitude,
        lng=position.longitude,
    )


def build_rows(
    devices: Iterable[Device],
    positions: Iterable[Position] | Mapping[int, Position],
    *,
    now: datetime,
    stale_after: float | None = None,
) -> list[DerivedRow]:
    """One row per device, in device order."""
    by_device = positions if isinstance(positions, Mapping) else latest_positions(positions)
    return [
        build_row(device, by_device.get(device.id), now=now, stale_after=stale_after) for device in devices
    ]


@dataclass(frozen=True, slots=True)
class StatusCounts:
    red: int = 0
    yellow: int = 0
    gray: int = 0
    green: int = 0

    @property
    def total(self) -> int:
        return self.red + self.yellow + self.gray + self.green


def status_counts(rows: Iterable[DerivedRow]) -> StatusCounts:
    """Summary counts per status for the dashboard cards."""
    red = yellow = gray = green = 0
    for row in rows:
        if row.status == DeviceStatus.RED:
            red += 1
        elif row.status == DeviceStatus.YELLOW:
            yellow += 1
        elif row.status == DeviceStatus.GRAY:
            gray += 1
        else:
            green += 1
    return StatusCounts(red=red, yellow=yellow, gray=gray, green=green)
