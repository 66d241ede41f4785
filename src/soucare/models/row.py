"""Derived per-device view state."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from soucare.ingestion.normalize import is_finite_coordinate


class DeviceStatus(StrEnum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    GRAY = "gray"


class DerivedRow(BaseModel):
    """Join of one device with its latest position.

    Recomputed from scratch on every snapshot, never persisted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    device_id: int
    label: str
    status: DeviceStatus
    last_seen_text: str
    battery_text: str
    lat: float | None = None
    lng: float | None = None

    @property
    def has_fix(self) -> bool:
        return is_finite_coordinate(self.lat, self.lng)
