"""Position models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from soucare.ingestion.normalize import is_finite_coordinate, parse_timestamp, safe_float, safe_int
from soucare.models._base import SoucareBaseModel


class PositionAttributes(SoucareBaseModel):
    """Free-form telemetry attached to a position.

    Only ``batteryLevel`` is interpreted; every other key is kept as-is.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    battery_level: int | None = None

    @field_validator("battery_level", mode="before")
    @classmethod
    def _coerce_battery(cls, value: Any) -> int | None:
        parsed = safe_int(value)
        if parsed is None:
            return None
        return max(0, min(100, parsed))


class Position(SoucareBaseModel):
    """Latest known report for a device.

    Numeric fields are ``None`` when the value is absent or
    unparseable from the API response.
    """

    id: int
    device_id: int
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    speed: float | None = None
    course: float | None = None
    accuracy: float | None = None
    device_time: datetime | None = None
    fix_time: datetime | None = None
    server_time: datetime | None = None
    valid: bool | None = None
    attributes: PositionAttributes = Field(default_factory=PositionAttributes)

    @field_validator("id", "device_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        parsed = safe_int(value)
        return value if parsed is None else parsed

    @field_validator("latitude", "longitude", "altitude", "speed", "course", "accuracy", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("device_time", "fix_time", "server_time", mode="before")
    @classmethod
    def _coerce_times(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("attributes", mode="before")
    @classmethod
    def _coerce_attributes(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, PositionAttributes)) else {}

    @property
    def battery_level(self) -> int | None:
        return self.attributes.battery_level

    @property
    def has_fix(self) -> bool:
        """Whether both coordinates are finite."""
        return is_finite_coordinate(self.latitude, self.longitude)
