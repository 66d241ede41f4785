"""Route report model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import field_validator

from soucare.ingestion.normalize import is_finite_coordinate, parse_timestamp, safe_float
from soucare.models._base import SoucareBaseModel


class RoutePoint(SoucareBaseModel):
    """One historical location from a route report."""

    latitude: float | None = None
    longitude: float | None = None
    device_time: datetime | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("device_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def has_fix(self) -> bool:
        return is_finite_coordinate(self.latitude, self.longitude)

    def as_tuple(self) -> tuple[float, float]:
        if self.latitude is None or self.longitude is None:
            raise ValueError("RoutePoint has no fix")
        return (self.latitude, self.longitude)
