"""Device/position frame shared by the demo simulator and live polling."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from soucare.models.device import Device
from soucare.models.position import Position


class TrackingFrame(BaseModel):
    """One consistent (devices, positions) pair.

    Frames are applied to state as a unit so the index never sees devices
    from one poll joined with positions from another.
    """

    model_config = ConfigDict(frozen=True)

    devices: tuple[Device, ...] = Field(default_factory=tuple)
    positions: tuple[Position, ...] = Field(default_factory=tuple)
