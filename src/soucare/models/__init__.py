"""Data models for tracking backend payloads and derived view state."""

from soucare.models._base import SoucareBaseModel
from soucare.models.credential import AuthMode, Credential
from soucare.models.device import Device
from soucare.models.frame import TrackingFrame
from soucare.models.position import Position, PositionAttributes
from soucare.models.route import RoutePoint
from soucare.models.row import DerivedRow, DeviceStatus

__all__ = [
    "AuthMode",
    "Credential",
    "DerivedRow",
    "Device",
    "DeviceStatus",
    "Position",
    "PositionAttributes",
    "RoutePoint",
    "SoucareBaseModel",
    "TrackingFrame",
]
