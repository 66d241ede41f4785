"""Device model."""

from __future__ import annotations

from pydantic import Field, field_validator

from soucare.ingestion.normalize import safe_int
from soucare.models._base import SoucareBaseModel


class Device(SoucareBaseModel):
    """A tracked unit (wearable or home sensor) registered on the backend.

    The device list is an authoritative snapshot: it is replaced wholesale
    on every poll and never patched.
    """

    id: int
    """Stable backend identifier."""
    name: str = ""
    """Display name, usually the patient's name."""
    unique_id: str = ""
    """Hardware identifier (IMEI or serial)."""
    status: str = ""
    """Backend-reported connection status, informational only."""
    disabled: bool = False
    category: str = ""
    phone: str = ""
    model: str = ""
    group_id: int | None = Field(default=None)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        parsed = safe_int(value)
        return value if parsed is None else parsed

    @property
    def label(self) -> str:
        """Name shown to operators."""
        return self.name or self.unique_id or f"Device {self.id}"
