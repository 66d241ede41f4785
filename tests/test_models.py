from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from soucare.exceptions import SoucareValidationError
from soucare.ingestion.payloads import parse_devices, parse_positions, parse_route
from soucare.models import AuthMode, Credential, DerivedRow, Device, DeviceStatus, Position


def test_device_parses_camel_case_payload() -> None:
    device = Device.model_validate({"id": "17", "name": "Paciente", "uniqueId": "HR-017", "groupId": 3})
    assert device.id == 17
    assert device.unique_id == "HR-017"
    assert device.group_id == 3
    assert device.raw["uniqueId"] == "HR-017"


def test_device_label_falls_back() -> None:
    assert Device(id=1, name="Ana").label == "Ana"
    assert Device(id=1, unique_id="HR-1").label == "HR-1"
    assert Device(id=1).label == "Device 1"


def test_position_normalizes_values() -> None:
    position = Position.model_validate(
        {
            "id": 1,
            "deviceId": 7,
            "latitude": "-23.5",
            "longitude": "--",
            "deviceTime": "2026-01-01T12:00:00Z",
            "attributes": {"batteryLevel": 140, "motion": True},
        }
    )
    assert position.latitude == -23.5
    assert position.longitude is None
    assert position.has_fix is False
    assert position.device_time == datetime(2026, 1, 1, 12, tzinfo=UTC)
    assert position.battery_level == 100
    assert position.attributes.model_extra == {"motion": True}


def test_position_without_attributes_has_no_battery() -> None:
    position = Position.model_validate({"id": 1, "deviceId": 7, "latitude": 1.0, "longitude": 2.0, "attributes": None})
    assert position.battery_level is None
    assert position.has_fix is True


def test_parse_devices_drops_malformed_entries() -> None:
    devices = parse_devices([{"id": 1, "name": "A"}, {"name": "no id"}, "junk", {"id": 2}])
    assert [device.id for device in devices] == [1, 2]


def test_parse_positions_treats_none_as_empty() -> None:
    assert parse_positions(None) == []


def test_parse_positions_rejects_non_list() -> None:
    with pytest.raises(SoucareValidationError) as excinfo:
        parse_positions({"error": "nope"}, endpoint="/api/positions")
    assert excinfo.value.endpoint == "/api/positions"


def test_parse_route_keeps_only_points_with_a_fix() -> None:
    points = parse_route(
        [
            {"latitude": -23.5, "longitude": -46.6},
            {"latitude": None, "longitude": -46.6},
            {"latitude": "nan", "longitude": 1},
            {"latitude": -23.6, "longitude": -46.7},
        ]
    )
    assert [point.as_tuple() for point in points] == [(-23.5, -46.6), (-23.6, -46.7)]


def test_credential_from_token() -> None:
    assert Credential.from_token("demo").mode == AuthMode.NONE
    assert Credential.from_token("session").mode == AuthMode.SESSION
    bearer = Credential.from_token(" abc ")
    assert bearer.mode == AuthMode.BEARER
    assert bearer.token == "abc"
    assert bearer.to_token() == "abc"
    assert Credential.demo().to_token() == "demo"
    with pytest.raises(ValueError):
        Credential.from_token("  ")


def test_credential_repr_hides_token() -> None:
    assert "secret" not in repr(Credential.bearer("secret"))


def test_bearer_credential_requires_token() -> None:
    with pytest.raises(ValidationError):
        Credential(mode=AuthMode.BEARER)


def test_derived_row_has_fix() -> None:
    row = DerivedRow(device_id=1, label="A", status=DeviceStatus.GRAY, last_seen_text="--", battery_text="--")
    assert row.has_fix is False
    with pytest.raises(ValidationError):
        DerivedRow.model_validate({**row.model_dump(), "unexpected": 1})
