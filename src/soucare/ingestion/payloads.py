"""Validation of backend list payloads.

Each parser accepts the decoded JSON body of an endpoint. ``None`` (a
non-JSON response) is an empty result. Entries that do not validate are
dropped rather than propagated with missing fields.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import ValidationError

from soucare.exceptions import SoucareValidationError
from soucare.models._base import SoucareBaseModel
from soucare.models.device import Device
from soucare.models.position import Position
from soucare.models.route import RoutePoint

_logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=SoucareBaseModel)


def _validate_list(model: type[TModel], payload: Any, *, endpoint: str) -> list[TModel]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise SoucareValidationError(
            f"Expected a list from {endpoint or model.__name__}, got {type(payload).__name__}",
            endpoint=endpoint,
        )

    items: list[TModel] = []
    dropped = 0
    for entry in payload:
        if not isinstance(entry, dict):
            dropped += 1
            continue
        try:
            items.append(model.model_validate(entry))
        except ValidationError:
            dropped += 1
    if dropped:
        _logger.debug("Dropped %d malformed %s entries from %s", dropped, model.__name__, endpoint or "payload")
    return items


def parse_devices(payload: Any, *, endpoint: str = "") -> list[Device]:
    return _validate_list(Device, payload, endpoint=endpoint)


def parse_positions(payload: Any, *, endpoint: str = "") -> list[Position]:
    return _validate_list(Position, payload, endpoint=endpoint)


def parse_route(payload: Any, *, endpoint: str = "") -> list[RoutePoint]:
    """Parse a route report, keeping only points with a finite fix."""
    return [point for point in _validate_list(RoutePoint, payload, endpoint=endpoint) if point.has_fix]
