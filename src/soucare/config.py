"""Client configuration for soucare."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from soucare._constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
    DEMO_INTERVAL_S,
    FIT_PADDING,
    LIVE_INTERVAL_S,
    ROUTE_WINDOW_HOURS,
    SINGLE_MARKER_ZOOM,
)
from soucare.exceptions import SoucareConfigError


def _env_float(value: str | None, name: str) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise SoucareConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class EndpointSet:
    """Backend paths, relative to ``base_url``.

    The ``*_direct`` variants address the tracking server itself and are
    tried after the proxy paths fail.
    """

    login: str = "/api/auth/login"
    session: str = "/api/session"
    devices: str = "/api/traccar/devices"
    positions: str = "/api/traccar/positions"
    route: str = "/api/traccar/reports/route"
    devices_direct: str = "/api/devices"
    positions_direct: str = "/api/positions"
    route_direct: str = "/api/reports/route"


@dataclasses.dataclass(frozen=True)
class DemoConfig:
    """Parameters of the offline demo world.

    Parameters
    ----------
    base_lat, base_lng : float
        Anchor coordinate the synthetic devices are placed around.
    step_delta : float
        Maximum per-axis movement (degrees) applied on each step.
    battery_floor : int
        Battery level below which a device never drains.
    reference_index : int
        Index of the device whose battery never drains.
    seed : int or None
        Seed for the movement generator; ``None`` uses system entropy.
    """

    base_lat: float = DEFAULT_CENTER[0]
    base_lng: float = DEFAULT_CENTER[1]
    step_delta: float = 0.0003
    battery_floor: int = 5
    reference_index: int = 0
    seed: int | None = None


@dataclasses.dataclass(frozen=True)
class SoucareConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Backend base URL. A trailing slash is stripped.
    endpoints : EndpointSet
        Proxy and direct endpoint paths.
    demo_interval : float
        Seconds between demo frames.
    live_interval : float
        Seconds between live polls.
    route_window : float
        Hours of history requested for the route overlay.
    request_timeout : float
        Total timeout of a single HTTP request in seconds.
    stale_after : float or None
        Age in seconds after which a device with a position is flagged
        yellow. ``None`` disables the check and every device with a
        position is green.
    default_center : tuple[float, float]
        Map center used when no device has a fix.
    initial_zoom : int
        Zoom of the freshly created map.
    single_marker_zoom : int
        Zoom used when exactly one marker is shown.
    fit_padding : float
        Fractional margin added around the marker bounds.
    demo : DemoConfig
        Demo world parameters.
    """

    base_url: str = DEFAULT_BASE_URL
    endpoints: EndpointSet = dataclasses.field(default_factory=EndpointSet)
    demo_interval: float = DEMO_INTERVAL_S
    live_interval: float = LIVE_INTERVAL_S
    route_window: float = ROUTE_WINDOW_HOURS
    request_timeout: float = 30.0
    stale_after: float | None = None
    default_center: tuple[float, float] = DEFAULT_CENTER
    initial_zoom: int = DEFAULT_ZOOM
    single_marker_zoom: int = SINGLE_MARKER_ZOOM
    fit_padding: float = FIT_PADDING
    demo: DemoConfig = dataclasses.field(default_factory=DemoConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.demo_interval <= 0 or self.live_interval <= 0:
            raise SoucareConfigError("Polling intervals must be positive")
        if self.route_window <= 0:
            raise SoucareConfigError("route_window must be positive")
        if self.stale_after is not None and self.stale_after <= 0:
            raise SoucareConfigError("stale_after must be positive or None")

    def url(self, endpoint: str) -> str:
        """Absolute URL for *endpoint*."""
        return f"{self.base_url}{endpoint}" if self.base_url else endpoint

    @classmethod
    def from_env(cls, **overrides: Any) -> SoucareConfig:
        """Create configuration from ``SOUCARE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        base_url = env.get("SOUCARE_API_BASE_URL")
        if base_url:
            config_kwargs["base_url"] = base_url

        _ENV_FLOAT_MAP = {
            "SOUCARE_DEMO_INTERVAL": "demo_interval",
            "SOUCARE_LIVE_INTERVAL": "live_interval",
            "SOUCARE_ROUTE_WINDOW_HOURS": "route_window",
            "SOUCARE_REQUEST_TIMEOUT": "request_timeout",
            "SOUCARE_STALE_AFTER": "stale_after",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            parsed = _env_float(env.get(env_key), env_key)
            if parsed is not None and field_name not in overrides:
                config_kwargs[field_name] = parsed

        seed_env = env.get("SOUCARE_DEMO_SEED")
        if seed_env is not None and "demo" not in overrides:
            try:
                config_kwargs["demo"] = DemoConfig(seed=int(seed_env))
            except ValueError as exc:
                raise SoucareConfigError(f"SOUCARE_DEMO_SEED must be an integer, got {seed_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
