"""Constants shared across soucare modules."""

from __future__ import annotations

USER_AGENT = "soucare/1.0 (+aiohttp)"

DEFAULT_BASE_URL = "https://app.tracefleet.com.br"

#: Raw token values the login layer stores for non-bearer sessions.
DEMO_TOKEN = "demo"
SESSION_TOKEN = "session"

#: Sao Paulo city centre, used when no device has a fix.
DEFAULT_CENTER: tuple[float, float] = (-23.55052, -46.633308)

DEFAULT_ZOOM = 13
SINGLE_MARKER_ZOOM = 16
FIT_PADDING = 0.2

DEMO_INTERVAL_S = 5.0
LIVE_INTERVAL_S = 15.0
ROUTE_WINDOW_HOURS = 24

STATUS_COLORS: dict[str, str] = {
    "red": "#ef4444",
    "yellow": "#f59e0b",
    "gray": "#64748b",
    "green": "#34d399",
}

ROUTE_COLOR = "#60a5fa"

#: Placeholder shown wherever a value is not available.
PLACEHOLDER = "--"

ROUTE_UNAVAILABLE_MESSAGE = "24h route unavailable. The backend may not expose a route report endpoint."
