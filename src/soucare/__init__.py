"""soucare - Async live-state core for home-care device tracking."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("soucare")
except PackageNotFoundError:
    __version__ = "0+local"
from soucare.client import SoucareClient
from soucare.config import DemoConfig, EndpointSet, SoucareConfig
from soucare.demo import DemoSimulator
from soucare.exceptions import (
    SoucareAuthenticationError,
    SoucareConfigError,
    SoucareError,
    SoucareHttpError,
    SoucareNetworkError,
    SoucareTransportError,
    SoucareValidationError,
)
from soucare.index import StatusCounts, build_rows, latest_positions, status_counts, time_ago
from soucare.live import DataSourceMode, LiveDataSource, LiveSnapshot
from soucare.mapview import Bounds, MapReconciler, RecordingSurface, RenderingSurface
from soucare.models import (
    AuthMode,
    Credential,
    DerivedRow,
    Device,
    DeviceStatus,
    Position,
    PositionAttributes,
    RoutePoint,
    TrackingFrame,
)
from soucare.monitor import Monitor

__all__ = [
    "__version__",
    "AuthMode",
    "Bounds",
    "Credential",
    "DataSourceMode",
    "DemoConfig",
    "DemoSimulator",
    "DerivedRow",
    "Device",
    "DeviceStatus",
    "EndpointSet",
    "LiveDataSource",
    "LiveSnapshot",
    "MapReconciler",
    "Monitor",
    "Position",
    "PositionAttributes",
    "RecordingSurface",
    "RenderingSurface",
    "RoutePoint",
    "SoucareAuthenticationError",
    "SoucareClient",
    "SoucareConfig",
    "SoucareConfigError",
    "SoucareError",
    "SoucareHttpError",
    "SoucareNetworkError",
    "SoucareTransportError",
    "SoucareValidationError",
    "StatusCounts",
    "TrackingFrame",
    "build_rows",
    "latest_positions",
    "status_counts",
    "time_ago",
]
