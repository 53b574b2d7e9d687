"""pyanalytics - Python client for event instrumentation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyanalytics")
except PackageNotFoundError:
    __version__ = "0+local"
from pyanalytics.client import Analytics, InstanceState, SingletonHandle
from pyanalytics.config import AnalyticsConfig, LogLevel
from pyanalytics.exceptions import (
    AnalyticsArgumentError,
    AnalyticsConfigError,
    AnalyticsError,
    AnalyticsStateError,
    AnalyticsTransportError,
    AnalyticsUnsupportedOperationError,
)
from pyanalytics.host import HostPlatform, LifecycleChannel, LocalHost
from pyanalytics.integrations import Integration, IntegrationManager
from pyanalytics.models import (
    ActivityLifecycleEvent,
    AliasPayload,
    Context,
    GroupPayload,
    Identity,
    IdentifyPayload,
    LifecycleType,
    Options,
    ScreenPayload,
    StatsSnapshot,
    TrackPayload,
)

__all__ = [
    "__version__",
    "ActivityLifecycleEvent",
    "AliasPayload",
    "Analytics",
    "AnalyticsArgumentError",
    "AnalyticsConfig",
    "AnalyticsConfigError",
    "AnalyticsError",
    "AnalyticsStateError",
    "AnalyticsTransportError",
    "AnalyticsUnsupportedOperationError",
    "Context",
    "GroupPayload",
    "HostPlatform",
    "Identity",
    "IdentifyPayload",
    "InstanceState",
    "Integration",
    "IntegrationManager",
    "LifecycleChannel",
    "LifecycleType",
    "LocalHost",
    "LogLevel",
    "Options",
    "ScreenPayload",
    "SingletonHandle",
    "StatsSnapshot",
    "TrackPayload",
]
