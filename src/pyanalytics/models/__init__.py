"""Typed records used by pyanalytics."""

from pyanalytics.models.context import Context
from pyanalytics.models.identity import Identity
from pyanalytics.models.lifecycle import ActivityLifecycleEvent, LifecycleType
from pyanalytics.models.options import Options, resolve_options
from pyanalytics.models.payloads import (
    AliasPayload,
    BasePayload,
    GroupPayload,
    IdentifyPayload,
    Payload,
    PayloadType,
    ScreenPayload,
    TrackPayload,
)
from pyanalytics.models.stats import StatsSnapshot

__all__ = [
    "ActivityLifecycleEvent",
    "AliasPayload",
    "BasePayload",
    "Context",
    "GroupPayload",
    "Identity",
    "IdentifyPayload",
    "LifecycleType",
    "Options",
    "Payload",
    "PayloadType",
    "ScreenPayload",
    "StatsSnapshot",
    "TrackPayload",
    "resolve_options",
]
