"""Host activity lifecycle notifications."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from pyanalytics.models._base import AnalyticsBaseModel, new_id


class LifecycleType(StrEnum):
    CREATED = "created"
    STARTED = "started"
    RESUMED = "resumed"
    PAUSED = "paused"
    STOPPED = "stopped"
    SAVE_INSTANCE = "save_instance"
    DESTROYED = "destroyed"


class ActivityLifecycleEvent(AnalyticsBaseModel):
    """A lifecycle notification for one host component.

    Only ever forwarded to the integration sink; never uploaded or persisted.
    """

    id: str = Field(default_factory=new_id)
    type: LifecycleType
    component: Any = None
    saved_state: dict[str, Any] | None = None
