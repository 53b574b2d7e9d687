"""Statistics snapshot model."""

from __future__ import annotations

from datetime import datetime

from pyanalytics.models._base import AnalyticsBaseModel


class StatsSnapshot(AnalyticsBaseModel):
    """Counters captured at a point in time."""

    created_at: datetime
    event_count: int = 0
    flush_count: int = 0
    upload_failure_count: int = 0
    dropped_event_count: int = 0
    integration_operation_count: int = 0
    lifecycle_event_count: int = 0
