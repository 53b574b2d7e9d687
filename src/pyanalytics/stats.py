"""Thread-safe counters for an instance."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from pyanalytics.models.stats import StatsSnapshot


class Stats:
    """Collects counters from the router and both sinks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event_count = 0
        self._flush_count = 0
        self._upload_failure_count = 0
        self._dropped_event_count = 0
        self._integration_operation_count = 0
        self._lifecycle_event_count = 0
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def record_event(self) -> None:
        with self._lock:
            self._event_count += 1

    def record_flush(self) -> None:
        with self._lock:
            self._flush_count += 1

    def record_upload_failure(self) -> None:
        with self._lock:
            self._upload_failure_count += 1

    def record_dropped_event(self) -> None:
        with self._lock:
            self._dropped_event_count += 1

    def record_integration_operation(self) -> None:
        with self._lock:
            self._integration_operation_count += 1

    def record_lifecycle_event(self) -> None:
        with self._lock:
            self._lifecycle_event_count += 1

    def create_snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                created_at=datetime.now(UTC),
                event_count=self._event_count,
                flush_count=self._flush_count,
                upload_failure_count=self._upload_failure_count,
                dropped_event_count=self._dropped_event_count,
                integration_operation_count=self._integration_operation_count,
                lifecycle_event_count=self._lifecycle_event_count,
            )

    def shutdown(self) -> None:
        self._shutdown = True
