"""Interfaces of the two downstream sinks.

Having protocols here makes it easy to pass test doubles while keeping the
production implementations (:class:`~pyanalytics.dispatcher.BatchDispatcher`
and :class:`~pyanalytics.integrations.IntegrationManager`) concrete.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pyanalytics.models.lifecycle import ActivityLifecycleEvent
from pyanalytics.models.payloads import BasePayload

IntegrationCallback = Callable[[Any], None]


class NetworkSink(Protocol):
    """Queues payloads for upload. ``enqueue`` must not block on the network."""

    def enqueue(self, payload: BasePayload) -> None: ...

    def flush(self, delay_millis: int = 0) -> None: ...

    def shutdown(self) -> None: ...


class IntegrationSink(Protocol):
    """Fans payloads and lifecycle events out to bundled integrations."""

    @property
    def bundled_integrations(self) -> Mapping[str, bool]: ...

    def dispatch_operation(self, operation: BasePayload | ActivityLifecycleEvent) -> None: ...

    def dispatch_flush(self) -> None: ...

    def dispatch_register_callback(self, key: str, callback: IntegrationCallback) -> None: ...

    def shutdown(self) -> None: ...
