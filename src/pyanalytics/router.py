"""The single chokepoint every payload goes through."""

from __future__ import annotations

import logging
from typing import Any

from pyanalytics._constants import OWNER_INTEGRATION_MANAGER, OWNER_MAIN, VERB_CREATE, VERB_SKIP
from pyanalytics._redact import redact_for_log
from pyanalytics.config import LogLevel
from pyanalytics.exceptions import AnalyticsStateError
from pyanalytics.models.lifecycle import ActivityLifecycleEvent
from pyanalytics.models.payloads import BasePayload
from pyanalytics.sinks import IntegrationSink, NetworkSink
from pyanalytics.stats import Stats

_logger = logging.getLogger(__name__)


def debug(owner: str, verb: str, item_id: str, extras: Any = None) -> None:
    """Emit a structured debug record: owner, verb, id and optional extras."""
    if extras is None:
        _logger.debug("%-20s %-10s %s", owner, verb, item_id)
    else:
        _logger.debug("%-20s %-10s %s %s", owner, verb, item_id, redact_for_log(extras))


class DispatchRouter:
    """Forwards payloads to the network sink, then to the integration sink.

    Both sinks are called synchronously on the caller's thread in
    submission order; the network sink only enqueues.
    """

    def __init__(
        self,
        network: NetworkSink,
        integrations: IntegrationSink | None,
        *,
        log_level: LogLevel = LogLevel.NONE,
        stats: Stats | None = None,
    ) -> None:
        self._network = network
        self._integrations = integrations
        self._log_level = log_level
        self._stats = stats

    @property
    def network(self) -> NetworkSink:
        return self._network

    @property
    def integrations(self) -> IntegrationSink | None:
        return self._integrations

    def submit(self, payload: BasePayload) -> None:
        logging_enabled = self._log_level.log()
        if logging_enabled:
            debug(OWNER_MAIN, VERB_CREATE, payload.id, payload)

        self._network.enqueue(payload)
        if self._stats is not None:
            self._stats.record_event()

        if self._integrations is None:
            if logging_enabled:
                debug(OWNER_INTEGRATION_MANAGER, VERB_SKIP, payload.id)
        else:
            self._integrations.dispatch_operation(payload)

    def submit_lifecycle(self, event: ActivityLifecycleEvent) -> None:
        """Forward a host lifecycle event to the integration sink only."""
        if self._integrations is None:
            raise AnalyticsStateError("Lifecycle events require bundled integrations.")
        if self._log_level.log():
            debug(OWNER_MAIN, VERB_CREATE, event.id, event)
        if self._stats is not None:
            self._stats.record_lifecycle_event()
        self._integrations.dispatch_operation(event)
