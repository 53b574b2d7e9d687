"""Bundled integration fan-out."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, ClassVar

from pyanalytics._constants import (
    BUNDLED_INTEGRATION_KEYS,
    OWNER_INTEGRATION_MANAGER,
    THREAD_PREFIX,
    VERB_DISPATCH,
    VERB_SKIP,
)
from pyanalytics.config import LogLevel
from pyanalytics.exceptions import AnalyticsConfigError
from pyanalytics.models.lifecycle import ActivityLifecycleEvent
from pyanalytics.models.payloads import (
    AliasPayload,
    BasePayload,
    GroupPayload,
    IdentifyPayload,
    ScreenPayload,
    TrackPayload,
)
from pyanalytics.router import debug
from pyanalytics.sinks import IntegrationCallback
from pyanalytics.stats import Stats

_logger = logging.getLogger(__name__)


class Integration:
    """Base for a bundled third-party SDK adapter.

    Subclasses set ``key`` to one of the bundled integration keys and
    override the hooks they care about; the defaults do nothing.
    """

    key: ClassVar[str] = ""

    def initialize(self, settings: Mapping[str, Any], log_level: LogLevel) -> None:
        """Called once on the integration thread before any other hook."""

    def get_underlying_instance(self) -> Any:
        return self

    def identify(self, payload: IdentifyPayload) -> None: ...

    def group(self, payload: GroupPayload) -> None: ...

    def track(self, payload: TrackPayload) -> None: ...

    def screen(self, payload: ScreenPayload) -> None: ...

    def alias(self, payload: AliasPayload) -> None: ...

    def flush(self) -> None: ...

    def on_activity_lifecycle(self, event: ActivityLifecycleEvent) -> None: ...


class IntegrationManager:
    """Initializes bundled integrations and forwards operations to them.

    All integration work runs on one worker thread, so operations reach
    every integration in the order they were dispatched. An exception
    raised by one integration is logged and does not affect the others.
    """

    def __init__(
        self,
        integrations: Iterable[Integration] = (),
        *,
        settings: Mapping[str, Mapping[str, Any]] | None = None,
        log_level: LogLevel = LogLevel.NONE,
        stats: Stats | None = None,
    ) -> None:
        self._integrations: dict[str, Integration] = {}
        for integration in integrations:
            if integration.key not in BUNDLED_INTEGRATION_KEYS:
                raise AnalyticsConfigError(f"Unsupported bundled integration: {integration.key!r}")
            self._integrations[integration.key] = integration

        self._settings = {key: dict(value) for key, value in (settings or {}).items()}
        self._log_level = log_level
        self._stats = stats
        self._ready: set[str] = set()
        self._callbacks: dict[str, IntegrationCallback] = {}
        self._shutdown = False
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{THREAD_PREFIX}integrations")

        for key in self._integrations:
            self._executor.submit(self._initialize, key)

    @property
    def bundled_integrations(self) -> dict[str, bool]:
        """Bundled keys mapped to ``False`` for the server-side toggle map."""
        return {key: False for key in self._integrations}

    def is_ready(self, key: str) -> bool:
        return key in self._ready

    def dispatch_operation(self, operation: BasePayload | ActivityLifecycleEvent) -> None:
        if self._submit(self._perform, operation) and self._stats is not None:
            self._stats.record_integration_operation()

    def dispatch_flush(self) -> None:
        self._submit(self._flush)

    def dispatch_register_callback(self, key: str, callback: IntegrationCallback) -> None:
        self._submit(self._register_callback, key, callback)

    def wait_idle(self) -> None:
        """Block until every operation dispatched so far has run."""
        future = self._submit(lambda: None)
        if future:
            future.result()

    def shutdown(self) -> None:
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        self._executor.shutdown(wait=True)

    def _submit(self, fn: Any, *args: Any) -> Any:
        with self._lock:
            if self._shutdown:
                _logger.debug("Integration manager is shut down, dropping %s", getattr(fn, "__name__", fn))
                return None
            return self._executor.submit(fn, *args)

    def _initialize(self, key: str) -> None:
        integration = self._integrations[key]
        try:
            integration.initialize(self._settings.get(key, {}), self._log_level)
        except Exception:
            _logger.exception("Could not initialize integration %s", key)
            return
        self._ready.add(key)
        callback = self._callbacks.get(key)
        if callback is not None:
            self._invoke_callback(key, callback)

    def _perform(self, operation: BasePayload | ActivityLifecycleEvent) -> None:
        for key, integration in self._integrations.items():
            if key not in self._ready:
                continue
            if isinstance(operation, BasePayload) and not operation.options.is_integration_enabled(key):
                if self._log_level.log():
                    debug(OWNER_INTEGRATION_MANAGER, VERB_SKIP, operation.id, key)
                continue
            try:
                if isinstance(operation, ActivityLifecycleEvent):
                    integration.on_activity_lifecycle(operation)
                else:
                    getattr(integration, operation.type.value)(operation)
            except Exception:
                _logger.exception("Integration %s failed on %s", key, operation.type)
                continue
            if self._log_level.log():
                debug(OWNER_INTEGRATION_MANAGER, VERB_DISPATCH, operation.id, key)

    def _flush(self) -> None:
        for key, integration in self._integrations.items():
            if key not in self._ready:
                continue
            try:
                integration.flush()
            except Exception:
                _logger.exception("Integration %s failed to flush", key)

    def _register_callback(self, key: str, callback: IntegrationCallback) -> None:
        self._callbacks[key] = callback
        if key in self._ready:
            self._invoke_callback(key, callback)

    def _invoke_callback(self, key: str, callback: IntegrationCallback) -> None:
        try:
            callback(self._integrations[key].get_underlying_instance())
        except Exception:
            _logger.exception("Ready callback for %s failed", key)
