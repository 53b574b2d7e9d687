"""Host platform abstraction.

The client needs a handful of things from the process it runs in: a
permission check, a resource lookup for the default write key, a debug
flag, descriptive metadata for the event context, and a stream of
activity lifecycle notifications.
"""

from __future__ import annotations

import locale
import logging
import os
import platform
import queue
import sys
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, Protocol

from pyanalytics._constants import PERMISSION_INTERNET, THREAD_PREFIX
from pyanalytics.models.lifecycle import ActivityLifecycleEvent, LifecycleType

_logger = logging.getLogger(__name__)

DEFAULT_LIFECYCLE_CAPACITY = 64

LifecycleConsumer = Callable[[ActivityLifecycleEvent], None]


class LifecycleChannel:
    """Bounded channel of lifecycle events with standing subscriptions.

    ``publish`` never blocks the host: when the channel is full the oldest
    pending event is dropped. Subscriptions last for the life of the
    process; a single daemon thread delivers events to every subscriber in
    publish order.
    """

    def __init__(self, capacity: int = DEFAULT_LIFECYCLE_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be greater than zero")
        self._queue: queue.Queue[ActivityLifecycleEvent] = queue.Queue(maxsize=capacity)
        self._consumers: list[LifecycleConsumer] = []
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._consumers)

    def subscribe(self, consumer: LifecycleConsumer) -> None:
        with self._lock:
            self._consumers.append(consumer)
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"{THREAD_PREFIX}lifecycle",
                    daemon=True,
                )
                self._thread.start()

    def publish(self, event: ActivityLifecycleEvent) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    dropped = self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                _logger.warning("Lifecycle channel full, dropped %s event %s", dropped.type, dropped.id)

    def emit(
        self,
        type_: LifecycleType,
        component: Any = None,
        saved_state: Mapping[str, Any] | None = None,
    ) -> ActivityLifecycleEvent:
        """Build and publish an event. Convenience for host integrations."""
        event = ActivityLifecycleEvent(
            type=type_,
            component=component,
            saved_state=dict(saved_state) if saved_state is not None else None,
        )
        self.publish(event)
        return event

    def join(self) -> None:
        """Block until every published event has been delivered.

        Only meaningful once something has subscribed.
        """
        self._queue.join()

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                with self._lock:
                    consumers = list(self._consumers)
                for consumer in consumers:
                    try:
                        consumer(event)
                    except Exception:
                        _logger.exception("Lifecycle subscriber failed for %s", event.type)
            finally:
                self._queue.task_done()


class HostPlatform(Protocol):
    """Structural interface for the process hosting the client."""

    @property
    def lifecycle(self) -> LifecycleChannel: ...

    def has_permission(self, permission: str) -> bool: ...

    def get_resource_string(self, key: str) -> str | None: ...

    def is_debuggable(self) -> bool: ...

    def context_info(self) -> Mapping[str, Any]: ...


class LocalHost:
    """Host platform for an ordinary Python process.

    Resources come from *resources* when given, otherwise from environment
    variables named after the upper-cased resource key (so the default
    write key resource ``analytics_write_key`` reads ``ANALYTICS_WRITE_KEY``).
    """

    def __init__(
        self,
        *,
        resources: Mapping[str, str] | None = None,
        permissions: Iterable[str] | None = None,
        debuggable: bool | None = None,
        app_name: str | None = None,
        app_version: str | None = None,
        lifecycle: LifecycleChannel | None = None,
    ) -> None:
        self._resources = dict(resources) if resources is not None else None
        self._permissions = frozenset(permissions) if permissions is not None else frozenset({PERMISSION_INTERNET})
        self._debuggable = debuggable
        self._app_name = app_name or (os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "python")
        self._app_version = app_version
        self._lifecycle = lifecycle or LifecycleChannel()

    @property
    def lifecycle(self) -> LifecycleChannel:
        return self._lifecycle

    def has_permission(self, permission: str) -> bool:
        return permission in self._permissions

    def get_resource_string(self, key: str) -> str | None:
        if self._resources is not None:
            return self._resources.get(key)
        return os.environ.get(key.upper())

    def is_debuggable(self) -> bool:
        if self._debuggable is not None:
            return self._debuggable
        return bool(sys.flags.dev_mode)

    def context_info(self) -> dict[str, Any]:
        info: dict[str, Any] = {
            "app": {"name": self._app_name, "version": self._app_version},
            "device": {},
            "os": {},
        }
        try:
            info["device"] = {
                "id": f"{uuid.getnode():012x}",
                "model": platform.machine(),
                "name": platform.node(),
            }
            info["os"] = {"name": platform.system(), "version": platform.release()}
        except Exception:
            _logger.debug("Device metadata lookup failed", exc_info=True)
        try:
            info["locale"] = locale.getlocale()[0]
        except Exception:
            _logger.debug("Locale lookup failed", exc_info=True)
        try:
            info["timezone"] = datetime.now().astimezone().tzname()
        except Exception:
            _logger.debug("Timezone lookup failed", exc_info=True)
        return info
