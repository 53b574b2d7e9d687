from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from pyanalytics.client import Analytics
from pyanalytics.config import AnalyticsConfig
from pyanalytics.host import LifecycleChannel
from pyanalytics.models.lifecycle import ActivityLifecycleEvent
from pyanalytics.models.payloads import BasePayload
from pyanalytics.storage import MemoryStore


class FakeHost:
    def __init__(
        self,
        *,
        permissions: set[str] | None = None,
        resources: Mapping[str, str] | None = None,
        debuggable: bool | Exception = False,
    ) -> None:
        self.lifecycle = LifecycleChannel()
        self._permissions = {"internet"} if permissions is None else permissions
        self._resources = dict(resources or {})
        self._debuggable = debuggable

    def has_permission(self, permission: str) -> bool:
        return permission in self._permissions

    def get_resource_string(self, key: str) -> str | None:
        return self._resources.get(key)

    def is_debuggable(self) -> bool:
        if isinstance(self._debuggable, Exception):
            raise self._debuggable
        return self._debuggable

    def context_info(self) -> dict[str, Any]:
        return {
            "app": {"name": "test-app", "version": "1.0"},
            "device": {"id": "device-1"},
            "os": {"name": "TestOS"},
            "locale": "en_US",
            "timezone": "UTC",
        }


class RecordingNetwork:
    def __init__(self, calls: list[tuple[str, Any]] | None = None) -> None:
        self.calls = calls if calls is not None else []
        self.payloads: list[BasePayload] = []
        self.flushes: list[int] = []
        self.shutdown_count = 0

    def enqueue(self, payload: BasePayload) -> None:
        self.payloads.append(payload)
        self.calls.append(("network", payload))

    def flush(self, delay_millis: int = 0) -> None:
        self.flushes.append(delay_millis)

    def shutdown(self) -> None:
        self.shutdown_count += 1


class RecordingIntegrations:
    def __init__(self, calls: list[tuple[str, Any]] | None = None) -> None:
        self.calls = calls if calls is not None else []
        self.operations: list[BasePayload | ActivityLifecycleEvent] = []
        self.callbacks: dict[str, Callable[[Any], None]] = {}
        self.flush_count = 0
        self.shutdown_count = 0

    @property
    def bundled_integrations(self) -> dict[str, bool]:
        return {"Mixpanel": False}

    def dispatch_operation(self, operation: BasePayload | ActivityLifecycleEvent) -> None:
        self.operations.append(operation)
        self.calls.append(("integrations", operation))

    def dispatch_flush(self) -> None:
        self.flush_count += 1

    def dispatch_register_callback(self, key: str, callback: Callable[[Any], None]) -> None:
        self.callbacks[key] = callback

    def shutdown(self) -> None:
        self.shutdown_count += 1


class Harness:
    def __init__(
        self,
        analytics: Analytics,
        host: FakeHost,
        network: RecordingNetwork,
        integrations: RecordingIntegrations | None,
        store: MemoryStore,
        calls: list[tuple[str, Any]],
    ) -> None:
        self.analytics = analytics
        self.host = host
        self.network = network
        self.integrations = integrations
        self.store = store
        self.calls = calls


@pytest.fixture
def make_harness() -> Callable[..., Harness]:
    def _make(*, with_integrations: bool = True, store: MemoryStore | None = None, **config: Any) -> Harness:
        calls: list[tuple[str, Any]] = []
        host = FakeHost()
        network = RecordingNetwork(calls)
        integrations = RecordingIntegrations(calls) if with_integrations else None
        store = store or MemoryStore()
        config.setdefault("write_key", "test-write-key")
        analytics = Analytics.create(
            host,
            AnalyticsConfig(skip_bundled_integrations=not with_integrations, **config),
            integration_sink=integrations,
            network=network,
            store=store,
        )
        return Harness(analytics, host, network, integrations, store, calls)

    return _make


@pytest.fixture
def harness(make_harness: Callable[..., Harness]) -> Harness:
    return make_harness()
