"""Instance lifecycle: construction checks, the default singleton, shutdown and host events."""

from __future__ import annotations

import threading

import pytest

from pyanalytics.client import Analytics, InstanceState, SingletonHandle
from pyanalytics.config import AnalyticsConfig, LogLevel
from pyanalytics.exceptions import (
    AnalyticsArgumentError,
    AnalyticsConfigError,
    AnalyticsStateError,
    AnalyticsUnsupportedOperationError,
)
from pyanalytics.host import LifecycleChannel
from pyanalytics.integrations import Integration
from pyanalytics.models.lifecycle import ActivityLifecycleEvent, LifecycleType
from pyanalytics.storage import MemoryStore

from conftest import FakeHost, RecordingIntegrations, RecordingNetwork


def _create(host: FakeHost, **config) -> Analytics:
    config.setdefault("write_key", "wk")
    return Analytics.create(
        host,
        AnalyticsConfig(**config),
        integration_sink=RecordingIntegrations(),
        network=RecordingNetwork(),
    )


class TestCreate:
    def test_host_required(self) -> None:
        with pytest.raises(AnalyticsConfigError):
            Analytics.create(None, AnalyticsConfig(write_key="wk"))

    def test_config_required(self) -> None:
        with pytest.raises(AnalyticsConfigError):
            Analytics.create(FakeHost(), None)

    def test_permission_required(self) -> None:
        with pytest.raises(AnalyticsConfigError):
            _create(FakeHost(permissions=set()))

    def test_new_instance_is_active(self, harness) -> None:
        assert harness.analytics.state is InstanceState.ACTIVE
        assert harness.analytics.get_analytics_context().app == {"name": "test-app", "version": "1.0"}

    def test_identity_loaded_from_store(self, make_harness) -> None:
        first = make_harness()
        first.analytics.identify("u1", {"plan": "pro"})

        second = make_harness(store=first.store)

        assert second.analytics.identity.user_id == "u1"
        assert second.analytics.get_analytics_context().traits == {"plan": "pro"}

    def test_failed_create_leaves_no_worker_threads(self) -> None:
        class _ReadOnlyStore(MemoryStore):
            def save(self, key: str, value: str) -> None:
                raise PermissionError("cache directory is read-only")

        class _Mixpanel(Integration):
            key = "Mixpanel"

        before = {thread.ident for thread in threading.enumerate()}

        with pytest.raises(PermissionError):
            Analytics.create(
                FakeHost(),
                AnalyticsConfig(write_key="wk"),
                integrations=[_Mixpanel()],
                store=_ReadOnlyStore(),
            )

        leaked = [
            thread.name
            for thread in threading.enumerate()
            if thread.ident not in before and thread.name.startswith("pyanalytics-")
        ]
        assert leaked == []

    def test_skip_bundled_integrations(self) -> None:
        host = FakeHost()
        analytics = Analytics.create(
            host,
            AnalyticsConfig(write_key="wk", skip_bundled_integrations=True),
            network=RecordingNetwork(),
        )
        assert host.lifecycle.subscriber_count == 0
        with pytest.raises(AnalyticsStateError):
            analytics.on_integration_ready("Mixpanel", lambda _instance: None)


class TestSingleton:
    def test_set_twice_fails(self) -> None:
        handle = SingletonHandle()
        Analytics.set_singleton_instance(_create(FakeHost()), handle=handle)
        with pytest.raises(AnalyticsStateError):
            Analytics.set_singleton_instance(_create(FakeHost()), handle=handle)

    def test_set_after_lazy_access_fails(self) -> None:
        handle = SingletonHandle()
        Analytics.with_host(FakeHost(resources={"analytics_write_key": "wk"}), handle=handle)
        with pytest.raises(AnalyticsStateError):
            Analytics.set_singleton_instance(_create(FakeHost()), handle=handle)

    def test_explicit_instance_returned(self) -> None:
        handle = SingletonHandle()
        analytics = _create(FakeHost())
        Analytics.set_singleton_instance(analytics, handle=handle)
        assert Analytics.with_host(FakeHost(), handle=handle) is analytics

    def test_access_without_write_key_fails(self) -> None:
        handle = SingletonHandle()
        with pytest.raises(AnalyticsConfigError):
            Analytics.with_host(FakeHost(), handle=handle)
        assert handle.instance is None

    def test_access_without_host_fails(self) -> None:
        with pytest.raises(AnalyticsConfigError):
            Analytics.with_host(None, handle=SingletonHandle())

    def test_lazy_construction_uses_resource_and_debug_flag(self) -> None:
        handle = SingletonHandle()
        host = FakeHost(resources={"analytics_write_key": "resource-key"}, debuggable=True)

        analytics = Analytics.with_host(host, handle=handle)

        assert analytics.config.write_key == "resource-key"
        assert analytics.log_level is LogLevel.INFO
        assert Analytics.with_host(host, handle=handle) is analytics
        analytics._router.network.shutdown()  # noqa: SLF001

    def test_debug_flag_failure_is_ignored(self) -> None:
        handle = SingletonHandle()
        host = FakeHost(resources={"analytics_write_key": "wk"}, debuggable=RuntimeError("no metadata"))

        analytics = Analytics.with_host(host, handle=handle)

        assert analytics.log_level is LogLevel.NONE
        analytics._router.network.shutdown()  # noqa: SLF001

    def test_concurrent_access_constructs_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        handle = SingletonHandle()
        built: list[Analytics] = []

        def _build(host):
            analytics = _create(host)
            built.append(analytics)
            return analytics

        monkeypatch.setattr(SingletonHandle, "_build_default", staticmethod(_build))
        host = FakeHost()
        barrier = threading.Barrier(8)
        results: list[Analytics] = []

        def _worker() -> None:
            barrier.wait()
            results.append(Analytics.with_host(host, handle=handle))

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(built) == 1
        assert all(result is built[0] for result in results)


class TestShutdown:
    def test_shutdown_is_idempotent(self) -> None:
        network = RecordingNetwork()
        integrations = RecordingIntegrations()
        analytics = Analytics.create(
            FakeHost(),
            AnalyticsConfig(write_key="wk"),
            integration_sink=integrations,
            network=network,
        )

        analytics.shutdown()
        analytics.shutdown()

        assert analytics.state is InstanceState.SHUTDOWN
        assert network.shutdown_count == 1
        assert integrations.shutdown_count == 1
        assert analytics.get_snapshot() is not None

    def test_default_singleton_cannot_be_shut_down(self) -> None:
        handle = SingletonHandle()
        analytics = _create(FakeHost())
        Analytics.set_singleton_instance(analytics, handle=handle)
        with pytest.raises(AnalyticsUnsupportedOperationError):
            analytics.shutdown()
        assert analytics.state is InstanceState.ACTIVE


class TestFlushAndCallbacks:
    def test_flush_reaches_both_sinks(self, harness) -> None:
        harness.analytics.flush()
        assert harness.network.flushes == [0]
        assert harness.integrations.flush_count == 1

    def test_flush_without_integrations(self, make_harness) -> None:
        h = make_harness(with_integrations=False)
        h.analytics.flush()
        assert h.network.flushes == [0]

    def test_on_integration_ready(self, harness) -> None:
        def callback(_instance: object) -> None:
            return None

        harness.analytics.on_integration_ready("Mixpanel", callback)
        assert harness.integrations.callbacks == {"Mixpanel": callback}

    @pytest.mark.parametrize("key", [None, "NotAnIntegration"])
    def test_on_integration_ready_rejects_unknown_keys(self, harness, key: str | None) -> None:
        with pytest.raises(AnalyticsArgumentError):
            harness.analytics.on_integration_ready(key, lambda _instance: None)


class TestHostLifecycle:
    def test_events_forwarded_to_integrations_only(self, harness) -> None:
        event = harness.host.lifecycle.emit(LifecycleType.CREATED, component="MainActivity", saved_state={"k": 1})
        harness.host.lifecycle.emit(LifecycleType.RESUMED, component="MainActivity")
        harness.host.lifecycle.join()

        operations = harness.integrations.operations
        assert [op.type for op in operations] == [LifecycleType.CREATED, LifecycleType.RESUMED]
        assert operations[0] == event
        assert operations[0].saved_state == {"k": 1}
        assert harness.network.payloads == []
        assert harness.analytics.get_snapshot().lifecycle_event_count == 2

    def test_subscription_outlives_shutdown(self, harness) -> None:
        harness.analytics.shutdown()
        harness.host.lifecycle.emit(LifecycleType.DESTROYED)
        harness.host.lifecycle.join()
        assert harness.host.lifecycle.subscriber_count == 1
        assert [op.type for op in harness.integrations.operations] == [LifecycleType.DESTROYED]


class TestLifecycleChannel:
    def test_delivers_in_order_to_every_subscriber(self) -> None:
        channel = LifecycleChannel()
        first: list[ActivityLifecycleEvent] = []
        second: list[ActivityLifecycleEvent] = []
        channel.subscribe(first.append)
        channel.subscribe(second.append)

        for type_ in LifecycleType:
            channel.emit(type_)
        channel.join()

        assert [event.type for event in first] == list(LifecycleType)
        assert first == second

    def test_drops_oldest_when_full(self) -> None:
        channel = LifecycleChannel(capacity=2)
        channel.emit(LifecycleType.CREATED)
        channel.emit(LifecycleType.STARTED)
        channel.emit(LifecycleType.RESUMED)

        received: list[ActivityLifecycleEvent] = []
        channel.subscribe(received.append)
        channel.join()

        assert [event.type for event in received] == [LifecycleType.STARTED, LifecycleType.RESUMED]

    def test_failing_subscriber_does_not_stop_delivery(self) -> None:
        channel = LifecycleChannel()
        received: list[ActivityLifecycleEvent] = []

        def _boom(_event: ActivityLifecycleEvent) -> None:
            raise RuntimeError("boom")

        channel.subscribe(_boom)
        channel.subscribe(received.append)
        channel.emit(LifecycleType.PAUSED)
        channel.emit(LifecycleType.STOPPED)
        channel.join()

        assert [event.type for event in received] == [LifecycleType.PAUSED, LifecycleType.STOPPED]

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            LifecycleChannel(capacity=0)
