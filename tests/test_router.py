from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from pyanalytics.client import Analytics
from pyanalytics.codec import JsonCodec
from pyanalytics.config import AnalyticsConfig, LogLevel
from pyanalytics.dispatcher import BatchDispatcher
from pyanalytics.exceptions import AnalyticsStateError
from pyanalytics.models.lifecycle import ActivityLifecycleEvent, LifecycleType
from pyanalytics.router import DispatchRouter
from pyanalytics.stats import Stats
from pyanalytics.storage import MemoryStore

from conftest import FakeHost, RecordingIntegrations, RecordingNetwork


def _mixed_calls(analytics) -> None:
    analytics.track("one")
    analytics.identify("u1", {"name": "Ada"})
    analytics.screen("cat", "home")
    analytics.group("g1")
    analytics.alias("anon")
    analytics.track("two", {"n": 2})
    analytics.identify(None, {"plan": "pro"})
    analytics.screen(None, "settings")
    analytics.group("g2", {"size": 10})
    analytics.track("three")


def test_each_payload_goes_to_both_sinks_in_order(harness) -> None:
    _mixed_calls(harness.analytics)

    assert len(harness.network.payloads) == 10
    assert len(harness.integrations.operations) == 10
    # network first, then integrations, for every call
    assert [sink for sink, _ in harness.calls] == ["network", "integrations"] * 10
    network_ids = [payload.id for payload in harness.network.payloads]
    integration_ids = [operation.id for operation in harness.integrations.operations]
    assert network_ids == integration_ids
    assert [p.type.value for p in harness.network.payloads] == [
        "track",
        "identify",
        "screen",
        "group",
        "alias",
        "track",
        "identify",
        "screen",
        "group",
        "track",
    ]


def test_without_integration_sink(make_harness) -> None:
    h = make_harness(with_integrations=False)

    _mixed_calls(h.analytics)

    assert len(h.network.payloads) == 10
    assert [sink for sink, _ in h.calls] == ["network"] * 10


def test_logging_disabled_by_default(harness, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="pyanalytics.router"):
        harness.analytics.track("quiet")
    assert caplog.records == []


def test_logs_created_payload_with_redaction(make_harness, caplog: pytest.LogCaptureFixture) -> None:
    h = make_harness(log_level=LogLevel.BASIC)

    with caplog.at_level(logging.DEBUG, logger="pyanalytics.router"):
        h.analytics.track("Signed In", {"password": "hunter2", "method": "email"})

    payload = h.network.payloads[-1]
    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 1
    assert "Main" in messages[0]
    assert "create" in messages[0]
    assert payload.id in messages[0]
    assert "hunter2" not in messages[0]
    assert "<redacted>" in messages[0]


def test_logs_integration_skip(make_harness, caplog: pytest.LogCaptureFixture) -> None:
    h = make_harness(with_integrations=False, log_level=LogLevel.INFO)

    with caplog.at_level(logging.DEBUG, logger="pyanalytics.router"):
        h.analytics.track("Skipped")

    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 2
    assert "IntegrationManager" in messages[1]
    assert "skip" in messages[1]


def test_lifecycle_goes_to_integrations_only() -> None:
    calls: list = []
    network = RecordingNetwork(calls)
    integrations = RecordingIntegrations(calls)
    router = DispatchRouter(network, integrations)
    event = ActivityLifecycleEvent(type=LifecycleType.RESUMED, component="MainActivity")

    router.submit_lifecycle(event)

    assert integrations.operations == [event]
    assert network.payloads == []


def test_lifecycle_without_integrations_rejected() -> None:
    router = DispatchRouter(RecordingNetwork(), None)
    with pytest.raises(AnalyticsStateError):
        router.submit_lifecycle(ActivityLifecycleEvent(type=LifecycleType.CREATED))


def test_stats_count_events(harness) -> None:
    harness.analytics.track("a")
    harness.analytics.track("b")
    assert harness.analytics.get_snapshot().event_count == 2


class _CollectingUploader:
    def __init__(self) -> None:
        self.batches: list[list[dict[str, Any]]] = []

    async def upload(self, batch: Sequence[Mapping[str, Any]]) -> None:
        self.batches.append([dict(event) for event in batch])


class _Opaque:
    """A property value with no JSON form."""

    def __repr__(self) -> str:
        return "<Opaque>"


def test_unserializable_property_still_reaches_integrations(caplog: pytest.LogCaptureFixture) -> None:
    uploader = _CollectingUploader()
    stats = Stats()
    dispatcher = BatchDispatcher(uploader, JsonCodec(), queue_size=20, flush_interval=3600, stats=stats)
    integrations = RecordingIntegrations()
    try:
        analytics = Analytics.create(
            FakeHost(),
            AnalyticsConfig(write_key="wk", log_level=LogLevel.VERBOSE),
            integration_sink=integrations,
            network=dispatcher,
            store=MemoryStore(),
        )
        with caplog.at_level(logging.DEBUG, logger="pyanalytics"):
            analytics.track("Bought", {"item": _Opaque(), "sku": "A1"})
        analytics.track("Viewed")
        dispatcher.flush()
        assert dispatcher.wait_idle(5)
    finally:
        dispatcher.shutdown()

    assert [operation.event for operation in integrations.operations] == ["Bought", "Viewed"]
    assert integrations.operations[0].properties["sku"] == "A1"
    assert [[event["event"] for event in batch] for batch in uploader.batches] == [["Viewed"]]
    assert stats.create_snapshot().dropped_event_count == 1
    created = [r.getMessage() for r in caplog.records if r.name == "pyanalytics.router"]
    assert any("<Opaque>" in message for message in created)


def test_identify_with_unstorable_trait_keeps_identity_in_memory(
    harness, caplog: pytest.LogCaptureFixture
) -> None:
    key = f"traits-{harness.analytics.config.cache_tag}"
    harness.analytics.identify("u1", {"plan": "pro"})
    stored = harness.store.load(key)

    with caplog.at_level(logging.WARNING, logger="pyanalytics.identity"):
        harness.analytics.identify(None, {"avatar": _Opaque()})

    assert harness.store.load(key) == stored
    assert set(harness.analytics.identity.traits) == {"plan", "avatar"}
    assert set(harness.integrations.operations[-1].traits) == {"plan", "avatar"}
    assert "cannot be stored" in caplog.text
