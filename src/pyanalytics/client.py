"""High-level client: the five verbs, instance lifecycle and the default singleton."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from pyanalytics._constants import (
    BUNDLED_INTEGRATION_KEYS,
    PERMISSION_INTERNET,
    WRITE_KEY_RESOURCE_IDENTIFIER,
    is_null_or_empty,
)
from pyanalytics._transport import UploadClient
from pyanalytics.builder import PayloadBuilder
from pyanalytics.codec import JsonCodec
from pyanalytics.config import AnalyticsConfig, LogLevel
from pyanalytics.context import ContextSnapshot
from pyanalytics.dispatcher import BatchDispatcher
from pyanalytics.exceptions import (
    AnalyticsArgumentError,
    AnalyticsConfigError,
    AnalyticsStateError,
    AnalyticsUnsupportedOperationError,
)
from pyanalytics.host import HostPlatform
from pyanalytics.identity import IdentityStore
from pyanalytics.integrations import Integration, IntegrationManager
from pyanalytics.models.context import Context
from pyanalytics.models.identity import Identity
from pyanalytics.models.lifecycle import ActivityLifecycleEvent
from pyanalytics.models.options import Options
from pyanalytics.models.stats import StatsSnapshot
from pyanalytics.router import DispatchRouter
from pyanalytics.sinks import IntegrationCallback, IntegrationSink, NetworkSink
from pyanalytics.stats import Stats
from pyanalytics.storage import FileStore, KeyValueStore, MemoryStore

_logger = logging.getLogger(__name__)


class InstanceState(StrEnum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    SHUTDOWN = "shutdown"


class SingletonHandle:
    """Process-wide slot for the default :class:`Analytics` instance.

    Construction happens at most once, under a lock that is only held for
    the check-and-construct step. An instance can be installed explicitly
    with :meth:`set`, but only before anything has been stored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._instance: Analytics | None = None

    @property
    def instance(self) -> Analytics | None:
        return self._instance

    def get(self, host: HostPlatform | None) -> Analytics:
        instance = self._instance
        if instance is not None:
            return instance
        if host is None:
            raise AnalyticsConfigError("host must not be None.")
        with self._lock:
            if self._instance is None:
                self._instance = self._build_default(host)
                self._instance._singleton_handle = self
            return self._instance

    def set(self, analytics: Analytics) -> None:
        with self._lock:
            if self._instance is not None:
                raise AnalyticsStateError("Singleton instance already exists.")
            self._instance = analytics
            analytics._singleton_handle = self

    @staticmethod
    def _build_default(host: HostPlatform) -> Analytics:
        write_key = host.get_resource_string(WRITE_KEY_RESOURCE_IDENTIFIER)
        if write_key is None or is_null_or_empty(write_key):
            raise AnalyticsConfigError(
                f"No write key found. Provide the {WRITE_KEY_RESOURCE_IDENTIFIER!r} resource "
                "or install an instance with set_singleton_instance()."
            )

        log_level = LogLevel.NONE
        try:
            if host.is_debuggable():
                log_level = LogLevel.INFO
        except Exception:
            _logger.debug("Debuggable flag lookup failed", exc_info=True)

        return Analytics.create(host, AnalyticsConfig(write_key=write_key, log_level=log_level))


#: Handle used by :meth:`Analytics.with_host` when none is given.
default_handle = SingletonHandle()


class Analytics:
    """Entry point for recording user identity and behavior.

    Usage::

        analytics = Analytics.create(LocalHost(), AnalyticsConfig(write_key="..."))
        analytics.identify("user-1", {"plan": "pro"})
        analytics.track("Purchased Item", {"revenue": 9.99})
        analytics.flush()

    Or use the process-wide default instance with :meth:`with_host`.
    Verb methods run synchronously on the caller's thread. Identity-mutating
    verbs (``identify``, ``logout``) must not be called concurrently on the
    same instance.
    """

    def __init__(
        self,
        *,
        config: AnalyticsConfig,
        host: HostPlatform,
        router: DispatchRouter,
        identity: IdentityStore,
        context: ContextSnapshot,
        stats: Stats,
    ) -> None:
        self._state = InstanceState.UNINITIALIZED
        self._config = config
        self._host = host
        self._router = router
        self._identity = identity
        self._context = context
        self._stats = stats
        self._builder = PayloadBuilder(identity, context, config.defaults)
        self._singleton_handle: SingletonHandle | None = None

        if router.integrations is not None:
            host.lifecycle.subscribe(self._on_lifecycle_event)

        self._state = InstanceState.ACTIVE

    # ------------------------------------------------------------------
    # Construction and the default instance
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        host: HostPlatform | None,
        config: AnalyticsConfig | None,
        *,
        integrations: Iterable[Integration] = (),
        integration_settings: Mapping[str, Mapping[str, Any]] | None = None,
        integration_sink: IntegrationSink | None = None,
        network: NetworkSink | None = None,
        store: KeyValueStore | None = None,
    ) -> Analytics:
        """Validate inputs and build a new instance with its collaborators.

        Collaborators are built in dependency order: stats, codec, upload
        client, integration manager (unless skipped), network dispatcher,
        identity store, context snapshot. *integration_sink*, *network* and
        *store* replace the default implementations. If a step fails, the
        sinks built so far by this call are shut down before the error
        propagates, so no worker thread outlives a failed ``create``.
        """
        if host is None:
            raise AnalyticsConfigError("host must not be None.")
        if config is None:
            raise AnalyticsConfigError("config must not be None.")
        if not host.has_permission(PERMISSION_INTERNET):
            raise AnalyticsConfigError(f"{PERMISSION_INTERNET!r} permission is required.")

        log_level = config.level
        stats = Stats()
        codec = JsonCodec()

        sink: IntegrationSink | None = None
        bundled: dict[str, bool] = {}
        owned: list[IntegrationManager | BatchDispatcher] = []
        try:
            if not config.skip_bundled_integrations:
                sink = integration_sink
                if sink is None:
                    manager = IntegrationManager(
                        integrations,
                        settings=integration_settings,
                        log_level=log_level,
                        stats=stats,
                    )
                    owned.append(manager)
                    sink = manager
                bundled = dict(sink.bundled_integrations)

            if network is None:
                dispatcher = BatchDispatcher(
                    UploadClient(config.write_key, config.endpoint),
                    codec,
                    queue_size=config.queue_size,
                    flush_interval=config.flush_interval,
                    bundled_integrations=bundled,
                    stats=stats,
                    log_level=log_level,
                )
                owned.append(dispatcher)
                network = dispatcher

            if store is None:
                store = FileStore(config.cache_dir) if config.cache_dir is not None else MemoryStore()
            identity = IdentityStore(store, codec, config.cache_tag)
            loaded = identity.get()
        except BaseException:
            for collaborator in reversed(owned):
                collaborator.shutdown()
            raise

        host_info: Mapping[str, Any] = {}
        try:
            host_info = host.context_info()
        except Exception:
            _logger.debug("Host context lookup failed", exc_info=True)
        context = ContextSnapshot.create(host_info, loaded.traits)

        router = DispatchRouter(network, sink, log_level=log_level, stats=stats)
        return cls(
            config=config,
            host=host,
            router=router,
            identity=identity,
            context=context,
            stats=stats,
        )

    @classmethod
    def with_host(cls, host: HostPlatform | None, *, handle: SingletonHandle | None = None) -> Analytics:
        """Return the default instance, building it on first use.

        The write key is read from the host's ``analytics_write_key``
        resource; a debuggable host gets ``LogLevel.INFO``.
        """
        return (handle or default_handle).get(host)

    @staticmethod
    def set_singleton_instance(analytics: Analytics, *, handle: SingletonHandle | None = None) -> None:
        """Install *analytics* as the default instance.

        Must be called before any call to :meth:`with_host` and only once.
        """
        (handle or default_handle).set(analytics)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> InstanceState:
        return self._state

    @property
    def config(self) -> AnalyticsConfig:
        return self._config

    @property
    def log_level(self) -> LogLevel:
        return self._config.level

    @property
    def default_options(self) -> Options:
        return self._config.defaults

    @property
    def identity(self) -> Identity:
        return self._identity.get()

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def identify(
        self,
        user_id: str | None = None,
        traits: Mapping[str, Any] | None = None,
        options: Options | None = None,
    ) -> str:
        """Tie the current user to *user_id* and record *traits* about them.

        Traits are merged into the cached traits and survive restarts when
        a persistent cache is configured. If *user_id* is empty, the cached
        id is kept.

        Returns the previous user id (or anonymous id), suitable for a
        later :meth:`alias` call.
        """
        previous_id, payload = self._builder.identify(user_id, traits, options)
        self._router.submit(payload)
        return previous_id

    def group(
        self,
        group_id: str | None,
        traits: Mapping[str, Any] | None = None,
        options: Options | None = None,
    ) -> None:
        """Associate the current user with *group_id*."""
        self._router.submit(self._builder.group(group_id, traits, options))

    def track(
        self,
        event: str | None,
        properties: Mapping[str, Any] | None = None,
        options: Options | None = None,
    ) -> None:
        """Record an action the user performed."""
        self._router.submit(self._builder.track(event, properties, options))

    def screen(
        self,
        category: str | None,
        name: str | None = None,
        properties: Mapping[str, Any] | None = None,
        options: Options | None = None,
    ) -> None:
        """Record a screen view. Either *category* or *name* must be given."""
        self._router.submit(self._builder.screen(category, name, properties, options))

    def alias(self, previous_id: str | None, options: Options | None = None) -> None:
        """Merge *previous_id* into the currently identified user.

        Usage::

            previous_id = analytics.identify(new_id)
            analytics.alias(previous_id)
        """
        self._router.submit(self._builder.alias(previous_id, options))

    # ------------------------------------------------------------------
    # Instance operations
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Ask the network dispatcher and bundled integrations to flush now."""
        self._router.network.flush(0)
        if self._router.integrations is not None:
            self._router.integrations.dispatch_flush()

    def logout(self) -> None:
        """Clear the user id and traits, starting a new anonymous identity."""
        self._identity.delete()
        self._identity.set(Identity.create())
        self._context.set_traits(self._identity.get().traits)

    def get_analytics_context(self) -> Context:
        return self._context.current()

    def get_snapshot(self) -> StatsSnapshot:
        return self._stats.create_snapshot()

    def on_integration_ready(self, key: str | None, callback: IntegrationCallback) -> None:
        """Invoke *callback* with the integration's SDK instance once it is ready.

        One callback per integration; registering again replaces it. The
        callback runs on the integration thread.
        """
        if key is None or key not in BUNDLED_INTEGRATION_KEYS:
            raise AnalyticsArgumentError(f"Unknown bundled integration: {key!r}")
        if self._router.integrations is None:
            raise AnalyticsStateError("Enable bundled integrations to register for this callback.")
        self._router.integrations.dispatch_register_callback(key, callback)

    def shutdown(self) -> None:
        """Stop this instance. The default singleton cannot be shut down."""
        if self._singleton_handle is not None:
            raise AnalyticsUnsupportedOperationError("Default singleton instance cannot be shutdown.")
        if self._state is InstanceState.SHUTDOWN:
            return
        if self._router.integrations is not None:
            self._router.integrations.shutdown()
        self._router.network.shutdown()
        self._stats.shutdown()
        self._state = InstanceState.SHUTDOWN

    def _on_lifecycle_event(self, event: ActivityLifecycleEvent) -> None:
        self._router.submit_lifecycle(event)
