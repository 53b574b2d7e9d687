"""In-memory batching network dispatcher."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from collections.abc import Mapping
from typing import Any

from pyanalytics._constants import (
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_FLUSH_QUEUE_SIZE,
    OWNER_DISPATCHER,
    THREAD_PREFIX,
    VERB_ENQUEUE,
    VERB_FLUSH,
    VERB_SKIP,
)
from pyanalytics._transport import Uploader
from pyanalytics.codec import JsonCodec
from pyanalytics.config import LogLevel
from pyanalytics.exceptions import AnalyticsTransportError
from pyanalytics.models.payloads import BasePayload
from pyanalytics.router import debug
from pyanalytics.stats import Stats

_logger = logging.getLogger(__name__)

#: Upper bound of events sent in one request.
MAX_BATCH_SIZE = 100


class BatchDispatcher:
    """Queues payloads and uploads them from a background thread.

    An upload starts when the queue reaches ``queue_size``, every
    ``flush_interval`` seconds, or when :meth:`flush` is called. Failed
    uploads are logged and dropped; retries are not attempted. Payloads are
    serialized on the worker thread, and one that has no JSON form is
    logged and dropped on its own.

    Bundled integrations are marked disabled on every uploaded event so the
    server does not forward events those integrations already received on
    the device.
    """

    def __init__(
        self,
        uploader: Uploader,
        codec: JsonCodec,
        *,
        queue_size: int = DEFAULT_FLUSH_QUEUE_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        bundled_integrations: Mapping[str, bool] | None = None,
        stats: Stats | None = None,
        log_level: LogLevel = LogLevel.NONE,
    ) -> None:
        self._uploader = uploader
        self._codec = codec
        self._queue_size = queue_size
        self._flush_interval = float(flush_interval)
        self._bundled = dict(bundled_integrations or {})
        self._stats = stats
        self._log_level = log_level

        self._queue: deque[BasePayload] = deque()
        self._cond = threading.Condition()
        self._flush_at: float | None = None
        self._stopping = False
        self._shutdown = False
        self._in_flight = 0
        self._thread = threading.Thread(target=self._run, name=f"{THREAD_PREFIX}dispatcher", daemon=True)
        self._thread.start()

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def enqueue(self, payload: BasePayload) -> None:
        """Queue *payload* for upload. Serialization happens on the worker thread."""
        with self._cond:
            if self._stopping:
                if self._log_level.log():
                    debug(OWNER_DISPATCHER, VERB_SKIP, payload.id, "dispatcher is shut down")
                return
            self._queue.append(payload)
            if len(self._queue) >= self._queue_size:
                self._flush_at = time.monotonic()
            self._cond.notify()
        if self._log_level.log():
            debug(OWNER_DISPATCHER, VERB_ENQUEUE, payload.id)

    def flush(self, delay_millis: int = 0) -> None:
        """Request an upload in *delay_millis* milliseconds."""
        due = time.monotonic() + max(delay_millis, 0) / 1000.0
        with self._cond:
            if self._flush_at is None or due < self._flush_at:
                self._flush_at = due
            self._cond.notify()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until the queue is empty and no upload is running."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._queue or self._in_flight:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
        return True

    def shutdown(self) -> None:
        """Upload what is queued, then stop the worker. Safe to call twice."""
        with self._cond:
            if self._stopping:
                return
            self._stopping = True
            self._cond.notify_all()
        self._thread.join()
        self._shutdown = True

    def _take_batch(self) -> list[dict[str, Any]]:
        batch: list[dict[str, Any]] = []
        while self._queue and len(batch) < MAX_BATCH_SIZE:
            event = self._serialize(self._queue.popleft())
            if event is not None:
                batch.append(event)
        return batch

    def _serialize(self, payload: BasePayload) -> dict[str, Any] | None:
        """Wire form of *payload*, or ``None`` if it cannot be encoded as JSON."""
        try:
            event = self._codec.to_dict(payload)
        except Exception:
            _logger.warning("Dropping event %s: payload is not JSON serializable", payload.id, exc_info=True)
            if self._stats is not None:
                self._stats.record_dropped_event()
            return None
        options = event.pop("options", None) or {}
        integrations = dict(options.get("integrations") or {})
        integrations.update(self._bundled)
        event["integrations"] = integrations
        return event

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        next_periodic = time.monotonic() + self._flush_interval
        try:
            while True:
                with self._cond:
                    while True:
                        now = time.monotonic()
                        if self._stopping:
                            break
                        if self._flush_at is not None and now >= self._flush_at:
                            break
                        if now >= next_periodic:
                            break
                        wake = next_periodic if self._flush_at is None else min(next_periodic, self._flush_at)
                        self._cond.wait(max(wake - now, 0.0))
                    stopping = self._stopping
                    now = time.monotonic()
                    if now >= next_periodic:
                        next_periodic = now + self._flush_interval
                    self._flush_at = None
                    batch = self._take_batch()
                    if batch:
                        self._in_flight += 1
                        if self._queue:
                            self._flush_at = now
                    else:
                        self._cond.notify_all()

                if batch:
                    try:
                        self._upload(loop, batch)
                    finally:
                        with self._cond:
                            self._in_flight -= 1
                            self._cond.notify_all()
                elif stopping:
                    return
        finally:
            loop.close()

    def _upload(self, loop: asyncio.AbstractEventLoop, batch: list[dict[str, Any]]) -> None:
        if self._log_level.log():
            debug(OWNER_DISPATCHER, VERB_FLUSH, f"{len(batch)} events")
        try:
            loop.run_until_complete(self._uploader.upload(batch))
        except AnalyticsTransportError as exc:
            _logger.warning("Dropping %d events after failed upload: %s", len(batch), exc)
            if self._stats is not None:
                self._stats.record_upload_failure()
            return
        except Exception:
            _logger.exception("Unexpected upload failure, dropping %d events", len(batch))
            if self._stats is not None:
                self._stats.record_upload_failure()
            return
        if self._stats is not None:
            self._stats.record_flush()
