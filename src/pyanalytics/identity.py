"""Persistent cache for the current user identity.

Not internally synchronized: identity-mutating calls are expected to come
from a single thread per instance.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pyanalytics.codec import JsonCodec
from pyanalytics.exceptions import AnalyticsError
from pyanalytics.models.identity import Identity
from pyanalytics.storage import KeyValueStore

_logger = logging.getLogger(__name__)


class IdentityStore:
    """Load, mutate and durably persist the :class:`Identity` for one instance tag.

    Every mutation is written to the backing store before the method
    returns.
    """

    def __init__(self, store: KeyValueStore, codec: JsonCodec, tag: str) -> None:
        self._store = store
        self._codec = codec
        self._key = f"traits-{tag}"
        self._identity: Identity | None = None

    def is_set(self) -> bool:
        """Whether an identity has been persisted for this tag."""
        return self._identity is not None or self._store.load(self._key) is not None

    def get(self) -> Identity:
        """Return the cached identity, loading or generating it on first use."""
        if self._identity is not None:
            return self._identity

        raw = self._store.load(self._key)
        identity: Identity | None = None
        if raw is not None:
            try:
                identity = self._codec.decode(raw, Identity)
            except AnalyticsError:
                _logger.debug("Discarding unreadable cached identity for %s", self._key, exc_info=True)

        if identity is None:
            identity = Identity.create()
            self._persist(identity)
        self._identity = identity
        return identity

    def set(self, identity: Identity) -> None:
        self._persist(identity)
        self._identity = identity

    def put_user_id(self, user_id: str) -> Identity:
        identity = self.get().model_copy(update={"user_id": user_id})
        self.set(identity)
        return identity

    def put_all(self, traits: Mapping[str, Any]) -> Identity:
        """Shallow-merge *traits* into the cached traits (last write wins per key)."""
        current = self.get()
        merged = dict(current.traits)
        merged.update(traits)
        identity = current.model_copy(update={"traits": merged})
        self.set(identity)
        return identity

    def delete(self) -> None:
        """Forget the identity, both in memory and on disk."""
        self._store.delete(self._key)
        self._identity = None

    def user_id_or_anonymous_id(self) -> str:
        return self.get().user_id_or_anonymous_id()

    def _persist(self, identity: Identity) -> None:
        try:
            raw = self._codec.encode(identity)
        except AnalyticsError:
            _logger.warning(
                "Identity for %s has traits that cannot be stored; keeping it in memory only",
                self._key,
                exc_info=True,
            )
            return
        self._store.save(self._key, raw)
