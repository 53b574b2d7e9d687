"""Construction and validation of payloads for the five verbs."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pyanalytics._constants import is_null_or_empty
from pyanalytics.context import ContextSnapshot
from pyanalytics.exceptions import AnalyticsArgumentError, AnalyticsStateError
from pyanalytics.identity import IdentityStore
from pyanalytics.models.options import Options, resolve_options
from pyanalytics.models.payloads import (
    AliasPayload,
    GroupPayload,
    IdentifyPayload,
    ScreenPayload,
    TrackPayload,
)


def _copy_mapping(values: Mapping[str, Any] | None) -> dict[str, Any]:
    if not values:
        return {}
    return copy.deepcopy(dict(values))


class PayloadBuilder:
    """Builds immutable payloads from call arguments.

    Each method validates its own arguments, then reads the current
    identity, context and resolved options at call time.
    """

    def __init__(
        self,
        identity: IdentityStore,
        context: ContextSnapshot,
        default_options: Options,
    ) -> None:
        self._identity = identity
        self._context = context
        self._default_options = default_options

    def _common(self, options: Options | None) -> dict[str, Any]:
        resolved = resolve_options(options, self._default_options)
        identity = self._identity.get()
        fields: dict[str, Any] = {
            "context": self._context.current(),
            "options": resolved,
            "anonymous_id": identity.anonymous_id,
            "user_id": identity.user_id,
        }
        if resolved.timestamp is not None:
            fields["timestamp"] = resolved.timestamp
        else:
            fields["timestamp"] = datetime.now(UTC)
        return fields

    def identify(
        self,
        user_id: str | None,
        traits: Mapping[str, Any] | None,
        options: Options | None,
    ) -> tuple[str, IdentifyPayload]:
        """Update the cached identity and build an identify payload.

        Returns the user id (or anonymous id) that was current before the
        call, together with the payload. The payload carries the traits as
        they are after the update.
        """
        previous_id = self._identity.get().user_id_or_anonymous_id() or ""

        if not is_null_or_empty(user_id):
            assert user_id is not None  # noqa: S101
            self._identity.put_user_id(user_id)
        if traits:
            updated = self._identity.put_all(traits)
            self._context.set_traits(updated.traits)

        payload = IdentifyPayload(
            traits=_copy_mapping(self._identity.get().traits),
            **self._common(options),
        )
        return previous_id, payload

    def group(
        self,
        group_id: str | None,
        traits: Mapping[str, Any] | None,
        options: Options | None,
    ) -> GroupPayload:
        if is_null_or_empty(group_id):
            raise AnalyticsArgumentError("groupId must not be null or empty.")
        return GroupPayload(group_id=group_id, traits=_copy_mapping(traits), **self._common(options))

    def track(
        self,
        event: str | None,
        properties: Mapping[str, Any] | None,
        options: Options | None,
    ) -> TrackPayload:
        if is_null_or_empty(event):
            raise AnalyticsArgumentError("event must not be null or empty.")
        return TrackPayload(event=event, properties=_copy_mapping(properties), **self._common(options))

    def screen(
        self,
        category: str | None,
        name: str | None,
        properties: Mapping[str, Any] | None,
        options: Options | None,
    ) -> ScreenPayload:
        if is_null_or_empty(category) and is_null_or_empty(name):
            raise AnalyticsArgumentError("either category or name must be provided.")
        return ScreenPayload(
            category=None if is_null_or_empty(category) else category,
            name=None if is_null_or_empty(name) else name,
            properties=_copy_mapping(properties),
            **self._common(options),
        )

    def alias(self, previous_id: str | None, options: Options | None) -> AliasPayload:
        if is_null_or_empty(previous_id):
            raise AnalyticsArgumentError("previousId must not be null or empty.")
        if is_null_or_empty(self._identity.get().user_id):
            raise AnalyticsStateError("user must be identified with a userId before aliasing.")
        return AliasPayload(previous_id=previous_id, **self._common(options))
