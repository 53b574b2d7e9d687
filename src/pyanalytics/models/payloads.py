"""Immutable event payloads, one variant per verb."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import Field

from pyanalytics.models._base import AnalyticsBaseModel, new_id
from pyanalytics.models.context import Context
from pyanalytics.models.options import Options


class PayloadType(StrEnum):
    IDENTIFY = "identify"
    GROUP = "group"
    TRACK = "track"
    SCREEN = "screen"
    ALIAS = "alias"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BasePayload(AnalyticsBaseModel):
    """Fields shared by every payload variant."""

    message_id: str = Field(default_factory=new_id)
    type: PayloadType
    context: Context
    options: Options
    anonymous_id: str
    user_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def id(self) -> str:
        return self.message_id


class IdentifyPayload(BasePayload):
    type: Literal[PayloadType.IDENTIFY] = PayloadType.IDENTIFY
    traits: dict[str, Any] = Field(default_factory=dict)


class GroupPayload(BasePayload):
    type: Literal[PayloadType.GROUP] = PayloadType.GROUP
    group_id: str
    traits: dict[str, Any] = Field(default_factory=dict)


class TrackPayload(BasePayload):
    type: Literal[PayloadType.TRACK] = PayloadType.TRACK
    event: str
    properties: dict[str, Any] = Field(default_factory=dict)


class ScreenPayload(BasePayload):
    type: Literal[PayloadType.SCREEN] = PayloadType.SCREEN
    category: str | None = None
    name: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class AliasPayload(BasePayload):
    type: Literal[PayloadType.ALIAS] = PayloadType.ALIAS
    previous_id: str


Payload = IdentifyPayload | GroupPayload | TrackPayload | ScreenPayload | AliasPayload
