"""Runtime/device/session metadata attached to every payload."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pyanalytics.models._base import AnalyticsBaseModel


class Context(AnalyticsBaseModel):
    """Point-in-time context embedded in a payload.

    ``traits`` always mirrors the identity store's traits at the moment
    the payload was built.
    """

    app: dict[str, Any] = Field(default_factory=dict)
    device: dict[str, Any] = Field(default_factory=dict)
    os: dict[str, Any] = Field(default_factory=dict)
    library: dict[str, Any] = Field(default_factory=dict)
    locale: str | None = None
    timezone: str | None = None
    traits: dict[str, Any] = Field(default_factory=dict)
