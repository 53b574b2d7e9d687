"""Cached user identity."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pyanalytics.models._base import AnalyticsBaseModel, new_id


class Identity(AnalyticsBaseModel):
    """Anonymous id, user id and traits describing the current user.

    ``anonymous_id`` is generated once and stays stable; ``user_id`` is
    ``None`` until ``identify`` supplies one.
    """

    user_id: str | None = None
    anonymous_id: str = Field(default_factory=new_id)
    traits: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(cls) -> Identity:
        """A brand new anonymous identity."""
        return cls()

    def user_id_or_anonymous_id(self) -> str:
        if self.user_id:
            return self.user_id
        return self.anonymous_id
