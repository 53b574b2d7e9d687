"""Base model shared by every pyanalytics record.

Every record inherits from :class:`AnalyticsBaseModel` which provides:

* ``alias_generator=to_camel`` so snake_case fields serialize to the
  camelCase keys the tracking API expects (``anonymousId``, ``groupId``).
* ``populate_by_name`` so either spelling can be used when loading.
* ``frozen=True``: records are values and are never mutated once built.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Return a fresh random identifier."""
    return str(uuid.uuid4())


class AnalyticsBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
