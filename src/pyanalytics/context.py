"""Context snapshot shared by every payload an instance builds."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pyanalytics import __version__
from pyanalytics._constants import LIBRARY_NAME
from pyanalytics.models.context import Context


class ContextSnapshot:
    """Holds the current :class:`Context` for one instance.

    The device/app/os parts are captured once at construction. The embedded
    traits are replaced whenever the identity's traits change, and
    :meth:`current` hands out a deep copy so a payload never observes later
    changes.
    """

    def __init__(self, context: Context) -> None:
        self._context = context

    @classmethod
    def create(cls, host_info: Mapping[str, Any], traits: Mapping[str, Any]) -> ContextSnapshot:
        context = Context(
            app=dict(host_info.get("app") or {}),
            device=dict(host_info.get("device") or {}),
            os=dict(host_info.get("os") or {}),
            library={"name": LIBRARY_NAME, "version": __version__},
            locale=host_info.get("locale"),
            timezone=host_info.get("timezone"),
            traits=copy.deepcopy(dict(traits)),
        )
        return cls(context)

    def set_traits(self, traits: Mapping[str, Any]) -> None:
        self._context = self._context.model_copy(update={"traits": copy.deepcopy(dict(traits))})

    def current(self) -> Context:
        return self._context.model_copy(deep=True)
