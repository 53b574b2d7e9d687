"""Per-call options and the option merge rule."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pyanalytics.models._base import AnalyticsBaseModel

ALL_INTEGRATIONS_KEY = "All"


class Options(AnalyticsBaseModel):
    """Options attached to a single call.

    Parameters
    ----------
    timestamp : datetime or None
        Explicit event time. Only allowed on call-level options; instance
        defaults must not carry one.
    integrations : dict
        Per-integration toggles keyed by integration name. The special key
        ``"All"`` sets the default for integrations not listed.
    """

    timestamp: datetime | None = None
    integrations: dict[str, bool] = Field(default_factory=dict)

    def with_integration(self, key: str, enabled: bool) -> Options:
        """Return a copy with the toggle for *key* set to *enabled*."""
        integrations = dict(self.integrations)
        integrations[key] = enabled
        return self.model_copy(update={"integrations": integrations})

    def is_integration_enabled(self, key: str) -> bool:
        """Whether *key* should receive calls made with these options."""
        if key in self.integrations:
            return self.integrations[key]
        return self.integrations.get(ALL_INTEGRATIONS_KEY, True)

    def defensive_copy(self) -> Options:
        """Copy that shares no mutable state with this instance and drops the timestamp."""
        return Options(integrations=dict(self.integrations))


def resolve_options(call_options: Options | None, default_options: Options) -> Options:
    """Pick the options used for a call.

    Whole-object fallback: call-level options are used unchanged when
    given, otherwise a copy of the instance defaults. No per-field merge
    is performed.
    """
    if call_options is not None:
        return call_options
    return default_options.defensive_copy()
