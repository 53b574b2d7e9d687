"""Custom exception hierarchy for pyanalytics."""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base exception for all pyanalytics errors."""


class AnalyticsConfigError(AnalyticsError, ValueError):
    """Invalid or missing configuration.

    Raised while building an instance; no partial instance is produced.
    """


class AnalyticsArgumentError(AnalyticsError, ValueError):
    """A verb was called with arguments that break its contract."""


class AnalyticsStateError(AnalyticsError, RuntimeError):
    """A call was made while the instance is in the wrong state.

    Covers aliasing before a user id was identified, setting the global
    instance twice, and registering integration callbacks when bundled
    integrations are disabled.
    """


class AnalyticsUnsupportedOperationError(AnalyticsError):
    """The operation is not allowed on this instance (e.g. shutting down the default singleton)."""


class AnalyticsTransportError(AnalyticsError):
    """HTTP-level failure while uploading a batch (network, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)
