"""Client configuration for pyanalytics."""

from __future__ import annotations

import dataclasses
import enum
import os
from pathlib import Path
from typing import Any

from pyanalytics._constants import (
    DEFAULT_ENDPOINT,
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_FLUSH_QUEUE_SIZE,
    MIN_FLUSH_INTERVAL,
    is_null_or_empty,
)
from pyanalytics.exceptions import AnalyticsConfigError
from pyanalytics.models.options import Options


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class LogLevel(enum.Enum):
    """Controls the level of logging."""

    #: No logging.
    NONE = "none"
    #: Log exceptions and events through this library only.
    BASIC = "basic"
    #: Also enable logging for bundled integrations.
    INFO = "info"
    #: Also enable verbose logging for bundled integrations.
    VERBOSE = "verbose"

    def log(self) -> bool:
        return self is not LogLevel.NONE

    @classmethod
    def parse(cls, value: LogLevel | str | None) -> LogLevel:
        """Coerce a member, member name or member value into a :class:`LogLevel`."""
        if value is None:
            raise AnalyticsConfigError("log_level must not be None.")
        if isinstance(value, LogLevel):
            return value
        text = str(value).strip()
        try:
            return cls(text.lower())
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise AnalyticsConfigError(f"Unknown log level: {value!r}") from None


@dataclasses.dataclass(frozen=True)
class AnalyticsConfig:
    """Instance configuration.

    Every field is validated on construction, so a config object can only
    exist in a valid state.

    Parameters
    ----------
    write_key : str
        Project write key. Must not be empty.
    queue_size : int
        Number of queued events that triggers an upload. Must be > 0.
    flush_interval : int
        Seconds between periodic uploads. Must be >= 10.
    default_options : Options or None
        Options used for calls that pass none. Must not carry a timestamp.
        A defensive copy is stored, so later changes to the caller's object
        have no effect.
    tag : str or None
        Key used for caches. Defaults to ``write_key``.
    log_level : LogLevel or str
        Debug logging level. Defaults to ``LogLevel.NONE``.
    skip_bundled_integrations : bool
        Disable the integration manager entirely.
    cache_dir : Path or None
        Directory for the persistent identity cache. ``None`` keeps the
        identity in memory only.
    endpoint : str
        Base URL events are uploaded to.
    """

    write_key: str
    queue_size: int = DEFAULT_FLUSH_QUEUE_SIZE
    flush_interval: int = DEFAULT_FLUSH_INTERVAL
    default_options: Options | None = None
    tag: str | None = None
    log_level: LogLevel | str = LogLevel.NONE
    skip_bundled_integrations: bool = False
    cache_dir: Path | None = None
    endpoint: str = DEFAULT_ENDPOINT

    def __post_init__(self) -> None:
        if not isinstance(self.write_key, str) or is_null_or_empty(self.write_key):
            raise AnalyticsConfigError("write_key must not be null or empty.")
        if self.queue_size <= 0:
            raise AnalyticsConfigError("queue_size must be greater than zero.")
        if self.flush_interval < MIN_FLUSH_INTERVAL:
            raise AnalyticsConfigError(f"flush_interval must be greater than or equal to {MIN_FLUSH_INTERVAL}.")

        if self.default_options is None:
            defaults = Options()
        else:
            if self.default_options.timestamp is not None:
                raise AnalyticsConfigError("default options must not contain a timestamp.")
            defaults = self.default_options.defensive_copy()
        object.__setattr__(self, "default_options", defaults)

        if self.tag is None:
            object.__setattr__(self, "tag", self.write_key)
        elif is_null_or_empty(self.tag):
            raise AnalyticsConfigError("tag must not be null or empty.")

        object.__setattr__(self, "log_level", LogLevel.parse(self.log_level))

        if self.cache_dir is not None:
            object.__setattr__(self, "cache_dir", Path(self.cache_dir))

    @property
    def defaults(self) -> Options:
        """Validated default options (never ``None`` after construction)."""
        assert self.default_options is not None  # noqa: S101
        return self.default_options

    @property
    def level(self) -> LogLevel:
        """Validated log level."""
        assert isinstance(self.log_level, LogLevel)  # noqa: S101
        return self.log_level

    @property
    def cache_tag(self) -> str:
        return self.tag or self.write_key

    @classmethod
    def from_env(cls, **overrides: Any) -> AnalyticsConfig:
        """Create configuration from environment variables.

        Reads ``ANALYTICS_WRITE_KEY`` and the optional ``ANALYTICS_*``
        variables. Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "ANALYTICS_WRITE_KEY": "write_key",
            "ANALYTICS_TAG": "tag",
            "ANALYTICS_LOG_LEVEL": "log_level",
            "ANALYTICS_ENDPOINT": "endpoint",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        queue_env = env.get("ANALYTICS_QUEUE_SIZE")
        if queue_env is not None and "queue_size" not in overrides:
            config_kwargs["queue_size"] = int(queue_env)

        interval_env = env.get("ANALYTICS_FLUSH_INTERVAL")
        if interval_env is not None and "flush_interval" not in overrides:
            config_kwargs["flush_interval"] = int(interval_env)

        cache_env = env.get("ANALYTICS_CACHE_DIR")
        if cache_env and "cache_dir" not in overrides:
            config_kwargs["cache_dir"] = Path(cache_env)

        if "skip_bundled_integrations" not in overrides:
            config_kwargs["skip_bundled_integrations"] = _env_bool(
                env.get("ANALYTICS_SKIP_BUNDLED_INTEGRATIONS"),
                False,
            )

        config_kwargs.update(overrides)
        if "write_key" not in config_kwargs:
            raise AnalyticsConfigError("write_key must not be null or empty.")

        return cls(**config_kwargs)
