"""Helpers for safe debug logging.

Payloads routinely carry user traits and event properties supplied by the
host application. This module redacts well-known sensitive keys before a
payload is written to a DEBUG log. It never raises: values it does not
know how to render are logged by ``repr``.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
        "writekey",
        "apikey",
        "ssn",
        "creditcard",
    }
)

_MAX_DEPTH = 20


def _is_sensitive(key: str) -> bool:
    # "api_key", "API-Key" and "apiKey" all normalize to "apikey"
    return key.replace("_", "").replace("-", "").lower() in _SENSITIVE_KEYS


def _truncate(text: str, max_string: int) -> str:
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted, log-friendly copy of *value*.

    Pydantic models are walked through their aliased field values, so a
    payload can be passed as-is without serializing it to JSON first.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    def walk(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if value is None or isinstance(value, (bool, int, float)) and not isinstance(value, Enum):
        return value
    if isinstance(value, Enum):
        return walk(value.value)
    if isinstance(value, str):
        return _truncate(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        try:
            return walk(value.model_dump(mode="python", by_alias=True))
        except Exception:
            return f"<{type(value).__name__}>"
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>" if _is_sensitive(str(key)) else walk(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, Set)):
        return [walk(item) for item in value]

    try:
        return _truncate(repr(value), max_string)
    except Exception:
        return f"<{type(value).__name__}>"
