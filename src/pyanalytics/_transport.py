"""HTTP upload of event batches."""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

import aiohttp

from pyanalytics import __version__
from pyanalytics._constants import DEFAULT_ENDPOINT, LIBRARY_NAME, UPLOAD_PATH
from pyanalytics.exceptions import AnalyticsTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = f"{LIBRARY_NAME}/{__version__}"


def _basic_authorization(write_key: str) -> str:
    """HTTP basic credentials: the write key as user name, empty password."""
    token = base64.b64encode(f"{write_key}:".encode()).decode("ascii")
    return f"Basic {token}"


class Uploader(Protocol):
    """Structural upload interface used by the dispatcher."""

    async def upload(self, batch: Sequence[Mapping[str, Any]]) -> None: ...


class UploadClient:
    """Posts JSON batches to the tracking API with HTTP basic auth.

    A fresh :class:`aiohttp.ClientSession` is opened per upload unless one
    is supplied, because the dispatcher drives uploads from its own event
    loop on a worker thread.
    """

    def __init__(
        self,
        write_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._authorization = _basic_authorization(write_key)
        self._url = f"{endpoint.rstrip('/')}{UPLOAD_PATH}"
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def url(self) -> str:
        return self._url

    async def upload(self, batch: Sequence[Mapping[str, Any]]) -> None:
        body = json.dumps(
            {"batch": list(batch), "sentAt": datetime.now(UTC).isoformat()},
            separators=(",", ":"),
        )
        headers = {
            "content-type": "application/json; charset=utf-8",
            "user-agent": USER_AGENT,
            "authorization": self._authorization,
        }

        _logger.debug("POST %s (%d events)", self._url, len(batch))

        if self._session is not None:
            await self._post(self._session, body, headers)
            return
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            await self._post(session, body, headers)

    async def _post(self, session: aiohttp.ClientSession, body: str, headers: dict[str, str]) -> None:
        try:
            async with session.post(self._url, data=body, headers=headers) as resp:
                text = await resp.text()
                if resp.status >= 300:
                    raise AnalyticsTransportError(
                        f"HTTP {resp.status} from {UPLOAD_PATH}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=UPLOAD_PATH,
                    )
        except AnalyticsTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise AnalyticsTransportError(
                f"Upload to {UPLOAD_PATH} failed: {exc}",
                endpoint=UPLOAD_PATH,
            ) from exc
