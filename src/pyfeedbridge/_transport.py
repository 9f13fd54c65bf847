"""HTTP transport for the broker's REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyfeedbridge._constants import API_KEY_HEADER
from pyfeedbridge._redact import redact_headers, summarize_body
from pyfeedbridge.config import BridgeConfig
from pyfeedbridge.exceptions import FeedBridgeTransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamResponse:
    """Status code and decoded JSON body of one upstream call."""

    status: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by the pull gateway.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`UpstreamTransport`) concrete.
    """

    async def get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> UpstreamResponse:
        ...


class UpstreamTransport:
    """Authenticated GET requests against the broker REST API.

    Non-2xx responses are *returned*, not raised: the bridge passes upstream
    status codes through to its own callers.
    """

    def __init__(self, config: BridgeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> UpstreamResponse:
        url = f"{self._config.api_base_url.rstrip('/')}{path}"
        headers = {
            API_KEY_HEADER: self._config.aio_key,
            "accept": "application/json",
        }
        _logger.debug("GET %s params=%s headers=%s", url, params, redact_headers(headers))

        try:
            async with self._http.get(url, params=params, headers=headers, timeout=self._timeout) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise FeedBridgeTransportError(
                f"Request to {path} failed: {exc}",
                endpoint=path,
            ) from exc
        except TimeoutError as exc:
            raise FeedBridgeTransportError(
                f"Request to {path} timed out after {self._config.request_timeout}s",
                endpoint=path,
            ) from exc

        if not text.strip():
            return UpstreamResponse(status=status, body=None)
        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FeedBridgeTransportError(
                f"Invalid JSON from {path} (HTTP {status}): {text[:200]}",
                status_code=status,
                endpoint=path,
            ) from exc

        _logger.debug("GET %s -> %s %s", url, status, summarize_body(body))
        return UpstreamResponse(status=status, body=body)
