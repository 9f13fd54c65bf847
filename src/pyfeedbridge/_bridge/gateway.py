"""On-demand access to the broker's REST history.

Upstream status codes and bodies are passed through unchanged, except for
404 on ``latest`` which is enriched with a diagnostic message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from pyfeedbridge._transport import Transport
from pyfeedbridge.config import BridgeConfig

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    status: int
    body: Any


def _simplify_feed(feed: Any) -> dict[str, Any]:
    if not isinstance(feed, dict):
        return {"key": None, "name": None, "group": None}
    group = feed.get("group")
    return {
        "key": feed.get("key"),
        "name": feed.get("name"),
        "group": group.get("key") if isinstance(group, dict) else None,
    }


class PullGateway:
    """Latest / history / feed-list lookups against the broker.

    Transport failures propagate as
    :class:`pyfeedbridge.exceptions.FeedBridgeTransportError`.
    """

    def __init__(self, config: BridgeConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    def _data_path(self, feed_key: str) -> str:
        return f"/{quote(self._config.aio_username, safe='')}/feeds/{quote(feed_key, safe='')}/data"

    async def latest(self, feed_key: str) -> GatewayResponse:
        """Most recent reading as a zero- or one-element array."""
        response = await self._transport.get_json(self._data_path(feed_key), params={"limit": 1})
        if response.status == 404:
            _logger.warning("Feed %r not found upstream for user %r", feed_key, self._config.aio_username)
            return GatewayResponse(
                status=404,
                body={
                    "error": "feed_not_found",
                    "message": (
                        f'Feed "{feed_key}" was not found for user "{self._config.aio_username}". '
                        "Verify the exact feed key (case-sensitive)."
                    ),
                    "upstream_response": response.body,
                },
            )
        return GatewayResponse(status=response.status, body=response.body)

    async def history(self, feed_key: str, limit: int) -> GatewayResponse:
        """Up to *limit* most recent readings."""
        response = await self._transport.get_json(self._data_path(feed_key), params={"limit": limit})
        return GatewayResponse(status=response.status, body=response.body)

    async def list_feeds(self) -> GatewayResponse:
        """Feed discovery: ``[{key, name, group}]``."""
        path = f"/{quote(self._config.aio_username, safe='')}/feeds"
        response = await self._transport.get_json(path)
        if isinstance(response.body, list):
            return GatewayResponse(status=200, body=[_simplify_feed(feed) for feed in response.body])
        return GatewayResponse(status=response.status, body=response.body)
