"""Fan-out of feed events to connected viewers."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pyfeedbridge.ingestion.push import FeedEvent

_logger = logging.getLogger(__name__)


class ViewerConnection(Protocol):
    """The subset of :class:`aiohttp.web.WebSocketResponse` the hub relies on."""

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str, compress: int | None = None) -> None: ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> Any: ...


class BroadcastHub:
    """Registry of open viewer connections.

    Delivery is best effort: closed connections are skipped, failed sends
    are dropped, nothing is queued per client. A viewer that misses events
    catches up through the pull routes. The hub is only touched from the
    event loop thread, so it needs no lock.
    """

    def __init__(self) -> None:
        self._connections: set[ViewerConnection] = set()

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, connection: ViewerConnection) -> None:
        self._connections.add(connection)

    def unregister(self, connection: ViewerConnection) -> None:
        self._connections.discard(connection)

    async def broadcast(self, event: FeedEvent) -> int:
        """Send *event* to every open connection; return how many got it."""
        message = event.to_json()
        delivered = 0
        for connection in list(self._connections):
            if connection.closed:
                continue
            try:
                await connection.send_str(message)
            except (ConnectionError, RuntimeError):
                _logger.debug("Dropped %s update for a closing viewer", event.feed, exc_info=True)
                continue
            delivered += 1
        _logger.debug("Broadcast %s to %d/%d viewers", event.feed, delivered, len(self._connections))
        return delivered

    async def close_all(self) -> None:
        connections = list(self._connections)
        self._connections.clear()
        for connection in connections:
            if not connection.closed:
                await connection.close()
