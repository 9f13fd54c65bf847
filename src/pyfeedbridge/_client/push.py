"""Push-channel connection supervision.

Owns:
- the WebSocket connection to the bridge
- the connection state machine
- the single pending reconnection timer
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum

import aiohttp
from aiohttp import WSMsgType

from pyfeedbridge.exceptions import FeedBridgeError, FeedBridgeMessageError
from pyfeedbridge.ingestion.push import parse_push_message
from pyfeedbridge.state.events import Reading


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class ConnectionSupervisor:
    """Keeps one push connection alive with a fixed reconnection delay.

    ``DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> ...``;
    every drop schedules exactly one reconnection attempt after
    ``reconnect_delay`` seconds. :meth:`close` is terminal.
    """

    def __init__(
        self,
        *,
        http: aiohttp.ClientSession,
        url: str,
        on_reading: Callable[[str, Reading], object],
        reconnect_delay: float = 2.0,
        on_state_change: Callable[[ConnectionState], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http
        self._url = url
        self._on_reading = on_reading
        self._reconnect_delay = reconnect_delay
        self._on_state_change = on_state_change
        self._logger = logger or logging.getLogger(__name__)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._state = ConnectionState.DISCONNECTED
        self._task: asyncio.Task[None] | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._closed = False
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def attempts(self) -> int:
        """Connection attempts made so far (first connect included)."""
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def start(self) -> None:
        if self._closed:
            raise FeedBridgeError("Connection supervisor already closed")
        if self._task is not None and not self._task.done():
            return
        self._loop = asyncio.get_running_loop()
        self._connect()

    async def close(self) -> None:
        """Cancel the reconnection timer and close the active connection."""
        self._closed = True
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()

        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close()

        task = self._task
        self._task = None
        if task is not None:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            elif not task.cancelled() and task.exception() is not None:
                self._logger.warning("Push connection task had failed", exc_info=task.exception())
        self._set_state(ConnectionState.CLOSED)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._logger.debug("Push channel %s -> %s", self._state, state)
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                self._logger.warning("Connection state callback failed", exc_info=True)

    def _connect(self) -> None:
        self._reconnect_handle = None
        if self._closed or self._loop is None:
            return
        self._task = self._loop.create_task(self._run(), name="feedbridge-push")

    def _schedule_reconnect(self) -> None:
        if self._closed or self._loop is None or self._reconnect_handle is not None:
            return
        self._logger.debug("Reconnecting in %.1fs", self._reconnect_delay)
        self._reconnect_handle = self._loop.call_later(self._reconnect_delay, self._connect)

    async def _run(self) -> None:
        self._attempts += 1
        self._set_state(ConnectionState.CONNECTING)
        try:
            async with self._http.ws_connect(self._url) as ws:
                self._ws = ws
                self._set_state(ConnectionState.CONNECTED)
                self._logger.info("WebSocket connected for real-time updates")
                async for msg in ws:
                    if msg.type == WSMsgType.TEXT:
                        self._handle_text(msg.data)
                    elif msg.type == WSMsgType.BINARY:
                        self._handle_text(msg.data.decode("utf-8", errors="replace"))
                    elif msg.type == WSMsgType.ERROR:
                        self._logger.warning("WebSocket error: %s", ws.exception())
                        break
        except (aiohttp.ClientError, OSError, TimeoutError) as exc:
            self._logger.warning("WebSocket connection to %s failed: %s", self._url, exc)
        finally:
            self._ws = None
            if not self._closed:
                self._set_state(ConnectionState.DISCONNECTED)
                self._schedule_reconnect()

    def _handle_text(self, data: str) -> None:
        try:
            feed, reading = parse_push_message(data)
        except FeedBridgeMessageError as exc:
            self._logger.warning("Discarding malformed push message: %s", exc)
            return
        except Exception:
            self._logger.warning("Discarding undecodable push message", exc_info=True)
            return
        self._logger.debug("WebSocket message received: %s %r", feed, reading.value)
        try:
            self._on_reading(feed, reading)
        except Exception:
            self._logger.warning("Push reading handler failed for %s", feed, exc_info=True)
