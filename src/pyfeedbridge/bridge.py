"""Server-side bridge: broker subscription, WebSocket fan-out, pull routes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import aiohttp
from aiohttp import WSMsgType, web

from pyfeedbridge._bridge.gateway import GatewayResponse, PullGateway
from pyfeedbridge._bridge.hub import BroadcastHub
from pyfeedbridge._constants import API_PREFIX, DEFAULT_HISTORY_LIMIT, WS_PATH
from pyfeedbridge._mqtt import UpstreamSubscriber
from pyfeedbridge._transport import Transport, UpstreamTransport
from pyfeedbridge.config import BridgeConfig
from pyfeedbridge.exceptions import FeedBridgeTransportError
from pyfeedbridge.ingestion.push import FeedEvent

_logger = logging.getLogger(__name__)


class FeedBridge:
    """Bridge between the broker and local viewers.

    Usage::

        bridge = FeedBridge(BridgeConfig.from_env())
        web.run_app(bridge.create_app(), port=bridge.config.port)

    Broker messages arrive on paho's network thread and are handed to the
    event loop, queued, and broadcast by a single pump task so every viewer
    sees them in broker order.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._hub = BroadcastHub()
        self._gateway: PullGateway | None = None
        self._subscriber: UpstreamSubscriber | None = None
        self._queue: asyncio.Queue[FeedEvent] | None = None
        self._pump_task: asyncio.Task[None] | None = None

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    @property
    def subscriber(self) -> UpstreamSubscriber | None:
        return self._subscriber

    # ------------------------------------------------------------------
    # Application wiring
    # ------------------------------------------------------------------

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_index)
        app.router.add_get(f"{API_PREFIX}/feed/{{feed_key}}/latest", self._handle_latest)
        app.router.add_get(f"{API_PREFIX}/feed/{{feed_key}}/history", self._handle_history)
        app.router.add_get(f"{API_PREFIX}/feeds", self._handle_feeds)
        app.router.add_get(WS_PATH, self._handle_ws)
        app.on_startup.append(self._on_startup)
        app.on_shutdown.append(self._on_shutdown)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, _app: web.Application) -> None:
        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._pump_task = asyncio.create_task(self._pump(), name="feedbridge-pump")

        transport = self._transport
        if transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = UpstreamTransport(self._config, self._http_session)
        self._gateway = PullGateway(self._config, transport)

        if not self._config.mqtt_enabled:
            _logger.info("MQTT disabled; serving pull routes only")
            return
        subscriber = UpstreamSubscriber(loop=loop, config=self._config, on_event=self.publish)
        try:
            await loop.run_in_executor(None, subscriber.start)
        except Exception:
            _logger.warning("MQTT subscriber start failed", exc_info=True)
            return
        self._subscriber = subscriber

    async def _on_shutdown(self, _app: web.Application) -> None:
        await self._hub.close_all()

    async def _on_cleanup(self, _app: web.Application) -> None:
        subscriber = self._subscriber
        self._subscriber = None
        if subscriber is not None:
            try:
                await asyncio.get_running_loop().run_in_executor(None, subscriber.stop)
            except Exception:
                _logger.debug("MQTT subscriber stop failed", exc_info=True)

        task = self._pump_task
        self._pump_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._gateway = None

    # ------------------------------------------------------------------
    # Event fan-out
    # ------------------------------------------------------------------

    def publish(self, event: FeedEvent) -> None:
        """Queue an event for broadcast. Must be called on the loop thread."""
        if self._queue is None:
            _logger.debug("Bridge not started; dropping %s event", event.feed)
            return
        self._queue.put_nowait(event)

    async def _pump(self) -> None:
        assert self._queue is not None  # noqa: S101
        while True:
            event = await self._queue.get()
            try:
                await self._hub.broadcast(event)
            except Exception:
                _logger.warning("WS broadcast error for %s", event.feed, exc_info=True)
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _require_gateway(self) -> PullGateway:
        if self._gateway is None:
            raise web.HTTPServiceUnavailable(reason="Bridge not started")
        return self._gateway

    @staticmethod
    def _json(result: GatewayResponse) -> web.Response:
        return web.json_response(result.body, status=result.status)

    @staticmethod
    def _upstream_unavailable(exc: FeedBridgeTransportError) -> web.Response:
        _logger.warning("Upstream request failed: %s", exc)
        return web.json_response({"error": "upstream_unavailable", "message": str(exc)}, status=502)

    async def _handle_index(self, _request: web.Request) -> web.Response:
        lines = [
            "Feed bridge is running.",
            f"REST:  GET {API_PREFIX}/feed/<feed_key>/latest",
            f"REST:  GET {API_PREFIX}/feed/<feed_key>/history?limit={DEFAULT_HISTORY_LIMIT}",
            f"REST:  GET {API_PREFIX}/feeds",
            f"WS:    {WS_PATH}",
        ]
        return web.Response(text="\n".join(lines), content_type="text/plain")

    async def _handle_latest(self, request: web.Request) -> web.Response:
        gateway = self._require_gateway()
        try:
            result = await gateway.latest(request.match_info["feed_key"])
        except FeedBridgeTransportError as exc:
            return self._upstream_unavailable(exc)
        return self._json(result)

    async def _handle_history(self, request: web.Request) -> web.Response:
        gateway = self._require_gateway()
        raw_limit = request.query.get("limit", str(DEFAULT_HISTORY_LIMIT))
        try:
            limit = int(raw_limit)
        except ValueError:
            return web.json_response(
                {"error": "invalid_limit", "message": f"limit must be an integer, got {raw_limit!r}"},
                status=400,
            )
        try:
            result = await gateway.history(request.match_info["feed_key"], limit)
        except FeedBridgeTransportError as exc:
            return self._upstream_unavailable(exc)
        return self._json(result)

    async def _handle_feeds(self, _request: web.Request) -> web.Response:
        gateway = self._require_gateway()
        try:
            result = await gateway.list_feeds()
        except FeedBridgeTransportError as exc:
            return self._upstream_unavailable(exc)
        return self._json(result)

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)
        self._hub.register(ws)
        _logger.info("Viewer connected (%d open)", len(self._hub))
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    _logger.debug("Viewer connection error: %s", ws.exception())
        finally:
            self._hub.unregister(ws)
            _logger.info("Viewer disconnected (%d open)", len(self._hub))
        return ws


def run_bridge(config: BridgeConfig, **kwargs: Any) -> None:
    """Run the bridge until interrupted."""
    bridge = FeedBridge(config)
    _logger.info("Server ready on http://%s:%s (WS endpoint %s)", config.host, config.port, WS_PATH)
    web.run_app(bridge.create_app(), host=config.host, port=config.port, print=None, **kwargs)
