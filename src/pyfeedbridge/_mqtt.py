"""Upstream MQTT subscription runtime."""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyfeedbridge.config import BridgeConfig
from pyfeedbridge.ingestion.push import FeedEvent


def feed_key_from_topic(topic: str) -> str:
    """Feed key is the final path segment of ``<user>/feeds/<key>``."""
    return topic.rsplit("/", 1)[-1]


def build_feed_event(topic: str, payload: bytes, *, received_at: datetime | None = None) -> FeedEvent:
    """Normalize one broker message, stamping the receipt instant."""
    stamp = received_at or datetime.now(UTC)
    return FeedEvent(
        feed=feed_key_from_topic(topic),
        value=payload.decode("utf-8", errors="replace"),
        created_at=stamp.isoformat().replace("+00:00", "Z"),
    )


class UpstreamSubscriber:
    """Threaded paho-mqtt runtime that emits feed events onto an asyncio loop.

    Reconnection after a lost broker link is left to paho's own network
    loop; every successful CONNACK re-subscribes all configured feeds.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        config: BridgeConfig,
        on_event: Callable[[FeedEvent], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._config = config
        self._on_event = on_event
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False

    @property
    def is_running(self) -> bool:
        """Whether the network loop is active."""
        return self._running

    @property
    def is_connected(self) -> bool:
        """Whether the broker link is currently up."""
        return self._connected

    @property
    def topics(self) -> list[str]:
        return [self._config.feed_topic(key) for key in self._config.feeds]

    def start(self) -> None:
        """Connect (asynchronously) and start the network loop."""
        self.stop()
        self._logger.debug(
            "MQTT subscriber start requested host=%s port=%s feeds=%s",
            self._config.broker_host,
            self._config.broker_port,
            ",".join(self._config.feeds),
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=f"pyfeedbridge-{secrets.token_hex(4)}",
        )
        client.enable_logger(self._logger)
        client.username_pw_set(self._config.aio_username, self._config.aio_key)
        if self._config.use_tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=120)

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        client.connect_async(
            self._config.broker_host,
            self._config.broker_port,
            keepalive=self._config.mqtt_keepalive,
        )
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._connected = True
        topics = self.topics
        if not topics:
            self._logger.warning("No feeds configured; nothing will stream")
            return
        for topic in topics:
            client.subscribe(topic, qos=0)
        self._logger.info("MQTT connected, subscribed to: %s", ", ".join(self._config.feeds))

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            event = build_feed_event(msg.topic, msg.payload)
            self._logger.debug("MQTT message topic=%s value=%r", msg.topic, event.value)
            self._loop.call_soon_threadsafe(self._on_event, event)
        except Exception:
            self._logger.warning("MQTT message handling failed topic=%s", msg.topic, exc_info=True)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected = False
        if self._running:
            self._logger.warning("MQTT disconnected: %s", reason_code)
