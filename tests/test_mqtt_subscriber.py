from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from pyfeedbridge._mqtt import UpstreamSubscriber, build_feed_event, feed_key_from_topic
from pyfeedbridge.config import BridgeConfig
from pyfeedbridge.ingestion.push import FeedEvent


@dataclass
class FakeLoop:
    scheduled: list[tuple[Callable[..., Any], tuple[Any, ...]]] = field(default_factory=list)

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.scheduled.append((callback, args))


@dataclass
class FakeMqttClient:
    subscriptions: list[tuple[str, int]] = field(default_factory=list)

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append((topic, qos))


def _subscriber(feeds: tuple[str, ...] = ("temp-data", "gps-data")) -> tuple[UpstreamSubscriber, FakeLoop, list[FeedEvent]]:
    loop = FakeLoop()
    events: list[FeedEvent] = []
    config = BridgeConfig(aio_username="alice", aio_key="k", feeds=feeds)
    subscriber = UpstreamSubscriber(loop=loop, config=config, on_event=events.append)  # type: ignore[arg-type]
    return subscriber, loop, events


def test_feed_key_from_topic() -> None:
    assert feed_key_from_topic("alice/feeds/temp-data") == "temp-data"
    assert feed_key_from_topic("temp-data") == "temp-data"


def test_build_feed_event_stamps_receipt_time() -> None:
    event = build_feed_event(
        "alice/feeds/max-data",
        b"75,98",
        received_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
    )

    assert event.feed == "max-data"
    assert event.value == "75,98"
    assert event.created_at == "2026-01-02T03:04:05Z"


def test_on_connect_subscribes_every_feed() -> None:
    subscriber, _, _ = _subscriber()
    client = FakeMqttClient()

    subscriber._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]

    assert client.subscriptions == [("alice/feeds/temp-data", 0), ("alice/feeds/gps-data", 0)]
    assert subscriber.is_connected


def test_on_connect_without_feeds_warns(caplog: pytest.LogCaptureFixture) -> None:
    subscriber, _, _ = _subscriber(feeds=())
    client = FakeMqttClient()

    with caplog.at_level("WARNING"):
        subscriber._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]

    assert client.subscriptions == []
    assert "No feeds configured" in caplog.text


def test_on_connect_failure_does_not_subscribe() -> None:
    subscriber, _, _ = _subscriber()
    client = FakeMqttClient()

    subscriber._on_connect(client, None, None, SimpleNamespace(value=135), None)  # type: ignore[arg-type]

    assert client.subscriptions == []
    assert not subscriber.is_connected


def test_on_message_hands_event_to_loop() -> None:
    subscriber, loop, events = _subscriber()
    message = mqtt.MQTTMessage(topic=b"alice/feeds/temp-data")
    message.payload = b"21.5"

    subscriber._on_message(None, None, message)  # type: ignore[arg-type]

    assert len(loop.scheduled) == 1
    callback, args = loop.scheduled[0]
    callback(*args)
    assert events[0].feed == "temp-data"
    assert events[0].value == "21.5"
    assert events[0].created_at is not None


def test_start_and_stop_drive_paho(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[Any] = []

    class _RecordingClient:
        def __init__(self, **kwargs: Any) -> None:
            self.kwargs = kwargs
            self.calls: list[str] = []
            self.connect_args: tuple[Any, ...] = ()
            created.append(self)

        def enable_logger(self, _logger: Any) -> None:
            self.calls.append("enable_logger")

        def username_pw_set(self, username: str, password: str) -> None:
            self.credentials = (username, password)

        def tls_set(self) -> None:
            self.calls.append("tls_set")

        def reconnect_delay_set(self, min_delay: int, max_delay: int) -> None:
            self.calls.append("reconnect_delay_set")

        def connect_async(self, host: str, port: int, keepalive: int = 60) -> None:
            self.connect_args = (host, port, keepalive)

        def loop_start(self) -> None:
            self.calls.append("loop_start")

        def disconnect(self) -> None:
            self.calls.append("disconnect")

        def loop_stop(self) -> None:
            self.calls.append("loop_stop")

    monkeypatch.setattr(mqtt, "Client", _RecordingClient)
    subscriber, _, _ = _subscriber()

    subscriber.start()

    client = created[0]
    assert subscriber.is_running
    assert client.credentials == ("alice", "k")
    assert client.connect_args == ("io.adafruit.com", 8883, 60)
    assert "tls_set" in client.calls
    assert client.kwargs["client_id"].startswith("pyfeedbridge-")

    subscriber.stop()

    assert not subscriber.is_running
    assert client.calls[-2:] == ["disconnect", "loop_stop"]
