from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import WSMsgType
from aiohttp.test_utils import TestClient, TestServer

from pyfeedbridge._transport import UpstreamResponse
from pyfeedbridge.bridge import FeedBridge
from pyfeedbridge.config import BridgeConfig
from pyfeedbridge.exceptions import FeedBridgeTransportError
from pyfeedbridge.ingestion.push import FeedEvent


@dataclass
class FakeTransport:
    responses: dict[str, UpstreamResponse] = field(default_factory=dict)
    fail: bool = False
    calls: list[tuple[str, dict[str, Any] | None]] = field(default_factory=list)

    async def get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> UpstreamResponse:
        self.calls.append((path, dict(params) if params is not None else None))
        if self.fail:
            raise FeedBridgeTransportError("connection refused", endpoint=path)
        return self.responses.get(path, UpstreamResponse(status=404, body={"error": "not found"}))


def _bridge(transport: FakeTransport) -> FeedBridge:
    config = BridgeConfig(aio_username="alice", aio_key="k", feeds=("temp-data",), mqtt_enabled=False)
    return FeedBridge(config, transport=transport)


async def _wait_for(predicate: Any, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_index_lists_routes() -> None:
    bridge = _bridge(FakeTransport())
    async with TestClient(TestServer(bridge.create_app())) as client:
        resp = await client.get("/")
        text = await resp.text()

    assert resp.status == 200
    assert "/api/aio/feed/<feed_key>/latest" in text
    assert "/ws/aio" in text


@pytest.mark.asyncio
async def test_latest_route_passes_upstream_body() -> None:
    body = [{"value": "21.5", "created_at": "2026-01-01T00:00:00Z"}]
    transport = FakeTransport(responses={"/alice/feeds/temp-data/data": UpstreamResponse(200, body)})
    async with TestClient(TestServer(_bridge(transport).create_app())) as client:
        resp = await client.get("/api/aio/feed/temp-data/latest")
        payload = await resp.json()

    assert resp.status == 200
    assert payload == body
    assert transport.calls == [("/alice/feeds/temp-data/data", {"limit": 1})]


@pytest.mark.asyncio
async def test_latest_route_enriches_not_found() -> None:
    async with TestClient(TestServer(_bridge(FakeTransport()).create_app())) as client:
        resp = await client.get("/api/aio/feed/Temp-Data/latest")
        payload = await resp.json()

    assert resp.status == 404
    assert payload["error"] == "feed_not_found"
    assert "Temp-Data" in payload["message"]


@pytest.mark.asyncio
async def test_history_route_default_and_explicit_limit() -> None:
    transport = FakeTransport(responses={"/alice/feeds/gps-data/data": UpstreamResponse(200, [])})
    async with TestClient(TestServer(_bridge(transport).create_app())) as client:
        first = await client.get("/api/aio/feed/gps-data/history")
        second = await client.get("/api/aio/feed/gps-data/history", params={"limit": "5"})

    assert first.status == 200
    assert second.status == 200
    assert [params for _, params in transport.calls] == [{"limit": 100}, {"limit": 5}]


@pytest.mark.asyncio
async def test_history_route_rejects_non_integer_limit() -> None:
    transport = FakeTransport()
    async with TestClient(TestServer(_bridge(transport).create_app())) as client:
        resp = await client.get("/api/aio/feed/gps-data/history", params={"limit": "lots"})
        payload = await resp.json()

    assert resp.status == 400
    assert payload["error"] == "invalid_limit"
    assert transport.calls == []


@pytest.mark.asyncio
async def test_feeds_route_is_simplified() -> None:
    feeds = [{"key": "temp-data", "name": "Temp", "group": {"key": "default"}}]
    transport = FakeTransport(responses={"/alice/feeds": UpstreamResponse(200, feeds)})
    async with TestClient(TestServer(_bridge(transport).create_app())) as client:
        resp = await client.get("/api/aio/feeds")
        payload = await resp.json()

    assert payload == [{"key": "temp-data", "name": "Temp", "group": "default"}]


@pytest.mark.asyncio
async def test_transport_failure_maps_to_502() -> None:
    async with TestClient(TestServer(_bridge(FakeTransport(fail=True)).create_app())) as client:
        resp = await client.get("/api/aio/feed/temp-data/latest")
        payload = await resp.json()

    assert resp.status == 502
    assert payload["error"] == "upstream_unavailable"


@pytest.mark.asyncio
async def test_published_events_reach_viewers_in_order() -> None:
    bridge = _bridge(FakeTransport())
    async with TestClient(TestServer(bridge.create_app())) as client:
        first = await client.ws_connect("/ws/aio")
        second = await client.ws_connect("/ws/aio")
        await _wait_for(lambda: len(bridge.hub) == 2)

        for value in ("1", "2", "3"):
            bridge.publish(FeedEvent(feed="temp-data", value=value, created_at="2026-01-01T00:00:00Z"))

        for ws in (first, second):
            received = []
            for _ in range(3):
                msg = await ws.receive(timeout=2.0)
                assert msg.type == WSMsgType.TEXT
                received.append(json.loads(msg.data)["value"])
            assert received == ["1", "2", "3"]

        await first.close()
        await _wait_for(lambda: len(bridge.hub) == 1)
        await second.close()


@pytest.mark.asyncio
async def test_publish_before_start_is_dropped() -> None:
    bridge = _bridge(FakeTransport())
    bridge.publish(FeedEvent(feed="temp-data", value="1"))
    assert len(bridge.hub) == 0
