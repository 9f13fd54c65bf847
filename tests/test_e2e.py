from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp.test_utils import TestServer

from pyfeedbridge._transport import UpstreamResponse
from pyfeedbridge.bridge import FeedBridge
from pyfeedbridge.client import FeedClient
from pyfeedbridge.config import BridgeConfig, ClientConfig
from pyfeedbridge.ingestion.push import FeedEvent
from pyfeedbridge.state.events import ReadingSource

pytestmark = pytest.mark.e2e


@dataclass
class FakeUpstream:
    latest: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> UpstreamResponse:
        self.calls.append(path)
        feed_key = path.split("/")[3]
        if feed_key not in self.latest:
            return UpstreamResponse(status=404, body={"error": "not found"})
        return UpstreamResponse(status=200, body=self.latest[feed_key])


async def _wait_for(predicate: Any, timeout: float = 3.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_viewer_converges_from_initial_pull_and_push() -> None:
    upstream = FakeUpstream(
        latest={
            "temp-data": [{"value": "21.5", "created_at": "2026-01-01T00:00:00Z"}],
            "max-data": [{"value": "70,96", "created_at": "2026-01-01T00:00:00Z"}],
        }
    )
    bridge_config = BridgeConfig(aio_username="alice", aio_key="k", mqtt_enabled=False)
    bridge = FeedBridge(bridge_config, transport=upstream)

    async with TestServer(bridge.create_app()) as server:
        config = ClientConfig(base_url=str(server.make_url("/")), poll_interval=60.0, reconnect_delay=0.05)
        connection_changes: list[bool] = []

        async with FeedClient(config, on_connection_change=connection_changes.append) as client:
            await _wait_for(lambda: client.connected and client.samples.temperature.celsius is not None)
            await _wait_for(lambda: len(bridge.hub) == 1)

            assert client.samples.heart_ox.heart_rate == 70
            assert client.reconciler.accepted_count("temp-data") == 1

            bridge.publish(FeedEvent(feed="max-data", value="80,97", created_at="2026-01-01T00:01:00Z"))
            await _wait_for(lambda: client.samples.heart_ox.heart_rate == 80)

            stored = client.reconciler.get("max-data")
            assert not client.submit("max-data", stored, ReadingSource.POLL)  # type: ignore[arg-type]

        assert connection_changes[0] is True
        assert client.closed

    assert "/alice/feeds/gps-data/data" in upstream.calls
