"""High-level async viewer session against a running feed bridge."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from pyfeedbridge._client.poll import PollScheduler
from pyfeedbridge._client.pull import fetch_latest_reading
from pyfeedbridge._client.push import ConnectionState, ConnectionSupervisor
from pyfeedbridge.config import ClientConfig
from pyfeedbridge.derive import derive_samples
from pyfeedbridge.exceptions import FeedBridgeError
from pyfeedbridge.geo import GeoTracker
from pyfeedbridge.models.geo import TravelEstimate
from pyfeedbridge.models.samples import DerivedSamples
from pyfeedbridge.state.events import Reading, ReadingSource
from pyfeedbridge.state.store import ChannelReconciler

_logger = logging.getLogger(__name__)


class FeedClient:
    """Viewer session combining the push channel with a periodic pull.

    Usage::

        async with FeedClient(ClientConfig.from_env(), on_update=print) as client:
            await asyncio.sleep(60)
            print(client.samples.heart_ox.heart_rate)

    Every reading, wherever it came from, goes through one
    :class:`ChannelReconciler`. Derived samples and the travel estimate are
    recomputed only when a candidate is accepted.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        on_update: Callable[[DerivedSamples], None] | None = None,
        on_connection_change: Callable[[bool], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._on_update = on_update
        self._on_connection_change = on_connection_change

        self._reconciler = ChannelReconciler(clock=clock) if clock is not None else ChannelReconciler()
        self._tracker = GeoTracker()
        self._samples = derive_samples({}, config.feeds)
        self._travel = TravelEstimate()

        self._supervisor: ConnectionSupervisor | None = None
        self._poller: PollScheduler | None = None
        self._initial_task: asyncio.Task[int] | None = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FeedClient:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Open the push channel, run the initial pull and start polling."""
        if self._closed:
            raise FeedBridgeError("Feed client already closed")
        if self._started:
            return
        self._started = True
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()

        self._supervisor = ConnectionSupervisor(
            http=self._http_session,
            url=self._config.push_url,
            on_reading=self._on_push_reading,
            reconnect_delay=self._config.reconnect_delay,
            on_state_change=self._on_state_change,
        )
        self._poller = PollScheduler(
            feeds=self._config.feeds.keys(),
            fetch=self._fetch_latest,
            submit=self.submit,
            interval=self._config.poll_interval,
        )
        _logger.info(
            "Starting viewer session against %s (push %s, poll every %.1fs)",
            self._config.base_url,
            self._config.push_url,
            self._config.poll_interval,
        )
        self._supervisor.start()
        self._initial_task = asyncio.create_task(self._poller.initial_sweep(), name="feedbridge-initial-pull")
        self._poller.start()

    async def close(self) -> None:
        """Stop polling and reconnection. Later completions are ignored."""
        if self._closed:
            return
        self._closed = True

        initial = self._initial_task
        self._initial_task = None
        if initial is not None:
            if not initial.done():
                initial.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await initial
            elif not initial.cancelled() and initial.exception() is not None:
                _logger.warning("Initial pull failed", exc_info=initial.exception())

        if self._poller is not None:
            await self._poller.close()
        if self._supervisor is not None:
            await self._supervisor.close()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        _logger.info("Viewer session closed")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def reconciler(self) -> ChannelReconciler:
        return self._reconciler

    @property
    def state(self) -> dict[str, Reading]:
        return self._reconciler.snapshot()

    @property
    def samples(self) -> DerivedSamples:
        return self._samples

    @property
    def travel(self) -> TravelEstimate:
        """Distance/speed between the last two accepted GPS fixes."""
        return self._travel

    @property
    def last_update(self) -> datetime | None:
        return self._reconciler.last_update

    @property
    def connected(self) -> bool:
        return self._supervisor is not None and self._supervisor.connected

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, feed: str, reading: Reading, source: ReadingSource = ReadingSource.PUSH) -> bool:
        """Offer a reading to the reconciler and refresh derived state.

        Returns ``False`` once the session is closed.
        """
        if self._closed:
            _logger.debug("Session closed; ignoring %s reading for %s", source, feed)
            return False
        if not self._reconciler.submit(feed, reading, source=source):
            return False

        samples = derive_samples(
            self._reconciler.snapshot(),
            self._config.feeds,
            last_update=self._reconciler.last_update,
        )
        self._samples = samples
        if feed == self._config.feeds.gps:
            self._travel = self._tracker.update(samples.geo)

        if self._on_update is not None:
            try:
                self._on_update(samples)
            except Exception:
                _logger.warning("Update callback failed", exc_info=True)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_push_reading(self, feed: str, reading: Reading) -> None:
        self.submit(feed, reading, ReadingSource.PUSH)

    def _on_state_change(self, state: ConnectionState) -> None:
        if self._on_connection_change is None or state == ConnectionState.CONNECTING:
            return
        try:
            self._on_connection_change(state == ConnectionState.CONNECTED)
        except Exception:
            _logger.warning("Connection callback failed", exc_info=True)

    async def _fetch_latest(self, feed_key: str) -> Reading | None:
        if self._http_session is None:
            return None
        return await fetch_latest_reading(
            self._http_session,
            self._config.base_url,
            feed_key,
            timeout=self._config.request_timeout,
        )
