"""Periodic pull fallback.

Runs independently of the push channel so the viewer converges even when
push delivery is down entirely.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Sequence

from pyfeedbridge.exceptions import FeedBridgeError
from pyfeedbridge.state.events import Reading, ReadingSource

FetchLatest = Callable[[str], Awaitable[Reading | None]]
SubmitReading = Callable[[str, Reading, ReadingSource], bool]


class PollScheduler:
    """Fixed-interval sweep of pull requests across all feeds."""

    def __init__(
        self,
        *,
        feeds: Sequence[str],
        fetch: FetchLatest,
        submit: SubmitReading,
        interval: float,
        logger: logging.Logger | None = None,
    ) -> None:
        self._feeds = tuple(feeds)
        self._fetch = fetch
        self._submit = submit
        self._interval = interval
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None
        self._sweeps = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def sweeps(self) -> int:
        """Number of periodic sweeps completed."""
        return self._sweeps

    async def _pull_one(self, feed_key: str, source: ReadingSource) -> bool:
        try:
            reading = await self._fetch(feed_key)
        except FeedBridgeError as exc:
            self._logger.warning("Poll error for %s: %s", feed_key, exc)
            return False
        except Exception:
            self._logger.warning("Unexpected poll failure for %s", feed_key, exc_info=True)
            return False
        if reading is None:
            return False
        return self._submit(feed_key, reading, source)

    async def sweep(self) -> int:
        """Pull every feed one after the other; return accepted count."""
        self._logger.debug("Polling all feeds...")
        accepted = 0
        for feed_key in self._feeds:
            if await self._pull_one(feed_key, ReadingSource.POLL):
                accepted += 1
        self._sweeps += 1
        return accepted

    async def initial_sweep(self) -> int:
        """Pull every feed concurrently, in no particular order."""
        results = await asyncio.gather(*(self._pull_one(key, ReadingSource.INITIAL_PULL) for key in self._feeds))
        return sum(1 for accepted in results if accepted)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="feedbridge-poll")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while True:
            await self.sweep()
            next_at += self._interval
            now = loop.time()
            if next_at <= now:
                missed = 0
                while next_at <= now:
                    next_at += self._interval
                    missed += 1
                self._logger.debug("Sweep overran; skipping %d tick(s)", missed)
            await asyncio.sleep(next_at - now)

    async def close(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                self._logger.warning("Poll task had stopped", exc_info=task.exception())
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
