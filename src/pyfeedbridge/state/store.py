"""Deterministic in-memory channel state.

This is the only component allowed to mutate the latest-reading map.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pyfeedbridge.state.events import Reading, ReadingSource
from pyfeedbridge.state.policy import should_accept_reading

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChannelReconciler:
    """Latest accepted reading per channel.

    Push messages, the initial pull and the periodic poll all go through
    :meth:`submit`; sources are symmetric and none of them is trusted more
    than another. Given the same sequence of submissions the reconciler
    always ends in the same state.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._readings: dict[str, Reading] = {}
        self._accepted: dict[str, int] = {}
        self._last_update: datetime | None = None

    @property
    def last_update(self) -> datetime | None:
        """When a candidate was last accepted (liveness display only)."""
        return self._last_update

    def submit(
        self,
        channel: str,
        candidate: Reading,
        *,
        source: ReadingSource = ReadingSource.PUSH,
    ) -> bool:
        """Offer a candidate reading; return whether it was accepted."""
        stored = self._readings.get(channel)
        if not should_accept_reading(stored, candidate):
            _logger.debug(
                "Rejected %s reading for %s value=%r observed_at=%s",
                source,
                channel,
                candidate.value,
                candidate.observed_at.isoformat(),
            )
            return False

        self._readings[channel] = candidate
        self._accepted[channel] = self._accepted.get(channel, 0) + 1
        self._last_update = self._clock()
        _logger.debug(
            "Accepted %s reading for %s value=%r (was %r)",
            source,
            channel,
            candidate.value,
            stored.value if stored is not None else None,
        )
        return True

    def get(self, channel: str) -> Reading | None:
        return self._readings.get(channel)

    def snapshot(self) -> dict[str, Reading]:
        """Copy of the current map; readings themselves are immutable."""
        return dict(self._readings)

    def channels(self) -> list[str]:
        return list(self._readings)

    def accepted_count(self, channel: str) -> int:
        """How many candidates were accepted for *channel* so far."""
        return self._accepted.get(channel, 0)
