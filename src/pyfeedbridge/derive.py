"""Pure derivation of sensor samples from channel state."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from pyfeedbridge.config import FeedRoles
from pyfeedbridge.models.samples import DerivedSamples
from pyfeedbridge.parsers import parse_geo_fix, parse_heart_ox, parse_motion, parse_temperature
from pyfeedbridge.state.events import Reading


def _value(state: Mapping[str, Reading], key: str) -> str | None:
    reading = state.get(key)
    return reading.value if reading is not None else None


def derive_samples(
    state: Mapping[str, Reading],
    feeds: FeedRoles,
    *,
    last_update: datetime | None = None,
) -> DerivedSamples:
    """Decode every role's current reading. Missing feeds yield empty samples."""
    gps = state.get(feeds.gps)
    return DerivedSamples(
        motion=parse_motion(_value(state, feeds.motion)),
        heart_ox=parse_heart_ox(_value(state, feeds.heart_ox)),
        geo=parse_geo_fix(gps.value, ts=gps.observed_at) if gps is not None else parse_geo_fix(None),
        temperature=parse_temperature(_value(state, feeds.temperature)),
        last_update=last_update,
    )
