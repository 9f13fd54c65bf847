"""Great-circle distance and speed between successive GPS fixes."""

from __future__ import annotations

import logging
import math

from pyfeedbridge._constants import EARTH_RADIUS_KM
from pyfeedbridge.models.geo import GeoFix, TravelEstimate

_logger = logging.getLogger(__name__)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers on a sphere of radius 6371 km."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def estimate_travel(previous: GeoFix, current: GeoFix) -> TravelEstimate:
    """Distance and implied speed from *previous* to *current*.

    Both fixes must be valid. Speed is ``None`` without both timestamps,
    when elapsed time is zero or negative, or when the distance is zero.
    """
    assert previous.lat is not None and previous.lon is not None  # noqa: S101
    assert current.lat is not None and current.lon is not None  # noqa: S101
    distance = haversine_km(previous.lat, previous.lon, current.lat, current.lon)

    speed: float | None = None
    if previous.ts is not None and current.ts is not None:
        elapsed_hours = (current.ts - previous.ts).total_seconds() / 3600
        if elapsed_hours > 0 and distance > 0:
            speed = distance / elapsed_hours
    return TravelEstimate(distance_km=distance, speed_kmh=speed)


class GeoTracker:
    """One-slot history of the last valid fix.

    Feed it every newly accepted GPS fix; fixes with a missing coordinate
    neither produce an estimate nor replace the remembered fix.
    """

    def __init__(self) -> None:
        self._previous: GeoFix | None = None
        self._last = TravelEstimate()

    @property
    def previous(self) -> GeoFix | None:
        return self._previous

    @property
    def last_estimate(self) -> TravelEstimate:
        return self._last

    def update(self, fix: GeoFix) -> TravelEstimate:
        if not fix.is_valid:
            return TravelEstimate()

        estimate = TravelEstimate()
        if self._previous is not None:
            estimate = estimate_travel(self._previous, fix)
            _logger.debug(
                "Travel from (%s, %s) to (%s, %s): %s, %s",
                self._previous.lat,
                self._previous.lon,
                fix.lat,
                fix.lon,
                estimate.distance_text,
                estimate.speed_text,
            )
        self._previous = fix
        self._last = estimate
        return estimate

    def reset(self) -> None:
        self._previous = None
        self._last = TravelEstimate()
