"""Position fix and travel estimate models."""

from __future__ import annotations

import math
from datetime import datetime

from pyfeedbridge.models._base import SampleModel


class GeoFix(SampleModel):
    """GPS position decoded from a reading.

    Parameters
    ----------
    lat : float or None
        Latitude in degrees.
    lon : float or None
        Longitude in degrees.
    ts : datetime or None
        Observation instant of the reading the fix came from.
    """

    lat: float | None = None
    lon: float | None = None
    ts: datetime | None = None

    @property
    def is_valid(self) -> bool:
        """Whether both coordinates are present and finite."""
        return (
            self.lat is not None
            and self.lon is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lon)
        )


class TravelEstimate(SampleModel):
    """Distance and implied speed between two successive valid fixes."""

    distance_km: float | None = None
    speed_kmh: float | None = None

    @property
    def distance_text(self) -> str | None:
        """Meters below 0.1 km, kilometers with two decimals otherwise."""
        if self.distance_km is None:
            return None
        if self.distance_km < 0.1:
            return f"{self.distance_km * 1000:.0f} m"
        return f"{self.distance_km:.2f} km"

    @property
    def speed_text(self) -> str | None:
        if self.speed_kmh is None:
            return None
        return f"{self.speed_kmh:.1f} km/h"
