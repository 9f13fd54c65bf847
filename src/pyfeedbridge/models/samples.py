"""Sensor sample models decoded from raw readings."""

from __future__ import annotations

from datetime import datetime

from pyfeedbridge.models._base import SampleModel
from pyfeedbridge.models.geo import GeoFix


class MotionSample(SampleModel):
    """Accelerometer triple and the coarse activity estimate built from it.

    ``steps_progress`` and ``calories_progress`` are percentages of the
    daily goals (10000 steps, 600 kcal), capped at 100. They stay ``None``
    when the estimate is zero.
    """

    x: float | None = None
    y: float | None = None
    z: float | None = None
    steps: int | None = None
    calories: int | None = None
    steps_progress: int | None = None
    calories_progress: int | None = None


class HeartOxSample(SampleModel):
    """Heart rate / SpO2 pair, clamped to display ranges.

    ``heart_rate_progress`` and ``spo2_progress`` are integer percentages
    across the clamped ranges (60-120 bpm, 90-100 %).
    """

    heart_rate: int | None = None
    spo2: int | None = None
    heart_rate_progress: int | None = None
    spo2_progress: int | None = None


class TemperatureSample(SampleModel):
    celsius: float | None = None


class DerivedSamples(SampleModel):
    """Everything the presentation layer renders, derived from channel state."""

    motion: MotionSample = MotionSample()
    heart_ox: HeartOxSample = HeartOxSample()
    geo: GeoFix = GeoFix()
    temperature: TemperatureSample = TemperatureSample()
    last_update: datetime | None = None
