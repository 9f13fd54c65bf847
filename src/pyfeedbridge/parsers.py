"""Heuristic per-feed payload decoders.

Devices publish the same sensor in several encodings (``"75,98"``,
``{"bpm": 75, "oxygen": 98}``, ...). Each decoder below is an ordered chain
of attempts; an attempt returns ``None`` when it does not apply and the next
one is tried. Decoders never raise on bad input.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pyfeedbridge.ingestion.normalize import parse_number_list, round_half_up, safe_float, split_tokens
from pyfeedbridge.models.geo import GeoFix
from pyfeedbridge.models.samples import HeartOxSample, MotionSample, TemperatureSample

HEART_RATE_RANGE = (60, 120)
SPO2_RANGE = (90, 100)
STEPS_GOAL = 10000
CALORIES_GOAL = 600

_HEART_RATE_KEYS = ("heartRate", "heart", "bpm")
_SPO2_KEYS = ("spO2", "spo2", "oxygen")
_LAT_KEYS = ("lat", "latitude", "Lat", "Latitude")
_LON_KEYS = ("lon", "longitude", "Lon", "Longitude")


def _try_number_pair(text: str) -> tuple[float, float] | None:
    numbers = parse_number_list(text)
    if numbers is None or len(numbers) < 2:
        return None
    return numbers[0], numbers[1]


def _try_json_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _first_truthy(obj: dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = obj.get(key)
        if value:
            return value
    return None


def _first_present(obj: dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return None


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


def _progress(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return round_half_up((value - low) / (high - low) * 100)


# ---------------------------------------------------------------------------
# Heart rate / SpO2
# ---------------------------------------------------------------------------


def _heart_ox_from_pair(text: str) -> tuple[float | None, float | None] | None:
    return _try_number_pair(text)


def _heart_ox_from_json(text: str) -> tuple[float | None, float | None] | None:
    obj = _try_json_object(text)
    if obj is None:
        return None
    return safe_float(_first_truthy(obj, _HEART_RATE_KEYS)), safe_float(_first_truthy(obj, _SPO2_KEYS))


def parse_heart_ox(value: str | None) -> HeartOxSample:
    """Decode a heart-rate / SpO2 payload.

    Tries ``"<hr>,<spo2>"`` first, then a JSON object. Accepted values are
    clamped to the display ranges.
    """
    if not value or not value.strip():
        return HeartOxSample()
    text = value.strip()

    raw_pair: tuple[float | None, float | None] = (None, None)
    for attempt in (_heart_ox_from_pair, _heart_ox_from_json):
        result = attempt(text)
        if result is not None:
            raw_pair = result
            break

    raw_hr, raw_spo2 = raw_pair
    heart_rate = heart_rate_progress = None
    if raw_hr is not None:
        heart_rate = _clamp(round_half_up(raw_hr), HEART_RATE_RANGE)
        heart_rate_progress = _progress(heart_rate, HEART_RATE_RANGE)

    spo2 = spo2_progress = None
    if raw_spo2 is not None:
        spo2 = _clamp(round_half_up(raw_spo2), SPO2_RANGE)
        spo2_progress = _progress(spo2, SPO2_RANGE)

    return HeartOxSample(
        heart_rate=heart_rate,
        spo2=spo2,
        heart_rate_progress=heart_rate_progress,
        spo2_progress=spo2_progress,
    )


# ---------------------------------------------------------------------------
# Motion
# ---------------------------------------------------------------------------


def estimate_steps(first: float, second: float) -> int:
    """Coarse step estimate kept for compatibility with existing dashboards."""
    return round_half_up(abs(first * 100 + second * 50))


def _goal_progress(value: int, goal: int) -> int | None:
    if not value:
        return None
    return min(100, round_half_up(value / goal * 100))


def parse_motion(value: str | None) -> MotionSample:
    """Decode an accelerometer triple and estimate steps/calories."""
    if not value or not value.strip():
        return MotionSample()
    numbers = parse_number_list(value)
    if numbers is None or len(numbers) < 2:
        return MotionSample()

    steps = estimate_steps(numbers[0], numbers[1])
    calories = round_half_up(steps * 0.04)
    return MotionSample(
        x=numbers[0],
        y=numbers[1],
        z=numbers[2] if len(numbers) > 2 else None,
        steps=steps,
        calories=calories,
        steps_progress=_goal_progress(steps, STEPS_GOAL),
        calories_progress=_goal_progress(calories, CALORIES_GOAL),
    )


# ---------------------------------------------------------------------------
# GPS
# ---------------------------------------------------------------------------


def _geo_from_json(text: str) -> tuple[float, float] | None:
    obj = _try_json_object(text)
    if obj is None:
        return None
    lat = safe_float(_first_present(obj, _LAT_KEYS))
    lon = safe_float(_first_present(obj, _LON_KEYS))
    if lat is None or lon is None:
        return None
    return lat, lon


def _geo_from_pair(text: str) -> tuple[float, float] | None:
    tokens = split_tokens(text)
    if len(tokens) < 2:
        return None
    lat = safe_float(tokens[0])
    lon = safe_float(tokens[1])
    if lat is None or lon is None:
        return None
    return lat, lon


def parse_geo_fix(value: str | None, *, ts: datetime | None = None) -> GeoFix:
    """Decode a position; JSON object first, then ``"<lat>,<lon>"``."""
    if not value or not value.strip():
        return GeoFix(ts=ts)
    text = value.strip()
    for attempt in (_geo_from_json, _geo_from_pair):
        coords = attempt(text)
        if coords is not None:
            return GeoFix(lat=coords[0], lon=coords[1], ts=ts)
    return GeoFix(ts=ts)


# ---------------------------------------------------------------------------
# Temperature
# ---------------------------------------------------------------------------


def parse_temperature(value: str | None) -> TemperatureSample:
    """Single number in degrees Celsius."""
    if value is None:
        return TemperatureSample()
    return TemperatureSample(celsius=safe_float(value.strip()))
