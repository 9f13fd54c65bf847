"""Data models for decoded sensor samples."""

from pyfeedbridge.models._base import SampleModel
from pyfeedbridge.models.geo import GeoFix, TravelEstimate
from pyfeedbridge.models.samples import DerivedSamples, HeartOxSample, MotionSample, TemperatureSample

__all__ = [
    "DerivedSamples",
    "GeoFix",
    "HeartOxSample",
    "MotionSample",
    "SampleModel",
    "TemperatureSample",
    "TravelEstimate",
]
