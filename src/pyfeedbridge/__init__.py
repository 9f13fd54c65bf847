"""pyfeedbridge - Async bridge and viewer session for broker-hosted sensor feeds."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfeedbridge")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfeedbridge.bridge import FeedBridge, run_bridge
from pyfeedbridge.client import FeedClient
from pyfeedbridge.config import BridgeConfig, ClientConfig, FeedRoles
from pyfeedbridge.derive import derive_samples
from pyfeedbridge.exceptions import (
    FeedBridgeConfigError,
    FeedBridgeError,
    FeedBridgeMessageError,
    FeedBridgeTransportError,
)
from pyfeedbridge.geo import GeoTracker, haversine_km
from pyfeedbridge.models import (
    DerivedSamples,
    GeoFix,
    HeartOxSample,
    MotionSample,
    TemperatureSample,
    TravelEstimate,
)
from pyfeedbridge.state.events import Reading, ReadingSource
from pyfeedbridge.state.store import ChannelReconciler

__all__ = [
    "__version__",
    "BridgeConfig",
    "ChannelReconciler",
    "ClientConfig",
    "DerivedSamples",
    "FeedBridge",
    "FeedBridgeConfigError",
    "FeedBridgeError",
    "FeedBridgeMessageError",
    "FeedBridgeTransportError",
    "FeedClient",
    "FeedRoles",
    "GeoFix",
    "GeoTracker",
    "HeartOxSample",
    "MotionSample",
    "Reading",
    "ReadingSource",
    "TemperatureSample",
    "TravelEstimate",
    "derive_samples",
    "haversine_km",
    "run_bridge",
]
