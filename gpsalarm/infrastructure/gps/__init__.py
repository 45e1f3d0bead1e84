"""GPS infrastructure - distance math and tracking sources."""

from .distance import (
    DistanceTracker,
    calculate_bearing,
    destination_point,
    distance_km,
    distance_m,
    haversine_km,
)
from .gpsd_client import AsyncGPSClient, GPSConfig, GpsdTrackingSource
from .scripted import ScriptedTrackingSource
from .source import TrackingOptions, TrackingSource

__all__ = [
    "AsyncGPSClient",
    "DistanceTracker",
    "GPSConfig",
    "GpsdTrackingSource",
    "ScriptedTrackingSource",
    "TrackingOptions",
    "TrackingSource",
    "calculate_bearing",
    "destination_point",
    "distance_km",
    "distance_m",
    "haversine_km",
]
