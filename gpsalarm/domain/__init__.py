"""GPS Alarm Domain Layer - Core models and enums."""

from .models import (
    Alert,
    AlertContext,
    AlertKind,
    BannerDuration,
    Coordinate,
    Destination,
    PositionSample,
    StatusUpdate,
    ThresholdId,
    TripRecord,
)

__all__ = [
    "Alert",
    "AlertContext",
    "AlertKind",
    "BannerDuration",
    "Coordinate",
    "Destination",
    "PositionSample",
    "StatusUpdate",
    "ThresholdId",
    "TripRecord",
]
