"""GPS Alarm Core - Event bus and error taxonomy."""

from .errors import (
    DestinationUnresolved,
    GpsAlarmError,
    PositionError,
    PositionPermissionDenied,
    PositionTimeout,
    PositionUnavailable,
    PositionUnknownError,
    SideEffectFailure,
    classify_position_error,
)
from .events import Event, EventBus, EventType

__all__ = [
    "DestinationUnresolved",
    # Events
    "Event",
    "EventBus",
    "EventType",
    # Errors
    "GpsAlarmError",
    "PositionError",
    "PositionPermissionDenied",
    "PositionTimeout",
    "PositionUnavailable",
    "PositionUnknownError",
    "SideEffectFailure",
    "classify_position_error",
]
