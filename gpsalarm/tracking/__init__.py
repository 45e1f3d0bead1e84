"""Tracking engine - session lifecycle, thresholds and trip recording."""

from .loop import PositionTrackingLoop
from .recorder import TripRecorder
from .session import TrackingSession, TrackingState
from .thresholds import EVALUATION_ORDER, ThresholdStateMachine
from .view import ConsoleView, TrackingView

__all__ = [
    "EVALUATION_ORDER",
    "ConsoleView",
    "PositionTrackingLoop",
    "ThresholdStateMachine",
    "TrackingSession",
    "TrackingState",
    "TrackingView",
    "TripRecorder",
]
