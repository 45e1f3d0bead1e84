"""Tracking session value owned by the position tracking loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from ..domain.models import Alert, Coordinate, Destination, PositionSample, ThresholdId, TripRecord
from ..infrastructure.gps.distance import DistanceTracker
from .thresholds import ThresholdStateMachine


class TrackingState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    STOPPED = "stopped"


@dataclass
class TrackingSession:
    """One run from start() to stop() or arrival."""

    destination: Destination
    started_at: datetime
    thresholds: ThresholdStateMachine
    active: bool = True
    fitted_bounds: bool = False
    watch_handle: Optional[int] = None
    last_sample: Optional[PositionSample] = None
    last_distance_km: Optional[float] = None
    route_origin: Optional[Coordinate] = None
    route_updates: int = 0
    samples_handled: int = 0
    errors: int = 0
    resumes: int = 0
    alerts: list[Alert] = field(default_factory=list)
    trip: Optional[TripRecord] = None
    ended_at: Optional[datetime] = None
    travelled: DistanceTracker = field(default_factory=DistanceTracker)
    _final_notified: frozenset[ThresholdId] = field(default=frozenset(), init=False, repr=False)

    @property
    def notified_thresholds(self) -> frozenset[ThresholdId]:
        # The state machine is reset for the next session; keep our own copy
        if self.active:
            return self.thresholds.notified
        return self._final_notified

    @property
    def arrived(self) -> bool:
        return ThresholdId.ARRIVED in self.notified_thresholds

    def close(self) -> None:
        if not self.active:
            return
        self._final_notified = self.thresholds.notified
        self.active = False
        self.ended_at = datetime.now(UTC)

    def to_dict(self) -> dict:
        return {
            "destination": self.destination.name,
            "started_at": self.started_at.isoformat(),
            "active": self.active,
            "notified": sorted(t.value for t in self.notified_thresholds),
            "last_distance_km": self.last_distance_km,
            "samples": self.samples_handled,
            "errors": self.errors,
            "travelled_km": self.travelled.total_km,
        }
