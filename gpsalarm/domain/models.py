"""GPS Alarm Domain Models - Pydantic models for core entities."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AlertKind(str, Enum):
    """Visual/haptic flavour of an alert."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class BannerDuration(str, Enum):
    """How long an in-app banner stays on screen."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    PERSISTENT = "persistent"


class ThresholdId(str, Enum):
    """Distance tiers announced while approaching the destination.

    Declared loosest first; evaluation runs in the reverse order.
    """

    APPROACHING = "approaching"
    NEAR = "near"
    CLOSE = "close"
    ARRIVED = "arrived"

    @property
    def default_km(self) -> float:
        """Default boundary in kilometers."""
        return _DEFAULT_BOUNDARIES_KM[self]

    @property
    def important(self) -> bool:
        """Important tiers also go out as system notification/haptic/audio."""
        return self in (ThresholdId.CLOSE, ThresholdId.ARRIVED)

    @property
    def kind(self) -> AlertKind:
        return _KINDS[self]

    @property
    def duration(self) -> BannerDuration:
        return _DURATIONS[self]


_DEFAULT_BOUNDARIES_KM: dict[ThresholdId, float] = {
    ThresholdId.APPROACHING: 2.0,
    ThresholdId.NEAR: 1.0,
    ThresholdId.CLOSE: 0.75,
    ThresholdId.ARRIVED: 0.3,
}

_KINDS: dict[ThresholdId, AlertKind] = {
    ThresholdId.APPROACHING: AlertKind.INFO,
    ThresholdId.NEAR: AlertKind.INFO,
    ThresholdId.CLOSE: AlertKind.WARNING,
    ThresholdId.ARRIVED: AlertKind.SUCCESS,
}

_DURATIONS: dict[ThresholdId, BannerDuration] = {
    ThresholdId.APPROACHING: BannerDuration.SHORT,
    ThresholdId.NEAR: BannerDuration.MEDIUM,
    ThresholdId.CLOSE: BannerDuration.LONG,
    ThresholdId.ARRIVED: BannerDuration.PERSISTENT,
}


class Coordinate(BaseModel):
    """Immutable WGS84 coordinate in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class Destination(BaseModel):
    """Destination handed to the tracker: display name plus resolved coordinate."""

    name: str
    coordinate: Coordinate | None = None

    @property
    def resolved(self) -> bool:
        return self.coordinate is not None


class PositionSample(BaseModel):
    """Single position report from a tracking source."""

    coordinate: Coordinate
    accuracy: float = Field(50.0, ge=0)  # meters
    speed: float | None = None  # m/s
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def speed_kmh(self) -> float | None:
        if self.speed is None:
            return None
        return self.speed * 3.6

    def age_ms(self, now: datetime | None = None) -> float:
        """Milliseconds elapsed since the sample was taken."""
        now = now or datetime.now(UTC)
        return (now - self.timestamp).total_seconds() * 1000.0


class StatusUpdate(BaseModel):
    """Structured status line for the display sink."""

    distance_km: float
    speed_kmh: float | None = None
    accuracy_m: float

    def format(self) -> str:
        speed = f"{round(self.speed_kmh)} km/h" if self.speed_kmh else "Unknown"
        return (
            f"Distance: {self.distance_km:.2f} km | Speed: {speed} | "
            f"Accuracy: ±{round(self.accuracy_m)}m"
        )


class AlertContext(BaseModel):
    """Session details an alert message is rendered from."""

    destination: str = "destination"
    boundary_km: float | None = None
    duration_minutes: int | None = None


class Alert(BaseModel):
    """What the dispatcher rendered and scheduled for one threshold."""

    threshold: ThresholdId
    message: str
    kind: AlertKind
    duration_ms: int
    important: bool
    distance_km: float
    channels: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TripRecord(BaseModel):
    """Completed trip, appended to the trip log on arrival."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    destination: str
    distance_km: float = Field(..., ge=0)
    duration_minutes: int = Field(0, ge=0)
    started_at: datetime | None = None
    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    travelled_km: float | None = None  # path length while tracking
