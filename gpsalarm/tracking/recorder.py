"""Trip finalisation on arrival."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable, Optional

from ..core.events import EventType
from ..domain.models import AlertKind, BannerDuration, TripRecord
from ..infrastructure.database.trip_repository import TripStore

if TYPE_CHECKING:
    from ..core.events import EventBus
    from ..infrastructure.alerts.dispatcher import AlertDispatcher

logger = logging.getLogger(__name__)


class TripRecorder:
    """Builds the TripRecord for a finished trip and hands it to the store."""

    def __init__(
        self,
        store: TripStore,
        dispatcher: Optional[AlertDispatcher] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self._event_bus = event_bus
        self._clock = clock or (lambda: datetime.now(UTC))

    def duration_minutes(self, started_at: Optional[datetime]) -> int:
        """Whole minutes since started_at (0 when unknown)."""
        if started_at is None:
            return 0
        elapsed = (self._clock() - started_at).total_seconds()
        return max(0, round(elapsed / 60))

    def finalize(
        self,
        destination: str,
        distance_km: float,
        started_at: Optional[datetime],
        travelled_km: Optional[float] = None,
    ) -> TripRecord:
        """
        Record a completed trip.

        A failing store is reported but does not raise: the caller still has
        to stop tracking.
        """
        record = TripRecord(
            destination=destination,
            distance_km=round(max(0.0, distance_km), 2),
            duration_minutes=self.duration_minutes(started_at),
            started_at=started_at,
            completed_at=self._clock(),
            travelled_km=round(travelled_km, 2) if travelled_km is not None else None,
        )

        try:
            self.store.append_trip(record)
        except Exception as exc:
            logger.error("Failed to save trip history: %s", exc)
            self._show("Failed to save trip history", AlertKind.ERROR)
            self._emit(EventType.TRIP_SAVE_FAILED, record)
            return record

        logger.info(
            "Trip saved: %s (%.2f km, %d min)",
            record.destination,
            record.distance_km,
            record.duration_minutes,
        )
        self._show(f"Trip saved: {destination} ({distance_km:.2f} km)", AlertKind.SUCCESS)
        self._emit(EventType.TRIP_RECORDED, record)
        return record

    def _show(self, message: str, kind: AlertKind) -> None:
        if self.dispatcher is not None:
            self.dispatcher.show(message, kind, BannerDuration.MEDIUM)

    def _emit(self, event_type: EventType, record: TripRecord) -> None:
        if self._event_bus is not None:
            self._event_bus.emit_sync(event_type, data=record, source="recorder")
