"""
Position Tracking Loop
======================

Drives one tracking session: IDLE -> TRACKING -> STOPPED.

Two producers feed the same handler while tracking:
- the tracking source's continuous watch subscription
- a fallback poll every `poll_interval` seconds, covering sources that
  go quiet

Per sample: move marker -> distance -> status -> route (only when needed)
-> threshold evaluation -> alert -> fit bounds (once per session).
Arrival records the trip and stops tracking.

Usage:
    tracker = PositionTrackingLoop.from_config(cfg, source)
    tracker.start(Destination(name="Fort", coordinate=coord))
    await tracker.run_until_stopped()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..core.errors import DestinationUnresolved, PositionError, classify_position_error
from ..core.events import EventType
from ..domain.models import (
    AlertContext,
    AlertKind,
    BannerDuration,
    Coordinate,
    Destination,
    PositionSample,
    StatusUpdate,
    ThresholdId,
)
from ..infrastructure.alerts.channels import ConsoleBanner, ConsoleBell, DesktopNotifier, NullHaptics
from ..infrastructure.alerts.dispatcher import AlertDispatcher
from ..infrastructure.database.trip_repository import TripRepository
from ..infrastructure.gps.distance import distance_km, distance_m
from ..infrastructure.gps.source import TrackingOptions, TrackingSource
from ..tools.wake_lock import InhibitWakeLock, NullWakeLock, WakeLock
from .recorder import TripRecorder
from .session import TrackingSession, TrackingState
from .thresholds import ThresholdStateMachine
from .view import TrackingView

if TYPE_CHECKING:
    from rich.console import Console

    from ..config import GpsAlarmConfig
    from ..core.events import EventBus

logger = logging.getLogger(__name__)


class PositionTrackingLoop:
    """Owns the single live TrackingSession and everything feeding it."""

    def __init__(
        self,
        source: TrackingSource,
        dispatcher: AlertDispatcher,
        recorder: TripRecorder,
        *,
        thresholds: Optional[ThresholdStateMachine] = None,
        view: Optional[TrackingView] = None,
        options: Optional[TrackingOptions] = None,
        poll_interval: float = 10.0,
        route_refresh_m: float = 25.0,
        wake_lock: Optional[WakeLock] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.dispatcher = dispatcher
        self.recorder = recorder
        self.thresholds = thresholds or ThresholdStateMachine()
        self.view = view
        self.options = options or TrackingOptions()
        self.poll_interval = poll_interval
        self.route_refresh_m = route_refresh_m
        self.wake_lock: WakeLock = wake_lock or NullWakeLock()
        self._event_bus = event_bus
        self._clock = clock or (lambda: datetime.now(UTC))

        self.state = TrackingState.IDLE
        self.session: Optional[TrackingSession] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

    @classmethod
    def from_config(
        cls,
        cfg: GpsAlarmConfig,
        source: TrackingSource,
        *,
        view: Optional[TrackingView] = None,
        event_bus: Optional[EventBus] = None,
        console: Optional[Console] = None,
    ) -> PositionTrackingLoop:
        """Wire the tracker with console channels and the sqlite trip log."""
        notifications = cfg.notifications
        dispatcher = AlertDispatcher(
            banner=ConsoleBanner(console),
            notifier=DesktopNotifier(
                enabled=notifications.system_notifications,
                app_name=notifications.app_name,
            ),
            haptics=NullHaptics(),
            audio=ConsoleBell(console),
            config=notifications,
            event_bus=event_bus,
        )
        store = TripRepository(cfg.storage.db_path, max_trips=cfg.storage.max_trips)
        recorder = TripRecorder(store, dispatcher=dispatcher, event_bus=event_bus)
        return cls(
            source,
            dispatcher,
            recorder,
            thresholds=ThresholdStateMachine(cfg.thresholds.boundaries()),
            view=view,
            options=TrackingOptions.from_config(cfg.geolocation),
            poll_interval=cfg.geolocation.poll_interval_secs,
            route_refresh_m=cfg.geolocation.route_refresh_m,
            wake_lock=InhibitWakeLock() if cfg.wake_lock.enabled else NullWakeLock(),
            event_bus=event_bus,
        )

    @property
    def is_tracking(self) -> bool:
        return self.state is TrackingState.TRACKING

    # ==================== Lifecycle ====================

    def start(self, destination: Destination) -> TrackingSession:
        """
        Begin tracking toward destination.

        A running session is torn down first (watch and poll cancelled), so
        two sessions never feed the handler at once.

        Raises:
            DestinationUnresolved: destination has no coordinate.
        """
        if destination.coordinate is None:
            raise DestinationUnresolved(destination.name)

        if self.state is TrackingState.TRACKING:
            logger.info("Restarting tracking, closing session for %s", self._destination_name())
            self._teardown()

        self.thresholds.reset()
        session = TrackingSession(
            destination=destination,
            started_at=self._clock(),
            thresholds=self.thresholds,
        )
        self.session = session
        self.state = TrackingState.TRACKING
        self._stopped.clear()

        self.wake_lock.acquire()
        session.watch_handle = self.source.watch(self.handle_sample, self.handle_error, self.options)
        self._start_poll(session)
        self.dispatcher.show("Tracking started successfully!", AlertKind.SUCCESS, BannerDuration.SHORT)

        logger.info(
            "Tracking started: %s (%.5f, %.5f)",
            destination.name,
            destination.coordinate.latitude,
            destination.coordinate.longitude,
        )
        self._emit(EventType.TRACKING_STARTED, destination)
        return session

    def stop(self) -> None:
        """Stop tracking. Calling it when not tracking is a no-op."""
        if self.state is not TrackingState.TRACKING:
            logger.debug("stop() ignored in state %s", self.state.value)
            return

        self._teardown()
        self.state = TrackingState.STOPPED
        self._stopped.set()
        logger.info("Tracking stopped: %s", self._destination_name())
        self._emit(EventType.TRACKING_STOPPED, self.session)

    def resume(self) -> bool:
        """
        Re-subscribe after the host was suspended or backgrounded.

        The session itself is kept: notified thresholds, started_at and the
        travelled distance carry over. Returns False when not tracking.
        """
        session = self.session
        if not self.is_tracking or session is None:
            logger.debug("resume() ignored in state %s", self.state.value)
            return False

        if session.watch_handle is not None:
            self.source.cancel(session.watch_handle)
            session.watch_handle = None
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

        self.wake_lock.acquire()
        session.watch_handle = self.source.watch(self.handle_sample, self.handle_error, self.options)
        self._start_poll(session)
        session.resumes += 1
        logger.info("Tracking resumed: %s", session.destination.name)
        return True

    async def run_until_stopped(self, timeout: float | None = None) -> Optional[TrackingSession]:
        """Wait for arrival or an explicit stop(). Returns the finished session."""
        await asyncio.wait_for(self._stopped.wait(), timeout=timeout)
        return self.session

    def _teardown(self) -> None:
        session = self.session
        if session is not None and session.watch_handle is not None:
            self.source.cancel(session.watch_handle)
            session.watch_handle = None

        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

        self.wake_lock.release()

        if session is not None:
            session.close()

    # ==================== Fallback poll ====================

    def _start_poll(self, session: TrackingSession) -> None:
        if self.poll_interval <= 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, fallback poll disabled")
            return
        self._poll_task = loop.create_task(self._poll_loop(session), name="gpsalarm-fallback-poll")

    async def _poll_loop(self, session: TrackingSession) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            if self.session is not session or not self.is_tracking:
                return
            self.source.poll_once(self.handle_sample, self._handle_poll_error, self.options)

    def _handle_poll_error(self, error: BaseException) -> None:
        logger.info("Fallback position request failed: %s", error)

    # ==================== Sample handling ====================

    def handle_sample(self, sample: PositionSample) -> Optional[ThresholdId]:
        """
        Process one position sample from either input source.

        Returns the threshold crossed by this sample, if any.
        """
        session = self.session
        if not self.is_tracking or session is None:
            logger.debug("Sample ignored, not tracking")
            return None
        destination = session.destination.coordinate
        if destination is None:
            return None

        position = sample.coordinate
        session.last_sample = sample
        session.samples_handled += 1
        session.travelled.update(position)

        self._call_view("move_marker", position)

        remaining = distance_km(position, destination)
        session.last_distance_km = remaining

        status = StatusUpdate(
            distance_km=remaining,
            speed_kmh=sample.speed_kmh,
            accuracy_m=sample.accuracy,
        )
        self._call_view("show_status", status)
        self._emit(EventType.POSITION_UPDATE, status)

        self._update_route(session, position, destination)

        threshold = session.thresholds.evaluate(remaining)
        if threshold is not None:
            self._on_threshold(session, threshold, remaining)

        self._fit_bounds_once(session, position, destination)
        return threshold

    def _update_route(self, session: TrackingSession, position: Coordinate, destination: Coordinate) -> None:
        origin = session.route_origin
        if origin is not None and distance_m(origin, position) <= self.route_refresh_m:
            return
        session.route_origin = position
        session.route_updates += 1
        self._call_view("draw_route", position, destination)

    def _fit_bounds_once(self, session: TrackingSession, position: Coordinate, destination: Coordinate) -> None:
        if session.fitted_bounds:
            return
        session.fitted_bounds = True
        self._call_view("fit_bounds", position, destination)

    def _on_threshold(self, session: TrackingSession, threshold: ThresholdId, remaining: float) -> None:
        context = AlertContext(
            destination=session.destination.name,
            boundary_km=self.thresholds.boundary(threshold),
        )
        if threshold is not ThresholdId.ARRIVED:
            self._dispatch(session, threshold, remaining, context)
            return

        try:
            context.duration_minutes = self.recorder.duration_minutes(session.started_at)
            self._dispatch(session, threshold, remaining, context)
            session.trip = self.recorder.finalize(
                session.destination.name,
                remaining,
                session.started_at,
                travelled_km=session.travelled.total_km,
            )
        finally:
            self.stop()

    def _dispatch(
        self,
        session: TrackingSession,
        threshold: ThresholdId,
        remaining: float,
        context: AlertContext,
    ) -> None:
        try:
            alert = self.dispatcher.fire(threshold, remaining, context)
        except Exception:
            logger.exception("Alert dispatch failed for %s", threshold.value)
            return
        session.alerts.append(alert)
        self._emit(EventType.THRESHOLD_CROSSED, alert)

    # ==================== Errors ====================

    def handle_error(self, error: BaseException) -> Optional[PositionError]:
        """
        Report a position acquisition failure.

        The session keeps tracking; the next watch sample or fallback poll
        may well succeed.
        """
        if not self.is_tracking:
            logger.debug("Position error ignored, not tracking: %s", error)
            return None

        position_error = classify_position_error(error)
        if self.session is not None:
            self.session.errors += 1

        logger.warning(
            "Position error (%s): %s",
            position_error.code,
            position_error.detail or position_error.message,
        )
        self.dispatcher.show(position_error.user_message, AlertKind.ERROR, BannerDuration.LONG)
        self._emit(EventType.POSITION_ERROR, position_error)
        return position_error

    # ==================== Helpers ====================

    def _call_view(self, method: str, *args: Any) -> None:
        if self.view is None:
            return
        try:
            getattr(self.view, method)(*args)
        except Exception as e:
            logger.error("View %s error: %s", method, e)

    def _emit(self, event_type: EventType, data: Any) -> None:
        if self._event_bus is not None:
            self._event_bus.emit_sync(event_type, data=data, source="tracker")

    def _destination_name(self) -> str:
        return self.session.destination.name if self.session else "<none>"
