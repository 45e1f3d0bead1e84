"""
Alert Dispatcher
================

Fans a crossed threshold out to the alert channels:

- in-app banner, always, duration by severity
- system notification + haptic pattern, important thresholds only
- audible alert, arrival only

Side effects are scheduled as independent tasks on the running loop and
never awaited by the caller. Each one is wrapped in its own failure
recovery, so a denied notification cannot stop the haptic or the sound,
and nothing raised here reaches the tracking loop.

Synchronous callers (no running loop) get the effects run inline; each
is cut off after `effect_timeout_secs` and recorded as a failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from ...config import NotificationsConfig
from ...core.errors import SideEffectFailure
from ...core.events import EventType
from ...domain.models import Alert, AlertContext, AlertKind, BannerDuration, ThresholdId
from .channels import Audio, Banner, Haptics, Notifier

if TYPE_CHECKING:
    from ...core.events import EventBus

logger = logging.getLogger(__name__)

HAPTIC_PATTERNS: dict[AlertKind, tuple[int, ...]] = {
    AlertKind.SUCCESS: (100, 50, 100),
    AlertKind.WARNING: (200, 100, 200, 100, 200),
    AlertKind.ERROR: (300, 100, 300),
    AlertKind.INFO: (100,),
}


def format_boundary(km: float) -> str:
    """2.0 -> '2 kilometers', 1.0 -> '1 kilometer', 0.75 -> '750 meters'."""
    if km < 1:
        return f"{round(km * 1000)} meters"
    if km == 1:
        return "1 kilometer"
    return f"{km:g} kilometers"


class AlertDispatcher:
    """Renders threshold alerts and schedules their side effects."""

    def __init__(
        self,
        banner: Banner,
        notifier: Optional[Notifier] = None,
        haptics: Optional[Haptics] = None,
        audio: Optional[Audio] = None,
        config: NotificationsConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.banner = banner
        self.notifier = notifier
        self.haptics = haptics
        self.audio = audio
        self.config = config or NotificationsConfig()
        self._event_bus = event_bus
        self._pending: set[asyncio.Task] = set()
        self.failures: list[SideEffectFailure] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def format_message(
        self,
        threshold: ThresholdId,
        distance_km: float,
        context: AlertContext,
    ) -> str:
        if threshold is ThresholdId.ARRIVED:
            minutes = context.duration_minutes or 0
            return f"You've arrived at {context.destination}! Trip took {minutes} minutes."
        boundary = context.boundary_km if context.boundary_km is not None else threshold.default_km
        return f"{format_boundary(boundary)} remaining to {context.destination}"

    def fire(
        self,
        threshold: ThresholdId,
        distance_km: float,
        context: AlertContext | None = None,
    ) -> Alert:
        """Render the banner and schedule side effects for a crossed threshold."""
        context = context or AlertContext()
        message = self.format_message(threshold, distance_km, context)
        duration_ms = self.config.duration_ms(threshold.duration)

        channels: list[str] = []
        if self.show(message, threshold.kind, threshold.duration):
            channels.append("banner")

        if threshold.important:
            notifier = self.notifier
            if notifier is not None and self.config.system_notifications:
                self._spawn(
                    "notification",
                    lambda: notifier.notify(
                        self.config.app_name,
                        message,
                        urgent=threshold is ThresholdId.ARRIVED,
                    ),
                )
                channels.append("notification")

            haptics = self.haptics
            if haptics is not None and self.config.haptics:
                pattern = HAPTIC_PATTERNS.get(threshold.kind, HAPTIC_PATTERNS[AlertKind.INFO])
                self._spawn("haptics", lambda: haptics.vibrate(pattern))
                channels.append("haptics")

            audio = self.audio
            if threshold is ThresholdId.ARRIVED and audio is not None and self.config.sound:
                self._spawn("audio", audio.play)
                channels.append("audio")

        logger.info(
            "Alert %s at %.2f km via %s", threshold.value, distance_km, ", ".join(channels)
        )
        return Alert(
            threshold=threshold,
            message=message,
            kind=threshold.kind,
            duration_ms=duration_ms,
            important=threshold.important,
            distance_km=distance_km,
            channels=channels,
        )

    def show(
        self,
        message: str,
        kind: AlertKind = AlertKind.INFO,
        duration: BannerDuration = BannerDuration.MEDIUM,
    ) -> bool:
        """Render an in-app banner. Returns False if the banner failed."""
        try:
            self.banner.show(message, kind, self.config.duration_ms(duration))
            return True
        except Exception as exc:
            self._record_failure(SideEffectFailure("banner", exc))
            return False

    def _spawn(self, effect: str, factory: Callable[[], Awaitable[None]]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to hand the effect to: the caller blocks for at most
            # effect_timeout_secs per effect
            asyncio.run(self._guard(effect, factory))
            return

        task = loop.create_task(self._guard(effect, factory), name=f"alert-{effect}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _guard(self, effect: str, factory: Callable[[], Awaitable[None]]) -> None:
        timeout = self.config.effect_timeout_secs
        try:
            await asyncio.wait_for(factory(), timeout=timeout)
        except asyncio.TimeoutError:
            self._record_failure(SideEffectFailure(effect, TimeoutError(f"no result after {timeout:g}s")))
        except Exception as exc:
            self._record_failure(SideEffectFailure(effect, exc))

    def _record_failure(self, failure: SideEffectFailure) -> None:
        self.failures.append(failure)
        logger.warning("Alert side effect failed: %s", failure)
        if self._event_bus is not None:
            self._event_bus.emit_sync(EventType.EFFECT_FAILED, data=failure, source="alerts")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every scheduled side effect to finish."""
        while self._pending:
            await asyncio.wait_for(
                asyncio.gather(*list(self._pending), return_exceptions=True),
                timeout=timeout,
            )
