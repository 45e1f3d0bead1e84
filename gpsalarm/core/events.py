"""
GPS Alarm Event Bus
===================

Queue-backed pub/sub between the tracking engine and whatever follows a
trip (CLI summary, diagnostics). Producers are synchronous callbacks, so
publishing never blocks: events are queued and handed to async handlers
by a single consumer task.

Usage:
    bus = EventBus()

    @bus.on(EventType.THRESHOLD_CROSSED)
    async def announce(event: Event):
        print(event.data.message)

    await bus.start()
    tracker = PositionTrackingLoop(..., event_bus=bus)
    ...
    await bus.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Coroutine, Optional, TypeAlias

logger = logging.getLogger(__name__)

AsyncHandler: TypeAlias = Callable[["Event"], Coroutine[Any, Any, None]]


class EventType(Enum):
    # Session lifecycle
    TRACKING_STARTED = auto()
    TRACKING_STOPPED = auto()

    # Position
    POSITION_UPDATE = auto()
    POSITION_ERROR = auto()

    # Alerts
    THRESHOLD_CROSSED = auto()
    EFFECT_FAILED = auto()

    # Trips
    TRIP_RECORDED = auto()
    TRIP_SAVE_FAILED = auto()


@dataclass(frozen=True)
class Event:
    type: EventType
    data: Any = None
    source: str = "system"
    timestamp: float = field(default_factory=time.time)
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])


@dataclass(order=True)
class _Subscription:
    priority: int
    seq: int
    handler: AsyncHandler = field(compare=False)
    once: bool = field(default=False, compare=False)


class EventBus:
    """
    Async event bus.

    Handlers for one event type run in priority order (lower first, then
    subscription order). A failing handler is logged and counted; the
    remaining handlers still run.
    """

    def __init__(self, max_history: int = 500) -> None:
        self._subscriptions: dict[EventType, list[_Subscription]] = {}
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._history: deque[Event] = deque(maxlen=max_history)
        self._consumer: Optional[asyncio.Task] = None
        self._seq = 0
        self._published: Counter[EventType] = Counter()
        self._handled = 0
        self._handler_errors = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    # ==================== Subscriptions ====================

    def subscribe(
        self,
        event_type: EventType,
        handler: AsyncHandler,
        priority: int = 100,
        once: bool = False,
    ) -> None:
        self._seq += 1
        subs = self._subscriptions.setdefault(event_type, [])
        subs.append(_Subscription(priority, self._seq, handler, once))
        subs.sort()
        logger.debug("Subscribed %s to %s", getattr(handler, "__name__", handler), event_type.name)

    def unsubscribe(self, event_type: EventType, handler: AsyncHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        subs = self._subscriptions.get(event_type, [])
        for sub in subs:
            if sub.handler == handler:
                subs.remove(sub)
                return True
        return False

    def on(
        self, event_type: EventType, priority: int = 100, once: bool = False
    ) -> Callable[[AsyncHandler], AsyncHandler]:
        """Decorator form of subscribe()."""

        def decorator(handler: AsyncHandler) -> AsyncHandler:
            self.subscribe(event_type, handler, priority, once)
            return handler

        return decorator

    # ==================== Publishing ====================

    async def emit(self, event_type: EventType, data: Any = None, source: str = "system") -> Event:
        event = Event(event_type, data, source)
        await self._queue.put(event)
        self._published[event_type] += 1
        return event

    def emit_sync(self, event_type: EventType, data: Any = None, source: str = "system") -> Event:
        """
        Publish from a synchronous callback.

        Inside a running loop the event is enqueued on the next loop
        iteration; without one it is enqueued immediately and picked up
        once the bus is started.
        """
        event = Event(event_type, data, source)
        try:
            asyncio.get_running_loop().call_soon(self._queue.put_nowait, event)
        except RuntimeError:
            self._queue.put_nowait(event)
        self._published[event_type] += 1
        return event

    # ==================== Consumer ====================

    async def start(self) -> None:
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="gpsalarm-event-bus")
        logger.debug("Event bus started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Deliver what is already queued, then stop the consumer."""
        consumer, self._consumer = self._consumer, None
        if consumer is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Event bus stopped with %d undelivered events", self._queue.qsize())
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass
        logger.debug("Event bus stopped")

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: Event) -> None:
        self._history.append(event)
        subs = self._subscriptions.get(event.type)
        if not subs:
            return

        for sub in list(subs):
            if sub.once:
                subs.remove(sub)
            try:
                await sub.handler(event)
                self._handled += 1
            except Exception as e:
                self._handler_errors += 1
                logger.error(
                    "Handler %s failed on %s: %s",
                    getattr(sub.handler, "__name__", sub.handler),
                    event.type.name,
                    e,
                )

    # ==================== Introspection ====================

    def get_history(self, event_type: EventType | None = None, limit: int = 100) -> list[Event]:
        """Delivered events, oldest first, optionally filtered by type."""
        events = [e for e in self._history if event_type is None or e.type is event_type]
        return events[-limit:]

    def count(self, event_type: EventType) -> int:
        """Events of this type published so far, delivered or not."""
        return self._published[event_type]

    def get_stats(self) -> dict:
        return {
            "events_published": sum(self._published.values()),
            "events_processed": self._handled,
            "handler_errors": self._handler_errors,
            "queue_size": self._queue.qsize(),
            "handler_count": sum(len(s) for s in self._subscriptions.values()),
            "history_size": len(self._history),
        }
