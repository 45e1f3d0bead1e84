"""
Scripted Tracking Source
========================

Deterministic tracking source replaying a fixed list of samples. Used by
the `simulate` command and for driving the tracker in tests.

Usage:
    source = ScriptedTrackingSource.approach(destination, [2.5, 1.8, 0.9])
    handle = source.watch(on_sample, on_error, TrackingOptions())
    await source.play()
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import UTC, datetime, timedelta
from typing import Iterable, Optional, Sequence

from ...core.errors import PositionError, PositionUnavailable
from ...domain.models import Coordinate, PositionSample
from .distance import destination_point
from .source import ErrorCallback, SampleCallback, TrackingOptions

logger = logging.getLogger(__name__)


class ScriptedTrackingSource:
    """Tracking source that emits scripted samples on demand."""

    def __init__(
        self,
        samples: Iterable[PositionSample] = (),
        interval: float = 1.0,
    ) -> None:
        self.interval = interval
        self._script: deque[PositionSample] = deque(samples)
        self._watchers: dict[int, tuple[SampleCallback, ErrorCallback]] = {}
        self._next_handle = 1
        self.last_sample: Optional[PositionSample] = None
        self.watch_calls = 0
        self.poll_calls = 0
        self.cancelled: list[int] = []

    @classmethod
    def approach(
        cls,
        destination: Coordinate,
        distances_km: Sequence[float],
        bearing: float = 45.0,
        speed_mps: float | None = None,
        accuracy: float = 5.0,
        step_seconds: float = 10.0,
        interval: float = 1.0,
        start: datetime | None = None,
    ) -> ScriptedTrackingSource:
        """
        Build a source whose samples sit at the given distances from
        destination, on the line of the given bearing.
        """
        start = start or datetime.now(UTC)
        samples = [
            PositionSample(
                coordinate=destination_point(destination, bearing, km),
                accuracy=accuracy,
                speed=speed_mps,
                timestamp=start + timedelta(seconds=i * step_seconds),
            )
            for i, km in enumerate(distances_km)
        ]
        return cls(samples, interval=interval)

    @property
    def active_watchers(self) -> int:
        return len(self._watchers)

    @property
    def remaining(self) -> int:
        return len(self._script)

    def watch(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._watchers[handle] = (on_sample, on_error)
        self.watch_calls += 1
        return handle

    def cancel(self, handle: int) -> None:
        if self._watchers.pop(handle, None) is not None:
            self.cancelled.append(handle)

    def poll_once(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> None:
        self.poll_calls += 1
        if self.last_sample is None:
            on_error(PositionUnavailable("no scripted sample emitted yet"))
            return
        on_sample(self.last_sample)

    def push(self, sample: PositionSample) -> None:
        """Deliver a sample to every active watcher."""
        self.last_sample = sample
        for on_sample, _ in list(self._watchers.values()):
            on_sample(sample)

    def fail(self, error: PositionError) -> None:
        """Deliver an error to every active watcher."""
        for _, on_error in list(self._watchers.values()):
            on_error(error)

    def emit_next(self) -> Optional[PositionSample]:
        """Pop the next scripted sample and deliver it."""
        if not self._script:
            return None
        sample = self._script.popleft()
        self.push(sample)
        return sample

    async def play(self) -> int:
        """Emit the whole script, `interval` seconds apart. Returns samples emitted."""
        emitted = 0
        while self._script and self._watchers:
            self.emit_next()
            emitted += 1
            if self._script:
                await asyncio.sleep(self.interval)
        logger.debug("Scripted source emitted %d samples", emitted)
        return emitted
