from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Sequence

import pytest

from gpsalarm.config import NotificationsConfig
from gpsalarm.domain.models import AlertKind, Coordinate, Destination, StatusUpdate
from gpsalarm.infrastructure.alerts.dispatcher import AlertDispatcher


class RecordingBanner:
    def __init__(self) -> None:
        self.shown: list[tuple[str, AlertKind, int]] = []

    def show(self, message: str, kind: AlertKind, duration_ms: int) -> None:
        self.shown.append((message, kind, duration_ms))

    @property
    def messages(self) -> list[str]:
        return [m for m, _, _ in self.shown]


class RecordingNotifier:
    permission_granted = True

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str, bool]] = []

    async def notify(self, title: str, body: str, urgent: bool = False) -> None:
        if self.fail:
            raise RuntimeError("notification permission denied")
        self.sent.append((title, body, urgent))


class RecordingHaptics:
    def __init__(self) -> None:
        self.patterns: list[tuple[int, ...]] = []

    async def vibrate(self, pattern: Sequence[int]) -> None:
        self.patterns.append(tuple(pattern))


class RecordingAudio:
    def __init__(self) -> None:
        self.plays = 0

    async def play(self) -> None:
        self.plays += 1


class RecordingView:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.statuses: list[StatusUpdate] = []

    def show_status(self, status: StatusUpdate) -> None:
        self.calls.append("status")
        self.statuses.append(status)

    def move_marker(self, position: Coordinate) -> None:
        self.calls.append("marker")

    def draw_route(self, origin: Coordinate, destination: Coordinate) -> None:
        self.calls.append("route")

    def fit_bounds(self, a: Coordinate, b: Coordinate) -> None:
        self.calls.append("bounds")


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 8, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class MemoryTripStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.trips = []

    def append_trip(self, record) -> None:
        if self.fail:
            raise OSError("disk full")
        self.trips.insert(0, record)

    def list_trips(self, limit=None):
        return self.trips[:limit]


@pytest.fixture
def colombo() -> Destination:
    return Destination(name="Colombo Fort", coordinate=Coordinate(latitude=6.9271, longitude=79.8612))


@pytest.fixture
def banner() -> RecordingBanner:
    return RecordingBanner()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def haptics() -> RecordingHaptics:
    return RecordingHaptics()


@pytest.fixture
def audio() -> RecordingAudio:
    return RecordingAudio()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dispatcher(banner, notifier, haptics, audio) -> AlertDispatcher:
    return AlertDispatcher(
        banner=banner,
        notifier=notifier,
        haptics=haptics,
        audio=audio,
        config=NotificationsConfig(),
    )


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def memory_store() -> MemoryTripStore:
    return MemoryTripStore()
