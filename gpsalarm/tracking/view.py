"""Display collaborators driven by the tracking loop."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console

from ..domain.models import Coordinate, StatusUpdate

logger = logging.getLogger(__name__)


class TrackingView(Protocol):
    """Status sink plus the map-side calls (marker, route line, bounds)."""

    def show_status(self, status: StatusUpdate) -> None: ...

    def move_marker(self, position: Coordinate) -> None: ...

    def draw_route(self, origin: Coordinate, destination: Coordinate) -> None: ...

    def fit_bounds(self, a: Coordinate, b: Coordinate) -> None: ...


class ConsoleView:
    """Terminal rendering: status lines only, there is no map."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_status(self, status: StatusUpdate) -> None:
        self.console.print(status.format(), style="dim", markup=False)

    def move_marker(self, position: Coordinate) -> None:
        logger.debug("Position %.5f, %.5f", position.latitude, position.longitude)

    def draw_route(self, origin: Coordinate, destination: Coordinate) -> None:
        logger.debug("Route %s -> %s", origin.as_tuple(), destination.as_tuple())

    def fit_bounds(self, a: Coordinate, b: Coordinate) -> None:
        logger.debug("Bounds %s / %s", a.as_tuple(), b.as_tuple())
