from __future__ import annotations

import asyncio
import importlib.metadata as md
import logging
import signal
import sys
from itertools import groupby
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import GpsAlarmConfig, load_config, resolve_config_path
from .core.errors import GpsAlarmError
from .core.events import Event, EventBus, EventType
from .domain.models import Coordinate, Destination
from .infrastructure.database.trip_repository import TripRepository
from .infrastructure.gps.distance import calculate_bearing, distance_km
from .infrastructure.gps.gpsd_client import GPSConfig, GpsdTrackingSource
from .infrastructure.gps.scripted import ScriptedTrackingSource
from .tracking.loop import PositionTrackingLoop
from .tracking.view import ConsoleView

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="GPS Alarm CLI")
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DEFAULT_CONFIG = Path("configs/gpsalarm.yml")


def _setup_logging(level: str, verbose: bool = False) -> None:
    if verbose:
        level = "DEBUG"
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def _load_config(path: Path | None) -> GpsAlarmConfig:
    """Resolved config, or defaults when no file exists at any candidate path."""
    resolved = resolve_config_path(path)
    if not resolved.exists():
        return GpsAlarmConfig()
    try:
        return load_config(resolved)
    except ValueError as exc:
        console.print(f"[red]Config validation failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _parse_distances(raw: str) -> list[float]:
    try:
        values = [float(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"not a comma separated list of km: {raw!r}") from exc
    if not values or any(v < 0 for v in values):
        raise typer.BadParameter("distances must be non-negative km values")
    return values


def _coordinate(lat: float, lon: float) -> Coordinate:
    try:
        return Coordinate(latitude=lat, longitude=lon)
    except ValueError as exc:
        raise typer.BadParameter(f"invalid coordinate {lat}, {lon}") from exc


@app.command()
def version() -> None:
    """Print version information."""
    try:
        console.print(f"gpsalarm {md.version('gpsalarm')}")
    except md.PackageNotFoundError:
        from . import __version__

        console.print(f"gpsalarm {__version__}")
    raise typer.Exit(code=0)


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(DEFAULT_CONFIG)) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}", soft_wrap=True)
    try:
        cfg = load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    boundaries = ", ".join(f"{t.value}={km:g} km" for t, km in cfg.thresholds.boundaries().items())
    console.print("Config OK.")
    console.print(f"- thresholds: {boundaries}")
    console.print(f"- trip log: {cfg.storage.db_path} (max {cfg.storage.max_trips})")
    console.print(f"- gpsd: {cfg.gpsd.host}:{cfg.gpsd.port}")


@app.command(name="config-which")
def config_which(path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c")) -> None:
    """Print resolved config path by priority rules."""
    console.print(str(resolve_config_path(path)), soft_wrap=True)


@app.command()
def distance(
    lat1: float = typer.Argument(..., min=-90, max=90),
    lon1: float = typer.Argument(..., min=-180, max=180),
    lat2: float = typer.Argument(..., min=-90, max=90),
    lon2: float = typer.Argument(..., min=-180, max=180),
) -> None:
    """Great-circle distance and initial bearing between two points."""
    a, b = _coordinate(lat1, lon1), _coordinate(lat2, lon2)
    console.print(f"{distance_km(a, b):.3f} km, bearing {calculate_bearing(a, b):.1f}°")


async def _track(tracker: PositionTrackingLoop, destination: Destination, timeout: float | None) -> None:
    tracker.start(destination)
    try:
        await tracker.run_until_stopped(timeout=timeout)
    except asyncio.TimeoutError:
        console.print(f"[yellow]Stopped after {timeout:g}s without arriving[/yellow]")
    finally:
        tracker.stop()
        await tracker.dispatcher.drain(timeout=5.0)


def _report(tracker: PositionTrackingLoop, bus: EventBus) -> None:
    session = tracker.session
    if session is None:
        return
    if session.trip is not None:
        trip = session.trip
        console.print(
            f"Arrived at {escape(trip.destination)}: {trip.duration_minutes} min, "
            f"{session.travelled.total_km:.2f} km travelled"
        )
    elif session.last_distance_km is not None:
        console.print(f"{session.last_distance_km:.2f} km remaining to {escape(session.destination.name)}")
    console.print(
        f"{bus.count(EventType.THRESHOLD_CROSSED)} alerts, "
        f"{bus.count(EventType.POSITION_ERROR)} position errors, "
        f"{bus.count(EventType.EFFECT_FAILED)} failed side effects",
        style="dim",
    )


def _event_bus() -> EventBus:
    bus = EventBus()

    @bus.on(EventType.EFFECT_FAILED)
    async def _effect_failed(event: Event) -> None:
        console.print(f"[dim]{escape(str(event.data))}[/dim]")

    return bus


@app.command()
def track(
    lat: float = typer.Argument(..., min=-90, max=90, help="Destination latitude"),
    lon: float = typer.Argument(..., min=-180, max=180, help="Destination longitude"),
    name: str = typer.Option("destination", "--name", "-n"),
    timeout: float | None = typer.Option(None, "--timeout", help="Give up after SECONDS"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
) -> None:
    """Track the gpsd position until arrival at LAT LON."""
    cfg = _load_config(config)
    _setup_logging(cfg.logging.level, verbose)

    gps = cfg.gpsd
    source = GpsdTrackingSource(
        GPSConfig(
            host=gps.host,
            port=gps.port,
            timeout=gps.timeout,
            reconnect_delay=gps.reconnect_delay,
            max_reconnect_attempts=gps.max_reconnect_attempts,
        )
    )
    bus = _event_bus()
    tracker = PositionTrackingLoop.from_config(
        cfg, source, view=ConsoleView(console), event_bus=bus, console=console
    )
    destination = Destination(name=name, coordinate=_coordinate(lat, lon))

    async def _main() -> None:
        await bus.start()
        # Re-subscribe after the process was suspended (Ctrl-Z, fg)
        if hasattr(signal, "SIGCONT"):
            asyncio.get_running_loop().add_signal_handler(signal.SIGCONT, tracker.resume)
        try:
            await _track(tracker, destination, timeout)
        finally:
            await source.close()
            await bus.stop()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        tracker.stop()
        console.print("Tracking stopped.")
    _report(tracker, bus)


@app.command()
def simulate(
    lat: float = typer.Option(6.9271, "--lat", min=-90, max=90),
    lon: float = typer.Option(79.8612, "--lon", min=-180, max=180),
    name: str = typer.Option("Colombo Fort", "--name", "-n"),
    distances: str = typer.Option("2.5,1.8,0.9,0.6,0.25", "--distances", help="Comma separated km"),
    bearing: float = typer.Option(45.0, "--bearing", min=0, max=360),
    interval: float = typer.Option(0.5, "--interval", min=0, help="Seconds between samples"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
) -> None:
    """Replay an approach toward a destination through the full alert pipeline."""
    cfg = _load_config(config)
    _setup_logging(cfg.logging.level, verbose)

    target = _coordinate(lat, lon)
    source = ScriptedTrackingSource.approach(
        target,
        _parse_distances(distances),
        bearing=bearing,
        interval=interval,
    )
    bus = _event_bus()
    tracker = PositionTrackingLoop.from_config(
        cfg, source, view=ConsoleView(console), event_bus=bus, console=console
    )

    async def _main() -> None:
        await bus.start()
        tracker.start(Destination(name=name, coordinate=target))
        try:
            await source.play()
        finally:
            tracker.stop()
            await tracker.dispatcher.drain(timeout=5.0)
            await bus.stop()

    asyncio.run(_main())
    _report(tracker, bus)


@app.command()
def trips(
    limit: int = typer.Option(20, "--limit", "-l", min=1),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
) -> None:
    """List recorded trips, most recent first, grouped by day."""
    cfg = _load_config(config)
    repo = TripRepository(cfg.storage.db_path, max_trips=cfg.storage.max_trips)
    records = repo.list_trips(limit=limit)
    if not records:
        console.print("No trips recorded yet.")
        return

    stats = repo.get_stats()
    console.print(
        f"Total trips: {stats['trips_total']} | "
        f"Travelled: {stats['travelled_km_total']:.2f} km | "
        f"Time: {stats['minutes_total']} min",
        soft_wrap=True,
    )

    table = Table(title="Trips")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Destination")
    table.add_column("Left km", justify="right")
    table.add_column("Path km", justify="right")
    table.add_column("Min", justify="right")
    for day, group in groupby(records, key=lambda r: r.completed_at.date()):
        for i, record in enumerate(group):
            table.add_row(
                day.isoformat() if i == 0 else "",
                record.completed_at.strftime("%H:%M"),
                escape(record.destination),
                f"{record.distance_km:.2f}",
                f"{record.travelled_km:.2f}" if record.travelled_km is not None else "-",
                str(record.duration_minutes),
            )
        table.add_section()
    console.print(table)


@app.command(name="trips-clear")
def trips_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c"),
) -> None:
    """Delete the whole trip log."""
    cfg = _load_config(config)
    if not yes and not typer.confirm(f"Delete all trips in {cfg.storage.db_path}?"):
        raise typer.Exit(code=1)
    removed = TripRepository(cfg.storage.db_path).clear()
    console.print(f"Removed {removed} trips.")


def launch() -> None:
    """Entry point when executed as a module/script."""
    try:
        cli()
    except GpsAlarmError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)


cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()
