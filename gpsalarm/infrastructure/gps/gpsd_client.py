"""Async gpsd client with auto-reconnect, and the gpsd-backed tracking source."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import AsyncIterator, Callable, Optional

from ...core.errors import (
    PositionError,
    PositionPermissionDenied,
    PositionTimeout,
    PositionUnavailable,
    classify_position_error,
)
from ...domain.models import Coordinate, PositionSample
from .source import ErrorCallback, SampleCallback, TrackingOptions

logger = logging.getLogger(__name__)


@dataclass
class GPSConfig:
    """GPS daemon connection configuration."""

    host: str = "localhost"
    port: int = 2947
    reconnect_delay: float = 5.0
    timeout: float = 10.0
    max_reconnect_attempts: int = 0  # 0 = infinite


@dataclass
class GPSState:
    """Internal GPS state tracking."""

    connected: bool = False
    fix_count: int = 0
    error_count: int = 0
    last_fix: Optional[datetime] = None
    satellites: int = 0


class AsyncGPSClient:
    """
    Async gpsd client with auto-reconnect.

    Features:
    - Non-blocking async connection
    - Automatic reconnection on disconnect
    - Error callbacks classified as position errors
    - Graceful degradation when GPS unavailable

    Usage:
        client = AsyncGPSClient()

        async for sample in client.stream_positions():
            print(f"Lat: {sample.coordinate.latitude}")
    """

    def __init__(self, config: GPSConfig | None = None) -> None:
        self.config = config or GPSConfig()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._running = False
        self._position: Optional[PositionSample] = None
        self._error_callbacks: list[Callable[[PositionError], object]] = []
        self._state = GPSState()
        self._reconnect_attempts = 0

    @property
    def position(self) -> Optional[PositionSample]:
        """Get last known position."""
        return self._position

    @property
    def is_connected(self) -> bool:
        """Check if connected to gpsd."""
        return self._state.connected

    @property
    def state(self) -> GPSState:
        """Get internal state for diagnostics."""
        return self._state

    def on_error(self, callback: Callable[[PositionError], object]) -> None:
        """Register callback for position errors."""
        self._error_callbacks.append(callback)

    def _report(self, error: PositionError) -> None:
        self._state.error_count += 1
        for cb in self._error_callbacks:
            try:
                cb(error)
            except Exception as e:
                logger.error("GPS error callback failed: %s", e)

    async def connect(self) -> bool:
        """
        Connect to gpsd daemon.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )

            # Enable JSON streaming mode
            self._writer.write(b'?WATCH={"enable":true,"json":true}\n')
            await self._writer.drain()

            self._state.connected = True
            self._reconnect_attempts = 0
            logger.info("Connected to gpsd at %s:%d", self.config.host, self.config.port)
            return True

        except asyncio.TimeoutError:
            logger.warning("GPS connection timeout to %s:%d", self.config.host, self.config.port)
            self._report(PositionTimeout("gpsd connection timed out"))
            return False

        except ConnectionRefusedError:
            logger.warning("GPS connection refused - is gpsd running?")
            self._report(PositionUnavailable("gpsd refused the connection"))
            return False

        except PermissionError as e:
            logger.warning("GPS connection not permitted: %s", e)
            self._report(PositionPermissionDenied(str(e)))
            return False

        except OSError as e:
            logger.warning("GPS connection failed: %s", e)
            self._report(classify_position_error(e))
            return False

    async def disconnect(self) -> None:
        """Disconnect from gpsd gracefully."""
        if self._writer:
            try:
                self._writer.write(b'?WATCH={"enable":false}\n')
                await self._writer.drain()
                self._writer.close()
                await self._writer.wait_closed()
            except (OSError, RuntimeError) as e:
                logger.debug("GPS disconnect error ignored: %s", e)

        self._reader = None
        self._writer = None
        self._state.connected = False

    async def stream_positions(self) -> AsyncIterator[PositionSample]:
        """
        Async generator that yields position samples.

        Handles reconnection automatically. Never raises - reports errors
        through the error callbacks and retries.
        """
        self._running = True

        try:
            while self._running:
                if not self._reader:
                    if not await self.connect():
                        self._reconnect_attempts += 1

                        if (
                            self.config.max_reconnect_attempts > 0
                            and self._reconnect_attempts >= self.config.max_reconnect_attempts
                        ):
                            logger.error("GPS max reconnect attempts reached, stopping")
                            break

                        await asyncio.sleep(self.config.reconnect_delay)
                        continue

                try:
                    line = await asyncio.wait_for(
                        self._reader.readline(),  # type: ignore[union-attr]
                        timeout=self.config.timeout,
                    )

                    if not line:
                        raise ConnectionError("GPS connection closed by server")

                    data = json.loads(line.decode("utf-8"))

                    # TPV = Time-Position-Velocity
                    if data.get("class") == "TPV":
                        sample = self._parse_tpv(data)
                        if sample:
                            self._position = sample
                            self._state.fix_count += 1
                            self._state.last_fix = datetime.now(UTC)
                            yield sample

                    elif data.get("class") == "SKY":
                        self._state.satellites = len(data.get("satellites", []))

                except asyncio.TimeoutError:
                    logger.debug("GPS read timeout, connection still alive")
                    self._report(PositionTimeout("no position report within timeout"))

                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.warning("GPS JSON parse error: %s", e)

                except OSError as e:
                    logger.warning("GPS stream error: %s, reconnecting...", e)
                    self._report(PositionUnavailable(str(e)))
                    await self.disconnect()
                    await asyncio.sleep(self.config.reconnect_delay)
        finally:
            await self.disconnect()

    def _parse_tpv(self, data: dict) -> Optional[PositionSample]:
        """
        Parse TPV (Time-Position-Velocity) message from gpsd.

        Returns:
            PositionSample if a 2D/3D fix with lat/lon is present, None otherwise
        """
        try:
            # Mode: 0=unknown, 1=no fix, 2=2D, 3=3D
            if data.get("mode", 0) < 2:
                return None
            if "lat" not in data or "lon" not in data:
                return None

            # eph = estimated horizontal position error (m)
            accuracy = data.get("eph")
            if accuracy is None:
                errors = [data[k] for k in ("epx", "epy") if data.get(k) is not None]
                accuracy = max(errors) if errors else 50.0

            timestamp = datetime.now(UTC)
            if data.get("time"):
                timestamp = datetime.fromisoformat(str(data["time"]).replace("Z", "+00:00"))

            return PositionSample(
                coordinate=Coordinate(latitude=float(data["lat"]), longitude=float(data["lon"])),
                accuracy=float(accuracy),
                speed=data.get("speed"),
                timestamp=timestamp,
            )

        except (KeyError, ValueError, TypeError) as e:
            logger.error("TPV parse error: %s - data: %s", e, data)
            return None

    async def get_position_once(self, timeout: float = 30.0) -> Optional[PositionSample]:
        """
        Get a single position and disconnect.

        Args:
            timeout: Max time to wait for fix

        Returns:
            PositionSample if fix obtained, None otherwise
        """
        try:
            async with asyncio.timeout(timeout):
                async for sample in self.stream_positions():
                    await self.stop()
                    return sample
        except asyncio.TimeoutError:
            logger.warning("GPS single position timeout after %.1fs", timeout)
            await self.stop()
            return None

        return None

    async def stop(self) -> None:
        """Stop streaming and disconnect."""
        self._running = False
        await self.disconnect()


class GpsdTrackingSource:
    """
    Tracking source backed by gpsd.

    Each watch() runs its own client in a task; poll_once() answers from the
    freshest cached sample when it is younger than maximum_age_ms, otherwise
    performs a one-shot fix.
    """

    def __init__(self, config: GPSConfig | None = None) -> None:
        self.config = config or GPSConfig()
        self._watches: dict[int, tuple[AsyncGPSClient, asyncio.Task]] = {}
        self._polls: set[asyncio.Task] = set()
        self._next_handle = 1
        self._last_sample: Optional[PositionSample] = None

    @property
    def last_sample(self) -> Optional[PositionSample]:
        return self._last_sample

    def watch(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> int:
        client = AsyncGPSClient(replace(self.config, timeout=options.timeout))
        client.on_error(on_error)
        task = asyncio.get_running_loop().create_task(
            self._pump(client, on_sample), name="gpsd-watch"
        )

        handle = self._next_handle
        self._next_handle += 1
        self._watches[handle] = (client, task)
        logger.debug("gpsd watch %d started", handle)
        return handle

    async def _pump(self, client: AsyncGPSClient, on_sample: SampleCallback) -> None:
        async for sample in client.stream_positions():
            self._last_sample = sample
            on_sample(sample)

    def cancel(self, handle: int) -> None:
        entry = self._watches.pop(handle, None)
        if entry is None:
            return
        _, task = entry
        task.cancel()
        logger.debug("gpsd watch %d cancelled", handle)

    def poll_once(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> None:
        cached = self._last_sample
        if cached is not None and cached.age_ms() <= options.maximum_age_ms:
            on_sample(cached)
            return

        task = asyncio.get_running_loop().create_task(
            self._poll(on_sample, on_error, options), name="gpsd-poll"
        )
        self._polls.add(task)
        task.add_done_callback(self._polls.discard)

    async def _poll(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> None:
        client = AsyncGPSClient(replace(self.config, timeout=options.timeout))
        sample = await client.get_position_once(timeout=options.timeout)
        if sample is None:
            on_error(PositionTimeout("one-shot position request timed out"))
            return
        self._last_sample = sample
        on_sample(sample)

    async def close(self) -> None:
        """Cancel every running watch and poll."""
        for handle in list(self._watches):
            self.cancel(handle)
        for task in list(self._polls):
            task.cancel()
