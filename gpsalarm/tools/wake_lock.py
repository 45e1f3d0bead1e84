"""
Wake lock while tracking.

`InhibitWakeLock` keeps the host from idling or suspending by holding a
`systemd-inhibit` child for as long as a session runs. Hosts without it
fall back to `NullWakeLock`, which only records the held state.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Protocol

logger = logging.getLogger(__name__)


class WakeLock(Protocol):
    @property
    def held(self) -> bool: ...

    def acquire(self) -> bool: ...

    def release(self) -> None: ...


class NullWakeLock:
    def __init__(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> bool:
        self._held = True
        return True

    def release(self) -> None:
        self._held = False


class InhibitWakeLock:
    """Keeps the host awake by holding a `systemd-inhibit` child while tracking."""

    def __init__(
        self,
        why: str = "Tracking destination",
        command: str = "systemd-inhibit",
        term_timeout: float = 0.5,
    ) -> None:
        self.why = why
        self.command = command
        self.term_timeout = term_timeout
        self._proc: subprocess.Popen | None = None

    @property
    def held(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def acquire(self) -> bool:
        if self.held:
            return True
        binary = shutil.which(self.command)
        if not binary:
            logger.debug("%s not found, running without wake lock", self.command)
            return False
        try:
            self._proc = subprocess.Popen(
                [
                    binary,
                    "--what=idle:sleep",
                    "--who=gpsalarm",
                    f"--why={self.why}",
                    "--mode=block",
                    "sleep",
                    "infinity",
                ],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.warning("Wake lock unavailable: %s", exc)
            self._proc = None
            return False
        logger.debug("Wake lock acquired (pid=%d)", self._proc.pid)
        return True

    def release(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=self.term_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Wake lock holder ignored SIGTERM, killing pid %d", proc.pid)
            proc.kill()
            proc.wait()
        logger.debug("Wake lock released")
