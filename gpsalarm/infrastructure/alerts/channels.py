"""
Alert output channels.

The in-app banner is synchronous and always rendered; system notification,
haptics and audio are async and only used for important alerts.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Protocol, Sequence

from rich.console import Console
from rich.text import Text

from ...domain.models import AlertKind

logger = logging.getLogger(__name__)


class Banner(Protocol):
    def show(self, message: str, kind: AlertKind, duration_ms: int) -> None: ...


class Notifier(Protocol):
    @property
    def permission_granted(self) -> bool: ...

    async def notify(self, title: str, body: str, urgent: bool = False) -> None: ...


class Haptics(Protocol):
    async def vibrate(self, pattern: Sequence[int]) -> None: ...


class Audio(Protocol):
    async def play(self) -> None: ...


class ConsoleBanner:
    """In-app banner rendered on the terminal."""

    STYLES = {
        AlertKind.INFO: "cyan",
        AlertKind.SUCCESS: "bold green",
        AlertKind.WARNING: "bold yellow",
        AlertKind.ERROR: "bold red",
    }

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show(self, message: str, kind: AlertKind, duration_ms: int) -> None:
        self.console.print(Text(message, style=self.STYLES.get(kind, "")))


class DesktopNotifier:
    """
    System notification through `notify-send`.

    Permission is granted only when enabled and the binary is installed;
    without it notify() is a silent no-op.
    """

    def __init__(
        self,
        enabled: bool = True,
        app_name: str = "GPS Alarm",
        command: str = "notify-send",
    ) -> None:
        self.app_name = app_name
        self._binary = shutil.which(command) if enabled else None

    @property
    def permission_granted(self) -> bool:
        return self._binary is not None

    async def notify(self, title: str, body: str, urgent: bool = False) -> None:
        if not self._binary:
            logger.debug("System notification skipped (no permission): %s", body)
            return

        proc = await asyncio.create_subprocess_exec(
            self._binary,
            "--app-name", self.app_name,
            "--urgency", "critical" if urgent else "normal",
            title,
            body,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"notify-send exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}"
            )


class NullHaptics:
    """Hosts without a vibration motor."""

    async def vibrate(self, pattern: Sequence[int]) -> None:
        logger.debug("Haptic pattern %s (no vibration device)", list(pattern))


class ConsoleBell:
    """Audible alert through the terminal bell."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    async def play(self) -> None:
        self.console.bell()
