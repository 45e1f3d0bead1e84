"""
GPS Alarm Error Taxonomy
========================

Position acquisition failures are reported to the user but never end a
tracking session. Alert side-effect failures are only logged.
"""

from __future__ import annotations

from typing import ClassVar


class GpsAlarmError(Exception):
    """Base class for all gpsalarm errors."""


class PositionError(GpsAlarmError):
    """A position request failed. Subclasses carry the user-facing wording."""

    code: ClassVar[str] = "unknown"
    message: ClassVar[str] = "Unknown location error"
    suggestion: ClassVar[str] = "Please try restarting tracking"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(detail or self.message)

    @property
    def user_message(self) -> str:
        return f"{self.message}. {self.suggestion}"


class PositionPermissionDenied(PositionError):
    code = "permission_denied"
    message = "Location access denied"
    suggestion = "Please enable location permissions for this device"


class PositionUnavailable(PositionError):
    code = "position_unavailable"
    message = "Location unavailable"
    suggestion = "Please check your GPS or try moving to an open area"


class PositionTimeout(PositionError):
    code = "timeout"
    message = "Location request timed out"
    suggestion = "Please try again"


class PositionUnknownError(PositionError):
    pass


class DestinationUnresolved(GpsAlarmError):
    """Tracking was requested for a destination without coordinates."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Destination could not be resolved: {name!r}")


class SideEffectFailure(GpsAlarmError):
    """A notification, haptic or audio effect failed."""

    def __init__(self, effect: str, cause: BaseException) -> None:
        self.effect = effect
        self.cause = cause
        super().__init__(f"{effect} failed: {cause}")


def classify_position_error(exc: BaseException) -> PositionError:
    """Map an arbitrary exception onto the position error taxonomy."""
    if isinstance(exc, PositionError):
        return exc
    # PermissionError and TimeoutError are OSError subclasses: check them first
    if isinstance(exc, PermissionError):
        return PositionPermissionDenied(str(exc) or None)
    if isinstance(exc, TimeoutError):
        return PositionTimeout(str(exc) or None)
    if isinstance(exc, (ConnectionError, OSError)):
        return PositionUnavailable(str(exc) or None)
    return PositionUnknownError(str(exc) or None)
