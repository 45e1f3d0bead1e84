"""Alerting - banner, system notification, haptics and audio."""

from .channels import (
    Audio,
    Banner,
    ConsoleBanner,
    ConsoleBell,
    DesktopNotifier,
    Haptics,
    Notifier,
    NullHaptics,
)
from .dispatcher import HAPTIC_PATTERNS, AlertDispatcher, format_boundary

__all__ = [
    "HAPTIC_PATTERNS",
    "AlertDispatcher",
    "Audio",
    "Banner",
    "ConsoleBanner",
    "ConsoleBell",
    "DesktopNotifier",
    "Haptics",
    "Notifier",
    "NullHaptics",
    "format_boundary",
]
