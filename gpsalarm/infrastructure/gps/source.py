"""Tracking source capability injected into the position tracking loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from ...config import GeolocationConfig
    from ...core.errors import PositionError
    from ...domain.models import PositionSample

SampleCallback = Callable[["PositionSample"], object]
ErrorCallback = Callable[["PositionError"], object]


@dataclass(frozen=True)
class TrackingOptions:
    """Hints passed with every position request."""

    high_accuracy: bool = True
    timeout_ms: int = 15000
    maximum_age_ms: int = 30000

    @property
    def timeout(self) -> float:
        """Timeout in seconds."""
        return self.timeout_ms / 1000.0

    @classmethod
    def from_config(cls, cfg: GeolocationConfig) -> TrackingOptions:
        return cls(
            high_accuracy=cfg.high_accuracy,
            timeout_ms=cfg.timeout_ms,
            maximum_age_ms=cfg.maximum_age_ms,
        )


class TrackingSource(Protocol):
    """Continuous watch subscription plus one-shot polling."""

    def watch(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> int:
        """Subscribe to position updates. Returns a handle for cancel()."""
        ...

    def cancel(self, handle: int) -> None:
        """Cancel a watch subscription. Unknown handles are ignored."""
        ...

    def poll_once(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: TrackingOptions,
    ) -> None:
        """Request a single position, delivered through the callbacks."""
        ...
