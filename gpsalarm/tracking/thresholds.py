"""Per-session threshold state machine: which tier, if any, was newly crossed."""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from ..domain.models import ThresholdId

logger = logging.getLogger(__name__)

# Strictest (smallest radius) first
EVALUATION_ORDER: tuple[ThresholdId, ...] = (
    ThresholdId.ARRIVED,
    ThresholdId.CLOSE,
    ThresholdId.NEAR,
    ThresholdId.APPROACHING,
)


class ThresholdStateMachine:
    """
    Holds the "already notified" set of the active session.

    evaluate() returns at most one threshold per call, strictest first,
    and marks it notified before returning, so a threshold can never be
    handed out twice within a session. Looser tiers jumped over by the
    same sample are marked as well and never fire afterwards.
    """

    def __init__(self, boundaries: Optional[Mapping[ThresholdId, float]] = None) -> None:
        merged = {t: t.default_km for t in ThresholdId}
        merged.update(boundaries or {})

        radii = [merged[t] for t in EVALUATION_ORDER]
        if any(r <= 0 for r in radii):
            raise ValueError("threshold boundaries must be positive")
        if any(a >= b for a, b in zip(radii, radii[1:])):
            raise ValueError(
                "threshold boundaries must increase from arrived to approaching"
            )

        self._boundaries = merged
        self._notified: set[ThresholdId] = set()

    @property
    def notified(self) -> frozenset[ThresholdId]:
        return frozenset(self._notified)

    def boundary(self, threshold: ThresholdId) -> float:
        """Boundary radius in km."""
        return self._boundaries[threshold]

    def evaluate(self, distance_km: Optional[float]) -> Optional[ThresholdId]:
        """
        Return the newly crossed threshold for this distance, or None.

        None is also returned for a missing distance (destination unset),
        NaN and negative values.
        """
        if distance_km is None or math.isnan(distance_km) or distance_km < 0:
            return None

        for i, threshold in enumerate(EVALUATION_ORDER):
            if threshold in self._notified:
                continue
            if self._boundaries[threshold] >= distance_km:
                # Looser tiers are crossed too; they must not fire later, out of order
                skipped = [t for t in EVALUATION_ORDER[i + 1 :] if t not in self._notified]
                self._notified.add(threshold)
                self._notified.update(skipped)
                logger.debug(
                    "Threshold %s crossed at %.3f km (skipped: %s)",
                    threshold.value,
                    distance_km,
                    ", ".join(t.value for t in skipped) or "none",
                )
                return threshold
        return None

    def reset(self) -> None:
        """Forget every notified threshold (new session)."""
        self._notified.clear()
