import math

import pytest

from gpsalarm.domain.models import ThresholdId
from gpsalarm.tracking.thresholds import EVALUATION_ORDER, ThresholdStateMachine


class TestEvaluate:
    def test_outside_every_boundary(self):
        sm = ThresholdStateMachine()
        assert sm.evaluate(2.5) is None
        assert sm.notified == frozenset()

    def test_approach_sequence_fires_each_tier_once(self):
        sm = ThresholdStateMachine()
        fired = [sm.evaluate(d) for d in (2.5, 1.8, 0.9, 0.6, 0.25)]
        assert fired == [
            None,
            ThresholdId.APPROACHING,
            ThresholdId.NEAR,
            ThresholdId.CLOSE,
            ThresholdId.ARRIVED,
        ]

    def test_boundary_is_inclusive(self):
        sm = ThresholdStateMachine()
        assert sm.evaluate(2.0) is ThresholdId.APPROACHING
        assert sm.evaluate(0.3) is ThresholdId.ARRIVED

    def test_strictest_first_one_per_call(self):
        """A sample already inside every tier yields arrived and nothing else."""
        sm = ThresholdStateMachine()
        fired = [sm.evaluate(0.1) for _ in range(3)]
        assert fired == [ThresholdId.ARRIVED, None, None]
        assert sm.notified == frozenset(ThresholdId)

    def test_skipped_tiers_never_fire_later(self):
        sm = ThresholdStateMachine()
        fired = [sm.evaluate(km) for km in (0.7, 0.65, 0.6, 0.5)]
        assert fired == [ThresholdId.CLOSE, None, None, None]
        assert sm.notified == frozenset({ThresholdId.CLOSE, ThresholdId.NEAR, ThresholdId.APPROACHING})

    def test_order_kept_after_skipping(self):
        sm = ThresholdStateMachine()
        fired = [sm.evaluate(km) for km in (2.5, 0.9, 0.8, 0.6, 0.2)]
        assert fired == [None, ThresholdId.NEAR, None, ThresholdId.CLOSE, ThresholdId.ARRIVED]

    def test_no_repeat_when_oscillating(self):
        sm = ThresholdStateMachine()
        assert sm.evaluate(1.05) is ThresholdId.APPROACHING
        assert sm.evaluate(0.95) is ThresholdId.NEAR
        assert sm.evaluate(1.05) is None
        assert sm.evaluate(0.95) is None

    @pytest.mark.parametrize("value", [None, math.nan, -0.1])
    def test_invalid_distance_returns_none(self, value):
        sm = ThresholdStateMachine()
        assert sm.evaluate(value) is None
        assert sm.notified == frozenset()

    def test_notified_only_grows(self):
        sm = ThresholdStateMachine()
        seen = frozenset()
        for d in (1.9, 2.5, 0.7, 3.0, 0.2):
            sm.evaluate(d)
            assert seen <= sm.notified
            seen = sm.notified

    def test_reset_forgets_notified(self):
        sm = ThresholdStateMachine()
        sm.evaluate(1.5)
        sm.reset()
        assert sm.notified == frozenset()
        assert sm.evaluate(1.5) is ThresholdId.APPROACHING


class TestBoundaries:
    def test_defaults(self):
        sm = ThresholdStateMachine()
        assert [sm.boundary(t) for t in EVALUATION_ORDER] == [0.3, 0.75, 1.0, 2.0]

    def test_custom_boundaries(self):
        sm = ThresholdStateMachine({ThresholdId.ARRIVED: 0.05, ThresholdId.CLOSE: 0.2})
        assert sm.evaluate(0.1) is ThresholdId.CLOSE
        assert sm.evaluate(0.05) is ThresholdId.ARRIVED

    def test_rejects_non_increasing(self):
        with pytest.raises(ValueError):
            ThresholdStateMachine({ThresholdId.NEAR: 0.5})

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            ThresholdStateMachine({ThresholdId.ARRIVED: 0})


def test_threshold_metadata():
    assert [t for t in ThresholdId if t.important] == [ThresholdId.CLOSE, ThresholdId.ARRIVED]
    assert ThresholdId.ARRIVED.kind.value == "success"
    assert ThresholdId.CLOSE.duration.value == "long"
