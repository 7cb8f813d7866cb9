"""Tests for flow-state detection."""

from datetime import UTC, datetime, timedelta

from perfsight.analysis.baseline import compute_baselines
from perfsight.analysis.flow import FlowDetector
from perfsight.analysis.models import MatchMetricVector
from perfsight.analysis.thresholds import resolve_thresholds
from perfsight.core.constants import TimeOfDay

START = datetime(2026, 3, 1, 19, 0, tzinfo=UTC)

STEADY = [1.0, 0.9, 1.1, 1.0, 0.95, 1.05, 1.0]


def _make_vector(index, rating, **metrics):
    return MatchMetricVector(
        index=index,
        match_id=f"m{index}",
        timestamp=START + timedelta(hours=index),
        map_name="de_inferno",
        session_position=1,
        time_of_day=TimeOfDay.EVENING,
        rating=rating,
        **metrics,
    )


def _make_window(ratings, **metrics):
    return [_make_vector(i, r, **metrics) for i, r in enumerate(ratings)]


def _detect(vectors, premier_rating=None):
    return FlowDetector().detect(
        vectors, compute_baselines(vectors), resolve_thresholds(premier_rating)
    )


class TestFlowDetection:
    """Tests for qualifying matches and activity."""

    def test_recent_spike_is_active_flow(self):
        window = _make_window(STEADY + [1.6])
        flow = _detect(window)
        assert flow.active
        assert flow.qualifying_matches == 1
        assert flow.streak_length == 1
        assert flow.frequency == 1 / 8
        assert flow.last_occurrence == window[-1].timestamp.isoformat()
        assert any(t.startswith("Rating 1.60") for t in flow.triggers)

    def test_old_spike_is_not_active(self):
        flow = _detect(_make_window([1.6] + STEADY))
        assert not flow.active
        assert flow.qualifying_matches == 1
        assert flow.last_occurrence != "Not detected in recent matches"

    def test_collapse_after_spike_ends_flow(self):
        flow = _detect(_make_window([1.0, 0.9, 1.1, 1.0, 0.95, 1.6, 0.4, 1.0]))
        assert flow.qualifying_matches == 1
        assert not flow.active

    def test_no_qualifying_matches(self):
        # Nothing reaches the blue tier's excellent rating of 1.10
        flow = _detect(_make_window([1.0, 0.9, 1.05, 1.0, 0.95, 1.02, 1.0]))
        assert not flow.active
        assert flow.last_occurrence == "Not detected in recent matches"
        assert flow.frequency == 0.0
        assert flow.triggers == ()

    def test_tier_excellent_threshold_applies(self):
        window = _make_window(STEADY + [1.45])
        assert _detect(window, premier_rating=12000).active
        assert not _detect(window, premier_rating=32000).active

    def test_last_occurrence_without_timestamp(self):
        window = _make_window(STEADY)
        window.append(
            MatchMetricVector(
                index=7,
                match_id="late",
                timestamp=None,
                map_name="de_inferno",
                session_position=2,
                time_of_day=TimeOfDay.UNKNOWN,
                rating=1.6,
            )
        )
        assert _detect(window).last_occurrence == "match late"


class TestPerformanceBoost:
    """Tests for the performance boost description."""

    def test_positive_boost_is_signed(self):
        flow = _detect(_make_window(STEADY + [1.6]))
        assert flow.performance_boost.startswith("+")
        assert flow.performance_boost.endswith("%")

    def test_boost_window_is_trailing_matches(self):
        # Last five matches average 1.0 against a 1.0 baseline
        flow = _detect(_make_window([1.0, 0.5, 1.5, 1.0, 1.0, 1.0, 1.0, 1.0]))
        assert flow.performance_boost == "0.0%"

    def test_unavailable_boost(self):
        flow = _detect(_make_window([None, None, None]))
        assert flow.performance_boost == "Unable to calculate"
