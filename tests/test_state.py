"""Tests for performance state classification."""

from datetime import UTC, datetime, timedelta

from perfsight.analysis.baseline import compute_baselines
from perfsight.analysis.flow import FlowDetector
from perfsight.analysis.models import FlowAnalysis, MatchMetricVector, TiltAnalysis
from perfsight.analysis.state import STATE_PRECEDENCE, PerformanceStateClassifier
from perfsight.analysis.thresholds import resolve_thresholds
from perfsight.analysis.tilt import TiltDetector
from perfsight.core.constants import PerformanceStateKind, Severity, TimeOfDay

START = datetime(2026, 3, 1, 19, 0, tzinfo=UTC)


def _make_vector(index, rating, **metrics):
    return MatchMetricVector(
        index=index,
        match_id=f"m{index}",
        timestamp=START + timedelta(hours=index),
        map_name="de_nuke",
        session_position=1,
        time_of_day=TimeOfDay.EVENING,
        rating=rating,
        **metrics,
    )


def _make_window(ratings, **series):
    vectors = []
    for i, rating in enumerate(ratings):
        metrics = {name: values[i] for name, values in series.items()}
        vectors.append(_make_vector(i, rating, **metrics))
    return vectors


def _classify(vectors):
    baselines = compute_baselines(vectors)
    thresholds = resolve_thresholds(None)
    tilt = TiltDetector().detect(vectors, baselines, thresholds)
    flow = FlowDetector().detect(vectors, baselines, thresholds)
    return PerformanceStateClassifier().classify(vectors, baselines, tilt, flow)


def _make_tilt(active=True, severity=Severity.HIGH):
    return TiltAnalysis(
        active=active,
        severity=severity,
        triggers=("Rating below baseline for 3 consecutive matches",),
        cascade_length=3 if active else 0,
        recovery_prediction="",
        recommended_action="",
    )


def _make_flow(active=True):
    return FlowAnalysis(
        active=active,
        last_occurrence="2026-03-01T21:00:00+00:00",
        triggers=("Rating 1.60 (excellent >= 1.1)",),
        performance_boost="+12.0%",
        frequency=0.1,
        qualifying_matches=1,
        streak_length=1,
    )


class TestClassification:
    """Tests for each state and for the precedence order."""

    def test_tilt_cascade(self):
        state = _classify(_make_window([1.2] * 7 + [0.5] * 3))
        assert state.classification == PerformanceStateKind.TILT_CASCADE
        assert state.evidence[0] == "Tilt cascade of 3 matches"
        assert 0.0 <= state.confidence <= 1.0

    def test_flow_state(self):
        state = _classify(_make_window([1.0, 0.9, 1.1, 1.0, 0.95, 1.05, 1.0, 1.6]))
        assert state.classification == PerformanceStateKind.FLOW_STATE

    def test_mechanical_inconsistency(self):
        window = _make_window(
            [1.0, 1.05, 0.95, 1.0, 1.02, 1.0],
            reaction_time=[0.60, 0.61, 0.59, 0.60, 0.60, 0.50],
            preaim=[8.0, 8.5, 7.5, 8.0, 8.0, 11.0],
        )
        state = _classify(window)
        assert state.classification == PerformanceStateKind.MECHANICAL_INCONSISTENCY
        assert "Reaction Time" in state.evidence[0]

    def test_baseline_normal(self):
        state = _classify(_make_window([1.0, 1.1, 0.9, 1.05, 0.95]))
        assert state.classification == PerformanceStateKind.BASELINE_NORMAL
        assert state.evidence[0].startswith("Rating 0.95")
        assert state.recommendations

    def test_tilt_wins_over_flow(self):
        window = _make_window([1.0, 1.1, 0.9, 1.05, 0.95])
        state = PerformanceStateClassifier().classify(
            window, compute_baselines(window), _make_tilt(), _make_flow()
        )
        assert state.classification == PerformanceStateKind.TILT_CASCADE

    def test_moderate_tilt_does_not_classify_as_tilt(self):
        window = _make_window([1.0, 1.1, 0.9, 1.05, 0.95])
        state = PerformanceStateClassifier().classify(
            window,
            compute_baselines(window),
            _make_tilt(severity=Severity.MODERATE),
            _make_flow(),
        )
        assert state.classification == PerformanceStateKind.FLOW_STATE

    def test_always_exactly_one_state(self):
        windows = [
            [1.2] * 7 + [0.5] * 3,
            [1.0] * 5,
            [1.0, 0.9, 1.1, 1.0, 0.95, 1.05, 1.0, 1.6],
            [None, 1.0, None, 1.1, 0.9],
        ]
        for ratings in windows:
            state = _classify(_make_window(ratings))
            assert state.classification in set(PerformanceStateKind)


class TestStateDetails:
    """Tests for confidence and baseline deviation summaries."""

    def test_precedence_covers_every_state(self):
        assert set(STATE_PRECEDENCE) == set(PerformanceStateKind)
        assert STATE_PRECEDENCE[-1] == PerformanceStateKind.BASELINE_NORMAL

    def test_more_history_means_more_confidence(self):
        short = _classify(_make_window([1.0, 1.1, 0.9, 1.05, 1.0]))
        long = _classify(_make_window([1.0, 1.1, 0.9, 1.05] * 4 + [1.0]))
        assert long.confidence > short.confidence

    def test_baseline_deviation_per_metric(self):
        state = _classify(_make_window([1.0, 1.1, 0.9, 1.05, 0.95], adr=[80.0] * 5))
        assert "rating" in state.baseline_deviation
        assert "std devs" in state.baseline_deviation["rating"]

    def test_baseline_deviation_fallback(self):
        window = _make_window([1.0, 1.1, 0.9, 1.05, None])
        state = _classify(window)
        assert dict(state.baseline_deviation) == {
            "general": "Unable to calculate baseline deviation"
        }
