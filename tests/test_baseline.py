"""
Tests for personal baseline tracking.

Baselines are recomputed from the window on every call, so these tests
build small vector windows directly rather than going through extraction.
"""

import math
from datetime import UTC, datetime, timedelta

import pytest

from perfsight.analysis.baseline import (
    build_extended_stats,
    compute_baseline,
    compute_baselines,
    compute_map_baseline,
    confidence_level_for,
    detect_significant_deviation,
    deviation_from_baseline,
    evaluate_baseline_quality,
    summarize_values,
)
from perfsight.analysis.models import MatchMetricVector
from perfsight.core.config import BaselineConfig
from perfsight.core.constants import ALL_METRICS, ConfidenceLevel, Metric, Severity, TimeOfDay

START = datetime(2026, 3, 1, 19, 0, tzinfo=UTC)


def _make_vector(index, rating=1.0, map_name="de_mirage", **metrics):
    return MatchMetricVector(
        index=index,
        match_id=f"m{index}",
        timestamp=START + timedelta(hours=3 * index),
        map_name=map_name,
        session_position=1,
        time_of_day=TimeOfDay.EVENING,
        rating=rating,
        **metrics,
    )


def _make_window(ratings, **metrics):
    return [_make_vector(i, r, **metrics) for i, r in enumerate(ratings)]


class TestSummarizeValues:
    """Tests for the statistical summary."""

    def test_mean_and_sample_variance(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8, 1.1, 0.9])
        assert baseline.value == pytest.approx(1.0)
        assert baseline.variance == pytest.approx(0.025)
        assert baseline.sample_size == 5

    def test_confidence_interval_contains_mean(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8, 1.1, 0.9])
        low, high = baseline.confidence_interval
        half_width = 1.96 * math.sqrt(0.025 / 5)
        assert low == pytest.approx(1.0 - half_width)
        assert high == pytest.approx(1.0 + half_width)
        assert low <= baseline.value <= high

    def test_single_value_has_zero_variance(self):
        baseline = summarize_values(Metric.ADR, [80.0])
        assert baseline.variance == 0.0
        assert baseline.confidence_interval == (80.0, 80.0)
        assert baseline.std == 0.0

    def test_non_negative_metric_keeps_non_negative_interval(self):
        baseline = summarize_values(Metric.KD_RATIO, [0.0, 0.1, 3.0])
        assert baseline.confidence_interval[0] >= 0.0

    def test_empty_values(self):
        baseline = summarize_values(Metric.RATING, [])
        assert baseline.sample_size == 0
        assert baseline.value == 0.0
        assert baseline.confidence_level == ConfidenceLevel.LOW


class TestConfidenceLevel:
    """Tests for sample-size confidence bands."""

    @pytest.mark.parametrize(
        "n,expected",
        [
            (0, ConfidenceLevel.LOW),
            (4, ConfidenceLevel.LOW),
            (5, ConfidenceLevel.MEDIUM),
            (14, ConfidenceLevel.MEDIUM),
            (15, ConfidenceLevel.HIGH),
            (50, ConfidenceLevel.HIGH),
        ],
    )
    def test_default_bands(self, n, expected):
        assert confidence_level_for(n) == expected

    def test_configured_bands(self):
        config = BaselineConfig(low_confidence_below=3, high_confidence_from=6)
        assert confidence_level_for(3, config) == ConfidenceLevel.MEDIUM
        assert confidence_level_for(6, config) == ConfidenceLevel.HIGH


class TestComputeBaseline:
    """Tests for baselines over match windows."""

    def test_missing_values_are_excluded(self):
        window = _make_window([1.0, 1.2, 0.8])
        window.append(_make_vector(3, None))
        baseline = compute_baseline(window, Metric.RATING)
        assert baseline.sample_size == 3
        assert baseline.value == pytest.approx(1.0)

    def test_last_updated_is_newest_contributing_match(self):
        window = _make_window([1.0, 1.2])
        window.append(_make_vector(2, None))
        baseline = compute_baseline(window, Metric.RATING)
        assert baseline.last_updated == window[1].timestamp

    def test_metric_nobody_reported(self):
        baseline = compute_baseline(_make_window([1.0, 1.1]), Metric.PREAIM)
        assert baseline.sample_size == 0
        assert baseline.last_updated is None

    def test_compute_baselines_covers_every_metric(self):
        baselines = compute_baselines(_make_window([1.0, 1.1], adr=80.0))
        assert set(baselines) == set(ALL_METRICS)
        assert baselines[Metric.ADR].value == pytest.approx(80.0)
        with pytest.raises(TypeError):
            baselines[Metric.ADR] = None

    def test_sample_size_never_exceeds_window(self):
        window = _make_window([1.0, 1.1, 0.9, 1.3], adr=75.0)
        for baseline in compute_baselines(window).values():
            assert 0 <= baseline.sample_size <= len(window)
            assert baseline.variance >= 0


class TestMapBaseline:
    """Tests for map-specific baselines."""

    def test_below_minimum_map_sample(self):
        window = _make_window([1.0, 1.1]) + [_make_vector(2, 0.9, map_name="de_nuke")]
        assert compute_map_baseline(window, "de_nuke") is None

    def test_map_baseline(self):
        window = [_make_vector(i, 1.0 + 0.1 * i, map_name="de_nuke") for i in range(3)]
        window.append(_make_vector(3, 0.5, map_name="de_inferno"))
        baseline = compute_map_baseline(window, "de_nuke")
        assert baseline is not None
        assert baseline.sample_size == 3
        assert baseline.value == pytest.approx(1.1)


class TestDeviation:
    """Tests for deviation from baseline."""

    def test_signed_deviation(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8, 1.1, 0.9])
        expected = (0.8 - 1.0) / math.sqrt(0.025)
        assert deviation_from_baseline(0.8, baseline) == pytest.approx(expected)

    def test_zero_variance_gives_zero(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.0, 1.0])
        assert deviation_from_baseline(0.5, baseline) == 0.0

    def test_significant_high_deviation(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8, 1.1, 0.9])
        check = detect_significant_deviation(0.6, baseline)
        assert check.is_significant
        assert check.severity == Severity.HIGH
        assert check.direction == "below"

    def test_moderate_deviation(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8, 1.1, 0.9])
        check = detect_significant_deviation(1.2, baseline)
        assert check.is_significant
        assert check.severity == Severity.MODERATE
        assert check.direction == "above"

    def test_small_sample_is_never_significant(self):
        baseline = summarize_values(Metric.RATING, [1.0, 1.2, 0.8])
        check = detect_significant_deviation(0.1, baseline)
        assert not check.is_significant
        assert "Insufficient sample size" in check.description


class TestBaselineQuality:
    """Tests for baseline reliability assessment."""

    @pytest.mark.parametrize(
        "n,reliability",
        [(3, "unreliable"), (5, "limited"), (10, "acceptable"), (15, "good"), (30, "excellent")],
    )
    def test_reliability_by_sample(self, n, reliability):
        baseline = summarize_values(Metric.RATING, [1.0 + 0.01 * i for i in range(n)])
        assert evaluate_baseline_quality(baseline).reliability == reliability

    def test_stale_baseline_loses_confidence(self):
        window = _make_window([1.0 + 0.01 * i for i in range(15)])
        baseline = compute_baseline(window, Metric.RATING)
        fresh = evaluate_baseline_quality(baseline, as_of=baseline.last_updated)
        stale = evaluate_baseline_quality(
            baseline, as_of=baseline.last_updated + timedelta(days=45)
        )
        assert fresh.confidence == pytest.approx(0.85)
        assert stale.confidence == pytest.approx(0.68)
        assert any("30 days" in r for r in stale.recommendations)


class TestExtendedStats:
    """Tests for per-match processed stats."""

    def test_one_entry_per_match(self):
        window = _make_window([1.0, 1.2, 0.8, 1.1, 0.9], adr=80.0)
        stats = build_extended_stats(window, compute_baselines(window))
        assert len(stats) == 5
        assert stats[0].games_played == 1
        assert stats[2].deviation_from_baseline < 0

    def test_map_specific_performance(self):
        window = _make_window([1.0, 1.2, 0.8])
        stats = build_extended_stats(window, compute_baselines(window))
        assert stats[1].map_specific_performance == pytest.approx(20.0)

    def test_map_specific_performance_needs_map_sample(self):
        window = _make_window([1.0, 1.2])
        stats = build_extended_stats(window, compute_baselines(window))
        assert stats[0].map_specific_performance is None
