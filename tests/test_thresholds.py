"""Tests for rank-relative threshold resolution."""

import math

import pytest

from perfsight.analysis.models import MetricThresholds
from perfsight.analysis.thresholds import RANK_BANDS, band_for_rating, resolve_thresholds
from perfsight.core.constants import ALL_METRICS, Metric


class TestBandForRating:
    """Tests for premier rating band lookup."""

    @pytest.mark.parametrize(
        "rating,expected",
        [
            (0, "gray"),
            (4999, "gray"),
            (5000, "light_blue"),
            (14200, "blue"),
            (15000, "purple"),
            (29999, "red"),
            (35000, "gold"),
        ],
    )
    def test_band_boundaries(self, rating, expected):
        assert band_for_rating(rating)[1] == expected

    def test_negative_rating_is_lowest_band(self):
        assert band_for_rating(-100) == (0, RANK_BANDS[0][0])


class TestResolveThresholds:
    """Tests for the per-player threshold table."""

    def test_every_metric_has_thresholds(self):
        table = resolve_thresholds(14200)
        assert set(table.metrics) == set(ALL_METRICS)

    def test_thresholds_are_ordered(self):
        for rating in (0, 12000, 32000):
            table = resolve_thresholds(rating)
            for metric, limits in table.metrics.items():
                if limits.lower_is_better:
                    assert limits.solid > limits.strong > limits.excellent, metric
                else:
                    assert limits.solid < limits.strong < limits.excellent, metric

    def test_higher_tier_demands_more(self):
        low = resolve_thresholds(3000).for_metric(Metric.RATING)
        high = resolve_thresholds(26000).for_metric(Metric.RATING)
        assert high.solid > low.solid

    def test_missing_rating_uses_default(self):
        table = resolve_thresholds(None)
        assert table.is_default
        assert table.tier == "blue"
        assert table.premier_rating == 10000

    def test_non_finite_rating_uses_default(self):
        table = resolve_thresholds(math.nan, default_premier_rating=20000)
        assert table.is_default
        assert table.tier == "pink"

    def test_supplied_rating_is_not_default(self):
        table = resolve_thresholds(14200)
        assert not table.is_default
        assert table.tier == "blue"
        assert table.for_metric(Metric.RATING).solid == pytest.approx(0.9)

    def test_table_is_read_only(self):
        table = resolve_thresholds(14200)
        with pytest.raises(TypeError):
            table.metrics[Metric.RATING] = None


class TestMetricThresholds:
    """Tests for threshold comparisons."""

    def test_higher_is_better(self):
        limits = MetricThresholds(0.9, 1.0, 1.1)
        assert limits.is_worse_than_solid(0.85)
        assert not limits.is_worse_than_solid(0.95)
        assert limits.meets_excellent(1.1)
        assert limits.level(1.05) == "strong"
        assert limits.level(0.5) == "below"

    def test_lower_is_better(self):
        limits = MetricThresholds(0.68, 0.62, 0.57, lower_is_better=True)
        assert limits.is_worse_than_solid(0.70)
        assert not limits.is_worse_than_solid(0.60)
        assert limits.meets_excellent(0.55)
        assert limits.level(0.60) == "strong"
        assert limits.level(0.66) == "solid"
