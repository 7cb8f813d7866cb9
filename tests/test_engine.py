"""
Tests for the Enhanced Performance Analytics Engine.

Exercises the full pipeline from raw match records to the serialized
result, plus component filtering and data-quality scoring.
"""

import json
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from perfsight.analysis.engine import (
    EnhancedAnalysisEngine,
    analyze,
    analyze_or_raise,
    assess_data_quality,
    filter_components,
    normalize_components,
)
from perfsight.analysis.models import (
    EnhancedAnalysisResult,
    ExtractionError,
    InsufficientData,
    InsufficientDataError,
)
from perfsight.core.config import AnalysisConfig, PerfSightConfig
from perfsight.core.constants import (
    AnalysisComponent,
    Metric,
    PerformanceStateKind,
    Significance,
)

START = datetime(2026, 3, 1, 19, 0, tzinfo=UTC)
GENERATED_AT = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)

RATINGS = [0.8, 0.85, 0.9, 0.95, 1.0, 1.05, 1.1, 1.15, 1.2, 1.25]


def _make_match(index, rating, **stats):
    record = {
        "match_id": f"match-{index}",
        "finished_at": (START + timedelta(hours=index)).isoformat(),
        "map_name": "de_mirage" if index % 2 else "de_ancient",
        "rating": rating,
        "kills": 18,
        "deaths": 16,
        "kast": 70.0,
        "headshot_percentage": 45.0,
    }
    record.update(stats)
    return record


def _make_history(ratings, **series):
    history = []
    for i, rating in enumerate(ratings):
        stats = {name: values[i] for name, values in series.items()}
        history.append(_make_match(i, rating, **stats))
    return history


class TestInsufficientData:
    """Tests for short match windows."""

    def test_three_matches(self):
        result = analyze(_make_history([1.0, 1.1, 0.9]), "player1")
        assert isinstance(result, InsufficientData)
        assert result.observed == 3
        assert result.required == 5
        data = result.to_dict()
        assert data["type"] == "enhanced_analysis_error"
        assert data["error"] == "Insufficient match data"
        assert data["player_id"] == "player1"

    def test_strict_entry_point_raises(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            analyze_or_raise(_make_history([1.0, 1.1, 0.9]), "player1")
        assert exc_info.value.observed == 3
        assert exc_info.value.required == 5

    def test_configured_minimum(self):
        config = PerfSightConfig(analysis=AnalysisConfig(min_matches=3))
        result = EnhancedAnalysisEngine(config).analyze(_make_history([1.0, 1.1, 0.9]), "p")
        assert isinstance(result, EnhancedAnalysisResult)

    def test_non_record_raises(self):
        history = _make_history([1.0, 1.1, 0.9, 1.0])
        history.append("not a match")
        with pytest.raises(ExtractionError):
            analyze(history, "player1")

    def test_partial_record_is_analyzed(self):
        history = _make_history(RATINGS[:9], adr=[80.0] * 9)
        history.append({"match_id": "match-9", "adr": 85.0, "kast": 72.0})
        result = analyze_or_raise(history, "player1")
        assert result.match_count == 10
        assert result.baselines[Metric.RATING].sample_size == 9
        assert result.baselines[Metric.ADR].sample_size == 10
        json.dumps(result.to_dict(), allow_nan=False)

    def test_null_rating_falls_back_to_nested_stats(self):
        history = _make_history([1.0] * 4)
        record = _make_match(4, None)
        record["player_stats"] = {"rating": 1.3}
        history.append(record)
        result = analyze_or_raise(history, "player1")
        assert result.baselines[Metric.RATING].sample_size == 5


class TestScenarios:
    """End-to-end scenarios."""

    def test_tilt_cascade(self):
        result = analyze_or_raise(_make_history([1.2] * 7 + [0.5] * 3), "player1")
        assert result.state.classification == PerformanceStateKind.TILT_CASCADE
        assert result.tilt.active
        assert result.tilt.cascade_length == 3
        alert_types = [a.alert_type.value for a in result.predictive_warnings.immediate_alerts]
        assert "tilt-risk" in alert_types

    def test_adr_driver(self):
        history = _make_history(RATINGS, adr=[50 + 40 * r for r in RATINGS])
        result = analyze_or_raise(history, "player1", premier_rating=12000)
        drivers = {d.metric: d for d in result.correlation.primary_performance_drivers}
        assert drivers[Metric.ADR].significance == Significance.HIGH
        assert result.thresholds.tier == "blue"

    def test_missing_metric_is_excluded(self):
        spray = [40.0, None, 42.0, None, 39.0, 41.0, None, 43.0, None, 40.0]
        history = _make_history(RATINGS, adr=[80.0] * 10, spray_accuracy=spray)
        result = analyze_or_raise(history, "player1")
        assert result.baselines[Metric.SPRAY_ACCURACY].sample_size == 6
        assert result.correlation.results[Metric.SPRAY_ACCURACY].sample_size == 6
        # Serializes as strict JSON: no NaN anywhere
        json.dumps(result.to_dict(), allow_nan=False)

    def test_empty_extended_metrics_serialize(self):
        result = analyze_or_raise(_make_history([1.0, 1.1, 0.9, 1.05, 0.95]), "player1")
        assert result.baselines[Metric.PREAIM].sample_size == 0
        json.dumps(result.to_dict(), allow_nan=False)


class TestResultProperties:
    """Tests for determinism and warnings."""

    def test_identical_input_identical_output(self):
        history = _make_history(RATINGS, adr=[50 + 40 * r for r in RATINGS])
        first = analyze_or_raise(history, "player1", 14000, generated_at=GENERATED_AT)
        second = analyze_or_raise(history, "player1", 14000, generated_at=GENERATED_AT)
        assert first.to_dict() == second.to_dict()
        assert first.to_dict()["generated_at"] == GENERATED_AT.isoformat()

    def test_input_is_not_mutated(self):
        history = _make_history(RATINGS)
        snapshot = json.dumps(history, sort_keys=True)
        analyze(history, "player1")
        assert json.dumps(history, sort_keys=True) == snapshot

    def test_long_history_is_truncated(self):
        history = _make_history([1.0 + 0.01 * (i % 5) for i in range(60)])
        result = analyze_or_raise(history, "player1", 12000)
        assert result.match_count == 50
        assert result.extended_stats[0].match_id == "match-10"
        assert any("truncated to the most recent 50 of 60" in w for w in result.warnings)

    def test_default_tier_warning(self):
        result = analyze_or_raise(_make_history(RATINGS), "player1")
        assert "No premier rating supplied - using blue tier thresholds" in result.warnings

    def test_small_sample_warning(self):
        result = analyze_or_raise(_make_history([1.0, 1.1, 0.9, 1.05, 0.95]), "player1", 12000)
        assert "Sample size too small (5 < 10)" in result.warnings

    def test_missing_extended_warning(self):
        result = analyze_or_raise(_make_history(RATINGS), "player1", 12000)
        assert any("missing extended metrics" in w for w in result.warnings)

    def test_correlation_quality_caveats_are_merged(self):
        result = analyze_or_raise(_make_history(RATINGS), "player1", 12000)
        assert "High missing data rate (100.0%)" in result.warnings
        assert "Limited sample size (10 < 30)" in result.warnings

    def test_sample_size_warning_is_not_repeated(self):
        result = analyze_or_raise(_make_history([1.0, 1.1, 0.9, 1.05, 0.95]), "player1", 12000)
        assert result.warnings.count("Sample size too small (5 < 10)") == 1

    def test_result_sections(self):
        data = analyze_or_raise(_make_history(RATINGS), "player1").to_dict()
        assert set(data) >= {
            "performance_state_analysis",
            "metric_correlation_analysis",
            "pattern_recognition",
            "predictive_warning_system",
            "baselines",
            "extended_stats",
            "warnings",
        }
        tilt = data["performance_state_analysis"]["detected_patterns"]["tilt_indicators"]
        assert set(tilt) == {
            "active",
            "severity",
            "triggers_detected",
            "cascade_length",
            "prediction",
            "recommended_action",
        }


class TestComponents:
    """Tests for component selection and data-quality scoring."""

    def _result(self):
        return analyze_or_raise(_make_history(RATINGS), "player1", generated_at=GENERATED_AT)

    def test_normalize_defaults_to_all(self):
        assert normalize_components(None) == [AnalysisComponent.ALL]
        assert normalize_components([]) == [AnalysisComponent.ALL]

    def test_unknown_component(self):
        with pytest.raises(ValueError, match="Unknown analysis component"):
            normalize_components(["tilt_detection", "horoscope"])

    def test_all_returns_full_result(self):
        result = self._result()
        assert filter_components(result, ["all"]) == result.to_dict()

    def test_tilt_only(self):
        filtered = filter_components(self._result(), ["tilt_detection"])
        assert "tilt_indicators" in filtered["performance_state_analysis"]["detected_patterns"]
        assert "current_state" not in filtered["performance_state_analysis"]
        assert "metric_correlation_analysis" not in filtered
        assert "predictive_warning_system" in filtered

    def test_state_and_correlation(self):
        filtered = filter_components(
            self._result(), ["performance_state", "correlation_analysis"]
        )
        assert "current_state" in filtered["performance_state_analysis"]
        assert "metric_correlation_analysis" in filtered
        assert "pattern_recognition" not in filtered

    def test_data_quality_scores(self):
        result = self._result()
        quality = assess_data_quality(result)
        assert quality["issues"] == list(result.warnings)
        if len(result.warnings) > 2:
            assert quality["score"] == "low"

    def test_data_quality_high_without_warnings(self):
        result = self._result()
        clean = replace(result, warnings=())
        assert assess_data_quality(clean)["score"] == "high"
