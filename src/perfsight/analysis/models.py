"""
Value types for the enhanced performance analysis.

Every type here is a frozen dataclass built once per engine invocation and
never mutated afterwards. Sequences are tuples and mappings are read-only
proxies, so a result can be shared between consumers without cloning.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from perfsight.core.constants import (
    AlertType,
    ConfidenceLevel,
    Metric,
    PerformanceStateKind,
    Severity,
    Significance,
    TiltIndicatorType,
    TimeOfDay,
)


def frozen_map(data: Mapping | None = None) -> Mapping:
    """Wrap a dict in a read-only view over a private copy."""
    return MappingProxyType(dict(data or {}))


def _round(value: float | None, digits: int = 3) -> float | None:
    if value is None:
        return None
    return round(value, digits)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# =============================================================================
# Errors and the insufficient-data condition
# =============================================================================


class ExtractionError(ValueError):
    """Raised when an input item is not a match record at all."""


class InsufficientDataError(ValueError):
    """Raised by the strict entry point when the match window is too small."""

    def __init__(self, observed: int, required: int, player_id: str = "") -> None:
        self.observed = observed
        self.required = required
        self.player_id = player_id
        super().__init__(
            f"Insufficient match data: {observed} matches supplied, at least {required} required"
        )


@dataclass(frozen=True)
class InsufficientData:
    """Typed, non-fatal result returned instead of an analysis for short windows."""

    observed: int
    required: int
    player_id: str

    @property
    def message(self) -> str:
        return (
            f"Enhanced analysis requires at least {self.required} matches "
            f"({self.observed} supplied)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "enhanced_analysis_error",
            "error": "Insufficient match data",
            "message": self.message,
            "player_id": self.player_id,
            "observed": self.observed,
            "required": self.required,
        }


# =============================================================================
# Per-match vectors
# =============================================================================


@dataclass(frozen=True)
class MatchMetricVector:
    """Normalized metrics for one match, in chronological position ``index``."""

    index: int
    match_id: str
    timestamp: datetime | None
    map_name: str
    session_position: int
    time_of_day: TimeOfDay

    rating: float | None = None
    kd_ratio: float | None = None
    adr: float | None = None
    kast: float | None = None
    headshot_percentage: float | None = None
    preaim: float | None = None
    reaction_time: float | None = None
    spray_accuracy: float | None = None
    utility_efficiency: float | None = None

    def get(self, metric: Metric) -> float | None:
        """Value of a metric for this match, or None when it was not recorded."""
        return getattr(self, Metric(metric).value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "match_id": self.match_id,
            "timestamp": _iso(self.timestamp),
            "map": self.map_name,
            "session_position": self.session_position,
            "time_of_day": self.time_of_day.value,
            **{m.value: _round(self.get(m), 3) for m in Metric},
        }


@dataclass(frozen=True)
class PersonalBaseline:
    """Statistical summary of one metric over the supplied window."""

    metric: Metric
    value: float
    confidence_interval: tuple[float, float]
    sample_size: int
    variance: float
    confidence_level: ConfidenceLevel
    last_updated: datetime | None = None

    @property
    def std(self) -> float:
        return math.sqrt(self.variance) if self.variance > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "value": round(self.value, 4),
            "confidence_interval": [
                round(self.confidence_interval[0], 4),
                round(self.confidence_interval[1], 4),
            ],
            "sample_size": self.sample_size,
            "variance": round(self.variance, 6),
            "confidence_level": self.confidence_level.value,
            "last_updated": _iso(self.last_updated),
        }


@dataclass(frozen=True)
class ExtendedProcessedStats:
    """One match's processed stats set against the player's own baseline."""

    match_id: str
    rating: float | None
    kd_ratio: float | None
    adr: float | None
    kast: float | None
    headshot_percentage: float | None
    games_played: int

    personal_baseline: PersonalBaseline
    deviation_from_baseline: float  # signed, in baseline standard deviations
    confidence_level: ConfidenceLevel

    preaim: float | None
    reaction_time: float | None
    spray_accuracy: float | None
    utility_efficiency: float | None
    session_position: int
    time_of_day: TimeOfDay
    map_specific_performance: float | None  # rating relative to this map's mean, percent

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "rating": _round(self.rating),
            "kd_ratio": _round(self.kd_ratio, 2),
            "adr": _round(self.adr, 1),
            "kast": _round(self.kast, 1),
            "headshot_percentage": _round(self.headshot_percentage, 1),
            "games_played": self.games_played,
            "personal_baseline": self.personal_baseline.to_dict(),
            "deviation_from_baseline": round(self.deviation_from_baseline, 2),
            "confidence_level": self.confidence_level.value,
            "preaim": _round(self.preaim, 2),
            "reaction_time": _round(self.reaction_time, 3),
            "spray_accuracy": _round(self.spray_accuracy, 1),
            "utility_efficiency": _round(self.utility_efficiency, 1),
            "session_position": self.session_position,
            "time_of_day": self.time_of_day.value,
            "map_specific_performance": _round(self.map_specific_performance, 1),
        }


# =============================================================================
# Adaptive thresholds
# =============================================================================


@dataclass(frozen=True)
class MetricThresholds:
    """solid < strong < excellent, in the metric's own "better" direction."""

    solid: float
    strong: float
    excellent: float
    lower_is_better: bool = False

    def is_worse_than_solid(self, value: float) -> bool:
        if self.lower_is_better:
            return value > self.solid
        return value < self.solid

    def meets_excellent(self, value: float) -> bool:
        if self.lower_is_better:
            return value <= self.excellent
        return value >= self.excellent

    def level(self, value: float) -> str:
        """Label a value as excellent, strong, solid or below."""
        better = (lambda a, b: a <= b) if self.lower_is_better else (lambda a, b: a >= b)
        if better(value, self.excellent):
            return "excellent"
        if better(value, self.strong):
            return "strong"
        if better(value, self.solid):
            return "solid"
        return "below"

    def to_dict(self) -> dict[str, Any]:
        return {
            "solid": self.solid,
            "strong": self.strong,
            "excellent": self.excellent,
            "lower_is_better": self.lower_is_better,
        }


@dataclass(frozen=True)
class ThresholdTable:
    """Tier-relative thresholds resolved once per invocation."""

    tier: str
    premier_rating: int
    is_default: bool
    metrics: Mapping[Metric, MetricThresholds] = field(default_factory=frozen_map)

    def for_metric(self, metric: Metric) -> MetricThresholds:
        return self.metrics[Metric(metric)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "premier_rating": self.premier_rating,
            "is_default": self.is_default,
            "metrics": {m.value: t.to_dict() for m, t in self.metrics.items()},
        }


# =============================================================================
# Tilt and flow
# =============================================================================


@dataclass(frozen=True)
class TiltIndicator:
    type: TiltIndicatorType
    metric: Metric
    severity: Severity
    value: float
    threshold: float  # baseline breach line (mean -/+ sigma)
    sigma_distance: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "metric": self.metric.value,
            "severity": self.severity.value,
            "value": round(self.value, 3),
            "threshold": round(self.threshold, 3),
            "sigma_distance": round(self.sigma_distance, 2),
            "description": self.description,
        }


@dataclass(frozen=True)
class TiltAnalysis:
    active: bool
    severity: Severity
    triggers: tuple[str, ...]
    cascade_length: int
    recovery_prediction: str
    recommended_action: str
    indicators: tuple[TiltIndicator, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "severity": self.severity.value,
            "triggers": list(self.triggers),
            "cascade_length": self.cascade_length,
            "recovery_prediction": self.recovery_prediction,
            "recommended_action": self.recommended_action,
            "indicators": [i.to_dict() for i in self.indicators],
        }


@dataclass(frozen=True)
class NextMatchPrediction:
    expected_rating: float
    confidence: float
    recovery_probability: float
    recommended_action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_rating": round(self.expected_rating, 3),
            "confidence": round(self.confidence, 2),
            "recovery_probability": round(self.recovery_probability, 2),
            "recommended_action": self.recommended_action,
        }


@dataclass(frozen=True)
class FlowAnalysis:
    active: bool
    last_occurrence: str
    triggers: tuple[str, ...]
    performance_boost: str
    frequency: float  # qualifying matches / window size
    qualifying_matches: int
    streak_length: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "last_occurrence": self.last_occurrence,
            "triggers": list(self.triggers),
            "performance_boost": self.performance_boost,
            "frequency": round(self.frequency, 3),
            "qualifying_matches": self.qualifying_matches,
            "streak_length": self.streak_length,
        }


@dataclass(frozen=True)
class PerformanceState:
    classification: PerformanceStateKind
    confidence: float
    evidence: tuple[str, ...]
    baseline_deviation: Mapping[str, str] = field(default_factory=frozen_map)
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification.value,
            "confidence": round(self.confidence, 2),
            "evidence": list(self.evidence),
            "baseline_deviation": dict(self.baseline_deviation),
            "recommendations": list(self.recommendations),
        }


# =============================================================================
# Correlation
# =============================================================================


@dataclass(frozen=True)
class CorrelationResult:
    coefficient: float
    p_value: float
    significance: Significance
    sample_size: int
    confidence_interval: tuple[float, float]
    metric: Metric | None = None
    spearman: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value if self.metric else None,
            "coefficient": round(self.coefficient, 4),
            "p_value": round(self.p_value, 6),
            "significance": self.significance.value,
            "sample_size": self.sample_size,
            "confidence_interval": [
                round(self.confidence_interval[0], 4),
                round(self.confidence_interval[1], 4),
            ],
            "spearman": round(self.spearman, 4),
        }


@dataclass(frozen=True)
class LaggedCorrelation:
    lag: int
    result: CorrelationResult
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"lag": self.lag, "description": self.description, **self.result.to_dict()}


@dataclass(frozen=True)
class PerformanceDriver:
    metric: Metric
    correlation_to_rating: float
    significance: Significance
    insight: str
    threshold: str
    current_average: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "correlation_to_rating": round(self.correlation_to_rating, 4),
            "significance": self.significance.value,
            "insight": self.insight,
            "threshold": self.threshold,
            "current_average": round(self.current_average, 3),
        }


@dataclass(frozen=True)
class SurprisingFinding:
    metric: Metric
    coefficient: float
    expected_sign: int
    finding: str
    explanation: str
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "coefficient": round(self.coefficient, 4),
            "expected_sign": self.expected_sign,
            "finding": self.finding,
            "explanation": self.explanation,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class AnalysisQuality:
    quality: str  # excellent | good | acceptable | poor
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "quality": self.quality,
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class CorrelationAnalysis:
    results: Mapping[Metric, CorrelationResult]
    primary_performance_drivers: tuple[PerformanceDriver, ...]
    surprising_findings: tuple[SurprisingFinding, ...]
    matrix: Mapping[str, Mapping[str, float]] = field(default_factory=frozen_map)
    quality: AnalysisQuality | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_performance_drivers": [d.to_dict() for d in self.primary_performance_drivers],
            "surprising_findings": [f.to_dict() for f in self.surprising_findings],
            "correlations": {m.value: r.to_dict() for m, r in self.results.items()},
            "correlation_matrix": {
                row: {col: round(v, 4) for col, v in cols.items()}
                for row, cols in self.matrix.items()
            },
            "quality": self.quality.to_dict() if self.quality else None,
        }


# =============================================================================
# Patterns
# =============================================================================


@dataclass(frozen=True)
class MomentumPattern:
    direction: str  # positive | negative | neutral
    strength: float  # |slope|
    confidence: float  # R^2 of the fit
    slope: float  # rating change per match
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction,
            "strength": round(self.strength, 3),
            "confidence": round(self.confidence, 3),
            "slope": round(self.slope, 4),
            "description": self.description,
        }


@dataclass(frozen=True)
class CascadeAnalysis:
    cascade_type: str  # tilt | flow | none
    length: int
    trend: str  # accelerating | stable | recovering
    break_probability: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.cascade_type,
            "length": self.length,
            "trend": self.trend,
            "break_probability": round(self.break_probability, 2),
            "description": self.description,
        }


@dataclass(frozen=True)
class ContextualCluster:
    context_type: str  # map | time_of_day | session_position
    label: str
    match_count: int
    average_rating: float
    deviation_pct: float  # vs. overall mean rating
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "context_type": self.context_type,
            "label": self.label,
            "match_count": self.match_count,
            "average_rating": round(self.average_rating, 3),
            "deviation_pct": round(self.deviation_pct, 1),
            "description": self.description,
        }


@dataclass(frozen=True)
class PatternAnalysis:
    momentum: MomentumPattern
    cascade: CascadeAnalysis
    clusters: tuple[ContextualCluster, ...] = ()
    fatigue_indicators: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "momentum": self.momentum.to_dict(),
            "cascade": self.cascade.to_dict(),
            "contextual_clusters": [c.to_dict() for c in self.clusters],
            "fatigue_indicators": list(self.fatigue_indicators),
        }


# =============================================================================
# Alerts and the top-level result
# =============================================================================


@dataclass(frozen=True)
class PredictiveAlert:
    alert_type: AlertType
    severity: Severity
    evidence: str
    prediction: str
    recommended_action: str
    metric: Metric | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "alert_type": self.alert_type.value,
            "severity": self.severity.value,
            "metric": self.metric.value if self.metric else None,
            "evidence": self.evidence,
            "prediction": self.prediction,
            "recommended_action": self.recommended_action,
        }


@dataclass(frozen=True)
class PredictiveWarningSystem:
    immediate_alerts: tuple[PredictiveAlert, ...]
    next_match: NextMatchPrediction | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "immediate_alerts": [a.to_dict() for a in self.immediate_alerts],
            "next_match": self.next_match.to_dict() if self.next_match else None,
        }


@dataclass(frozen=True)
class EnhancedAnalysisResult:
    """Everything one engine invocation produced for one player."""

    player_id: str
    match_count: int
    thresholds: ThresholdTable
    baselines: Mapping[Metric, PersonalBaseline]
    extended_stats: tuple[ExtendedProcessedStats, ...]
    tilt: TiltAnalysis
    flow: FlowAnalysis
    state: PerformanceState
    correlation: CorrelationAnalysis
    patterns: PatternAnalysis
    predictive_warnings: PredictiveWarningSystem
    warnings: tuple[str, ...] = ()
    generated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "player_id": self.player_id,
            "match_count": self.match_count,
            "tier": self.thresholds.tier,
            "premier_rating": self.thresholds.premier_rating,
            "performance_state_analysis": {
                "current_state": self.state.to_dict(),
                "detected_patterns": {
                    "tilt_indicators": {
                        "active": self.tilt.active,
                        "severity": self.tilt.severity.value,
                        "triggers_detected": list(self.tilt.triggers),
                        "cascade_length": self.tilt.cascade_length,
                        "prediction": self.tilt.recovery_prediction,
                        "recommended_action": self.tilt.recommended_action,
                    },
                    "flow_state_indicators": self.flow.to_dict(),
                },
            },
            "metric_correlation_analysis": self.correlation.to_dict(),
            "pattern_recognition": self.patterns.to_dict(),
            "predictive_warning_system": self.predictive_warnings.to_dict(),
            "baselines": {m.value: b.to_dict() for m, b in self.baselines.items()},
            "extended_stats": [s.to_dict() for s in self.extended_stats],
            "warnings": list(self.warnings),
            "generated_at": _iso(self.generated_at),
        }
