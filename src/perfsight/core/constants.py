"""
PerfSight - Constants

Metric names, enumerations and fixed reference values shared by every
analysis module. Values here are identifiers and fixed lookup data; tunable
numeric policy lives in perfsight.core.config.
"""

from enum import StrEnum


class Metric(StrEnum):
    """Per-match metrics carried by a MatchMetricVector."""

    RATING = "rating"
    KD_RATIO = "kd_ratio"
    ADR = "adr"
    KAST = "kast"
    HEADSHOT_PERCENTAGE = "headshot_percentage"
    PREAIM = "preaim"  # degrees, lower is better
    REACTION_TIME = "reaction_time"  # seconds, lower is better
    SPRAY_ACCURACY = "spray_accuracy"
    UTILITY_EFFICIENCY = "utility_efficiency"


class Severity(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ConfidenceLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Significance(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class TiltIndicatorType(StrEnum):
    """Kinds of degradation signal the tilt detector can raise."""

    REACTION_TIME = "reaction_time"
    PREAIM_DEGRADATION = "preaim_degradation"
    RATING_CASCADE = "rating_cascade"
    CONSISTENCY_LOSS = "consistency_loss"
    UTILITY_DECLINE = "utility_decline"


class PerformanceStateKind(StrEnum):
    """
    Mutually exclusive performance states.

    Declaration order is NOT the evaluation order; see
    perfsight.analysis.state.STATE_PRECEDENCE.
    """

    MECHANICAL_INCONSISTENCY = "mechanical_inconsistency"
    TILT_CASCADE = "tilt_cascade"
    FLOW_STATE = "flow_state"
    BASELINE_NORMAL = "baseline_normal"


class AlertType(StrEnum):
    TILT_RISK = "tilt-risk"
    MECHANICAL_RISK = "mechanical-risk"
    TREND_RISK = "trend-risk"


class AnalysisComponent(StrEnum):
    """Named slices of an analysis result a consumer can request."""

    TILT_DETECTION = "tilt_detection"
    PERFORMANCE_STATE = "performance_state"
    CORRELATION_ANALYSIS = "correlation_analysis"
    PATTERN_RECOGNITION = "pattern_recognition"
    ALL = "all"


class TimeOfDay(StrEnum):
    MORNING = "morning"  # 06:00-11:59
    AFTERNOON = "afternoon"  # 12:00-17:59
    EVENING = "evening"  # 18:00-23:59
    NIGHT = "night"  # 00:00-05:59
    UNKNOWN = "unknown"


# Core stats (the ProcessedStats block) vs. extended telemetry
CORE_METRICS: tuple[Metric, ...] = (
    Metric.RATING,
    Metric.KD_RATIO,
    Metric.ADR,
    Metric.KAST,
    Metric.HEADSHOT_PERCENTAGE,
)

EXTENDED_METRICS: tuple[Metric, ...] = (
    Metric.PREAIM,
    Metric.REACTION_TIME,
    Metric.SPRAY_ACCURACY,
    Metric.UTILITY_EFFICIENCY,
)

ALL_METRICS: tuple[Metric, ...] = CORE_METRICS + EXTENDED_METRICS

# Metrics where a smaller number is the better performance
LOWER_IS_BETTER: frozenset[Metric] = frozenset({Metric.PREAIM, Metric.REACTION_TIME})

# Candidates correlated against rating (rating itself excluded)
CORRELATION_METRICS: tuple[Metric, ...] = tuple(m for m in ALL_METRICS if m != Metric.RATING)

# Expected sign of each metric's correlation with rating.
# Lower-is-better metrics should correlate negatively.
EXPECTED_CORRELATION_SIGN: dict[Metric, int] = {
    m: (-1 if m in LOWER_IS_BETTER else 1) for m in CORRELATION_METRICS
}

# Monitored metric -> tilt indicator raised when it degrades
TILT_MONITORED_METRICS: dict[Metric, TiltIndicatorType] = {
    Metric.REACTION_TIME: TiltIndicatorType.REACTION_TIME,
    Metric.PREAIM: TiltIndicatorType.PREAIM_DEGRADATION,
    Metric.RATING: TiltIndicatorType.RATING_CASCADE,
    Metric.KAST: TiltIndicatorType.CONSISTENCY_LOSS,
    Metric.UTILITY_EFFICIENCY: TiltIndicatorType.UTILITY_DECLINE,
}

# Pairs of aim mechanics that normally move together
MECHANICAL_PAIRS: tuple[tuple[Metric, Metric], ...] = (
    (Metric.REACTION_TIME, Metric.PREAIM),
    (Metric.PREAIM, Metric.HEADSHOT_PERCENTAGE),
    (Metric.SPRAY_ACCURACY, Metric.HEADSHOT_PERCENTAGE),
)

# The metric that drives cascade length and flow qualification
DOMINANT_METRIC = Metric.RATING

METRIC_LABELS: dict[Metric, str] = {
    Metric.RATING: "Rating",
    Metric.KD_RATIO: "K/D Ratio",
    Metric.ADR: "ADR",
    Metric.KAST: "KAST",
    Metric.HEADSHOT_PERCENTAGE: "Headshot %",
    Metric.PREAIM: "Preaim",
    Metric.REACTION_TIME: "Reaction Time",
    Metric.SPRAY_ACCURACY: "Spray Accuracy",
    Metric.UTILITY_EFFICIENCY: "Utility Efficiency",
}

# Recovery statistics observed after tilt cascades
RECOVERY_PATTERNS = {
    "average_recovery_matches": 2.3,
    "recovery_success_rate": 0.67,
}

SEVERITY_ORDER: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MODERATE: 2,
    Severity.HIGH: 3,
}
