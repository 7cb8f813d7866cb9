"""
Predictive warning system.

Merges the tilt analysis, performance state and correlation results into a
short list of forward-looking alerts:

- tilt-risk: a tilt cascade is active
- mechanical-risk: a primary performance driver sits below the tier's solid threshold
- trend-risk: a metric with a surprising correlation has worsened over the last matches
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from perfsight.analysis.models import (
    CorrelationAnalysis,
    MatchMetricVector,
    PerformanceState,
    PersonalBaseline,
    PredictiveAlert,
    PredictiveWarningSystem,
    ThresholdTable,
    TiltAnalysis,
)
from perfsight.analysis.tilt import TiltDetector
from perfsight.core.config import DetectionConfig
from perfsight.core.constants import (
    DOMINANT_METRIC,
    LOWER_IS_BETTER,
    METRIC_LABELS,
    SEVERITY_ORDER,
    AlertType,
    Metric,
    PerformanceStateKind,
    Severity,
    Significance,
)

logger = logging.getLogger(__name__)

PRACTICE_ACTIONS: dict[Metric, str] = {
    Metric.KD_RATIO: "Play for trades and safer first contacts; review deaths from the last matches",
    Metric.ADR: "Commit to more duels with utility support and finish damaged opponents",
    Metric.KAST: "Focus on round impact: stay alive, trade teammates, contribute utility",
    Metric.HEADSHOT_PERCENTAGE: "Run headshot-only deathmatch to rebuild head-level crosshair habits",
    Metric.PREAIM: "Drill pre-aim routines on workshop maps before queueing",
    Metric.REACTION_TIME: "Warm up with reaction drills and check fatigue before ranked matches",
    Metric.SPRAY_ACCURACY: "Practice spray control for the primary rifles in a recoil map",
    Metric.UTILITY_EFFICIENCY: "Learn a few reliable flash and HE lineups for your main maps",
}


def latest_value(vectors: Sequence[MatchMetricVector], metric: Metric) -> float | None:
    """Most recent present value of a metric."""
    for vector in reversed(vectors):
        value = vector.get(metric)
        if value is not None:
            return value
    return None


def is_worsening(values: Sequence[float], metric: Metric) -> bool:
    """Every step moves in the metric's worse direction."""
    if len(values) < 2:
        return False
    steps = zip(values, values[1:], strict=False)
    if metric in LOWER_IS_BETTER:
        return all(b > a for a, b in steps)
    return all(b < a for a, b in steps)


def tilt_alert(tilt: TiltAnalysis) -> PredictiveAlert | None:
    if not tilt.active:
        return None
    return PredictiveAlert(
        alert_type=AlertType.TILT_RISK,
        severity=tilt.severity,
        evidence=f"Tilt indicators: {', '.join(tilt.triggers)}",
        prediction=tilt.recovery_prediction,
        recommended_action=tilt.recommended_action,
        metric=DOMINANT_METRIC,
    )


def mechanical_alerts(
    vectors: Sequence[MatchMetricVector],
    correlation: CorrelationAnalysis,
    thresholds: ThresholdTable,
    state: PerformanceState | None = None,
) -> list[PredictiveAlert]:
    # Drivers below tier are more urgent while mechanics are already unstable
    unstable = (
        state is not None
        and state.classification == PerformanceStateKind.MECHANICAL_INCONSISTENCY
    )
    alerts = []
    for driver in correlation.primary_performance_drivers:
        value = latest_value(vectors, driver.metric)
        limits = thresholds.for_metric(driver.metric)
        if value is None or not limits.is_worse_than_solid(value):
            continue
        label = METRIC_LABELS[driver.metric]
        relation = "above" if limits.lower_is_better else "below"
        alerts.append(
            PredictiveAlert(
                alert_type=AlertType.MECHANICAL_RISK,
                severity=(
                    Severity.HIGH
                    if unstable or driver.significance == Significance.HIGH
                    else Severity.MODERATE
                ),
                evidence=(
                    f"{label} {value:.2f} is {relation} the {thresholds.tier} tier solid level "
                    f"{limits.solid:g} (r={driver.correlation_to_rating:.2f} with rating)"
                ),
                prediction=(
                    f"Rating likely to stay under tier level while {label} "
                    f"stays {relation} {limits.solid:g}"
                ),
                recommended_action=PRACTICE_ACTIONS.get(driver.metric, "Targeted practice"),
                metric=driver.metric,
            )
        )
    return alerts


def trend_alerts(
    vectors: Sequence[MatchMetricVector],
    correlation: CorrelationAnalysis,
    window: int = 3,
) -> list[PredictiveAlert]:
    """
    Alert on surprising metrics that got worse across each of the last
    ``window`` matches. A match missing the metric breaks the trend.
    """
    alerts = []
    for finding in correlation.surprising_findings:
        recent = [v.get(finding.metric) for v in vectors[-window:]]
        recent = [value for value in recent if value is not None]
        if len(recent) < window or not is_worsening(recent, finding.metric):
            continue
        label = METRIC_LABELS[finding.metric]
        alerts.append(
            PredictiveAlert(
                alert_type=AlertType.TREND_RISK,
                severity=Severity.MODERATE,
                evidence=f"{label} over last {window} matches: "
                + " -> ".join(f"{v:.2f}" for v in recent),
                prediction=(
                    f"{label} keeps worsening and moves against rating in your matches; "
                    "expect results to stay unpredictable"
                ),
                recommended_action=finding.recommendation,
                metric=finding.metric,
            )
        )
    return alerts


def generate_alerts(
    vectors: Sequence[MatchMetricVector],
    tilt: TiltAnalysis,
    state: PerformanceState,
    correlation: CorrelationAnalysis,
    thresholds: ThresholdTable,
    config: DetectionConfig | None = None,
) -> tuple[PredictiveAlert, ...]:
    """All alerts for the window, most severe first."""
    config = config or DetectionConfig()
    alerts: list[PredictiveAlert] = []
    tilt_risk = tilt_alert(tilt)
    if tilt_risk:
        alerts.append(tilt_risk)
    alerts.extend(mechanical_alerts(vectors, correlation, thresholds, state))
    alerts.extend(trend_alerts(vectors, correlation, config.trend_window))

    alerts.sort(key=lambda a: -SEVERITY_ORDER[a.severity])
    logger.debug(f"Generated {len(alerts)} predictive alerts")
    return tuple(alerts)


def build_warning_system(
    vectors: Sequence[MatchMetricVector],
    baselines: Mapping[Metric, PersonalBaseline],
    tilt: TiltAnalysis,
    state: PerformanceState,
    correlation: CorrelationAnalysis,
    thresholds: ThresholdTable,
    config: DetectionConfig | None = None,
) -> PredictiveWarningSystem:
    detector = TiltDetector(config)
    return PredictiveWarningSystem(
        immediate_alerts=generate_alerts(vectors, tilt, state, correlation, thresholds, config),
        next_match=detector.predict_next_match(tilt, baselines[DOMINANT_METRIC]),
    )
