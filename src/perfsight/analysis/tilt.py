"""
Tilt detection.

Looks for sustained degradation relative to the player's own baseline:
per-metric indicators on the latest match, plus the length of the trailing
run of matches whose rating sits more than one standard deviation below the
rating baseline. A single bad match is noise; tilt needs a cascade.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from perfsight.analysis.models import (
    MatchMetricVector,
    NextMatchPrediction,
    PersonalBaseline,
    ThresholdTable,
    TiltAnalysis,
    TiltIndicator,
)
from perfsight.core.config import DetectionConfig
from perfsight.core.constants import (
    DOMINANT_METRIC,
    LOWER_IS_BETTER,
    METRIC_LABELS,
    RECOVERY_PATTERNS,
    SEVERITY_ORDER,
    TILT_MONITORED_METRICS,
    Metric,
    Severity,
    TiltIndicatorType,
)

logger = logging.getLogger(__name__)

# Expected rating loss in the next match while tilted
SEVERITY_DEGRADATION = {
    Severity.LOW: 0.05,
    Severity.MODERATE: 0.15,
    Severity.HIGH: 0.25,
}


def _max_severity(a: Severity, b: Severity) -> Severity:
    return a if SEVERITY_ORDER[a] >= SEVERITY_ORDER[b] else b


class TiltDetector:
    """Detects degradation cascades in a chronological match window."""

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()

    # ------------------------------------------------------------------
    # Indicators
    # ------------------------------------------------------------------

    def breach_line(self, baseline: PersonalBaseline) -> float:
        """Value beyond which a metric counts as degraded."""
        margin = self.config.tilt_sigma * baseline.std
        if baseline.metric in LOWER_IS_BETTER:
            return baseline.value + margin
        return baseline.value - margin

    def is_breaching(self, value: float, baseline: PersonalBaseline) -> bool:
        if baseline.std == 0:
            return False
        line = self.breach_line(baseline)
        if baseline.metric in LOWER_IS_BETTER:
            return value > line
        return value < line

    def indicator_severity(self, sigma_distance: float) -> Severity:
        if sigma_distance > self.config.high_severity_sigma:
            return Severity.HIGH
        if sigma_distance >= 1.0:
            return Severity.MODERATE
        return Severity.LOW

    def find_indicators(
        self,
        vectors: Sequence[MatchMetricVector],
        baselines: Mapping[Metric, PersonalBaseline],
        thresholds: ThresholdTable,
    ) -> list[TiltIndicator]:
        """Indicators for every monitored metric the latest match degrades on."""
        if not vectors:
            return []
        latest = vectors[-1]
        indicators = []

        for metric, indicator_type in TILT_MONITORED_METRICS.items():
            value = latest.get(metric)
            baseline = baselines.get(metric)
            if value is None or baseline is None or baseline.sample_size < 2:
                continue
            if not self.is_breaching(value, baseline):
                continue
            if not thresholds.for_metric(metric).is_worse_than_solid(value):
                continue

            distance = abs(value - baseline.value) / baseline.std
            label = METRIC_LABELS[metric]
            direction = "above" if metric in LOWER_IS_BETTER else "below"
            indicators.append(
                TiltIndicator(
                    type=indicator_type,
                    metric=metric,
                    severity=self.indicator_severity(distance),
                    value=value,
                    threshold=self.breach_line(baseline),
                    sigma_distance=distance,
                    description=(
                        f"{label} {value:.2f} is {distance:.1f} std devs {direction} "
                        f"baseline {baseline.value:.2f}"
                    ),
                )
            )
        return indicators

    def cascade_length(
        self, vectors: Sequence[MatchMetricVector], baseline: PersonalBaseline
    ) -> int:
        """
        Trailing matches whose dominant metric stays beyond the breach line.

        Counting starts at the newest match and stops at the first
        non-breaching one; matches with no value are skipped.
        """
        if baseline.std == 0:
            return 0
        length = 0
        for vector in reversed(vectors):
            value = vector.get(baseline.metric)
            if value is None:
                continue
            if not self.is_breaching(value, baseline):
                break
            length += 1
        return length

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def calculate_severity(self, indicators: Sequence[TiltIndicator], cascade_length: int) -> Severity:
        """
        Overall severity from indicator severities, escalated by cascade length.

        Indicator scores (1-3) are averaged and multiplied by up to 2x for
        several concurrent indicators. A cascade of ``min_cascade_length`` is
        at least moderate; ``high_cascade_length`` or more is high.
        """
        severity = Severity.LOW
        if indicators:
            average = sum(SEVERITY_ORDER[i.severity] for i in indicators) / len(indicators)
            multiplier = min(1 + (len(indicators) - 1) * 0.2, 2.0)
            score = average * multiplier
            if score >= 2.5:
                severity = Severity.HIGH
            elif score >= 1.5:
                severity = Severity.MODERATE

        if cascade_length >= self.config.high_cascade_length:
            severity = Severity.HIGH
        elif cascade_length >= self.config.min_cascade_length:
            severity = _max_severity(severity, Severity.MODERATE)
        return severity

    def recovery_prediction(self, indicators: Sequence[TiltIndicator], cascade_length: int) -> str:
        if not indicators and cascade_length < self.config.min_cascade_length:
            return "No recovery needed - performance stable"
        matches = round(RECOVERY_PATTERNS["average_recovery_matches"] + cascade_length * 0.5)
        chance = max(0.3, RECOVERY_PATTERNS["recovery_success_rate"] - cascade_length * 0.1)
        return f"Expected recovery in {matches} matches with {round(chance * 100)}% probability"

    def recommended_action(
        self, severity: Severity, indicators: Sequence[TiltIndicator], cascade_length: int, active: bool
    ) -> str:
        types = {i.type for i in indicators}
        if not active and not indicators:
            return "Continue current performance approach"
        if not active and severity == Severity.HIGH:
            # Without a cascade the advice tops out at moderate
            severity = Severity.MODERATE

        if severity == Severity.LOW:
            return "Monitor performance - consider short break if trend continues"

        if severity == Severity.MODERATE:
            if TiltIndicatorType.REACTION_TIME in types:
                return "Take 15-30 minute break to reset focus and reaction time"
            return "Warm-up reset: play a short aim routine before queueing again"

        if cascade_length >= self.config.long_cascade_length:
            return "Take a break (1+ hour) - long losing cascade, stop queueing for now"
        if {TiltIndicatorType.REACTION_TIME, TiltIndicatorType.PREAIM_DEGRADATION} <= types:
            return "Take extended break (1+ hour) - multiple mechanical indicators suggest fatigue"
        if TiltIndicatorType.RATING_CASCADE in types or active:
            return "Stop playing ranked matches - practice aim/mechanics before returning"
        return "Take significant break - performance severely degraded"

    def detect(
        self,
        vectors: Sequence[MatchMetricVector],
        baselines: Mapping[Metric, PersonalBaseline],
        thresholds: ThresholdTable,
    ) -> TiltAnalysis:
        """Analyze the window for tilt."""
        indicators = self.find_indicators(vectors, baselines, thresholds)
        cascade = self.cascade_length(vectors, baselines[DOMINANT_METRIC])
        active = cascade >= self.config.min_cascade_length
        severity = self.calculate_severity(indicators, cascade)

        triggers = [i.description for i in indicators]
        if active:
            triggers.append(f"Rating below baseline for {cascade} consecutive matches")

        logger.debug(
            f"Tilt detection: active={active} severity={severity.value} "
            f"cascade={cascade} indicators={len(indicators)}"
        )
        return TiltAnalysis(
            active=active,
            severity=severity,
            triggers=tuple(triggers),
            cascade_length=cascade,
            recovery_prediction=self.recovery_prediction(indicators, cascade),
            recommended_action=self.recommended_action(severity, indicators, cascade, active),
            indicators=tuple(indicators),
        )

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    def predict_next_match(
        self, tilt: TiltAnalysis, baseline: PersonalBaseline
    ) -> NextMatchPrediction:
        """Forecast next-match rating from the current tilt state."""
        base_rating = baseline.value if baseline.sample_size > 0 else 1.0

        if not tilt.active:
            return NextMatchPrediction(
                expected_rating=base_rating,
                confidence=0.8,
                recovery_probability=1.0,
                recommended_action="Performance is stable, continue current approach",
            )

        if tilt.severity == Severity.HIGH:
            action = (
                "Strongly recommend break before next match - "
                "high probability of continued poor performance"
            )
        elif tilt.cascade_length >= self.config.high_cascade_length:
            action = "Pattern suggests continued decline - consider warmup routine before next match"
        else:
            action = "Monitor closely - adjust strategy if performance doesn't improve"

        return NextMatchPrediction(
            expected_rating=base_rating * (1 - SEVERITY_DEGRADATION[tilt.severity]),
            confidence=max(0.2, 0.7 - tilt.cascade_length * 0.1),
            recovery_probability=max(
                0.2, RECOVERY_PATTERNS["recovery_success_rate"] - tilt.cascade_length * 0.1
            ),
            recommended_action=action,
        )
