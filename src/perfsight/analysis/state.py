"""
Performance state classification.

Resolves tilt, flow and per-metric deviation into exactly one
PerformanceStateKind. Candidate states are evaluated independently and the
first triggered one in STATE_PRECEDENCE wins; baseline_normal always
triggers, so every evaluation yields a single state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from perfsight.analysis.baseline import deviation_from_baseline
from perfsight.analysis.models import (
    FlowAnalysis,
    MatchMetricVector,
    PerformanceState,
    PersonalBaseline,
    TiltAnalysis,
    frozen_map,
)
from perfsight.core.config import DetectionConfig
from perfsight.core.constants import (
    ALL_METRICS,
    DOMINANT_METRIC,
    LOWER_IS_BETTER,
    MECHANICAL_PAIRS,
    METRIC_LABELS,
    ConfidenceLevel,
    Metric,
    PerformanceStateKind,
    Severity,
)
from perfsight.core.utils import clamp

logger = logging.getLogger(__name__)

# First triggered state wins
STATE_PRECEDENCE: tuple[PerformanceStateKind, ...] = (
    PerformanceStateKind.TILT_CASCADE,
    PerformanceStateKind.FLOW_STATE,
    PerformanceStateKind.MECHANICAL_INCONSISTENCY,
    PerformanceStateKind.BASELINE_NORMAL,
)

SAMPLE_FACTORS = {
    ConfidenceLevel.LOW: 0.2,
    ConfidenceLevel.MEDIUM: 0.6,
    ConfidenceLevel.HIGH: 1.0,
}

STATE_RECOMMENDATIONS: dict[PerformanceStateKind, tuple[str, ...]] = {
    PerformanceStateKind.TILT_CASCADE: (
        "Stop queueing and take a break before the next match",
        "Review the last losses for repeated mistakes once calm",
    ),
    PerformanceStateKind.FLOW_STATE: (
        "Keep the current routine - warm-up, schedule and settings are working",
        "Note what changed recently so it can be repeated",
    ),
    PerformanceStateKind.MECHANICAL_INCONSISTENCY: (
        "Focus on aim training and mechanical consistency",
        "Run a fixed warm-up routine before every session",
    ),
    PerformanceStateKind.BASELINE_NORMAL: (
        "Performance is within your normal range - keep building on fundamentals",
    ),
}


@dataclass(frozen=True)
class StateSignal:
    """Outcome of evaluating one candidate state."""

    triggered: bool
    magnitude: float = 0.0  # strength of the signal, in standard deviations
    evidence: tuple[str, ...] = ()


def goodness_z(value: float | None, baseline: PersonalBaseline) -> float:
    """Deviation oriented so that positive always means better than usual."""
    z = deviation_from_baseline(value, baseline)
    return -z if baseline.metric in LOWER_IS_BETTER else z


class PerformanceStateClassifier:
    """Picks the single current performance state for a match window."""

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()
        self._evaluators: dict[PerformanceStateKind, Callable[..., StateSignal]] = {
            PerformanceStateKind.TILT_CASCADE: self._tilt_signal,
            PerformanceStateKind.FLOW_STATE: self._flow_signal,
            PerformanceStateKind.MECHANICAL_INCONSISTENCY: self._mechanical_signal,
            PerformanceStateKind.BASELINE_NORMAL: self._normal_signal,
        }
        missing = set(PerformanceStateKind) - set(self._evaluators)
        if missing or set(STATE_PRECEDENCE) != set(PerformanceStateKind):
            raise RuntimeError(f"State evaluators incomplete: {sorted(missing)}")

    # ------------------------------------------------------------------
    # Candidate signals
    # ------------------------------------------------------------------

    def _tilt_signal(self, latest, baselines, tilt: TiltAnalysis, flow) -> StateSignal:
        if not (tilt.active and tilt.severity == Severity.HIGH):
            return StateSignal(False)
        magnitude = max(
            [i.sigma_distance for i in tilt.indicators]
            + [abs(goodness_z(latest.get(DOMINANT_METRIC), baselines[DOMINANT_METRIC]))]
        )
        evidence = (f"Tilt cascade of {tilt.cascade_length} matches",) + tilt.triggers
        return StateSignal(True, magnitude, evidence)

    def _flow_signal(self, latest, baselines, tilt, flow: FlowAnalysis) -> StateSignal:
        if not flow.active:
            return StateSignal(False)
        magnitude = goodness_z(latest.get(DOMINANT_METRIC), baselines[DOMINANT_METRIC])
        evidence = (f"Flow match at {flow.last_occurrence}",) + flow.triggers
        return StateSignal(True, max(magnitude, 1.0), evidence)

    def _mechanical_signal(self, latest, baselines, tilt, flow) -> StateSignal:
        limit = self.config.mechanical_divergence_sigma
        magnitude = 0.0
        evidence = []
        for first, second in MECHANICAL_PAIRS:
            a, b = latest.get(first), latest.get(second)
            if a is None or b is None:
                continue
            za = goodness_z(a, baselines[first])
            zb = goodness_z(b, baselines[second])
            if za * zb < 0 and abs(za) >= limit and abs(zb) >= limit:
                magnitude = max(magnitude, abs(za), abs(zb))
                evidence.append(
                    f"{METRIC_LABELS[first]} {a:.2f} ({za:+.1f} sigma) diverges from "
                    f"{METRIC_LABELS[second]} {b:.2f} ({zb:+.1f} sigma)"
                )
        return StateSignal(bool(evidence), magnitude, tuple(evidence))

    def _normal_signal(self, latest, baselines, tilt, flow) -> StateSignal:
        z = abs(goodness_z(latest.get(DOMINANT_METRIC), baselines[DOMINANT_METRIC]))
        rating = latest.get(DOMINANT_METRIC)
        if rating is None:
            evidence = ("No rating recorded for the latest match",)
        else:
            evidence = (
                f"Rating {rating:.2f} is {z:.1f} std devs from baseline "
                f"{baselines[DOMINANT_METRIC].value:.2f}",
            )
        # Closer to baseline means more confidently normal
        return StateSignal(True, max(0.0, 3.0 - z), evidence)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def baseline_deviation(
        self, latest: MatchMetricVector, baselines: Mapping[Metric, PersonalBaseline]
    ) -> Mapping[str, str]:
        deviations: dict[str, str] = {}
        for metric in ALL_METRICS:
            baseline = baselines.get(metric)
            value = latest.get(metric)
            if baseline is None or value is None or baseline.sample_size < 2:
                continue
            z = deviation_from_baseline(value, baseline)
            deviations[metric.value] = (
                f"{z:+.2f} std devs ({value:.2f} vs baseline {baseline.value:.2f})"
            )
        if not deviations:
            deviations["general"] = "Unable to calculate baseline deviation"
        return frozen_map(deviations)

    def confidence(self, signal: StateSignal, baselines: Mapping[Metric, PersonalBaseline]) -> float:
        sample_factor = SAMPLE_FACTORS[baselines[DOMINANT_METRIC].confidence_level]
        magnitude_factor = clamp(signal.magnitude / 3.0, 0.0, 1.0)
        return clamp(0.4 + 0.3 * sample_factor + 0.3 * magnitude_factor, 0.0, 1.0)

    def classify(
        self,
        vectors: Sequence[MatchMetricVector],
        baselines: Mapping[Metric, PersonalBaseline],
        tilt: TiltAnalysis,
        flow: FlowAnalysis,
    ) -> PerformanceState:
        latest = vectors[-1]
        for kind in STATE_PRECEDENCE:
            signal = self._evaluators[kind](latest, baselines, tilt, flow)
            if signal.triggered:
                break

        logger.debug(f"Performance state: {kind.value}")
        return PerformanceState(
            classification=kind,
            confidence=self.confidence(signal, baselines),
            evidence=signal.evidence,
            baseline_deviation=self.baseline_deviation(latest, baselines),
            recommendations=STATE_RECOMMENDATIONS[kind],
        )
