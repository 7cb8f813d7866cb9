"""
Flow-state detection: the positive mirror of tilt detection.

A match qualifies as flow when its rating sits more than one standard
deviation above the player's baseline and also reaches the tier's
"excellent" rating threshold.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from perfsight.analysis.models import (
    FlowAnalysis,
    MatchMetricVector,
    PersonalBaseline,
    ThresholdTable,
)
from perfsight.core.config import DetectionConfig
from perfsight.core.constants import ALL_METRICS, DOMINANT_METRIC, METRIC_LABELS, Metric
from perfsight.core.utils import format_percentage

logger = logging.getLogger(__name__)


class FlowDetector:
    """Finds matches of sustained positive deviation above baseline."""

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()

    def qualifies(
        self, vector: MatchMetricVector, baseline: PersonalBaseline, thresholds: ThresholdTable
    ) -> bool:
        value = vector.get(baseline.metric)
        if value is None or baseline.std == 0:
            return False
        if value <= baseline.value + self.config.flow_sigma * baseline.std:
            return False
        return thresholds.for_metric(baseline.metric).meets_excellent(value)

    def triggers_for(self, vector: MatchMetricVector, thresholds: ThresholdTable) -> list[str]:
        """Metrics at or beyond the tier's excellent threshold in one match."""
        triggers = []
        for metric in ALL_METRICS:
            value = vector.get(metric)
            if value is None:
                continue
            limits = thresholds.for_metric(metric)
            if limits.meets_excellent(value):
                op = "<=" if limits.lower_is_better else ">="
                triggers.append(
                    f"{METRIC_LABELS[metric]} {value:.2f} (excellent {op} {limits.excellent:g})"
                )
        return triggers

    def performance_boost(
        self, vectors: Sequence[MatchMetricVector], baseline: PersonalBaseline
    ) -> str:
        """Recent average rating relative to baseline, as a signed percentage."""
        recent = [
            v.get(baseline.metric)
            for v in vectors[-self.config.flow_boost_window :]
            if v.get(baseline.metric) is not None
        ]
        if not recent or baseline.value == 0:
            return "Unable to calculate"
        average = sum(recent) / len(recent)
        return format_percentage((average - baseline.value) / baseline.value * 100, signed=True)

    def detect(
        self,
        vectors: Sequence[MatchMetricVector],
        baselines: Mapping[Metric, PersonalBaseline],
        thresholds: ThresholdTable,
    ) -> FlowAnalysis:
        baseline = baselines[DOMINANT_METRIC]
        qualifying = [i for i, v in enumerate(vectors) if self.qualifies(v, baseline, thresholds)]

        streak = 0
        for vector in reversed(vectors):
            if vector.get(baseline.metric) is None:
                continue
            if not self.qualifies(vector, baseline, thresholds):
                break
            streak += 1

        if not qualifying:
            logger.debug("Flow detection: no qualifying matches")
            return FlowAnalysis(
                active=False,
                last_occurrence="Not detected in recent matches",
                triggers=(),
                performance_boost=self.performance_boost(vectors, baseline),
                frequency=0.0,
                qualifying_matches=0,
                streak_length=0,
            )

        last_pos = qualifying[-1]
        last = vectors[last_pos]
        recent_start = len(vectors) - self.config.recent_flow_window
        collapse_line = baseline.value - self.config.flow_sigma * baseline.std
        collapsed_since = any(
            v.get(baseline.metric) is not None and v.get(baseline.metric) < collapse_line
            for v in vectors[last_pos + 1 :]
        )
        active = last_pos >= recent_start and not collapsed_since

        if last.timestamp is not None:
            occurrence = last.timestamp.isoformat()
        else:
            occurrence = f"match {last.match_id}"

        logger.debug(
            f"Flow detection: active={active} qualifying={len(qualifying)} streak={streak}"
        )
        return FlowAnalysis(
            active=active,
            last_occurrence=occurrence,
            triggers=tuple(self.triggers_for(last, thresholds)),
            performance_boost=self.performance_boost(vectors, baseline),
            frequency=len(qualifying) / len(vectors),
            qualifying_matches=len(qualifying),
            streak_length=streak,
        )
