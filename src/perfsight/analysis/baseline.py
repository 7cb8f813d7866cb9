"""
Personal baseline tracking.

A baseline is a statistical summary of one metric over the supplied match
window: sample mean, Bessel-corrected variance and a confidence interval
around the mean. Baselines are recomputed from the window on every call;
nothing is cached or persisted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from perfsight.analysis.models import (
    ExtendedProcessedStats,
    MatchMetricVector,
    PersonalBaseline,
    frozen_map,
)
from perfsight.core.config import BaselineConfig
from perfsight.core.constants import ALL_METRICS, ConfidenceLevel, Metric, Severity
from perfsight.core.utils import finite, safe_divide

logger = logging.getLogger(__name__)

# Baseline older than this (relative to the caller's reference time) loses confidence
STALE_BASELINE_DAYS = 30


@dataclass(frozen=True)
class DeviationCheck:
    """How far one value sits from a baseline."""

    is_significant: bool
    severity: Severity
    standard_deviations: float
    direction: str  # above | below | none
    description: str

    def to_dict(self) -> dict:
        return {
            "is_significant": self.is_significant,
            "severity": self.severity.value,
            "standard_deviations": round(self.standard_deviations, 2),
            "direction": self.direction,
            "description": self.description,
        }


@dataclass(frozen=True)
class BaselineQuality:
    reliability: str  # excellent | good | acceptable | limited | unreliable
    confidence: float
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "reliability": self.reliability,
            "confidence": round(self.confidence, 2),
            "recommendations": list(self.recommendations),
        }


def confidence_level_for(sample_size: int, config: BaselineConfig | None = None) -> ConfidenceLevel:
    config = config or BaselineConfig()
    if sample_size < config.low_confidence_below:
        return ConfidenceLevel.LOW
    if sample_size >= config.high_confidence_from:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.MEDIUM


def empty_baseline(metric: Metric) -> PersonalBaseline:
    """Zero-sample baseline for a metric no match reported."""
    return PersonalBaseline(
        metric=metric,
        value=0.0,
        confidence_interval=(0.0, 0.0),
        sample_size=0,
        variance=0.0,
        confidence_level=ConfidenceLevel.LOW,
        last_updated=None,
    )


def summarize_values(
    metric: Metric,
    values: Sequence[float],
    config: BaselineConfig | None = None,
    last_updated: datetime | None = None,
) -> PersonalBaseline:
    """Baseline from an already-filtered list of present values."""
    config = config or BaselineConfig()
    if not values:
        return empty_baseline(metric)

    arr = np.asarray(values, dtype=float)
    n = int(arr.size)
    mean = finite(arr.mean())
    variance = finite(arr.var(ddof=1)) if n > 1 else 0.0
    variance = max(variance, 0.0)

    if n >= 2:
        half_width = finite(config.ci_z * math.sqrt(variance / n))
        low, high = mean - half_width, mean + half_width
        if arr.min() >= 0:
            # Metrics that cannot go negative keep a non-negative interval
            low = max(0.0, low)
    else:
        low = high = mean

    return PersonalBaseline(
        metric=metric,
        value=mean,
        confidence_interval=(min(low, mean), max(high, mean)),
        sample_size=n,
        variance=variance,
        confidence_level=confidence_level_for(n, config),
        last_updated=last_updated,
    )


def compute_baseline(
    vectors: Sequence[MatchMetricVector],
    metric: Metric,
    config: BaselineConfig | None = None,
) -> PersonalBaseline:
    """
    Compute the baseline for one metric over the window.

    Matches without a value for the metric are excluded; sample_size is the
    number of contributing matches. ``last_updated`` is the timestamp of the
    newest contributing match, so the result depends only on the input.
    """
    metric = Metric(metric)
    present = [v for v in vectors if v.get(metric) is not None]
    stamps = [v.timestamp for v in present if v.timestamp is not None]
    return summarize_values(
        metric,
        [v.get(metric) for v in present],
        config,
        last_updated=max(stamps) if stamps else None,
    )


def compute_baselines(
    vectors: Sequence[MatchMetricVector], config: BaselineConfig | None = None
) -> Mapping[Metric, PersonalBaseline]:
    """Baselines for every metric, keyed by Metric."""
    baselines = {metric: compute_baseline(vectors, metric, config) for metric in ALL_METRICS}
    logger.debug(
        "Baseline sample sizes: %s",
        {m.value: b.sample_size for m, b in baselines.items()},
    )
    return frozen_map(baselines)


def compute_map_baseline(
    vectors: Sequence[MatchMetricVector],
    map_name: str,
    metric: Metric = Metric.RATING,
    config: BaselineConfig | None = None,
) -> PersonalBaseline | None:
    """Baseline restricted to one map, or None below the minimum map sample."""
    config = config or BaselineConfig()
    on_map = [v for v in vectors if v.map_name == map_name and v.get(metric) is not None]
    if len(on_map) < config.min_map_sample:
        return None
    return compute_baseline(on_map, metric, config)


def deviation_from_baseline(value: float | None, baseline: PersonalBaseline) -> float:
    """Signed distance of ``value`` from the baseline mean, in standard deviations."""
    if value is None or baseline.sample_size == 0:
        return 0.0
    return finite(safe_divide(value - baseline.value, baseline.std))


def detect_significant_deviation(
    value: float, baseline: PersonalBaseline, config: BaselineConfig | None = None
) -> DeviationCheck:
    """Classify how unusual ``value`` is for this player (>=1 sigma moderate, >=2 sigma high)."""
    config = config or BaselineConfig()
    if baseline.sample_size < config.low_confidence_below or baseline.std == 0:
        return DeviationCheck(
            is_significant=False,
            severity=Severity.LOW,
            standard_deviations=0.0,
            direction="none",
            description="Insufficient sample size for reliable deviation detection",
        )

    distance = abs(value - baseline.value) / baseline.std
    direction = "above" if value > baseline.value else "below"

    if distance >= 2.0:
        return DeviationCheck(
            True,
            Severity.HIGH,
            distance,
            direction,
            f"Performance significantly {direction} personal baseline (2+ sigma)",
        )
    if distance >= 1.0:
        return DeviationCheck(
            True,
            Severity.MODERATE,
            distance,
            direction,
            f"Performance moderately {direction} personal baseline (1+ sigma)",
        )
    return DeviationCheck(
        False, Severity.LOW, distance, direction, "Performance within normal baseline range"
    )


def evaluate_baseline_quality(
    baseline: PersonalBaseline, as_of: datetime | None = None
) -> BaselineQuality:
    """
    Rate how far a baseline can be trusted.

    ``as_of`` is the caller's reference time; when given, baselines whose
    newest match is more than 30 days older lose a fifth of their confidence.
    """
    recommendations: list[str] = []
    n = baseline.sample_size

    if n >= 30:
        reliability, confidence = "excellent", 0.95
    elif n >= 15:
        reliability, confidence = "good", 0.85
    elif n >= 10:
        reliability, confidence = "acceptable", 0.70
        recommendations.append(f"Play {15 - n} more matches for improved baseline reliability")
    elif n >= 5:
        reliability, confidence = "limited", 0.50
        recommendations.append(f"Need {10 - n} more matches for a reliable baseline")
    else:
        reliability, confidence = "unreliable", 0.20
        recommendations.append("Insufficient data for meaningful baseline analysis")

    if as_of is not None and baseline.last_updated is not None:
        age_days = (as_of - baseline.last_updated).total_seconds() / 86400
        if age_days > STALE_BASELINE_DAYS:
            confidence *= 0.8
            recommendations.append(
                "Baseline is over 30 days old - consider updating with recent matches"
            )

    return BaselineQuality(reliability, round(confidence, 2), tuple(recommendations))


def build_extended_stats(
    vectors: Sequence[MatchMetricVector],
    baselines: Mapping[Metric, PersonalBaseline],
    config: BaselineConfig | None = None,
) -> tuple[ExtendedProcessedStats, ...]:
    """Per-match processed stats annotated with the rating baseline."""
    config = config or BaselineConfig()
    rating_baseline = baselines[Metric.RATING]

    map_means: dict[str, float | None] = {}
    for map_name in sorted({v.map_name for v in vectors}):
        map_baseline = compute_map_baseline(vectors, map_name, Metric.RATING, config)
        map_means[map_name] = map_baseline.value if map_baseline else None

    stats = []
    for v in vectors:
        map_mean = map_means.get(v.map_name)
        map_perf = None
        if map_mean and v.rating is not None:
            map_perf = finite((v.rating - map_mean) / map_mean * 100)

        stats.append(
            ExtendedProcessedStats(
                match_id=v.match_id,
                rating=v.rating,
                kd_ratio=v.kd_ratio,
                adr=v.adr,
                kast=v.kast,
                headshot_percentage=v.headshot_percentage,
                games_played=1,
                personal_baseline=rating_baseline,
                deviation_from_baseline=deviation_from_baseline(v.rating, rating_baseline),
                confidence_level=rating_baseline.confidence_level,
                preaim=v.preaim,
                reaction_time=v.reaction_time,
                spray_accuracy=v.spray_accuracy,
                utility_efficiency=v.utility_efficiency,
                session_position=v.session_position,
                time_of_day=v.time_of_day,
                map_specific_performance=map_perf,
            )
        )
    return tuple(stats)
