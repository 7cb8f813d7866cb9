"""
Pattern recognition over a chronological match window.

- Momentum: least-squares slope of rating across the window
- Cascades: longest run of matches 10%+ away from the median rating
- Contextual clusters: mean rating per map, time of day and session position
- Fatigue indicators: mechanics drifting the wrong way over the window
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd

from perfsight.analysis.extractor import vectors_to_frame
from perfsight.analysis.models import (
    CascadeAnalysis,
    ContextualCluster,
    MatchMetricVector,
    MomentumPattern,
    PatternAnalysis,
)
from perfsight.core.constants import RECOVERY_PATTERNS, Metric, TimeOfDay
from perfsight.core.utils import clamp, finite, safe_divide

logger = logging.getLogger(__name__)

# Rating change per match that counts as momentum
MOMENTUM_THRESHOLD = 0.05
STRONG_MOMENTUM = 0.15
MODERATE_MOMENTUM = 0.08
MIN_MOMENTUM_MATCHES = 3

# Cascade detection relative to the median rating
CASCADE_DEVIATION = 0.10
MIN_CASCADE_STREAK = 3
TREND_CHANGE = 0.05

MIN_CLUSTER_MATCHES = 2
LATE_SESSION_POSITION = 4


def fit_trend(values: Sequence[float]) -> tuple[float, float]:
    """Slope per step and R^2 of a least-squares line through ``values``."""
    y = np.asarray(values, dtype=float)
    if y.size < 2:
        return 0.0, 0.0
    x = np.arange(y.size, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    total = float(np.sum((y - y.mean()) ** 2))
    if total == 0:
        return finite(slope), 0.0
    residual = float(np.sum((y - (slope * x + intercept)) ** 2))
    return finite(slope), clamp(finite(1 - residual / total), 0.0, 1.0)


def _ratings(vectors: Sequence[MatchMetricVector]) -> list[float]:
    return [v.rating for v in vectors if v.rating is not None]


def detect_momentum(vectors: Sequence[MatchMetricVector]) -> MomentumPattern:
    ratings = _ratings(vectors)
    if len(ratings) < MIN_MOMENTUM_MATCHES:
        return MomentumPattern(
            "neutral", 0.0, 0.1, 0.0, "Insufficient data for momentum analysis"
        )

    slope, r_squared = fit_trend(ratings)
    if slope > MOMENTUM_THRESHOLD:
        direction = "positive"
    elif slope < -MOMENTUM_THRESHOLD:
        direction = "negative"
    else:
        direction = "neutral"

    strength = abs(slope)
    if direction == "neutral":
        description = "No clear momentum trend - performance stable"
    else:
        label = (
            "strong"
            if strength > STRONG_MOMENTUM
            else "moderate"
            if strength > MODERATE_MOMENTUM
            else "weak"
        )
        heading = "upward" if direction == "positive" else "downward"
        description = f"{label} {heading} momentum over {len(ratings)} matches"

    confidence = r_squared
    if len(ratings) < 5:
        confidence *= 0.6
    elif len(ratings) < 10:
        confidence *= 0.8
    return MomentumPattern(
        direction=direction,
        strength=strength,
        confidence=clamp(confidence, 0.1, 0.95),
        slope=slope,
        description=description,
    )


def analyze_cascades(vectors: Sequence[MatchMetricVector]) -> CascadeAnalysis:
    ratings = _ratings(vectors)
    if len(ratings) < MIN_CASCADE_STREAK:
        return CascadeAnalysis("none", 0, "stable", 1.0, "Not enough matches for cascade analysis")

    median = float(np.median(ratings))
    longest, longest_type = 0, "none"
    streak, streak_type = 0, "none"
    for rating in ratings:
        deviation = safe_divide(rating - median, median)
        kind = (
            "tilt"
            if deviation < -CASCADE_DEVIATION
            else "flow"
            if deviation > CASCADE_DEVIATION
            else "none"
        )
        if kind == "none":
            streak, streak_type = 0, "none"
        elif kind == streak_type:
            streak += 1
        else:
            streak, streak_type = 1, kind
        if streak > longest:
            longest, longest_type = streak, streak_type

    cascade_type = longest_type if longest >= MIN_CASCADE_STREAK else "none"

    trend = "stable"
    if len(ratings) >= 4:
        half = len(ratings) // 2
        earlier = float(np.mean(ratings[:half]))
        recent = float(np.mean(ratings[half:]))
        change = safe_divide(recent - earlier, earlier)
        if change > TREND_CHANGE:
            trend = "recovering"
        elif change < -TREND_CHANGE:
            trend = "accelerating"

    if cascade_type == "none":
        break_probability = 1.0
        description = "No sustained cascade detected"
    else:
        probability = RECOVERY_PATTERNS["recovery_success_rate"] - min(longest * 0.1, 0.4)
        if len(ratings) < 10:
            probability *= 0.8
        break_probability = clamp(probability, 0.1, 0.95)
        description = f"{longest}-match {cascade_type} streak relative to median rating {median:.2f}"

    return CascadeAnalysis(cascade_type, longest, trend, break_probability, description)


def _clusters_for(frame: pd.DataFrame, column: str, overall: float) -> list[ContextualCluster]:
    grouped = frame.groupby(column)["rating"].agg(["mean", "count"])
    clusters = []
    for key, row in grouped.iterrows():
        count = int(row["count"])
        if count < MIN_CLUSTER_MATCHES:
            continue
        if column != "session_position" and key in ("unknown", TimeOfDay.UNKNOWN.value):
            continue
        mean = float(row["mean"])
        deviation = safe_divide(mean - overall, overall) * 100
        if column == "session_position":
            label = f"match {int(key)} of session"
        else:
            label = str(key)
        direction = "above" if deviation >= 0 else "below"
        clusters.append(
            ContextualCluster(
                context_type="map" if column == "map_name" else column,
                label=label,
                match_count=count,
                average_rating=mean,
                deviation_pct=deviation,
                description=f"Rating {mean:.2f} on {label}, {abs(deviation):.1f}% {direction} average",
            )
        )
    return clusters


def find_contextual_clusters(vectors: Sequence[MatchMetricVector]) -> list[ContextualCluster]:
    frame = vectors_to_frame(vectors).dropna(subset=[Metric.RATING.value])
    if frame.empty:
        return []
    overall = float(frame["rating"].mean())
    clusters: list[ContextualCluster] = []
    for column in ("map_name", "time_of_day", "session_position"):
        clusters.extend(_clusters_for(frame, column, overall))
    return clusters


def detect_fatigue(vectors: Sequence[MatchMetricVector]) -> list[str]:
    indicators: list[str] = []
    if len(vectors) < 5:
        return indicators

    reaction = [v.reaction_time for v in vectors if v.reaction_time is not None]
    if len(reaction) >= 3 and fit_trend(reaction)[0] > 0.01:
        indicators.append("Reaction time increasing - possible fatigue")

    spray = [v.spray_accuracy for v in vectors if v.spray_accuracy is not None]
    if len(spray) >= 3 and fit_trend(spray)[0] < -0.01:
        indicators.append("Spray accuracy declining - possible concentration loss")

    early = [v.rating for v in vectors if v.rating is not None and v.session_position <= 2]
    late = [
        v.rating
        for v in vectors
        if v.rating is not None and v.session_position >= LATE_SESSION_POSITION
    ]
    if len(early) >= 2 and len(late) >= 2:
        drop = safe_divide(np.mean(early) - np.mean(late), np.mean(early))
        if drop > CASCADE_DEVIATION:
            indicators.append(
                f"Rating drops {drop * 100:.0f}% late in sessions - consider shorter sessions"
            )
    return indicators


def recognize_patterns(vectors: Sequence[MatchMetricVector]) -> PatternAnalysis:
    """Run every pattern detector over the window."""
    patterns = PatternAnalysis(
        momentum=detect_momentum(vectors),
        cascade=analyze_cascades(vectors),
        clusters=tuple(find_contextual_clusters(vectors)),
        fatigue_indicators=tuple(detect_fatigue(vectors)),
    )
    logger.debug(
        f"Patterns: momentum={patterns.momentum.direction} "
        f"cascade={patterns.cascade.cascade_type} clusters={len(patterns.clusters)}"
    )
    return patterns
