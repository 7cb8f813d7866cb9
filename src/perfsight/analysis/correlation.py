"""
Correlation analysis between per-match metrics and rating.

Pearson correlation with a two-tailed t-test p-value (scipy's t
distribution) and a Fisher-z confidence interval. Samples are built from
matches where both metrics are present. Below the minimum sample size, or
when either series is constant, results collapse to coefficient 0 and low
significance instead of propagating NaN.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np
from scipy import stats

from perfsight.analysis.extractor import metric_series
from perfsight.analysis.models import (
    AnalysisQuality,
    CorrelationAnalysis,
    CorrelationResult,
    LaggedCorrelation,
    MatchMetricVector,
    PerformanceDriver,
    SurprisingFinding,
    frozen_map,
)
from perfsight.core.config import CorrelationConfig
from perfsight.core.constants import (
    ALL_METRICS,
    CORRELATION_METRICS,
    EXPECTED_CORRELATION_SIGN,
    LOWER_IS_BETTER,
    METRIC_LABELS,
    Metric,
    Significance,
)
from perfsight.core.utils import clamp, finite

logger = logging.getLogger(__name__)

# |r| cutoffs for describing strength
STRENGTH_LABELS: tuple[tuple[float, str], ...] = (
    (0.9, "very strong"),
    (0.7, "strong"),
    (0.5, "moderate"),
    (0.3, "weak"),
)

# Sample sizes for validate_analysis_quality
MIN_QUALITY_SAMPLE = 10
RECOMMENDED_QUALITY_SAMPLE = 30

SIGNIFICANCE_RANK = {Significance.LOW: 0, Significance.MODERATE: 1, Significance.HIGH: 2}

_PERFECT = 1e-12


def correlation_strength(abs_coefficient: float) -> str:
    for cutoff, label in STRENGTH_LABELS:
        if abs_coefficient >= cutoff:
            return label
    return "negligible"


def paired_values(
    x: Sequence[float | None], y: Sequence[float | None]
) -> tuple[np.ndarray, np.ndarray]:
    """Keep only positions where both series have a value."""
    pairs = [(a, b) for a, b in zip(x, y, strict=False) if a is not None and b is not None]
    if not pairs:
        return np.empty(0), np.empty(0)
    arr = np.asarray(pairs, dtype=float)
    return arr[:, 0], arr[:, 1]


def _coefficient(x: np.ndarray, y: np.ndarray) -> float | None:
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denominator == 0 or not math.isfinite(denominator):
        return None
    return clamp(float(np.dot(dx, dy)) / denominator, -1.0, 1.0)


def p_value_for(r: float, n: int) -> float:
    """Two-tailed p-value of the t-test on r with n - 2 degrees of freedom."""
    if n < 3:
        return 1.0
    remainder = 1.0 - r * r
    if remainder <= _PERFECT:
        return 0.0
    t_stat = r * math.sqrt((n - 2) / remainder)
    return clamp(finite(2 * stats.t.sf(abs(t_stat), n - 2), 1.0), 0.0, 1.0)


def fisher_interval(r: float, n: int, z_crit: float = 1.96) -> tuple[float, float]:
    """95% confidence interval for r through the Fisher z-transform."""
    if n <= 3:
        return (-1.0, 1.0)
    if abs(r) >= 1.0 - _PERFECT:
        return (r, r)
    z = math.atanh(r)
    se = 1.0 / math.sqrt(n - 3)
    low, high = math.tanh(z - z_crit * se), math.tanh(z + z_crit * se)
    return (clamp(min(low, r), -1.0, 1.0), clamp(max(high, r), -1.0, 1.0))


def spearman(x: Sequence[float | None], y: Sequence[float | None]) -> float:
    """Rank correlation over paired values; 0 when undefined."""
    xs, ys = paired_values(x, y)
    if xs.size < 3:
        return 0.0
    coefficient = _coefficient(stats.rankdata(xs), stats.rankdata(ys))
    return coefficient if coefficient is not None else 0.0


def _zero_result(n: int, metric: Metric | None) -> CorrelationResult:
    return CorrelationResult(
        coefficient=0.0,
        p_value=1.0,
        significance=Significance.LOW,
        sample_size=n,
        confidence_interval=(0.0, 0.0),
        metric=metric,
    )


def pearson(
    x: Sequence[float | None],
    y: Sequence[float | None],
    config: CorrelationConfig | None = None,
    metric: Metric | None = None,
) -> CorrelationResult:
    """Pearson correlation of x against y with significance."""
    config = config or CorrelationConfig()
    xs, ys = paired_values(x, y)
    n = int(xs.size)
    if n < config.min_sample_size:
        return _zero_result(n, metric)

    r = _coefficient(xs, ys)
    if r is None:
        return _zero_result(n, metric)

    p = p_value_for(r, n)
    if p < config.high_p:
        significance = Significance.HIGH
    elif p < config.moderate_p:
        significance = Significance.MODERATE
    else:
        significance = Significance.LOW

    return CorrelationResult(
        coefficient=r,
        p_value=p,
        significance=significance,
        sample_size=n,
        confidence_interval=fisher_interval(r, n),
        metric=metric,
        spearman=spearman(x, y),
    )


def lagged_correlation(
    x: Sequence[float | None],
    y: Sequence[float | None],
    max_lag: int = 3,
    config: CorrelationConfig | None = None,
) -> tuple[LaggedCorrelation, ...]:
    """
    Correlate x with y shifted later by 0..max_lag matches.

    A strong result at lag k means x in one match relates to y k matches later.
    """
    results = []
    for lag in range(0, max(0, max_lag) + 1):
        if lag >= len(x):
            break
        shifted_x = list(x[: len(x) - lag])
        shifted_y = list(y[lag:])
        result = pearson(shifted_x, shifted_y, config)
        strength = correlation_strength(abs(result.coefficient))
        direction = "positive" if result.coefficient > 0 else "negative"
        if result.coefficient == 0:
            description = f"No measurable correlation at {lag} match delay"
        elif lag == 0:
            description = f"{strength} {direction} correlation with no time delay"
        else:
            description = f"{strength} {direction} correlation with {lag} match delay"
        results.append(LaggedCorrelation(lag, result, description))
    return tuple(results)


def correlation_matrix(
    vectors: Sequence[MatchMetricVector], config: CorrelationConfig | None = None
) -> dict[str, dict[str, float]]:
    """Pairwise Pearson coefficients across every metric."""
    series = {m: metric_series(vectors, m) for m in ALL_METRICS}
    matrix: dict[str, dict[str, float]] = {}
    for row in ALL_METRICS:
        matrix[row.value] = {}
        for col in ALL_METRICS:
            if row == col:
                present = sum(1 for value in series[row] if value is not None)
                matrix[row.value][col.value] = 1.0 if present else 0.0
            elif col.value in matrix and row.value in matrix[col.value]:
                matrix[row.value][col.value] = matrix[col.value][row.value]
            else:
                matrix[row.value][col.value] = pearson(series[row], series[col], config).coefficient
    return matrix


def validate_analysis_quality(sample_size: int, missing_data_percentage: float) -> AnalysisQuality:
    """Grade the reliability of a correlation analysis."""
    warnings: list[str] = []
    recommendations: list[str] = []

    if sample_size < MIN_QUALITY_SAMPLE:
        quality = "poor"
        warnings.append(f"Sample size too small ({sample_size} < {MIN_QUALITY_SAMPLE})")
        recommendations.append(
            f"Need at least {MIN_QUALITY_SAMPLE - sample_size} more matches "
            "for basic correlation analysis"
        )
    elif sample_size < RECOMMENDED_QUALITY_SAMPLE:
        quality = "acceptable"
        warnings.append(f"Limited sample size ({sample_size} < {RECOMMENDED_QUALITY_SAMPLE})")
        recommendations.append(
            f"{RECOMMENDED_QUALITY_SAMPLE - sample_size} more matches recommended for reliable results"
        )
    elif sample_size < 50:
        quality = "good"
    else:
        quality = "excellent"

    if missing_data_percentage > 30:
        quality = "poor"
        warnings.append(f"High missing data rate ({missing_data_percentage:.1f}%)")
        recommendations.append("Extended metrics may not be available for all matches")
    elif missing_data_percentage > 15:
        warnings.append(f"Moderate missing data rate ({missing_data_percentage:.1f}%)")
        recommendations.append("Some extended metrics have limited data")

    return AnalysisQuality(quality, tuple(warnings), tuple(recommendations))


class CorrelationAnalyzer:
    """Correlates every candidate metric with rating and summarizes the drivers."""

    def __init__(self, config: CorrelationConfig | None = None) -> None:
        self.config = config or CorrelationConfig()

    def correlate_all(
        self, vectors: Sequence[MatchMetricVector]
    ) -> dict[Metric, CorrelationResult]:
        ratings = metric_series(vectors, Metric.RATING)
        return {
            metric: pearson(metric_series(vectors, metric), ratings, self.config, metric)
            for metric in CORRELATION_METRICS
        }

    def threshold_text(self, values: Sequence[float], coefficient: float) -> str:
        if not values:
            return "No threshold available"
        arr = np.asarray(values, dtype=float)
        mean = float(arr.mean())
        std = float(arr.std())
        if coefficient > 0:
            return f"Target: > {mean + std:.2f} (current avg: {mean:.2f})"
        return f"Target: < {mean - std:.2f} (current avg: {mean:.2f})"

    def find_drivers(
        self, vectors: Sequence[MatchMetricVector], results: dict[Metric, CorrelationResult]
    ) -> list[PerformanceDriver]:
        """Metrics with at least moderate significance, strongest first, capped to top_k."""
        candidates = [
            r
            for r in results.values()
            if SIGNIFICANCE_RANK[r.significance] >= SIGNIFICANCE_RANK[Significance.MODERATE]
        ]
        candidates.sort(key=lambda r: (-abs(r.coefficient), r.metric.value))

        drivers = []
        for result in candidates[: self.config.top_k]:
            metric = result.metric
            values = [v.get(metric) for v in vectors if v.get(metric) is not None]
            direction = "positively" if result.coefficient > 0 else "negatively"
            strength = correlation_strength(abs(result.coefficient))
            drivers.append(
                PerformanceDriver(
                    metric=metric,
                    correlation_to_rating=result.coefficient,
                    significance=result.significance,
                    insight=(
                        f"{METRIC_LABELS[metric]} shows {strength} {direction} correlation "
                        f"with rating (r={result.coefficient:.2f}, p={result.p_value:.3f})"
                    ),
                    threshold=self.threshold_text(values, result.coefficient),
                    current_average=float(np.mean(values)) if values else 0.0,
                )
            )
        return drivers

    def find_surprises(self, results: dict[Metric, CorrelationResult]) -> list[SurprisingFinding]:
        """Metrics whose correlation sign contradicts the expected one."""
        findings = []
        for metric, result in results.items():
            expected = EXPECTED_CORRELATION_SIGN[metric]
            if result.sample_size < self.config.min_sample_size:
                continue
            if abs(result.coefficient) < self.config.surprise_min_abs_coefficient:
                continue
            if (result.coefficient > 0) == (expected > 0):
                continue

            label = METRIC_LABELS[metric]
            if metric in LOWER_IS_BETTER:
                finding = f"Unexpected positive correlation between {label} and rating"
                explanation = f"Higher {label.lower()} normally goes with worse performance"
            else:
                finding = f"Unexpected negative correlation between {label} and rating"
                explanation = f"{label} normally rises with rating, here it moves against it"
            findings.append(
                SurprisingFinding(
                    metric=metric,
                    coefficient=result.coefficient,
                    expected_sign=expected,
                    finding=f"{finding} (r={result.coefficient:.2f})",
                    explanation=explanation,
                    recommendation=(
                        "Investigate potential data quality issues or unique playstyle factors"
                    ),
                )
            )
        findings.sort(key=lambda f: (-abs(f.coefficient), f.metric.value))
        return findings

    def analyze(
        self, vectors: Sequence[MatchMetricVector], missing_data_percentage: float = 0.0
    ) -> CorrelationAnalysis:
        results = self.correlate_all(vectors)
        drivers = self.find_drivers(vectors, results)
        surprises = self.find_surprises(results)
        logger.debug(
            f"Correlation analysis: {len(drivers)} drivers, {len(surprises)} surprising findings"
        )
        matrix = correlation_matrix(vectors, self.config)
        return CorrelationAnalysis(
            results=frozen_map(results),
            primary_performance_drivers=tuple(drivers),
            surprising_findings=tuple(surprises),
            matrix=frozen_map({row: frozen_map(cols) for row, cols in matrix.items()}),
            quality=validate_analysis_quality(len(vectors), missing_data_percentage),
        )
