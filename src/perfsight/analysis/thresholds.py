"""
Adaptive, rank-relative thresholds.

Premier rating bands map to per-metric solid/strong/excellent thresholds so
that "good" and "bad" are judged against the player's tier rather than
against absolute numbers. The table is resolved once per analysis and passed
explicitly into every detector.
"""

import logging
import math

from perfsight.analysis.models import MetricThresholds, ThresholdTable, frozen_map
from perfsight.core.constants import LOWER_IS_BETTER, Metric

logger = logging.getLogger(__name__)

# (name, lowest premier rating in band), ascending; the last band is open-ended
RANK_BANDS: tuple[tuple[str, int], ...] = (
    ("gray", 0),
    ("light_blue", 5000),
    ("blue", 10000),
    ("purple", 15000),
    ("pink", 20000),
    ("red", 25000),
    ("gold", 30000),
)

# metric -> (solid, strong, excellent) per band, in RANK_BANDS order.
# Preaim (degrees) and reaction time (seconds) improve downwards.
TIER_BENCHMARKS: dict[Metric, tuple[tuple[float, float, float], ...]] = {
    Metric.RATING: (
        (0.7, 0.8, 0.9),
        (0.8, 0.9, 1.0),
        (0.9, 1.0, 1.1),
        (1.0, 1.1, 1.2),
        (1.1, 1.2, 1.3),
        (1.2, 1.3, 1.4),
        (1.3, 1.4, 1.5),
    ),
    Metric.KD_RATIO: (
        (0.6, 0.8, 1.0),
        (0.7, 0.9, 1.1),
        (0.8, 1.0, 1.2),
        (0.9, 1.1, 1.3),
        (1.0, 1.2, 1.4),
        (1.1, 1.3, 1.5),
        (1.2, 1.4, 1.6),
    ),
    Metric.ADR: (
        (45, 55, 65),
        (55, 65, 75),
        (65, 75, 85),
        (75, 85, 95),
        (85, 95, 105),
        (95, 105, 115),
        (105, 115, 125),
    ),
    Metric.KAST: (
        (55, 60, 65),
        (60, 65, 70),
        (65, 70, 75),
        (70, 75, 80),
        (75, 80, 85),
        (80, 85, 90),
        (85, 90, 95),
    ),
    Metric.HEADSHOT_PERCENTAGE: (
        (20, 25, 30),
        (25, 30, 35),
        (30, 35, 40),
        (35, 40, 45),
        (40, 45, 50),
        (45, 50, 55),
        (50, 55, 60),
    ),
    Metric.PREAIM: (
        (16.0, 13.0, 10.0),
        (14.0, 11.0, 8.5),
        (12.0, 9.5, 7.5),
        (10.5, 8.5, 6.5),
        (9.0, 7.5, 6.0),
        (8.0, 6.5, 5.5),
        (7.0, 6.0, 5.0),
    ),
    Metric.REACTION_TIME: (
        (0.75, 0.68, 0.62),
        (0.72, 0.65, 0.60),
        (0.68, 0.62, 0.57),
        (0.65, 0.60, 0.55),
        (0.62, 0.57, 0.53),
        (0.60, 0.55, 0.51),
        (0.58, 0.53, 0.49),
    ),
    Metric.SPRAY_ACCURACY: (
        (25, 30, 35),
        (28, 33, 38),
        (31, 36, 41),
        (34, 39, 44),
        (37, 42, 47),
        (40, 45, 50),
        (43, 48, 53),
    ),
    Metric.UTILITY_EFFICIENCY: (
        (15, 22, 30),
        (18, 25, 33),
        (21, 28, 36),
        (24, 31, 39),
        (27, 34, 42),
        (30, 37, 45),
        (33, 40, 48),
    ),
}


def band_for_rating(premier_rating: float) -> tuple[int, str]:
    """Index and name of the band containing ``premier_rating``."""
    chosen = 0
    for i, (_, lower_bound) in enumerate(RANK_BANDS):
        if premier_rating >= lower_bound:
            chosen = i
    return chosen, RANK_BANDS[chosen][0]


def resolve_thresholds(
    premier_rating: float | None, default_premier_rating: int = 10000
) -> ThresholdTable:
    """
    Build the threshold table for one player.

    A missing or non-finite premier rating falls back to
    ``default_premier_rating``; negative ratings land in the lowest band.
    """
    is_default = premier_rating is None or not math.isfinite(float(premier_rating))
    rating = default_premier_rating if is_default else premier_rating
    band_index, band_name = band_for_rating(rating)

    metrics = {
        metric: MetricThresholds(
            solid=float(bands[band_index][0]),
            strong=float(bands[band_index][1]),
            excellent=float(bands[band_index][2]),
            lower_is_better=metric in LOWER_IS_BETTER,
        )
        for metric, bands in TIER_BENCHMARKS.items()
    }

    logger.debug(
        f"Resolved threshold tier {band_name} for premier rating {rating}"
        f"{' (default)' if is_default else ''}"
    )
    return ThresholdTable(
        tier=band_name,
        premier_rating=int(rating),
        is_default=is_default,
        metrics=frozen_map(metrics),
    )
