"""
Metric extraction from raw match records.

Turns the loosely-typed records a match history provider returns into
MatchMetricVector values: one fixed set of numeric metrics per match plus
contextual tags (map, time of day, session position).

Missing, null or non-numeric stats become None and are left out of that
metric's sample downstream; only input that is not a match record at all
raises ExtractionError.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import pandas as pd

from perfsight.analysis.models import ExtractionError, MatchMetricVector
from perfsight.core.constants import ALL_METRICS, EXTENDED_METRICS, Metric, TimeOfDay
from perfsight.core.schemas import FIELD_ALIASES
from perfsight.core.utils import to_optional_float

logger = logging.getLogger(__name__)

UTILITY_THROWN_FIELDS = ("smoke_thrown", "flashbang_thrown", "he_thrown")


def _canonical(record: Mapping[str, Any]) -> dict[str, Any]:
    return {FIELD_ALIASES.get(key, key): value for key, value in record.items()}


def flatten_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """
    Merge nested stat blocks into one flat dict with canonical keys.

    Precedence: top-level keys, then ``player_stats``, then
    ``raw_player_stats``. A null top-level value does not hide a nested one.
    """
    top = _canonical(record)
    flat: dict[str, Any] = {}
    for nested_key in ("raw_player_stats", "player_stats"):
        nested = top.get(nested_key)
        if isinstance(nested, Mapping):
            flat.update({k: v for k, v in _canonical(nested).items() if v is not None})
    flat.update(
        {
            k: v
            for k, v in top.items()
            if v is not None and k not in ("raw_player_stats", "player_stats")
        }
    )
    return flat


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, epoch seconds or datetime. Naive values are taken as UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float):
        try:
            parsed = datetime.fromtimestamp(float(value), tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def time_of_day(timestamp: datetime | None) -> TimeOfDay:
    """Bucket a timestamp's hour into a time-of-day label."""
    if timestamp is None:
        return TimeOfDay.UNKNOWN
    hour = timestamp.hour
    if 6 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 18:
        return TimeOfDay.AFTERNOON
    if 18 <= hour < 24:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


def derive_kd_ratio(kills: Any, deaths: Any) -> float | None:
    """kills / deaths, or kills when the player did not die."""
    k = to_optional_float(kills)
    d = to_optional_float(deaths)
    if k is None or d is None:
        return None
    if d == 0:
        return k
    return k / d


def derive_utility_efficiency(stats: Mapping[str, Any]) -> float | None:
    """
    Percentage of thrown utility that had an effect.

    Effective utility is flashbangs that hit an enemy plus one if HE grenades
    did any damage. None when no utility was thrown or counters are absent.
    """
    thrown_values = [to_optional_float(stats.get(f)) for f in UTILITY_THROWN_FIELDS]
    if all(v is None for v in thrown_values):
        return None
    total_thrown = sum(v for v in thrown_values if v is not None)
    if total_thrown <= 0:
        return None

    flashes_hit = to_optional_float(stats.get("flashbang_hit_foe")) or 0.0
    he_damage = to_optional_float(stats.get("he_foes_damage_avg")) or 0.0
    effective = flashes_hit + (1 if he_damage > 0 else 0)
    return effective / total_thrown * 100


def _metric_value(flat: Mapping[str, Any], metric: Metric) -> float | None:
    value = to_optional_float(flat.get(metric.value))
    if value is not None:
        return value
    if metric == Metric.KD_RATIO:
        return derive_kd_ratio(flat.get("kills"), flat.get("deaths"))
    if metric == Metric.UTILITY_EFFICIENCY:
        return derive_utility_efficiency(flat)
    return None


def extract_match(record: Any, index: int, session_position: int = 1) -> MatchMetricVector:
    """Normalize a single record. ``session_position`` is supplied by the caller."""
    if not isinstance(record, Mapping):
        raise ExtractionError(
            f"Match record at position {index} is {type(record).__name__}, expected a mapping"
        )

    flat = flatten_record(record)
    timestamp = parse_timestamp(flat.get("finished_at"))
    values = {metric: _metric_value(flat, metric) for metric in ALL_METRICS}

    if values[Metric.RATING] is None and timestamp is None:
        logger.warning(f"Match record at position {index} has neither a rating nor a timestamp")

    match_id = flat.get("match_id")
    return MatchMetricVector(
        index=index,
        match_id=str(match_id) if match_id is not None else f"match-{index}",
        timestamp=timestamp,
        map_name=str(flat.get("map_name") or "unknown"),
        session_position=session_position,
        time_of_day=time_of_day(timestamp),
        **{metric.value: value for metric, value in values.items()},
    )


def extract_metrics(
    records: Sequence[Any], session_gap_minutes: float = 120.0
) -> tuple[MatchMetricVector, ...]:
    """
    Normalize a chronological (oldest first) list of match records.

    Session position counts matches within one play session: it restarts at 1
    whenever the gap to the previous match exceeds ``session_gap_minutes`` or
    the timestamps run backwards. A match without a timestamp continues the
    current session.
    """
    vectors: list[MatchMetricVector] = []
    previous: MatchMetricVector | None = None

    for index, record in enumerate(records):
        vector = extract_match(record, index)
        position = 1
        if previous is not None:
            position = previous.session_position + 1
            if previous.timestamp is not None and vector.timestamp is not None:
                gap = (vector.timestamp - previous.timestamp).total_seconds() / 60
                if gap < 0 or gap > session_gap_minutes:
                    position = 1
        if position != vector.session_position:
            vector = replace(vector, session_position=position)
        vectors.append(vector)
        previous = vector

    logger.debug(f"Extracted {len(vectors)} match vectors")
    return tuple(vectors)


def missing_extended_percentage(vectors: Sequence[MatchMetricVector]) -> float:
    """Share of extended-metric slots (matches x metrics) with no value, in percent."""
    slots = len(vectors) * len(EXTENDED_METRICS)
    if slots == 0:
        return 0.0
    missing = sum(1 for v in vectors for m in EXTENDED_METRICS if v.get(m) is None)
    return missing / slots * 100


def metric_series(vectors: Sequence[MatchMetricVector], metric: Metric) -> list[float | None]:
    """Chronological values of one metric, None where missing."""
    return [v.get(metric) for v in vectors]


def vectors_to_frame(vectors: Sequence[MatchMetricVector]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per match.

    Missing metrics become NaN; the frame is for grouping and aggregation and
    never leaks into result values directly.
    """
    rows = []
    for v in vectors:
        row: dict[str, Any] = {
            "index": v.index,
            "match_id": v.match_id,
            "timestamp": v.timestamp,
            "map_name": v.map_name,
            "session_position": v.session_position,
            "time_of_day": v.time_of_day.value,
        }
        for metric in ALL_METRICS:
            value = v.get(metric)
            row[metric.value] = float("nan") if value is None else value
        rows.append(row)

    columns = ["index", "match_id", "timestamp", "map_name", "session_position", "time_of_day"]
    columns += [m.value for m in ALL_METRICS]
    return pd.DataFrame(rows, columns=columns)
