"""
PerfSight Data Contracts

Shape of the raw per-match records a Match History Provider hands to the
engine. Records are plain dicts (JSON-decoded Leetify-style payloads); the
metric extractor is the only consumer and normalizes them into
MatchMetricVector values.

Producers: match history provider (external), tests, CLI JSON files
Consumers: perfsight.analysis.extractor
"""

from __future__ import annotations

from datetime import datetime
from typing import NotRequired, TypedDict


class RawUtilityStats(TypedDict, total=False):
    """Utility usage counters used to derive utility efficiency."""

    smoke_thrown: int
    flashbang_thrown: int
    he_thrown: int
    flashbang_hit_foe: int
    he_foes_damage_avg: float


class RawMatchRecord(TypedDict):
    """
    One match for one player, as supplied by the caller.

    Any stat may be missing or null; missing stats are excluded from that
    metric's sample rather than failing the analysis. Extended telemetry can
    also arrive nested under ``raw_player_stats`` and core stats under
    ``player_stats``.
    """

    match_id: NotRequired[str]
    finished_at: NotRequired[str | datetime]  # ISO-8601; "date" accepted as alias
    map_name: NotRequired[str]  # "map" accepted as alias

    # Core stats
    rating: NotRequired[float | None]
    kills: NotRequired[int | None]
    deaths: NotRequired[int | None]
    kd_ratio: NotRequired[float | None]  # derived from kills/deaths when absent
    adr: NotRequired[float | None]
    kast: NotRequired[float | None]  # percent 0-100
    headshot_percentage: NotRequired[float | None]  # percent 0-100

    # Extended telemetry
    preaim: NotRequired[float | None]  # degrees
    reaction_time: NotRequired[float | None]  # seconds
    spray_accuracy: NotRequired[float | None]  # percent 0-100
    utility_efficiency: NotRequired[float | None]  # derived from utility counters when absent

    # Utility counters (flat form)
    smoke_thrown: NotRequired[int]
    flashbang_thrown: NotRequired[int]
    he_thrown: NotRequired[int]
    flashbang_hit_foe: NotRequired[int]
    he_foes_damage_avg: NotRequired[float]

    # Nested forms
    player_stats: NotRequired[dict]
    raw_player_stats: NotRequired[dict]


# Accepted aliases for record keys -> canonical key
FIELD_ALIASES: dict[str, str] = {
    "date": "finished_at",
    "timestamp": "finished_at",
    "map": "map_name",
    "kdRatio": "kd_ratio",
    "headshotPercentage": "headshot_percentage",
    "hs_pct": "headshot_percentage",
    "reactionTime": "reaction_time",
    "sprayAccuracy": "spray_accuracy",
    "utilityEfficiency": "utility_efficiency",
    "id": "match_id",
    "matchId": "match_id",
    "finishedAt": "finished_at",
    "mapName": "map_name",
    "playerStats": "player_stats",
    "rawPlayerStats": "raw_player_stats",
}
