"""
Enhanced Performance Analytics Engine.

Runs the full pipeline for one player's chronological match window:

    extract -> thresholds -> baselines -> {tilt, flow} -> state
    extract -> correlation, patterns
    (state, tilt, correlation) -> predictive warnings -> EnhancedAnalysisResult

The engine is stateless: configuration is fixed at construction, the
threshold table is resolved per call and passed explicitly into each
detector, and every result is rebuilt from the input. Identical input
produces an identical result; ``generated_at`` is the only time-dependent
field and it is supplied by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from perfsight.analysis.alerts import build_warning_system
from perfsight.analysis.baseline import build_extended_stats, compute_baselines
from perfsight.analysis.correlation import CorrelationAnalyzer
from perfsight.analysis.extractor import extract_metrics, missing_extended_percentage
from perfsight.analysis.flow import FlowDetector
from perfsight.analysis.models import (
    EnhancedAnalysisResult,
    InsufficientData,
    InsufficientDataError,
)
from perfsight.analysis.patterns import recognize_patterns
from perfsight.analysis.state import PerformanceStateClassifier
from perfsight.analysis.thresholds import resolve_thresholds
from perfsight.analysis.tilt import TiltDetector
from perfsight.core.config import PerfSightConfig
from perfsight.core.constants import METRIC_LABELS, AnalysisComponent, ConfidenceLevel
from perfsight.core.utils import timed

logger = logging.getLogger(__name__)

# Windows smaller than this get a sample-size caveat
RECOMMENDED_MATCHES = 10
MISSING_EXTENDED_WARNING_PCT = 50.0


class EnhancedAnalysisEngine:
    """
    Produces an EnhancedAnalysisResult from a player's match history.

    Usage:
        engine = EnhancedAnalysisEngine(config)
        result = engine.analyze(matches, "76561198000000000", premier_rating=14200)
        if isinstance(result, InsufficientData):
            ...
    """

    def __init__(self, config: PerfSightConfig | None = None) -> None:
        self.config = config or PerfSightConfig()
        self.tilt_detector = TiltDetector(self.config.detection)
        self.flow_detector = FlowDetector(self.config.detection)
        self.state_classifier = PerformanceStateClassifier(self.config.detection)
        self.correlation_analyzer = CorrelationAnalyzer(self.config.correlation)

    @timed
    def analyze(
        self,
        match_history: Sequence[Any],
        player_id: str,
        premier_rating: float | None = None,
        generated_at: datetime | None = None,
    ) -> EnhancedAnalysisResult | InsufficientData:
        """
        Analyze a chronological (oldest first) list of match records.

        Returns InsufficientData instead of raising when fewer than
        ``analysis.min_matches`` records are supplied. Windows longer than
        ``analysis.max_matches`` are cut to the most recent matches.

        Raises:
            ExtractionError: if an item in ``match_history`` is not a match record
        """
        settings = self.config.analysis
        observed = len(match_history)
        if observed < settings.min_matches:
            logger.warning(
                f"Insufficient data for {player_id}: {observed} < {settings.min_matches} matches"
            )
            return InsufficientData(observed, settings.min_matches, player_id)

        warnings: list[str] = []
        window = list(match_history)
        if observed > settings.max_matches:
            window = window[-settings.max_matches :]
            warnings.append(
                f"Match history truncated to the most recent {settings.max_matches} "
                f"of {observed} matches"
            )

        vectors = extract_metrics(window, settings.session_gap_minutes)
        thresholds = resolve_thresholds(premier_rating, settings.default_premier_rating)
        if thresholds.is_default:
            warnings.append(
                f"No premier rating supplied - using {thresholds.tier} tier thresholds"
            )

        baselines = compute_baselines(vectors, self.config.baseline)
        for metric, baseline in baselines.items():
            if 0 < baseline.sample_size and baseline.confidence_level == ConfidenceLevel.LOW:
                warnings.append(
                    f"Low-confidence baseline for {METRIC_LABELS[metric]} "
                    f"({baseline.sample_size} matches)"
                )

        tilt = self.tilt_detector.detect(vectors, baselines, thresholds)
        flow = self.flow_detector.detect(vectors, baselines, thresholds)
        state = self.state_classifier.classify(vectors, baselines, tilt, flow)

        missing_pct = missing_extended_percentage(vectors)
        correlation = self.correlation_analyzer.analyze(vectors, missing_pct)
        patterns = recognize_patterns(vectors)
        predictive = build_warning_system(
            vectors, baselines, tilt, state, correlation, thresholds, self.config.detection
        )

        if missing_pct > MISSING_EXTENDED_WARNING_PCT:
            warnings.append(
                "High percentage of missing extended metrics - some analyses may be limited"
            )
        if len(vectors) < RECOMMENDED_MATCHES:
            warnings.append(f"Sample size too small ({len(vectors)} < {RECOMMENDED_MATCHES})")
        if correlation.quality is not None:
            for caveat in correlation.quality.warnings:
                if caveat not in warnings:
                    warnings.append(caveat)

        logger.info(
            f"Enhanced analysis for {player_id}: {len(vectors)} matches, "
            f"state={state.classification.value}, alerts={len(predictive.immediate_alerts)}"
        )
        return EnhancedAnalysisResult(
            player_id=player_id,
            match_count=len(vectors),
            thresholds=thresholds,
            baselines=baselines,
            extended_stats=build_extended_stats(vectors, baselines, self.config.baseline),
            tilt=tilt,
            flow=flow,
            state=state,
            correlation=correlation,
            patterns=patterns,
            predictive_warnings=predictive,
            warnings=tuple(warnings),
            generated_at=generated_at,
        )


def analyze(
    match_history: Sequence[Any],
    player_id: str,
    premier_rating: float | None = None,
    config: PerfSightConfig | None = None,
    generated_at: datetime | None = None,
) -> EnhancedAnalysisResult | InsufficientData:
    """Convenience wrapper around EnhancedAnalysisEngine.analyze."""
    engine = EnhancedAnalysisEngine(config)
    return engine.analyze(match_history, player_id, premier_rating, generated_at)


def analyze_or_raise(
    match_history: Sequence[Any],
    player_id: str,
    premier_rating: float | None = None,
    config: PerfSightConfig | None = None,
    generated_at: datetime | None = None,
) -> EnhancedAnalysisResult:
    """Like analyze(), but raises InsufficientDataError for short windows."""
    result = analyze(match_history, player_id, premier_rating, config, generated_at)
    if isinstance(result, InsufficientData):
        raise InsufficientDataError(result.observed, result.required, result.player_id)
    return result


def normalize_components(components: Iterable[str] | None) -> list[AnalysisComponent]:
    """Validate requested component names; empty or missing means all."""
    names = list(components or [])
    if not names:
        return [AnalysisComponent.ALL]
    try:
        return [AnalysisComponent(name) for name in names]
    except ValueError as e:
        valid = ", ".join(c.value for c in AnalysisComponent)
        raise ValueError(f"Unknown analysis component in {names}; expected one of: {valid}") from e


def filter_components(
    result: EnhancedAnalysisResult, components: Iterable[str] | None
) -> dict[str, Any]:
    """
    Plain-dict view of the result restricted to the requested components.

    Warnings and the predictive warning payload are always included. The
    result itself is never modified.
    """
    requested = normalize_components(components)
    full = result.to_dict()
    if AnalysisComponent.ALL in requested:
        return full

    filtered: dict[str, Any] = {
        "player_id": full["player_id"],
        "match_count": full["match_count"],
        "warnings": full["warnings"],
        "predictive_warning_system": full["predictive_warning_system"],
        "generated_at": full["generated_at"],
    }
    state_analysis = full["performance_state_analysis"]

    if AnalysisComponent.TILT_DETECTION in requested:
        filtered["performance_state_analysis"] = {
            "detected_patterns": {
                "tilt_indicators": state_analysis["detected_patterns"]["tilt_indicators"],
            }
        }

    if AnalysisComponent.PERFORMANCE_STATE in requested:
        section = filtered.setdefault("performance_state_analysis", {"detected_patterns": {}})
        section["current_state"] = state_analysis["current_state"]
        section["detected_patterns"]["flow_state_indicators"] = state_analysis[
            "detected_patterns"
        ]["flow_state_indicators"]

    if AnalysisComponent.CORRELATION_ANALYSIS in requested:
        filtered["metric_correlation_analysis"] = full["metric_correlation_analysis"]

    if AnalysisComponent.PATTERN_RECOGNITION in requested:
        filtered["pattern_recognition"] = full["pattern_recognition"]

    return filtered


def assess_data_quality(result: EnhancedAnalysisResult) -> dict[str, Any]:
    """Summarize result reliability from its data-quality warnings."""
    count = len(result.warnings)
    if count == 0:
        score, reliability = "high", "Very reliable"
    elif count <= 2:
        score, reliability = "moderate", "Moderately reliable"
    else:
        score, reliability = "low", "Limited reliability - interpret with caution"
    return {"score": score, "issues": list(result.warnings), "reliability": reliability}
