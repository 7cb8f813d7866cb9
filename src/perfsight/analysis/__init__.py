"""
PerfSight Analysis - Personal performance analytics.

This module contains:
- extractor: Raw match records to per-match metric vectors
- thresholds: Rank-tier benchmark tables
- baseline: Personal baselines and deviation checks
- tilt / flow: Negative and positive performance streak detection
- state: Current performance state classification
- correlation: Metric-vs-rating correlation and performance drivers
- patterns: Momentum, cascades, contextual clusters, fatigue
- alerts: Predictive warning system
- engine: Pipeline orchestration
"""

from perfsight.analysis.engine import (
    EnhancedAnalysisEngine,
    analyze,
    analyze_or_raise,
    assess_data_quality,
    filter_components,
    normalize_components,
)
from perfsight.analysis.models import (
    CorrelationAnalysis,
    EnhancedAnalysisResult,
    ExtractionError,
    FlowAnalysis,
    InsufficientData,
    InsufficientDataError,
    MatchMetricVector,
    PatternAnalysis,
    PerformanceState,
    PersonalBaseline,
    PredictiveAlert,
    ThresholdTable,
    TiltAnalysis,
)

__all__: list[str] = [
    "EnhancedAnalysisEngine",
    "analyze",
    "analyze_or_raise",
    "assess_data_quality",
    "filter_components",
    "normalize_components",
    "CorrelationAnalysis",
    "EnhancedAnalysisResult",
    "ExtractionError",
    "FlowAnalysis",
    "InsufficientData",
    "InsufficientDataError",
    "MatchMetricVector",
    "PatternAnalysis",
    "PerformanceState",
    "PersonalBaseline",
    "PredictiveAlert",
    "ThresholdTable",
    "TiltAnalysis",
]
