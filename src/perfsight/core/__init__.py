"""
PerfSight Core - Foundation modules shared by the analysis engine.

This module contains the fundamental components:
- constants: Metric identifiers, enums, and fixed tuning values
- config: Application configuration management
- utils: General utility functions
- schemas: Raw match record contracts
"""

from perfsight.core.constants import (
    ALL_METRICS,
    CORE_METRICS,
    CORRELATION_METRICS,
    DOMINANT_METRIC,
    EXTENDED_METRICS,
    LOWER_IS_BETTER,
    METRIC_LABELS,
    AlertType,
    AnalysisComponent,
    ConfidenceLevel,
    Metric,
    PerformanceStateKind,
    Severity,
    Significance,
    TiltIndicatorType,
    TimeOfDay,
)
from perfsight.core.schemas import FIELD_ALIASES, RawMatchRecord, RawUtilityStats

__all__ = [
    # Enums
    "AlertType",
    "AnalysisComponent",
    "ConfidenceLevel",
    "Metric",
    "PerformanceStateKind",
    "Severity",
    "Significance",
    "TiltIndicatorType",
    "TimeOfDay",
    # Constants
    "ALL_METRICS",
    "CORE_METRICS",
    "CORRELATION_METRICS",
    "DOMINANT_METRIC",
    "EXTENDED_METRICS",
    "LOWER_IS_BETTER",
    "METRIC_LABELS",
    # Schemas
    "FIELD_ALIASES",
    "RawMatchRecord",
    "RawUtilityStats",
]
