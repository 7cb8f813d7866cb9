"""
PerfSight - Personal performance analytics for CS2 players

Turns a chronological history of per-match stats into personal baselines,
tilt and flow detection, a current performance state, metric-vs-rating
correlations, and predictive alerts for the next match.

Usage:
    from perfsight import analyze

    result = analyze(matches, "76561198000000000", premier_rating=14200)
    print(result.state.classification)
"""

__version__ = "0.1.0"
__author__ = "PerfSight Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "EnhancedAnalysisEngine":
        from perfsight.analysis.engine import EnhancedAnalysisEngine
        return EnhancedAnalysisEngine
    elif name == "analyze":
        from perfsight.analysis.engine import analyze
        return analyze
    elif name == "analyze_or_raise":
        from perfsight.analysis.engine import analyze_or_raise
        return analyze_or_raise
    elif name == "InsufficientData":
        from perfsight.analysis.models import InsufficientData
        return InsufficientData
    elif name == "InsufficientDataError":
        from perfsight.analysis.models import InsufficientDataError
        return InsufficientDataError
    elif name == "load_config":
        from perfsight.core.config import load_config
        return load_config
    raise AttributeError(f"module 'perfsight' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Engine
    "EnhancedAnalysisEngine",
    "analyze",
    "analyze_or_raise",
    "InsufficientData",
    "InsufficientDataError",
    # Config
    "load_config",
]
