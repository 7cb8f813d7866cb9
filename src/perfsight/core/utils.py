"""
Utility functions for PerfSight.

This module provides:
- Performance timing decorator
- Numeric guards that keep NaN/Infinity out of analysis output
- Value coercion for loosely-typed match records
- Common formatting helpers
"""

import logging
import math
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

# Type variable for generic decorators
F = TypeVar("F", bound=Callable[..., Any])


def timed(func: F) -> F:
    """
    Decorator to measure and log function execution time at DEBUG level.

    Usage:
        @timed
        def my_function():
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        logger.debug(f"{func.__name__} completed in {elapsed:.4f}s")
        return result

    return wrapper  # type: ignore


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is 0.

    Args:
        numerator: Top of fraction
        denominator: Bottom of fraction
        default: Value to return if denominator is 0

    Returns:
        Result of division or default
    """
    if denominator == 0:
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def clamp(value: float, min_val: float, max_val: float) -> float:
    """
    Clamp a value to a range.

    Args:
        value: Value to clamp
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        Clamped value
    """
    return max(min_val, min(max_val, value))


def finite(value: float, default: float = 0.0) -> float:
    """Return value as a plain float, or default when it is NaN or infinite."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def to_optional_float(value: Any) -> float | None:
    """
    Coerce a raw record value to a finite float.

    None, empty strings, booleans, unparseable strings, NaN and infinities all
    come back as None so the metric is treated as missing for that match.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def format_percentage(value: float, decimals: int = 1, signed: bool = False) -> str:
    """
    Format a value as a percentage string.

    Args:
        value: Percentage value (already scaled, e.g. 12.5 for 12.5%)
        decimals: Number of decimal places
        signed: Prefix positive values with "+"

    Returns:
        Formatted string like "12.5%" or "+12.5%"
    """
    sign = "+" if signed and value > 0 else ""
    return f"{sign}{value:.{decimals}f}%"
