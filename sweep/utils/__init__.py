"""
Utility functions for the SWEEP parameter search system.

This module contains common utilities, validators, decorators, and helper functions.
"""

from .validators import validate_ohlcv_dataframe, validate_positive, validate_range, validate_probability
from .decorators import log_execution_time
from .helpers import ensure_directory, safe_divide, finite_or_zero, format_percentage, processing_units

__all__ = [
    "validate_ohlcv_dataframe",
    "validate_positive",
    "validate_range",
    "validate_probability",
    "log_execution_time",
    "ensure_directory",
    "safe_divide",
    "finite_or_zero",
    "format_percentage",
    "processing_units"
]
