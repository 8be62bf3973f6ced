"""
Validation utilities for the SWEEP parameter search system.

This module provides functions for validating bar data frames and numeric
settings handed to the backtest engine and the search strategies.
"""

from typing import List, Optional

import numpy as np
import pandas as pd

from ..core.exceptions import ValidationError
from ..core.logging import get_logger


OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def validate_ohlcv_dataframe(
    df: pd.DataFrame,
    required_columns: Optional[List[str]] = None,
    min_rows: int = 1,
    check_nulls: bool = True,
    check_infinite: bool = True
) -> bool:
    """
    Validate a pandas DataFrame of OHLCV bars.
    
    Args:
        df: DataFrame to validate
        required_columns: List of required column names (default: OHLCV columns)
        min_rows: Minimum number of rows required
        check_nulls: Whether to reject null values
        check_infinite: Whether to reject infinite values
    
    Returns:
        True if validation passes
    
    Raises:
        ValidationError: If validation fails
    """
    logger = get_logger(__name__)
    
    if df is None:
        raise ValidationError("DataFrame cannot be None")
    
    if not isinstance(df, pd.DataFrame):
        raise ValidationError(f"Expected pandas DataFrame, got {type(df)}")
    
    if len(df) < min_rows:
        raise ValidationError(f"DataFrame must have at least {min_rows} rows, got {len(df)}")
    
    required_columns = required_columns or OHLCV_COLUMNS
    missing_columns = set(required_columns) - set(df.columns)
    if missing_columns:
        raise ValidationError(f"Missing required columns: {sorted(missing_columns)}")
    
    if check_nulls:
        null_counts = df[required_columns].isnull().sum()
        if null_counts.any():
            raise ValidationError(
                "Found null values in bar data",
                details=null_counts[null_counts > 0].to_dict()
            )
    
    if check_infinite:
        numeric_columns = df[required_columns].select_dtypes(include=[np.number]).columns
        for col in numeric_columns:
            if np.isinf(df[col]).any():
                raise ValidationError(f"Found infinite values in column: {col}")
    
    logger.debug(f"DataFrame validation passed: {len(df)} rows, {len(df.columns)} columns")
    return True


def validate_positive(name: str, value: float, allow_zero: bool = False) -> float:
    """
    Check that a numeric setting is positive.
    
    Raises:
        ValidationError: If the value is negative (or zero when not allowed)
    """
    if value is None or value < 0 or (value == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"{name} must be {qualifier}, got {value}")
    return value


def validate_range(name: str, value: float, low: float, high: float) -> float:
    """
    Check that a numeric setting lies in the closed interval [low, high].
    
    Raises:
        ValidationError: If the value is outside the interval
    """
    if value is None or not low <= value <= high:
        raise ValidationError(f"{name} must be between {low} and {high}, got {value}")
    return value


def validate_probability(name: str, value: float) -> float:
    """Check that a setting is a probability in [0, 1]."""
    return validate_range(name, value, 0.0, 1.0)
