"""
Helper utilities for the SWEEP parameter search system.

Small numeric guards used by the metrics and fitness code, output directory
handling, and psutil-backed process information for sizing parallel searches.
"""

import math
import os
from pathlib import Path
from typing import Union, Optional
import logging

import psutil

from ..core.logging import get_logger


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create ``path`` and its parents if missing; returns it as a Path."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, falling back to ``default`` when the ratio is undefined.

    A zero or non-finite denominator yields ``default``; trade counts and
    balances of an account that never traded reach here as zero.
    """
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator


def finite_or_zero(value: float) -> float:
    """Return value unchanged when finite, otherwise 0.0 (NaN and both infinities)."""
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def format_percentage(value: float, decimal_places: int = 2) -> str:
    """
    Format a fraction as a percentage string, e.g. 0.05 -> "5.00%".

    Infinite and NaN fractions are printed as "n/a".
    """
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value * 100:.{decimal_places}f}%"


def processing_units() -> int:
    """
    Number of logical processing units available to this process.

    Returns:
        CPU count, at least 1
    """
    try:
        available = len(psutil.Process(os.getpid()).cpu_affinity())
    except (AttributeError, psutil.Error):
        # cpu_affinity is not available on every platform
        available = psutil.cpu_count(logical=True) or 1
    return max(1, available)


def get_memory_usage_mb() -> float:
    """Resident set size of this process in megabytes."""
    return psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)


def log_memory_usage(logger: Optional[logging.Logger] = None, stage: str = "current"):
    """
    Log the resident memory of the process.

    Args:
        logger: Logger instance (defaults to this module's logger)
        stage: Label of the point in the run, e.g. "search start"
    """
    logger = logger or get_logger(__name__)
    memory_mb = get_memory_usage_mb()
    logger.info(
        f"Memory usage ({stage}): {memory_mb:.1f} MB",
        extra={"extra_fields": {"stage": stage, "rss_mb": round(memory_mb, 1)}}
    )
