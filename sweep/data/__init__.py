"""
Historical bar data for the SWEEP parameter search system.
"""

from .bars import Bar, BarWindow, TimeFrame, convert_timeframe, validate_bars
from .providers import BarProvider, CSVBarProvider

__all__ = [
    "Bar",
    "BarWindow",
    "TimeFrame",
    "convert_timeframe",
    "validate_bars",
    "BarProvider",
    "CSVBarProvider"
]
