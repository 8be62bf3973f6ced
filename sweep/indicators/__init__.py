"""
Stateful trading indicators grouped by the role they play in a strategy.
"""

from .base import Indicator, TrendIndicator, VolumeIndicator, RiskManagementIndicator, TrendSignal, VolumeSignal, RiskLevels
from .trend import Supertrend, McGinleyDynamic, Lwpi
from .volume import NormalizedVolume
from .risk import AtrBands
from .factory import create_indicator, INDICATOR_TYPES

__all__ = [
    "Indicator",
    "TrendIndicator",
    "VolumeIndicator",
    "RiskManagementIndicator",
    "TrendSignal",
    "VolumeSignal",
    "RiskLevels",
    "Supertrend",
    "McGinleyDynamic",
    "Lwpi",
    "NormalizedVolume",
    "AtrBands",
    "create_indicator",
    "INDICATOR_TYPES"
]
