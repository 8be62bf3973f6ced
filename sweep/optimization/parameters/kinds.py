"""
Built-in indicator parameter kinds.

Field declaration order is the encoding order and the significance order of
the grid walk (the last field varies fastest).
"""

from .base import IndicatorParameterSet, IndicatorRole
from .specs import FloatRange, IntRange, Toggle


class AtrBandsParameters(IndicatorParameterSet):
    """ATR bands: stop distance from ATR, take profit from a reward ratio."""
    
    KIND_TAG = 0x01
    KIND_NAME = "atr_bands"
    ROLE = IndicatorRole.RISK_MANAGEMENT
    FIELDS = {
        "period": IntRange(10, 16, 2),
        "multiplier": FloatRange(2.0, 4.0, 1.0),
        "risk_reward_ratio": FloatRange(1.1, 1.5, 0.1),
    }


class NormalizedVolumeParameters(IndicatorParameterSet):
    """Volume relative to its moving average, in percent."""
    
    KIND_TAG = 0x03
    KIND_NAME = "normalized_volume"
    ROLE = IndicatorRole.VOLUME
    FIELDS = {
        "volume_period": IntRange(10, 100, 5),
        "high_volume": IntRange(50, 200, 10),
        "low_volume": IntRange(40, 160, 5),
        "normal_high_volume": IntRange(40, 160, 5),
    }


class LwpiParameters(IndicatorParameterSet):
    """Larry Williams proxy index."""
    
    KIND_TAG = 0x04
    KIND_NAME = "lwpi"
    ROLE = IndicatorRole.TREND
    FIELDS = {
        "period": IntRange(5, 50, 5),
        "smoothing_period": IntRange(5, 50, 5),
    }


class McGinleyDynamicParameters(IndicatorParameterSet):
    """McGinley dynamic moving average."""
    
    KIND_TAG = 0x05
    KIND_NAME = "mcginley_dynamic"
    ROLE = IndicatorRole.TREND
    FIELDS = {
        "period": IntRange(4, 30, 2),
        "require_momentum": Toggle(),
    }


class SupertrendParameters(IndicatorParameterSet):
    """Supertrend ATR trailing bands."""
    
    KIND_TAG = 0x07
    KIND_NAME = "supertrend"
    ROLE = IndicatorRole.TREND
    FIELDS = {
        "atr_period": IntRange(2, 50, 2),
        "factor": FloatRange(1.0, 5.0, 0.5),
    }


BUILTIN_KINDS = (
    AtrBandsParameters,
    NormalizedVolumeParameters,
    LwpiParameters,
    McGinleyDynamicParameters,
    SupertrendParameters,
)
