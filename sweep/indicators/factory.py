"""
Indicator construction from parameter sets.
"""

from typing import Dict, Type

from ..core.exceptions import ConfigurationError
from ..optimization.parameters.base import IndicatorParameterSet
from ..optimization.parameters.kinds import (
    AtrBandsParameters,
    LwpiParameters,
    McGinleyDynamicParameters,
    NormalizedVolumeParameters,
    SupertrendParameters,
)
from .base import Indicator
from .risk import AtrBands
from .trend import Lwpi, McGinleyDynamic, Supertrend
from .volume import NormalizedVolume

INDICATOR_TYPES: Dict[Type[IndicatorParameterSet], Type[Indicator]] = {
    AtrBandsParameters: AtrBands,
    NormalizedVolumeParameters: NormalizedVolume,
    LwpiParameters: Lwpi,
    McGinleyDynamicParameters: McGinleyDynamic,
    SupertrendParameters: Supertrend,
}


def create_indicator(parameters: IndicatorParameterSet) -> Indicator:
    """
    Build a fresh indicator for a parameter set.
    
    Raises:
        ConfigurationError: If no indicator implements the parameter kind
    """
    indicator_type = INDICATOR_TYPES.get(type(parameters))
    if indicator_type is None:
        raise ConfigurationError(f"No indicator registered for kind {parameters.KIND_NAME!r}")
    return indicator_type(parameters)
