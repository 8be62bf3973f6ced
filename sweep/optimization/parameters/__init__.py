"""
Parameter space model: stepped ranges, indicator parameter sets, their binary
codec and the strategy configurations built from them.
"""

from .specs import ParameterField, ParameterSpec, IntRange, FloatRange, Toggle
from .base import IndicatorParameterSet, IndicatorRole
from .kinds import (
    AtrBandsParameters,
    NormalizedVolumeParameters,
    LwpiParameters,
    McGinleyDynamicParameters,
    SupertrendParameters,
    BUILTIN_KINDS,
)
from .codec import encode_parameters, decode_parameters
from .registry import ParameterRegistry, default_registry
from .configuration import StrategyConfiguration

__all__ = [
    "ParameterField",
    "ParameterSpec",
    "IntRange",
    "FloatRange",
    "Toggle",
    "IndicatorParameterSet",
    "IndicatorRole",
    "AtrBandsParameters",
    "NormalizedVolumeParameters",
    "LwpiParameters",
    "McGinleyDynamicParameters",
    "SupertrendParameters",
    "BUILTIN_KINDS",
    "encode_parameters",
    "decode_parameters",
    "ParameterRegistry",
    "default_registry",
    "StrategyConfiguration"
]
