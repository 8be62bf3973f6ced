"""
Indicator base classes.

Indicators are stateful. Every value they compute is cached against the bar
timestamp it belongs to, and a call with a longer window of the same history
only processes the bars it has not seen yet. A window that does not extend
the cached history (different data, or rewound) resets the cache.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from ..data.bars import Bar
from ..optimization.parameters.base import IndicatorParameterSet, IndicatorRole


class TrendSignal(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class VolumeSignal(Enum):
    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"


@dataclass(frozen=True)
class RiskLevels:
    """Stop and take-profit prices for both trade sides."""
    
    long_stop: float
    short_stop: float
    long_take_profit: float
    short_take_profit: float
    
    @classmethod
    def unavailable(cls) -> "RiskLevels":
        return cls(math.nan, math.nan, math.nan, math.nan)


class Indicator(ABC):
    """Abstract stateful indicator."""
    
    ROLE: IndicatorRole = None
    
    def __init__(self, parameters: IndicatorParameterSet):
        self.parameters = parameters
        self._timestamps: List[int] = []
        self._positions: Dict[int, int] = {}
        self.processed_bars = 0
        self._reset_state()
    
    def update(self, bars: Sequence[Bar]) -> None:
        """Process every bar of ``bars`` not processed before."""
        for index in range(self._resume_index(bars), len(bars)):
            bar = bars[index]
            self._process(bar, index)
            self._positions[bar.timestamp] = len(self._timestamps)
            self._timestamps.append(bar.timestamp)
            self.processed_bars += 1
    
    def _resume_index(self, bars: Sequence[Bar]) -> int:
        cached = len(self._timestamps)
        if cached == 0:
            return 0
        if len(bars) >= cached and self._positions.get(bars[cached - 1].timestamp) == cached - 1:
            return cached
        self.reset()
        return 0
    
    def reset(self) -> None:
        self._timestamps.clear()
        self._positions.clear()
        self._reset_state()
    
    def position_of(self, timestamp: int) -> int:
        """Index of the cached values belonging to ``timestamp``."""
        return self._positions[timestamp]
    
    @property
    def bar_count(self) -> int:
        return len(self._timestamps)
    
    @abstractmethod
    def _process(self, bar: Bar, index: int) -> None:
        """Consume one new bar."""
        pass
    
    @abstractmethod
    def _reset_state(self) -> None:
        pass


class TrendIndicator(Indicator):
    ROLE = IndicatorRole.TREND
    
    def signal(self, bars: Sequence[Bar]) -> TrendSignal:
        self.update(bars)
        if not self._timestamps:
            return TrendSignal.NEUTRAL
        return self._signals[-1]
    
    def _reset_state(self) -> None:
        self._signals: List[TrendSignal] = []


class VolumeIndicator(Indicator):
    ROLE = IndicatorRole.VOLUME
    
    def signal(self, bars: Sequence[Bar]) -> VolumeSignal:
        self.update(bars)
        if not self._timestamps:
            return VolumeSignal.NORMAL
        return self._signals[-1]
    
    def _reset_state(self) -> None:
        self._signals: List[VolumeSignal] = []


class RiskManagementIndicator(Indicator):
    ROLE = IndicatorRole.RISK_MANAGEMENT
    
    def levels(self, bars: Sequence[Bar]) -> RiskLevels:
        self.update(bars)
        if not self._timestamps:
            return RiskLevels.unavailable()
        return self._levels[-1]
    
    def _reset_state(self) -> None:
        self._levels: List[RiskLevels] = []
