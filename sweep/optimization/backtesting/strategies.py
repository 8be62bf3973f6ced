"""
Trading strategies for the backtest engine.

This module provides the strategy interface consumed by the engine and the
indicator-driven strategy that turns a StrategyConfiguration into trade
decisions.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from ...core.logging import get_logger
from ...data.bars import Bar
from ...indicators.base import RiskLevels, TrendSignal, VolumeSignal
from ...indicators.factory import create_indicator
from ..parameters.configuration import StrategyConfiguration

logger = get_logger(__name__)


class TradeDirection(Enum):
    """Side of a trade order."""
    NONE = 0
    LONG = 1
    SHORT = 2


@dataclass(frozen=True)
class TradeOrder:
    """Decision produced for one bar."""
    
    direction: TradeDirection
    stop_loss: float = math.nan
    take_profit: float = math.nan
    
    @classmethod
    def none(cls) -> "TradeOrder":
        return cls(TradeDirection.NONE)
    
    @property
    def is_entry(self) -> bool:
        return self.direction is not TradeDirection.NONE


class TradingStrategy(ABC):
    """Abstract base class for trading strategies."""
    
    def observe(self, bars: Sequence[Bar]) -> None:
        """
        Let the strategy see history without asking for a decision.
        
        Args:
            bars: Bars up to and including the current one
        """
        pass
    
    @abstractmethod
    def evaluate(self, bars: Sequence[Bar]) -> TradeOrder:
        """
        Decide what to do on the last bar of ``bars``.
        
        Args:
            bars: Bars up to and including the current one
            
        Returns:
            Trade order (direction NONE for no trade)
        """
        pass


class IndicatorStrategy(TradingStrategy):
    """
    Strategy combining trend, volume and risk-management indicators.
    
    A long order requires every trend indicator to be bullish and every volume
    indicator (if any) to report high volume; shorts mirror this with bearish
    trends. Stops and targets come from the last risk-management indicator.
    """
    
    def __init__(self, configuration: StrategyConfiguration):
        """
        Initialize the strategy with fresh indicator state.
        
        Args:
            configuration: Parameter sets for every participating indicator
        """
        self.configuration = configuration
        self.trend = [create_indicator(p) for p in configuration.trend]
        self.volume = [create_indicator(p) for p in configuration.volume]
        self.risk_management = [create_indicator(p) for p in configuration.risk_management]
    
    @property
    def indicators(self) -> List:
        return self.trend + self.volume + self.risk_management
    
    def observe(self, bars: Sequence[Bar]) -> None:
        for indicator in self.indicators:
            indicator.update(bars)
    
    def evaluate(self, bars: Sequence[Bar]) -> TradeOrder:
        if len(bars) == 0 or not self.trend:
            return TradeOrder.none()
        
        trends = [indicator.signal(bars) for indicator in self.trend]
        volumes = [indicator.signal(bars) for indicator in self.volume]
        volume_confirmed = all(v is VolumeSignal.HIGH for v in volumes)
        
        if volume_confirmed and all(t is TrendSignal.BULLISH for t in trends):
            levels = self._risk_levels(bars)
            return TradeOrder(TradeDirection.LONG, levels.long_stop, levels.long_take_profit)
        
        if volume_confirmed and all(t is TrendSignal.BEARISH for t in trends):
            levels = self._risk_levels(bars)
            return TradeOrder(TradeDirection.SHORT, levels.short_stop, levels.short_take_profit)
        
        return TradeOrder.none()
    
    def _risk_levels(self, bars: Sequence[Bar]) -> RiskLevels:
        if not self.risk_management:
            return RiskLevels.unavailable()
        return self.risk_management[-1].levels(bars)
    
    def __repr__(self) -> str:
        return f"IndicatorStrategy({self.configuration.name})"
