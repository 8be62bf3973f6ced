"""
Backtesting framework for evaluating indicator strategies.
"""

from .strategies import TradingStrategy, IndicatorStrategy, TradeOrder, TradeDirection
from .account import BacktestAccount, Position, ClosedTrade, ExitReason
from .metrics import BacktestResult, PerformanceCalculator, MetricsAggregator
from .engine import BacktestEngine, BacktestOptions, BacktestState

__all__ = [
    "TradingStrategy",
    "IndicatorStrategy",
    "TradeOrder",
    "TradeDirection",
    "BacktestAccount",
    "Position",
    "ClosedTrade",
    "ExitReason",
    "BacktestResult",
    "PerformanceCalculator",
    "MetricsAggregator",
    "BacktestEngine",
    "BacktestOptions",
    "BacktestState"
]
