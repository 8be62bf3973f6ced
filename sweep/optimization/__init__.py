"""
Optimization module for the SWEEP parameter search system.

This module provides the parameter space and codec, the backtesting engine,
and the search algorithms that tune indicator parameters against it.
"""

from .parameters.configuration import StrategyConfiguration
from .parameters.registry import ParameterRegistry, default_registry
from .backtesting.engine import BacktestEngine, BacktestOptions
from .backtesting.strategies import TradingStrategy, IndicatorStrategy
from .backtesting.metrics import BacktestResult
from .search.fitness import FitnessFunction, FitnessEvaluator
from .search.optimizer import StrategyOptimizer, OptimizerConfig, OptimizationResult

__all__ = [
    "StrategyConfiguration",
    "ParameterRegistry",
    "default_registry",
    "BacktestEngine",
    "BacktestOptions",
    "TradingStrategy",
    "IndicatorStrategy",
    "BacktestResult",
    "FitnessFunction",
    "FitnessEvaluator",
    "StrategyOptimizer",
    "OptimizerConfig",
    "OptimizationResult"
]
