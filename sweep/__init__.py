"""
SWEEP - Indicator Parameter Search

Searches bounded trading-indicator parameter spaces for the configuration
with the best simulated historical performance, using exhaustive grid walks,
parallel simulated annealing or particle swarm optimization.
"""

__version__ = "0.1.0"

from .core.config import Config
from .core.logging import setup_logging
from .optimization import (
    StrategyConfiguration,
    BacktestEngine,
    BacktestOptions,
    TradingStrategy,
    FitnessFunction,
    StrategyOptimizer,
    OptimizationResult
)

__all__ = [
    "Config",
    "setup_logging",
    "StrategyConfiguration",
    "BacktestEngine",
    "BacktestOptions",
    "TradingStrategy",
    "FitnessFunction",
    "StrategyOptimizer",
    "OptimizationResult"
]
