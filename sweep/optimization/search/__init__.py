"""
Search algorithms over strategy configuration parameter spaces.
"""

from .fitness import (
    FitnessWeights,
    FitnessFunction,
    FitnessResult,
    FitnessEvaluator,
    BacktestFitnessEvaluator,
)
from .base import SearchOutcome, ProgressCallback
from .exhaustive import ExhaustiveSearch
from .annealing import AnnealingConfig, SimulatedAnnealing
from .swarm import SwarmConfig, Particle, ParticleSwarm
from .optimizer import OptimizerConfig, OptimizationResult, ProgressTracker, StrategyOptimizer

__all__ = [
    "FitnessWeights",
    "FitnessFunction",
    "FitnessResult",
    "FitnessEvaluator",
    "BacktestFitnessEvaluator",
    "SearchOutcome",
    "ProgressCallback",
    "ExhaustiveSearch",
    "AnnealingConfig",
    "SimulatedAnnealing",
    "SwarmConfig",
    "Particle",
    "ParticleSwarm",
    "OptimizerConfig",
    "OptimizationResult",
    "ProgressTracker",
    "StrategyOptimizer"
]
