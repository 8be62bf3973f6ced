"""
Strategy optimizer: runs a search method over a configuration's parameter
space and post-processes the results.

Annealing runs as several independent chains in a thread pool, one per
processing unit by default, each with its own evaluator and random stream.
"""

import json
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ...core.config import SEARCH_METHODS, Config
from ...core.exceptions import ConfigurationError, OptimizationError
from ...core.logging import get_logger, log_with_correlation, search_instance
from ...data.bars import Bar, TimeFrame
from ...utils.decorators import log_execution_time
from ...utils.helpers import ensure_directory, log_memory_usage, processing_units
from ..backtesting.engine import BacktestEngine, BacktestOptions
from ..backtesting.metrics import BacktestResult
from ..parameters.configuration import StrategyConfiguration
from ..parameters.registry import ParameterRegistry
from .annealing import AnnealingConfig, SimulatedAnnealing
from .base import ProgressCallback, SearchOutcome
from .exhaustive import ExhaustiveSearch
from .fitness import BacktestFitnessEvaluator, FitnessResult
from .swarm import ParticleSwarm, SwarmConfig

logger = get_logger(__name__)


@dataclass
class OptimizerConfig:
    """Configuration for the strategy optimizer."""
    
    method: str = "annealing"
    iterations: int = 1000
    n_instances: int = 0
    seed: Optional[int] = None
    
    # Result handling
    max_sampled_results: int = 100
    max_drawdown_percent: float = 30.0
    max_exhaustive_combinations: int = 100_000
    
    # Simulated annealing
    initial_temperature: float = 100.0
    final_temperature: float = 0.1
    
    # Particle swarm
    swarm_size: int = 30
    inertia: float = 0.7
    cognitive: float = 1.5
    social: float = 1.5
    flip_probability: float = 0.1
    
    def __post_init__(self):
        if self.method not in SEARCH_METHODS:
            raise ConfigurationError(
                f"Unknown search method: {self.method}",
                details={"available": list(SEARCH_METHODS)}
            )
        if self.iterations <= 0:
            raise ConfigurationError("Iterations must be positive", details=self.iterations)
        if self.n_instances < 0:
            raise ConfigurationError("Instance count cannot be negative", details=self.n_instances)
    
    @classmethod
    def from_config(cls, config: Config) -> "OptimizerConfig":
        opt = config.optimization
        return cls(
            method=opt.method,
            iterations=opt.iterations,
            n_instances=opt.n_instances,
            seed=opt.seed,
            max_sampled_results=opt.max_sampled_results,
            max_drawdown_percent=opt.max_drawdown_percent,
            max_exhaustive_combinations=opt.max_exhaustive_combinations,
            initial_temperature=opt.initial_temperature,
            final_temperature=opt.final_temperature,
            swarm_size=opt.swarm_size,
            inertia=opt.inertia,
            cognitive=opt.cognitive,
            social=opt.social,
            flip_probability=opt.flip_probability,
        )
    
    def annealing_config(self, iterations: int) -> AnnealingConfig:
        return AnnealingConfig(
            iterations=iterations,
            initial_temperature=self.initial_temperature,
            final_temperature=self.final_temperature,
        )
    
    def swarm_config(self, n_jobs: int) -> SwarmConfig:
        return SwarmConfig(
            swarm_size=self.swarm_size,
            iterations=self.iterations,
            inertia=self.inertia,
            cognitive=self.cognitive,
            social=self.social,
            flip_probability=self.flip_probability,
            n_jobs=n_jobs,
        )


class ProgressTracker:
    """
    Combines the progress of concurrent search instances into one counter.
    
    Each instance reports (current, instance_total); its share of the global
    total is proportional to instance_total. The callback fires only when the
    combined value increases.
    """
    
    def __init__(
        self,
        total: int,
        instance_totals: Sequence[int],
        callback: Optional[ProgressCallback] = None
    ):
        self.total = total
        self.instance_totals = list(instance_totals)
        self.callback = callback
        self._weight = total / max(1, sum(self.instance_totals))
        self._progress = [0] * len(self.instance_totals)
        self._reported = 0
        self._lock = threading.Lock()
    
    @property
    def current(self) -> int:
        return self._reported
    
    def update(self, instance: int, current: int) -> None:
        with self._lock:
            current = min(current, self.instance_totals[instance])
            if current <= self._progress[instance]:
                return
            self._progress[instance] = current
            combined = min(self.total, int(round(sum(self._progress) * self._weight)))
            if combined <= self._reported:
                return
            self._reported = combined
            if self.callback:
                self.callback(combined, self.total)
    
    def for_instance(self, instance: int) -> ProgressCallback:
        """Progress callback bound to one instance."""
        def report(current: int, _total: int) -> None:
            self.update(instance, current)
        return report


@dataclass(frozen=True)
class OptimizationResult:
    """Final, post-processed outcome of an optimization run."""
    
    best_candidate: List[Dict[str, Any]]
    best_result: Optional[BacktestResult]
    best_fitness: float
    sampled_results: Tuple[FitnessResult, ...]
    total_combinations_considered: int
    timeframe: TimeFrame
    method: str
    search_space_size: int
    
    @classmethod
    def empty(
        cls,
        timeframe: TimeFrame,
        method: str,
        search_space_size: int,
        total_combinations_considered: int = 0
    ) -> "OptimizationResult":
        """Result of a run that produced no valid candidate."""
        return cls(
            best_candidate=[],
            best_result=None,
            best_fitness=float("-inf"),
            sampled_results=(),
            total_combinations_considered=total_combinations_considered,
            timeframe=timeframe,
            method=method,
            search_space_size=search_space_size,
        )
    
    @property
    def is_empty(self) -> bool:
        return self.best_result is None
    
    def best_configuration(self, registry: Optional[ParameterRegistry] = None) -> StrategyConfiguration:
        """
        Raises:
            OptimizationError: If the result is empty
        """
        if self.is_empty:
            raise OptimizationError("Optimization produced no valid candidate")
        return StrategyConfiguration.from_descriptors(self.best_candidate, registry)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "timeframe": self.timeframe.label,
            "search_space_size": self.search_space_size,
            "total_combinations_considered": self.total_combinations_considered,
            "best_candidate": self.best_candidate,
            "best_fitness": self.best_fitness if not self.is_empty else None,
            "best_result": self.best_result.to_dict() if self.best_result else None,
            "sampled_results": [
                {
                    "candidate": fitness.candidate.to_descriptors(),
                    "fitness": fitness.fitness_score,
                    "result": fitness.result.to_dict(),
                }
                for fitness in self.sampled_results
            ],
        }
    
    def save(self, path: Union[str, Path]) -> Path:
        """Write the result as JSON; parent directories are created."""
        path = Path(path)
        ensure_directory(path.parent)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)
        logger.info(f"Optimization result saved to {path}")
        return path
    
    @staticmethod
    def load_candidate(path: Union[str, Path], registry: Optional[ParameterRegistry] = None) -> StrategyConfiguration:
        """Read the best candidate back from a saved result file."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Failed to read optimization result {path}", details=str(e))
        descriptors = data.get("best_candidate") or []
        if not descriptors:
            raise OptimizationError(f"Optimization result {path} has no best candidate")
        return StrategyConfiguration.from_descriptors(descriptors, registry)


def split_iterations(iterations: int, instances: int) -> List[int]:
    """Share iterations between instances; the first ``iterations % instances`` get one more."""
    base, remainder = divmod(iterations, instances)
    return [base + 1 if index < remainder else base for index in range(instances)]


def spawn_rngs(seed: Optional[int], count: int) -> List[random.Random]:
    """Independent random streams derived from one seed."""
    children = np.random.SeedSequence(seed).spawn(count)
    return [random.Random(int(child.generate_state(1)[0])) for child in children]


class StrategyOptimizer:
    """
    Finds the best parameters for a strategy configuration.
    """
    
    def __init__(
        self,
        bars: Sequence[Bar],
        configuration: StrategyConfiguration,
        config: Optional[OptimizerConfig] = None,
        backtest_options: Optional[BacktestOptions] = None
    ):
        """
        Initialize optimizer.
        
        Args:
            bars: Bars every candidate is backtested on
            configuration: Template defining the indicator kinds and their ranges
            config: Optimizer configuration
            backtest_options: Engine settings
        
        Raises:
            ConfigurationError: If there are no more bars than warm-up bars
        """
        self.bars = bars
        self.configuration = configuration
        self.config = config or OptimizerConfig()
        self.backtest_options = backtest_options or BacktestOptions()
        
        if len(bars) <= self.backtest_options.warmup_bars:
            raise ConfigurationError(
                "Not enough bars to optimize",
                details={"bars": len(bars), "warmup_bars": self.backtest_options.warmup_bars}
            )
    
    def _new_evaluator(self) -> BacktestFitnessEvaluator:
        return BacktestFitnessEvaluator(
            BacktestEngine(self.backtest_options),
            self.bars,
            max_drawdown_percent=self.config.max_drawdown_percent,
        )
    
    @log_with_correlation
    @log_execution_time(logger)
    def run(
        self,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> OptimizationResult:
        """
        Run the configured search method.
        
        Args:
            progress_callback: Called with (current, total), never decreasing
            cancel_event: Cooperative cancellation flag
            
        Returns:
            Post-processed optimization result (possibly empty)
        
        Raises:
            ConfigurationError: For invalid settings or an oversized exhaustive grid
            SearchCancelled: If ``cancel_event`` is set
        """
        method = self.config.method
        logger.info(
            f"Optimizing {self.configuration.name} with {method}",
            extra={"extra_fields": {
                "method": method,
                "iterations": self.config.iterations,
                "search_space_size": self.configuration.permutation_count(),
                "bars": len(self.bars),
            }}
        )
        log_memory_usage(logger, stage="search start")
        
        if method == "exhaustive":
            outcomes = [self._run_exhaustive(progress_callback, cancel_event)]
        elif method == "swarm":
            outcomes = [self._run_swarm(progress_callback, cancel_event)]
        else:
            outcomes = self._run_annealing(progress_callback, cancel_event)
        
        result = self._post_process(outcomes)
        log_memory_usage(logger, stage="search end")
        if result.is_empty:
            logger.warning("Optimization finished without a valid candidate")
        else:
            logger.info(
                f"Best candidate: net profit {result.best_result.net_profit:.2f}, "
                f"fitness {result.best_fitness:.4f}"
            )
        return result
    
    def _run_exhaustive(self, progress_callback, cancel_event) -> SearchOutcome:
        search = ExhaustiveSearch(
            self._new_evaluator(),
            max_combinations=self.config.max_exhaustive_combinations,
            progress_callback=progress_callback,
        )
        return search.run(self.configuration, cancel_event)
    
    def _run_swarm(self, progress_callback, cancel_event) -> SearchOutcome:
        n_jobs = self.config.n_instances or processing_units()
        swarm = ParticleSwarm(
            self._new_evaluator(),
            config=self.config.swarm_config(n_jobs),
            rng=spawn_rngs(self.config.seed, 1)[0],
            progress_callback=progress_callback,
        )
        return swarm.run(self.configuration, cancel_event)
    
    def _run_annealing(self, progress_callback, cancel_event) -> List[SearchOutcome]:
        iterations = self.config.iterations
        instances = min(self.config.n_instances or processing_units(), iterations)
        instance_iterations = split_iterations(iterations, instances)
        rngs = spawn_rngs(self.config.seed, instances)
        tracker = ProgressTracker(iterations, instance_iterations, progress_callback)
        
        logger.info(f"Running {instances} annealing instances")
        
        chains = []
        for index, (chain_iterations, rng) in enumerate(zip(instance_iterations, rngs)):
            chain = SimulatedAnnealing(
                self._new_evaluator(),
                config=self.config.annealing_config(chain_iterations),
                rng=rng,
                progress_callback=tracker.for_instance(index),
            )
            start = self.configuration.random_sample(rng)
            chains.append((chain, start))
        
        with ThreadPoolExecutor(max_workers=instances) as executor:
            futures = [
                executor.submit(self._run_chain, index, chain, start, cancel_event)
                for index, (chain, start) in enumerate(chains)
            ]
            return [future.result() for future in futures]
    
    @staticmethod
    def _run_chain(index: int, chain: SimulatedAnnealing, start: StrategyConfiguration, cancel_event) -> SearchOutcome:
        with search_instance(index):
            return chain.run(start, cancel_event)
    
    def _post_process(self, outcomes: List[SearchOutcome]) -> OptimizationResult:
        """Drop invalid results, de-duplicate, rank by net profit and sample."""
        evaluations = sum(outcome.evaluations for outcome in outcomes)
        space_size = self.configuration.permutation_count()
        
        valid = [fitness for outcome in outcomes for fitness in outcome.results if fitness.valid]
        valid.sort(key=lambda fitness: fitness.result.net_profit, reverse=True)
        
        unique: List[FitnessResult] = []
        seen = set()
        for fitness in valid:
            if fitness.candidate in seen:
                continue
            seen.add(fitness.candidate)
            unique.append(fitness)
        
        if not unique:
            return OptimizationResult.empty(
                self.backtest_options.timeframe,
                self.config.method,
                space_size,
                total_combinations_considered=evaluations,
            )
        
        best = unique[0]
        return OptimizationResult(
            best_candidate=best.candidate.to_descriptors(),
            best_result=best.result,
            best_fitness=best.fitness_score,
            sampled_results=tuple(unique[1:1 + self.config.max_sampled_results]),
            total_combinations_considered=evaluations,
            timeframe=self.backtest_options.timeframe,
            method=self.config.method,
            search_space_size=space_size,
        )
