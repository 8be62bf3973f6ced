"""
Fitness evaluation for the parameter search.

This module provides the composite fitness function that turns a backtest
result into a single score, and evaluators that run candidate strategy
configurations through the backtest engine.
"""

import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ...core.exceptions import ConfigurationError, EvaluationError, InvalidResultError, SearchCancelled
from ...core.logging import get_logger
from ...data.bars import Bar
from ...utils.helpers import finite_or_zero
from ..backtesting.engine import BacktestEngine
from ..backtesting.metrics import BacktestResult
from ..backtesting.strategies import IndicatorStrategy
from ..parameters.configuration import StrategyConfiguration

logger = get_logger(__name__)


@dataclass(frozen=True)
class FitnessWeights:
    """Weights of the fitness components."""
    
    profit_factor: float = 3.0
    net_return: float = 1.0
    win_rate: float = 2.0
    sharpe_ratio: float = 2.0
    drawdown_penalty: float = 1.0
    sharpe_cap: float = 3.0


class FitnessFunction:
    """
    Composite score of a backtest result (higher is better).
    
        3·PF + net/initial + 2·win_rate + 2·min(sharpe, 3) − (dd%/100)²
    
    Components that are not finite (an infinite profit factor, for example)
    contribute nothing.
    """
    
    def __init__(self, weights: Optional[FitnessWeights] = None):
        self.weights = weights or FitnessWeights()
    
    def score(self, result: BacktestResult) -> float:
        w = self.weights
        net_return = result.net_profit / result.initial_balance if result.initial_balance else math.nan
        drawdown = result.max_drawdown_percent / 100.0
        return (
            w.profit_factor * finite_or_zero(result.profit_factor)
            + w.net_return * finite_or_zero(net_return)
            + w.win_rate * finite_or_zero(result.win_rate)
            + w.sharpe_ratio * finite_or_zero(min(result.sharpe_ratio, w.sharpe_cap))
            - w.drawdown_penalty * finite_or_zero(drawdown * drawdown)
        )
    
    def energy(self, result: BacktestResult) -> float:
        """Negated score, for minimizing searches."""
        return -self.score(result)


@dataclass
class FitnessResult:
    """Result of a fitness evaluation."""
    
    candidate: StrategyConfiguration
    fitness_score: float
    result: BacktestResult
    valid: bool = True
    rejection_reason: str = ""
    
    @property
    def energy(self) -> float:
        return -self.fitness_score
    
    def require_valid(self) -> "FitnessResult":
        """
        Raises:
            InvalidResultError: If the result failed the validity gate
        """
        if not self.valid:
            raise InvalidResultError(
                f"Candidate {self.candidate.name} rejected",
                details=self.rejection_reason
            )
        return self


class FitnessEvaluator(ABC):
    """Abstract base class for fitness evaluation."""
    
    def __init__(self, cache_results: bool = True):
        """
        Initialize fitness evaluator.
        
        Args:
            cache_results: Whether to cache evaluation results
        """
        self.cache_results = cache_results
        self._cache: Dict[bytes, FitnessResult] = {}
        self._cache_lock = threading.Lock()
        self._cache_hits = 0
        self._cache_misses = 0
    
    @abstractmethod
    def evaluate(
        self,
        candidate: StrategyConfiguration,
        cancel_event: Optional[threading.Event] = None
    ) -> FitnessResult:
        """
        Evaluate the fitness of a candidate.
        
        Args:
            candidate: Strategy configuration to evaluate
            cancel_event: Cooperative cancellation flag
            
        Returns:
            Fitness evaluation result
        """
        pass
    
    def evaluate_batch(
        self,
        candidates: Sequence[StrategyConfiguration],
        cancel_event: Optional[threading.Event] = None
    ) -> List[FitnessResult]:
        """
        Evaluate multiple candidates.
        
        Args:
            candidates: Configurations to evaluate
            cancel_event: Cooperative cancellation flag
            
        Returns:
            List of fitness results
        """
        return [self.evaluate(candidate, cancel_event) for candidate in candidates]
    
    def _get_cache_key(self, candidate: StrategyConfiguration) -> bytes:
        return candidate.encode()
    
    def _get_cached_result(self, candidate: StrategyConfiguration) -> Optional[FitnessResult]:
        if not self.cache_results:
            return None
        
        with self._cache_lock:
            cached = self._cache.get(self._get_cache_key(candidate))
            if cached is None:
                self._cache_misses += 1
            else:
                self._cache_hits += 1
            return cached
    
    def _cache_result(self, candidate: StrategyConfiguration, result: FitnessResult) -> None:
        if not self.cache_results:
            return
        
        with self._cache_lock:
            self._cache[self._get_cache_key(candidate)] = result
    
    def clear_cache(self) -> None:
        """Clear the evaluation cache."""
        with self._cache_lock:
            self._cache.clear()
    
    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        with self._cache_lock:
            return {
                "cached_results": len(self._cache),
                "cache_hits": self._cache_hits,
                "cache_misses": self._cache_misses
            }


class BacktestFitnessEvaluator(FitnessEvaluator):
    """
    Fitness evaluator that backtests each candidate on a fixed bar series.
    """
    
    def __init__(
        self,
        engine: BacktestEngine,
        bars: Sequence[Bar],
        fitness_function: Optional[FitnessFunction] = None,
        max_drawdown_percent: float = 30.0,
        cache_results: bool = True
    ):
        """
        Initialize backtest fitness evaluator.
        
        Args:
            engine: Backtest engine for evaluation
            bars: Bars every candidate is replayed on
            fitness_function: Scoring function
            max_drawdown_percent: Drawdown ceiling of the validity gate
            cache_results: Whether to cache results
        """
        super().__init__(cache_results)
        self.engine = engine
        self.bars = bars
        self.fitness_function = fitness_function or FitnessFunction()
        self.max_drawdown_percent = max_drawdown_percent
    
    def evaluate(
        self,
        candidate: StrategyConfiguration,
        cancel_event: Optional[threading.Event] = None
    ) -> FitnessResult:
        """
        Backtest a candidate and score it.
        
        Raises:
            EvaluationError: If the backtest fails for any reason other than
                cancellation or unusable settings
            ConfigurationError: If the bars or engine settings cannot be backtested
            SearchCancelled: If ``cancel_event`` is set during the backtest
        """
        cached_result = self._get_cached_result(candidate)
        if cached_result is not None:
            return cached_result
        
        try:
            result = self.engine.run(IndicatorStrategy(candidate), self.bars, cancel_event)
        except (SearchCancelled, ConfigurationError):
            raise
        except Exception as e:
            logger.debug(f"Backtest of {candidate!r} failed: {e}")
            raise EvaluationError(f"Failed to evaluate {candidate.name}", details=str(e)) from e
        
        fitness = FitnessResult(
            candidate=candidate,
            fitness_score=self.fitness_function.score(result),
            result=result,
            valid=result.is_valid(self.max_drawdown_percent),
            rejection_reason=self._rejection_reason(result),
        )
        self._cache_result(candidate, fitness)
        return fitness
    
    def _rejection_reason(self, result: BacktestResult) -> str:
        if result.total_trades == 0:
            return "no trades"
        if result.max_drawdown_percent > self.max_drawdown_percent:
            return (
                f"max drawdown {result.max_drawdown_percent:.2f}% exceeds "
                f"{self.max_drawdown_percent:.2f}%"
            )
        return ""
