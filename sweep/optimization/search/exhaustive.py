"""
Exhaustive grid search over a strategy configuration's parameter space.
"""

import threading
from typing import Iterator, Optional

from ...core.exceptions import ConfigurationError, EvaluationError, InvalidResultError
from ...core.logging import get_logger
from ..parameters.configuration import StrategyConfiguration
from .base import ProgressCallback, SearchOutcome, check_cancelled
from .fitness import FitnessEvaluator

logger = get_logger(__name__)


class ExhaustiveSearch:
    """Evaluates every grid point of a configuration."""
    
    def __init__(
        self,
        fitness_evaluator: FitnessEvaluator,
        max_combinations: int = 100_000,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize exhaustive search.
        
        Args:
            fitness_evaluator: Evaluator for candidates
            max_combinations: Refuse grids larger than this
            progress_callback: Called with (evaluated, total)
        """
        self.fitness_evaluator = fitness_evaluator
        self.max_combinations = max_combinations
        self.progress_callback = progress_callback
    
    @staticmethod
    def iter_grid(configuration: StrategyConfiguration) -> Iterator[StrategyConfiguration]:
        """Yield an independent copy of every grid point, starting from the minimum."""
        cursor = configuration.clone()
        cursor.reset()
        yield cursor.clone()
        while cursor.increment_single():
            yield cursor.clone()
    
    @staticmethod
    def count_combinations(configuration: StrategyConfiguration) -> int:
        return configuration.permutation_count()
    
    def run(
        self,
        configuration: StrategyConfiguration,
        cancel_event: Optional[threading.Event] = None
    ) -> SearchOutcome:
        """
        Evaluate the whole grid of ``configuration``.
        
        Raises:
            ConfigurationError: If the grid is larger than ``max_combinations``
            SearchCancelled: If ``cancel_event`` is set
        """
        total = self.count_combinations(configuration)
        if total > self.max_combinations:
            raise ConfigurationError(
                f"Search space of {total} combinations is too large for exhaustive search",
                details={"combinations": total, "max_combinations": self.max_combinations}
            )
        
        logger.info(f"Exhaustive search over {total} combinations of {configuration.name}")
        outcome = SearchOutcome()
        for index, candidate in enumerate(self.iter_grid(configuration), start=1):
            check_cancelled(cancel_event)
            outcome.evaluations += 1
            try:
                fitness = self.fitness_evaluator.evaluate(candidate, cancel_event).require_valid()
            except (EvaluationError, InvalidResultError) as e:
                logger.debug(f"Skipping grid point {index}: {e}")
            else:
                outcome.consider(fitness)
            outcome.record_best()
            
            if self.progress_callback:
                self.progress_callback(index, total)
        
        return outcome
