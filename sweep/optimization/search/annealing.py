"""
Simulated annealing over strategy configurations.
"""

import math
import random
import threading
from dataclasses import dataclass
from typing import Optional

from ...core.exceptions import ConfigurationError, EvaluationError, InvalidResultError, ValidationError
from ...core.logging import get_logger
from ...utils.validators import validate_positive
from ..parameters.configuration import StrategyConfiguration
from .base import ProgressCallback, SearchOutcome, check_cancelled
from .fitness import FitnessEvaluator, FitnessResult

logger = get_logger(__name__)


@dataclass
class AnnealingConfig:
    """Configuration for simulated annealing."""
    
    iterations: int = 1000
    initial_temperature: float = 100.0
    final_temperature: float = 0.1
    max_initial_attempts: int = 10
    
    def __post_init__(self):
        try:
            validate_positive("iterations", self.iterations)
            validate_positive("initial_temperature", self.initial_temperature)
            validate_positive("final_temperature", self.final_temperature)
            validate_positive("max_initial_attempts", self.max_initial_attempts, allow_zero=True)
        except ValidationError as e:
            raise ConfigurationError("Invalid annealing configuration", details=str(e))
        if self.final_temperature >= self.initial_temperature:
            raise ConfigurationError(
                "Final temperature must be below the initial temperature",
                details={"initial": self.initial_temperature, "final": self.final_temperature}
            )
    
    @property
    def cooling_rate(self) -> float:
        """Geometric factor taking the initial temperature to the final one."""
        return (self.final_temperature / self.initial_temperature) ** (1.0 / self.iterations)


class SimulatedAnnealing:
    """
    Single-chain simulated annealing.
    
    The temperature cools geometrically; at temperature T a neighbour is
    drawn by perturbing the current candidate with intensity T/T0, and is
    accepted when it is not worse, or otherwise with probability
    exp((E_current - E_neighbour) / T). The best candidate ever seen is kept
    apart from the chain's current position.
    """
    
    def __init__(
        self,
        fitness_evaluator: FitnessEvaluator,
        config: Optional[AnnealingConfig] = None,
        rng: Optional[random.Random] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize simulated annealing.
        
        Args:
            fitness_evaluator: Evaluator for candidates
            config: Annealing configuration
            rng: Random source (private to this chain)
            progress_callback: Called with (iteration, iterations)
        """
        self.fitness_evaluator = fitness_evaluator
        self.config = config or AnnealingConfig()
        self.rng = rng or random.Random()
        self.progress_callback = progress_callback
    
    def _try_evaluate(
        self,
        candidate: StrategyConfiguration,
        outcome: SearchOutcome,
        cancel_event: Optional[threading.Event]
    ) -> Optional[FitnessResult]:
        outcome.evaluations += 1
        try:
            return self.fitness_evaluator.evaluate(candidate, cancel_event).require_valid()
        except (EvaluationError, InvalidResultError) as e:
            logger.debug(f"Discarding candidate {candidate.name}: {e}")
            return None
    
    def _initial_state(
        self,
        start: StrategyConfiguration,
        outcome: SearchOutcome,
        cancel_event: Optional[threading.Event]
    ) -> Optional[FitnessResult]:
        """Evaluate ``start``, falling back to random samples of the same space."""
        candidate = start
        for _ in range(self.config.max_initial_attempts + 1):
            check_cancelled(cancel_event)
            fitness = self._try_evaluate(candidate, outcome, cancel_event)
            if fitness is not None:
                return fitness
            candidate = start.random_sample(self.rng)
        logger.debug("No valid starting candidate found; first valid neighbour will be accepted")
        return None
    
    def run(
        self,
        start: StrategyConfiguration,
        cancel_event: Optional[threading.Event] = None
    ) -> SearchOutcome:
        """
        Anneal from ``start``.
        
        Args:
            start: Starting candidate (not modified)
            cancel_event: Polled once per iteration
            
        Returns:
            Search outcome with every accepted valid result
        """
        config = self.config
        outcome = SearchOutcome()
        
        current = self._initial_state(start.clone(), outcome, cancel_event)
        current_candidate = current.candidate if current is not None else start.clone()
        current_energy = current.energy if current is not None else math.inf
        if current is not None:
            outcome.consider(current)
        
        temperature = config.initial_temperature
        cooling_rate = config.cooling_rate
        
        for iteration in range(1, config.iterations + 1):
            check_cancelled(cancel_event)
            
            intensity = min(1.0, temperature / config.initial_temperature)
            neighbour = current_candidate.perturb(intensity, self.rng)
            fitness = self._try_evaluate(neighbour, outcome, cancel_event)
            
            if fitness is not None:
                delta = fitness.energy - current_energy
                if delta <= 0 or self.rng.random() < math.exp(-delta / temperature):
                    current_candidate = fitness.candidate
                    current_energy = fitness.energy
                    if outcome.consider(fitness):
                        logger.debug(
                            f"Iteration {iteration}: new best fitness {fitness.fitness_score:.4f} "
                            f"at T={temperature:.3f}"
                        )
            
            temperature *= cooling_rate
            outcome.record_best()
            if self.progress_callback:
                self.progress_callback(iteration, config.iterations)
        
        return outcome
