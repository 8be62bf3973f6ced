"""
Particle swarm optimization over strategy configurations.

Numeric fields move continuously inside their ranges (integers are rounded);
toggles have no velocity and flip with a fixed probability each step.
Particle moves are drawn on the calling thread so a seeded run is
reproducible; only the backtests run in the worker pool.
"""

import math
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from ...core.exceptions import ConfigurationError, EvaluationError, InvalidResultError, ValidationError
from ...core.logging import get_logger
from ...utils.helpers import processing_units
from ...utils.validators import validate_positive, validate_probability
from ..parameters.configuration import StrategyConfiguration
from ..parameters.specs import Toggle
from .base import ProgressCallback, SearchOutcome, check_cancelled
from .fitness import FitnessEvaluator, FitnessResult

logger = get_logger(__name__)

# Initial velocity bound as a fraction of (max - min)
INITIAL_VELOCITY_SCALE = 0.1


@dataclass
class SwarmConfig:
    """Configuration for particle swarm optimization."""
    
    swarm_size: int = 30
    iterations: int = 300
    inertia: float = 0.7
    cognitive: float = 1.5
    social: float = 1.5
    flip_probability: float = 0.1
    n_jobs: int = 0
    
    def __post_init__(self):
        try:
            validate_positive("swarm_size", self.swarm_size)
            validate_positive("iterations", self.iterations)
            validate_positive("inertia", self.inertia, allow_zero=True)
            validate_positive("cognitive", self.cognitive, allow_zero=True)
            validate_positive("social", self.social, allow_zero=True)
            validate_probability("flip_probability", self.flip_probability)
            validate_positive("n_jobs", self.n_jobs, allow_zero=True)
        except ValidationError as e:
            raise ConfigurationError("Invalid swarm configuration", details=str(e))


@dataclass
class Particle:
    """One member of the swarm."""
    
    position: StrategyConfiguration
    velocity: List[List[float]]
    personal_best: Optional[StrategyConfiguration] = None
    personal_best_fitness: float = -math.inf


class ParticleSwarm:
    """Synchronous particle swarm with a per-iteration evaluation barrier."""
    
    def __init__(
        self,
        fitness_evaluator: FitnessEvaluator,
        config: Optional[SwarmConfig] = None,
        rng: Optional[random.Random] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize particle swarm.
        
        Args:
            fitness_evaluator: Evaluator shared by the worker threads
            config: Swarm configuration
            rng: Random source for positions, velocities and flips
            progress_callback: Called with (iteration, iterations)
        """
        self.fitness_evaluator = fitness_evaluator
        self.config = config or SwarmConfig()
        self.rng = rng or random.Random()
        self.progress_callback = progress_callback
    
    def _spawn(self, template: StrategyConfiguration) -> Particle:
        position = template.random_sample(self.rng)
        velocity = []
        for parameter_set in position:
            set_velocity = []
            for spec in parameter_set.FIELDS.values():
                if isinstance(spec, Toggle):
                    set_velocity.append(0.0)
                else:
                    bound = INITIAL_VELOCITY_SCALE * (spec.high - spec.low)
                    set_velocity.append(self.rng.uniform(-bound, bound))
            velocity.append(set_velocity)
        return Particle(position=position, velocity=velocity)
    
    def _move(self, particle: Particle, global_best: Optional[StrategyConfiguration]) -> None:
        """Advance a particle one step; its position is replaced, never mutated."""
        config = self.config
        personal_best = particle.personal_best or particle.position
        social_best = global_best or particle.position
        
        moved = particle.position.clone()
        for set_index, parameter_set in enumerate(moved):
            for field_index, (name, spec) in enumerate(parameter_set.FIELDS.items()):
                current = parameter_set.get(name)
                if isinstance(spec, Toggle):
                    if self.rng.random() < config.flip_probability:
                        parameter_set.set(name, not current)
                    continue
                
                cognitive_pull = personal_best[set_index].get(name) - current
                social_pull = social_best[set_index].get(name) - current
                velocity = (
                    config.inertia * particle.velocity[set_index][field_index]
                    + config.cognitive * self.rng.random() * cognitive_pull
                    + config.social * self.rng.random() * social_pull
                )
                particle.velocity[set_index][field_index] = velocity
                parameter_set.set(name, spec.clamp(current + velocity))
        particle.position = moved
    
    def _evaluate(
        self,
        candidate: StrategyConfiguration,
        cancel_event: Optional[threading.Event]
    ) -> Optional[FitnessResult]:
        try:
            return self.fitness_evaluator.evaluate(candidate, cancel_event).require_valid()
        except (EvaluationError, InvalidResultError) as e:
            logger.debug(f"Particle candidate {candidate.name} discarded: {e}")
            return None
    
    def run(
        self,
        template: StrategyConfiguration,
        cancel_event: Optional[threading.Event] = None
    ) -> SearchOutcome:
        """
        Optimize the space spanned by ``template``.
        
        Args:
            template: Configuration whose kinds and ranges define the space
            cancel_event: Polled once per iteration
            
        Returns:
            Search outcome with every valid evaluated result
        """
        config = self.config
        n_jobs = config.n_jobs or processing_units()
        particles = [self._spawn(template) for _ in range(config.swarm_size)]
        outcome = SearchOutcome()
        global_best: Optional[FitnessResult] = None
        
        logger.info(
            f"Particle swarm: {config.swarm_size} particles, {config.iterations} iterations, "
            f"{n_jobs} workers"
        )
        
        with ThreadPoolExecutor(max_workers=n_jobs) as executor:
            for iteration in range(1, config.iterations + 1):
                check_cancelled(cancel_event)
                if iteration > 1:
                    best_position = global_best.candidate if global_best else None
                    for particle in particles:
                        self._move(particle, best_position)
                
                # Barrier: map returns only after every particle was evaluated
                evaluated = list(executor.map(
                    lambda candidate: self._evaluate(candidate, cancel_event),
                    [particle.position for particle in particles]
                ))
                outcome.evaluations += len(evaluated)
                
                for particle, fitness in zip(particles, evaluated):
                    if fitness is None:
                        continue
                    outcome.consider(fitness)
                    if fitness.fitness_score > particle.personal_best_fitness:
                        particle.personal_best = fitness.candidate
                        particle.personal_best_fitness = fitness.fitness_score
                    if global_best is None or fitness.fitness_score > global_best.fitness_score:
                        global_best = fitness
                
                outcome.record_best()
                if self.progress_callback:
                    self.progress_callback(iteration, config.iterations)
        
        if global_best is not None:
            logger.info(f"Particle swarm best fitness {global_best.fitness_score:.4f}")
        return outcome
