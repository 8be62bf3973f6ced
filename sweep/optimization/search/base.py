"""
Shared types of the search algorithms.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ...core.exceptions import SearchCancelled
from .fitness import FitnessResult

# Called with (current, total) after each unit of search work
ProgressCallback = Callable[[int, int], None]


@dataclass
class SearchOutcome:
    """Results gathered by one search run."""
    
    results: List[FitnessResult] = field(default_factory=list)
    best: Optional[FitnessResult] = None
    best_fitness_history: List[float] = field(default_factory=list)
    evaluations: int = 0
    
    def consider(self, fitness: FitnessResult) -> bool:
        """Record a valid result; returns True if it is the new best."""
        self.results.append(fitness)
        if self.best is None or fitness.fitness_score > self.best.fitness_score:
            self.best = fitness
            return True
        return False
    
    def record_best(self) -> None:
        if self.best is not None:
            self.best_fitness_history.append(self.best.fitness_score)


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelled("Search cancelled")
