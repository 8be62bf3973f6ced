"""
Tests for simulated annealing.
"""

import math
import random
import threading

import pytest

from sweep.core.exceptions import ConfigurationError, SearchCancelled
from sweep.optimization.parameters import LwpiParameters, StrategyConfiguration
from sweep.optimization.search import AnnealingConfig, SimulatedAnnealing
from conftest import ScoredEvaluator, lwpi_objective

pytestmark = [
    pytest.mark.unit,
    pytest.mark.search
]


@pytest.fixture
def space():
    return StrategyConfiguration([LwpiParameters()], add_default_risk=False)


def anneal(evaluator, start, iterations=200, seed=3, **kwargs):
    search = SimulatedAnnealing(
        evaluator,
        config=AnnealingConfig(iterations=iterations, **kwargs),
        rng=random.Random(seed),
    )
    return search.run(start)


class TestAnnealingConfig:
    """Test annealing configuration."""
    
    def test_cooling_rate(self):
        """Test the geometric schedule reaches the final temperature."""
        config = AnnealingConfig(iterations=100, initial_temperature=10.0, final_temperature=0.1)
        assert 10.0 * config.cooling_rate ** 100 == pytest.approx(0.1)
    
    @pytest.mark.parametrize("overrides", [
        {"iterations": 0},
        {"initial_temperature": 0.0},
        {"final_temperature": 200.0},
        {"max_initial_attempts": -1},
    ])
    def test_invalid(self, overrides):
        """Test invalid schedules raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            AnnealingConfig(**overrides)


class TestSimulatedAnnealing:
    """Test the annealing chain."""
    
    def test_improves_on_start(self, space):
        """Test the best result is at least as good as the start."""
        start = StrategyConfiguration([LwpiParameters(period=5, smoothing_period=5)], add_default_risk=False)
        outcome = anneal(ScoredEvaluator(lwpi_objective), start)
        
        assert outcome.best.fitness_score >= lwpi_objective(start)
        assert outcome.best.fitness_score > -200.0
    
    def test_best_history_monotonic(self, space):
        """Test one non-decreasing history entry per iteration."""
        outcome = anneal(ScoredEvaluator(lwpi_objective), space, iterations=150)
        history = outcome.best_fitness_history
        
        assert len(history) == 150
        assert all(later >= earlier for earlier, later in zip(history, history[1:]))
        assert history[-1] == outcome.best.fitness_score
    
    def test_start_not_modified(self, space):
        """Test the starting candidate is left untouched."""
        before = space.clone()
        anneal(ScoredEvaluator(lwpi_objective), space, iterations=50)
        assert space == before
    
    def test_evaluation_count(self, space):
        """Test one evaluation for the start plus one per iteration."""
        evaluator = ScoredEvaluator(lwpi_objective)
        outcome = anneal(evaluator, space, iterations=40)
        
        assert outcome.evaluations == 41
        assert evaluator.calls == 41
    
    def test_results_valid_and_in_range(self, space):
        """Test recorded results are valid in-range candidates."""
        outcome = anneal(ScoredEvaluator(lwpi_objective, valid=lambda c: c[0].period >= 20), space)
        
        assert outcome.results
        for fitness in outcome.results:
            assert fitness.valid
            assert 20 <= fitness.candidate[0].period <= 50
    
    def test_failing_candidates_skipped(self, space):
        """Test evaluation failures are discarded and the chain continues."""
        evaluator = ScoredEvaluator(lwpi_objective, fail=lambda c: c[0].smoothing_period > 30)
        outcome = anneal(evaluator, space, iterations=100)
        
        assert outcome.evaluations == 101
        assert all(f.candidate[0].smoothing_period <= 30 for f in outcome.results)
    
    def test_invalid_start_falls_back_to_samples(self, space):
        """Test random samples replace a rejected start."""
        evaluator = ScoredEvaluator(lwpi_objective, valid=lambda c: c[0] != LwpiParameters())
        outcome = anneal(evaluator, space, iterations=10)
        
        assert outcome.results[0].candidate != space
        assert outcome.evaluations >= 12
    
    def test_no_valid_candidate(self, space):
        """Test a space without valid candidates gives an empty outcome."""
        evaluator = ScoredEvaluator(lwpi_objective, valid=lambda c: False)
        outcome = anneal(evaluator, space, iterations=20, max_initial_attempts=4)
        
        assert outcome.best is None
        assert outcome.results == []
        assert outcome.best_fitness_history == []
        assert outcome.evaluations == 5 + 20
    
    def test_first_valid_neighbour_accepted(self, space):
        """Test the chain starts from the first valid neighbour when no start was valid."""
        evaluator = ScoredEvaluator(lwpi_objective, valid=lambda c: c[0].period >= 15)
        outcome = anneal(evaluator, space, iterations=300, max_initial_attempts=0, seed=1)
        
        assert outcome.best is not None
        assert math.isfinite(outcome.best.fitness_score)
        assert outcome.best.candidate[0].period >= 15
    
    def test_deterministic(self, space):
        """Test equal seeds give equal runs."""
        first = anneal(ScoredEvaluator(lwpi_objective), space, seed=42)
        second = anneal(ScoredEvaluator(lwpi_objective), space, seed=42)
        
        assert first.best_fitness_history == second.best_fitness_history
        assert [f.candidate for f in first.results] == [f.candidate for f in second.results]
    
    def test_progress(self, space):
        """Test progress is reported once per iteration."""
        calls = []
        search = SimulatedAnnealing(
            ScoredEvaluator(lwpi_objective),
            config=AnnealingConfig(iterations=25),
            rng=random.Random(0),
            progress_callback=lambda c, t: calls.append((c, t)),
        )
        search.run(space)
        assert calls == [(i, 25) for i in range(1, 26)]
    
    def test_cancellation(self, space):
        """Test a set cancel event stops the chain."""
        cancel_event = threading.Event()
        cancel_event.set()
        search = SimulatedAnnealing(ScoredEvaluator(lwpi_objective), rng=random.Random(0))
        with pytest.raises(SearchCancelled):
            search.run(space, cancel_event)
