"""
Pytest configuration and common fixtures for SWEEP testing.

This file contains shared fixtures and configuration that can be used
across all test modules.
"""

import pytest
import tempfile
import shutil
import threading
from pathlib import Path
from typing import List
import pandas as pd
import numpy as np

# Add the project root to Python path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from sweep.core import Config, setup_logging
from sweep.core.logging import get_logger
from sweep.core.exceptions import EvaluationError, SearchCancelled
from sweep.data.bars import Bar, TimeFrame
from sweep.optimization.backtesting.metrics import BacktestResult
from sweep.optimization.backtesting.strategies import TradingStrategy, TradeOrder
from sweep.optimization.search.fitness import FitnessEvaluator, FitnessResult

HOUR = 3600
START_TIMESTAMP = 1_700_000_000 - (1_700_000_000 % HOUR)


def make_bars(closes, start: int = START_TIMESTAMP, step: int = HOUR, spread: float = 0.5, volume: float = 1000.0) -> List[Bar]:
    """Bars whose open is the previous close and whose range is close +/- spread."""
    bars = []
    previous = closes[0]
    for index, close in enumerate(closes):
        high = max(previous, close) + spread
        low = min(previous, close) - spread
        bars.append(Bar(start + index * step, float(previous), float(high), float(low), float(close), volume))
        previous = close
    return bars


def random_walk_bars(count: int, seed: int = 7, start_price: float = 100.0) -> List[Bar]:
    """Reproducible trending random walk with varying volume."""
    rng = np.random.RandomState(seed)
    steps = rng.normal(0.0, 0.6, count) + 0.25 * np.sin(np.arange(count) / 15.0)
    closes = np.maximum(1.0, start_price + np.cumsum(steps))
    volumes = rng.uniform(500.0, 2000.0, count)
    bars = []
    previous = closes[0]
    for index in range(count):
        close = float(closes[index])
        high = max(previous, close) + float(rng.uniform(0.1, 0.8))
        low = min(previous, close) - float(rng.uniform(0.1, 0.8))
        bars.append(Bar(START_TIMESTAMP + index * HOUR, float(previous), high, low, close, float(volumes[index])))
        previous = close
    return bars


class ScriptedStrategy(TradingStrategy):
    """Strategy returning pre-arranged orders keyed by bar index."""
    
    def __init__(self, orders=None):
        self.orders = dict(orders or {})
        self.observed = []
        self.evaluated = []
    
    def observe(self, bars):
        self.observed.append(len(bars))
    
    def evaluate(self, bars):
        index = len(bars) - 1
        self.evaluated.append(index)
        return self.orders.get(index, TradeOrder.none())


def make_result(net_profit: float = 0.0, total_trades: int = 1, max_drawdown: float = 0.1, **overrides) -> BacktestResult:
    """Backtest result with the given headline numbers."""
    values = dict(
        initial_balance=1000.0,
        final_balance=1000.0 + net_profit,
        total_trades=total_trades,
        winning_trades=total_trades,
        losing_trades=0,
        gross_profit=max(net_profit, 0.0),
        gross_loss=max(-net_profit, 0.0),
        max_drawdown=max_drawdown,
        sharpe_ratio=0.0,
        start_time=START_TIMESTAMP,
        end_time=START_TIMESTAMP + 100 * HOUR,
        max_inactive_bars=0,
        timeframe=TimeFrame.HOUR_1,
    )
    values.update(overrides)
    return BacktestResult(**values)


class ScoredEvaluator(FitnessEvaluator):
    """Evaluator scoring candidates with a plain function instead of a backtest."""
    
    def __init__(self, score, valid=None, fail=None):
        super().__init__(cache_results=False)
        self.score = score
        self.valid = valid
        self.fail = fail
        self.calls = 0
        self._lock = threading.Lock()
    
    def evaluate(self, candidate, cancel_event=None):
        with self._lock:
            self.calls += 1
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelled("cancelled")
        if self.fail is not None and self.fail(candidate):
            raise EvaluationError("scripted failure")
        fitness_score = float(self.score(candidate))
        valid = self.valid(candidate) if self.valid is not None else True
        return FitnessResult(
            candidate=candidate,
            fitness_score=fitness_score,
            result=make_result(net_profit=fitness_score),
            valid=valid,
            rejection_reason="" if valid else "scripted rejection",
        )


def lwpi_objective(candidate) -> float:
    """Peaks at period 25, smoothing period 40 of the first parameter set."""
    params = candidate[0]
    return -float((params.period - 25) ** 2 + (params.smoothing_period - 40) ** 2)


@pytest.fixture(scope="session")
def test_logger():
    """Set up logging for tests."""
    # Configure logging for tests (console only, no files)
    setup_logging(level="DEBUG", enable_file=False, enable_console=True)
    return get_logger("test")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SWEEP_* overrides from the environment."""
    for name in ("SWEEP_DATA_PATH", "SWEEP_TIMEFRAME", "SWEEP_INSTANCES"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "data": {
            "data_path": "test_bars.csv",
            "timeframe": "4h",
            "lookback_days": 30
        },
        "backtest": {
            "initial_balance": 5000.0,
            "leverage": 5,
            "warmup_bars": 50
        },
        "strategy": {
            "indicators": ["lwpi", "normalized_volume"]
        },
        "optimization": {
            "method": "swarm",
            "iterations": 20,
            "seed": 11
        }
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Create a temporary config file for testing."""
    import json
    config_path = temp_dir / "test_config.json"
    with open(config_path, 'w') as f:
        json.dump(sample_config_data, f, indent=2)
    return config_path


@pytest.fixture
def config_from_file(config_file, clean_env, temp_dir):
    """Create a config instance from a test file."""
    return Config(config_file=config_file, env_file=temp_dir / "missing.env")


@pytest.fixture
def sample_dataframe():
    """Create a sample OHLCV DataFrame for testing."""
    return pd.DataFrame({
        'timestamp': [START_TIMESTAMP + i * HOUR for i in range(5)],
        'open': [100, 101, 102, 103, 104],
        'high': [105, 106, 107, 108, 109],
        'low': [99, 100, 101, 102, 103],
        'close': [102, 103, 104, 105, 106],
        'volume': [1000, 1100, 1200, 1300, 1400]
    })


@pytest.fixture
def flat_bars():
    """150 hourly bars at a constant price of 100."""
    return make_bars([100.0] * 150, spread=0.0)


@pytest.fixture
def walk_bars():
    """600 hourly bars of a reproducible random walk."""
    return random_walk_bars(600)


@pytest.fixture
def bars_csv(temp_dir, walk_bars):
    """CSV file holding ``walk_bars`` with second timestamps."""
    path = temp_dir / "bars.csv"
    pd.DataFrame(
        [(b.timestamp, b.open, b.high, b.low, b.close, b.volume) for b in walk_bars],
        columns=["timestamp", "open", "high", "low", "close", "volume"]
    ).to_csv(path, index=False)
    return path


# Test markers for organizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "core: mark test as testing core functionality"
    )
    config.addinivalue_line(
        "markers", "config: mark test as testing configuration"
    )
    config.addinivalue_line(
        "markers", "logging: mark test as testing logging"
    )
    config.addinivalue_line(
        "markers", "utils: mark test as testing utilities"
    )
    config.addinivalue_line(
        "markers", "data: mark test as testing bar data handling"
    )
    config.addinivalue_line(
        "markers", "parameters: mark test as testing the parameter space and codec"
    )
    config.addinivalue_line(
        "markers", "indicators: mark test as testing indicators"
    )
    config.addinivalue_line(
        "markers", "backtesting: mark test as testing the backtest engine"
    )
    config.addinivalue_line(
        "markers", "search: mark test as testing search algorithms"
    )
    config.addinivalue_line(
        "markers", "cli: mark test as testing the command line interface"
    )
