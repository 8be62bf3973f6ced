"""
Configuration management for the SWEEP parameter search system.

This module provides file-based configuration for data loading, backtesting,
strategy composition and optimization. Deployment specific overrides (data
location, timeframe, worker count) may be supplied through environment
variables or a .env file.
"""

import os
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import timedelta
from dataclasses import dataclass, field, asdict
from dotenv import load_dotenv

from .exceptions import ConfigurationError, ValidationError
from .logging import get_logger
from ..data.bars import TimeFrame


SEARCH_METHODS = ("annealing", "swarm", "exhaustive")


@dataclass
class DataConfig:
    """Configuration for historical bar loading."""
    data_path: str = "data/bars.csv"
    timeframe: str = "1h"
    lookback_days: Optional[int] = None


@dataclass
class BacktestConfig:
    """Configuration for the simulated account and replay loop."""
    initial_balance: float = 1000.0
    fee_percentage: float = 0.05
    leverage: int = 10
    risk_percentage: float = 1.0
    max_concurrent_trades: int = 1
    warmup_bars: int = 100
    inactivity_hours: float = 240.0
    liquidation_drawdown: float = 0.5


@dataclass
class StrategyConfig:
    """Configuration for the indicator kinds taking part in a strategy."""
    indicators: List[str] = field(default_factory=lambda: [
        "supertrend", "mcginley_dynamic", "atr_bands"
    ])


@dataclass
class OptimizationConfig:
    """Configuration for parameter search."""
    method: str = "annealing"
    iterations: int = 1000
    n_instances: int = 0
    seed: Optional[int] = None
    
    # Simulated annealing
    initial_temperature: float = 100.0
    final_temperature: float = 0.1
    
    # Particle swarm
    swarm_size: int = 30
    inertia: float = 0.7
    cognitive: float = 1.5
    social: float = 1.5
    flip_probability: float = 0.1
    
    # Result handling
    max_sampled_results: int = 100
    max_drawdown_percent: float = 30.0
    max_exhaustive_combinations: int = 100_000
    output_dir: str = "results"


class Config:
    """
    Main configuration class for the SWEEP system.
    
    Settings come from dataclass defaults, then an optional JSON file, then
    environment variables (optionally loaded from a .env file).
    """
    
    def __init__(self, config_file: Optional[Path] = None, env_file: Optional[Path] = None):
        """
        Initialize configuration.
        
        Args:
            config_file: Path to JSON configuration file
            env_file: Path to .env file with deployment overrides
        """
        self.logger = get_logger(__name__)
        
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()
        
        # Initialize configuration sections
        self.data = DataConfig()
        self.backtest = BacktestConfig()
        self.strategy = StrategyConfig()
        self.optimization = OptimizationConfig()
        
        # Load from config file if provided
        if config_file and Path(config_file).exists():
            self._load_from_file(Path(config_file))
        
        self._load_environment()
        
        # Validate configuration
        self._validate()
        
        self.logger.info("Configuration loaded successfully")
    
    def _load_from_file(self, config_file: Path):
        """Load configuration from JSON file."""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
            
            # Update each section
            for section_name, section_data in config_data.items():
                if hasattr(self, section_name) and isinstance(section_data, dict):
                    section = getattr(self, section_name)
                    for key, value in section_data.items():
                        if hasattr(section, key):
                            setattr(section, key, value)
            
            self.logger.info(f"Loaded configuration from {config_file}")
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Failed to load config file {config_file}: {str(e)}")
    
    def _load_environment(self):
        """Apply overrides from environment variables."""
        if os.getenv("SWEEP_DATA_PATH"):
            self.data.data_path = os.getenv("SWEEP_DATA_PATH")
        if os.getenv("SWEEP_TIMEFRAME"):
            self.data.timeframe = os.getenv("SWEEP_TIMEFRAME")
        if os.getenv("SWEEP_INSTANCES"):
            try:
                self.optimization.n_instances = int(os.getenv("SWEEP_INSTANCES"))
            except ValueError:
                raise ConfigurationError(
                    "SWEEP_INSTANCES must be an integer",
                    details=os.getenv("SWEEP_INSTANCES")
                )
        
        self.logger.debug("Environment overrides applied")
    
    def _validate(self):
        """Validate configuration settings."""
        errors = []
        
        # Validate data configuration
        try:
            TimeFrame.parse(self.data.timeframe)
        except ValidationError as e:
            errors.append(str(e))
        
        if self.data.lookback_days is not None and self.data.lookback_days <= 0:
            errors.append("Lookback days must be positive when set")
        
        # Validate backtest configuration
        if self.backtest.initial_balance <= 0:
            errors.append("Initial balance must be positive and greater than 0")
        
        if self.backtest.fee_percentage < 0:
            errors.append("Fee percentage cannot be negative")
        
        if self.backtest.leverage <= 0:
            errors.append("Leverage must be positive and greater than 0")
        
        if not 0 < self.backtest.risk_percentage <= 100:
            errors.append("Risk percentage must be between 0 and 100")
        
        if self.backtest.max_concurrent_trades <= 0:
            errors.append("Max concurrent trades must be positive and greater than 0")
        
        if self.backtest.warmup_bars < 0:
            errors.append("Warm-up bars cannot be negative")
        
        if self.backtest.inactivity_hours <= 0:
            errors.append("Inactivity hours must be positive and greater than 0")
        
        if not 0 < self.backtest.liquidation_drawdown <= 1:
            errors.append("Liquidation drawdown must be between 0 and 1")
        
        # Validate strategy configuration
        if not self.strategy.indicators:
            errors.append("Indicator list cannot be empty")
        
        # Validate optimization configuration
        if self.optimization.method not in SEARCH_METHODS:
            errors.append(f"Search method must be one of {', '.join(SEARCH_METHODS)}")
        
        if self.optimization.iterations <= 0:
            errors.append("Iterations must be positive and greater than 0")
        
        if self.optimization.n_instances < 0:
            errors.append("Instance count cannot be negative")
        
        if not 0 < self.optimization.final_temperature < self.optimization.initial_temperature:
            errors.append("Temperatures must satisfy 0 < final < initial")
        
        if self.optimization.swarm_size <= 0:
            errors.append("Swarm size must be positive and greater than 0")
        
        if not 0 <= self.optimization.flip_probability <= 1:
            errors.append("Flip probability must be between 0 and 1")
        
        if self.optimization.max_sampled_results < 0:
            errors.append("Max sampled results cannot be negative")
        
        if self.optimization.max_drawdown_percent <= 0:
            errors.append("Max drawdown percent must be positive")
        
        if errors:
            raise ConfigurationError("Configuration validation failed", details=errors)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "data": asdict(self.data),
            "backtest": asdict(self.backtest),
            "strategy": asdict(self.strategy),
            "optimization": asdict(self.optimization),
        }
    
    def save(self, config_file: Path):
        """Save configuration to JSON file."""
        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w') as f:
                json.dump(self.to_dict(), f, indent=2, default=str)
            self.logger.info(f"Configuration saved to {config_file}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save config file {config_file}: {str(e)}")
    
    def get_timeframe(self) -> TimeFrame:
        """Get the configured bar timeframe."""
        return TimeFrame.parse(self.data.timeframe)
    
    def get_data_path(self) -> Path:
        """Get the full path to the data file."""
        return Path(self.data.data_path)
    
    def backtest_options(self):
        """Build engine options from the backtest and data sections."""
        from ..optimization.backtesting.engine import BacktestOptions
        
        return BacktestOptions(
            initial_balance=self.backtest.initial_balance,
            fee_percentage=self.backtest.fee_percentage,
            leverage=self.backtest.leverage,
            risk_percentage=self.backtest.risk_percentage,
            max_concurrent_trades=self.backtest.max_concurrent_trades,
            warmup_bars=self.backtest.warmup_bars,
            inactivity_period=timedelta(hours=self.backtest.inactivity_hours),
            liquidation_drawdown=self.backtest.liquidation_drawdown,
            timeframe=self.get_timeframe(),
        )
    
    def __repr__(self) -> str:
        return (
            f"Config(timeframe={self.data.timeframe}, method={self.optimization.method}, "
            f"indicators={self.strategy.indicators})"
        )


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance.
    
    Returns:
        Global configuration instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Config):
    """
    Set the global configuration instance.
    
    Args:
        config: Configuration instance to set
    """
    global _config
    _config = config
