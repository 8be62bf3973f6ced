"""
Tests for SWEEP configuration system.
"""

import pytest
import json
from datetime import timedelta
from pathlib import Path
from sweep.core.config import Config, get_config, set_config
from sweep.core.exceptions import ConfigurationError
from sweep.data.bars import TimeFrame

pytestmark = [
    pytest.mark.core,
    pytest.mark.config
]


class TestConfigCreation:
    """Test configuration creation and initialization."""
    
    @pytest.mark.unit
    def test_default_config_creation(self, clean_env, temp_dir):
        """Test creating a config with default values."""
        config = Config(env_file=temp_dir / "missing.env")
        
        assert config.data.timeframe == "1h"
        assert config.backtest.initial_balance == 1000.0
        assert config.backtest.fee_percentage == 0.05
        assert config.backtest.leverage == 10
        assert config.backtest.warmup_bars == 100
        assert config.strategy.indicators == ["supertrend", "mcginley_dynamic", "atr_bands"]
        assert config.optimization.method == "annealing"
        assert config.optimization.n_instances == 0
    
    @pytest.mark.unit
    def test_config_from_file(self, config_from_file, sample_config_data):
        """Test creating a config from a JSON file."""
        config = config_from_file
        
        assert config.data.timeframe == sample_config_data["data"]["timeframe"]
        assert config.data.lookback_days == 30
        assert config.backtest.initial_balance == 5000.0
        assert config.backtest.fee_percentage == 0.05
        assert config.strategy.indicators == ["lwpi", "normalized_volume"]
        assert config.optimization.method == "swarm"
        assert config.optimization.seed == 11
    
    @pytest.mark.unit
    def test_missing_config_file_uses_defaults(self, clean_env, temp_dir):
        """Test that a missing file leaves defaults in place."""
        config = Config(config_file=temp_dir / "absent.json", env_file=temp_dir / "missing.env")
        assert config.optimization.iterations == 1000
    
    @pytest.mark.unit
    def test_unreadable_config_file(self, clean_env, temp_dir):
        """Test that malformed JSON raises ConfigurationError."""
        bad_file = temp_dir / "bad.json"
        bad_file.write_text("{not json")
        
        with pytest.raises(ConfigurationError):
            Config(config_file=bad_file, env_file=temp_dir / "missing.env")


class TestEnvironmentOverrides:
    """Test environment variable overrides."""
    
    @pytest.mark.unit
    def test_environment_overrides(self, monkeypatch, temp_dir):
        """Test SWEEP_* variables override file and defaults."""
        monkeypatch.setenv("SWEEP_DATA_PATH", "/data/eth.csv")
        monkeypatch.setenv("SWEEP_TIMEFRAME", "15m")
        monkeypatch.setenv("SWEEP_INSTANCES", "3")
        
        config = Config(env_file=temp_dir / "missing.env")
        
        assert config.data.data_path == "/data/eth.csv"
        assert config.get_timeframe() is TimeFrame.MINUTE_15
        assert config.optimization.n_instances == 3
    
    @pytest.mark.unit
    def test_env_file_loaded(self, clean_env, monkeypatch, temp_dir):
        """Test overrides read from a .env file."""
        # Registers the variable so teardown removes what load_dotenv sets
        monkeypatch.setenv("SWEEP_TIMEFRAME", "1h")
        monkeypatch.delenv("SWEEP_TIMEFRAME")
        env_file = temp_dir / ".env"
        env_file.write_text("SWEEP_TIMEFRAME=4h\n")
        
        config = Config(env_file=env_file)
        assert config.get_timeframe() is TimeFrame.HOUR_4
    
    @pytest.mark.unit
    def test_invalid_instance_count(self, clean_env, monkeypatch, temp_dir):
        """Test non-integer SWEEP_INSTANCES is rejected."""
        monkeypatch.setenv("SWEEP_INSTANCES", "many")
        with pytest.raises(ConfigurationError):
            Config(env_file=temp_dir / "missing.env")


class TestConfigValidation:
    """Test configuration validation."""
    
    def _write(self, temp_dir, data):
        path = temp_dir / "config.json"
        path.write_text(json.dumps(data))
        return path
    
    @pytest.mark.unit
    @pytest.mark.parametrize("section, key, value", [
        ("data", "timeframe", "7m"),
        ("backtest", "initial_balance", 0),
        ("backtest", "risk_percentage", 150),
        ("backtest", "liquidation_drawdown", 1.5),
        ("strategy", "indicators", []),
        ("optimization", "method", "genetic"),
        ("optimization", "iterations", 0),
        ("optimization", "final_temperature", 500.0),
        ("optimization", "flip_probability", 2.0),
    ])
    def test_invalid_values(self, clean_env, temp_dir, section, key, value):
        """Test that invalid settings fail validation."""
        path = self._write(temp_dir, {section: {key: value}})
        with pytest.raises(ConfigurationError) as exc_info:
            Config(config_file=path, env_file=temp_dir / "missing.env")
        assert isinstance(exc_info.value.details, list)
    
    @pytest.mark.unit
    def test_errors_collected(self, clean_env, temp_dir):
        """Test that every validation error is reported."""
        path = self._write(temp_dir, {
            "backtest": {"leverage": 0, "max_concurrent_trades": 0},
            "optimization": {"swarm_size": 0}
        })
        with pytest.raises(ConfigurationError) as exc_info:
            Config(config_file=path, env_file=temp_dir / "missing.env")
        assert len(exc_info.value.details) == 3


class TestConfigConversion:
    """Test serialization and derived settings."""
    
    @pytest.mark.unit
    def test_to_dict(self, config_from_file):
        """Test converting configuration to a dictionary."""
        data = config_from_file.to_dict()
        
        assert set(data) == {"data", "backtest", "strategy", "optimization"}
        assert data["optimization"]["method"] == "swarm"
    
    @pytest.mark.unit
    def test_save_and_reload(self, config_from_file, clean_env, temp_dir):
        """Test saving configuration and loading it back."""
        saved = temp_dir / "nested" / "saved.json"
        config_from_file.save(saved)
        
        reloaded = Config(config_file=saved, env_file=temp_dir / "missing.env")
        assert reloaded.to_dict() == config_from_file.to_dict()
    
    @pytest.mark.unit
    def test_backtest_options(self, config_from_file):
        """Test building engine options from configuration."""
        options = config_from_file.backtest_options()
        
        assert options.initial_balance == 5000.0
        assert options.leverage == 5
        assert options.warmup_bars == 50
        assert options.timeframe is TimeFrame.HOUR_4
        assert options.inactivity_period == timedelta(hours=240)
    
    @pytest.mark.unit
    def test_get_data_path(self, config_from_file):
        """Test data path accessor."""
        assert config_from_file.get_data_path() == Path("test_bars.csv")
    
    @pytest.mark.unit
    def test_global_config(self, config_from_file):
        """Test global configuration accessors."""
        set_config(config_from_file)
        try:
            assert get_config() is config_from_file
        finally:
            set_config(None)
