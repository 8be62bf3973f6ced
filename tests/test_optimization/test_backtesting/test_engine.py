"""
Tests for the backtest engine.
"""

import threading
from datetime import timedelta

import pytest

from sweep.core.exceptions import ConfigurationError, SearchCancelled
from sweep.data.bars import Bar, TimeFrame
from sweep.optimization.backtesting import (
    BacktestEngine,
    BacktestOptions,
    ExitReason,
    IndicatorStrategy,
    TradeDirection,
    TradeOrder,
)
from sweep.optimization.parameters import StrategyConfiguration
from conftest import make_bars, ScriptedStrategy

pytestmark = [
    pytest.mark.unit,
    pytest.mark.backtesting
]


def long_order(stop, target):
    return TradeOrder(TradeDirection.LONG, stop, target)


def short_order(stop, target):
    return TradeOrder(TradeDirection.SHORT, stop, target)


def with_bar(bars, index, high, low):
    """Replace one bar's range keeping its open and close."""
    bar = bars[index]
    bars = list(bars)
    bars[index] = Bar(bar.timestamp, bar.open, high, low, bar.close, bar.volume)
    return bars


@pytest.fixture
def engine():
    return BacktestEngine(BacktestOptions(warmup_bars=5))


class TestBacktestOptions:
    """Test engine option validation."""
    
    def test_defaults(self):
        """Test default options."""
        options = BacktestOptions()
        assert options.warmup_bars == 100
        assert options.inactivity_threshold == 240
    
    def test_inactivity_threshold_follows_timeframe(self):
        """Test the idle limit is expressed in bars."""
        assert BacktestOptions(timeframe=TimeFrame.HOUR_4).inactivity_threshold == 60
        assert BacktestOptions(timeframe=TimeFrame.WEEK_1).inactivity_threshold == 1
    
    @pytest.mark.parametrize("overrides", [
        {"initial_balance": 0},
        {"leverage": 0},
        {"risk_percentage": 0},
        {"max_concurrent_trades": 0},
        {"warmup_bars": -1},
        {"liquidation_drawdown": 1.5},
    ])
    def test_invalid_options(self, overrides):
        """Test invalid settings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            BacktestOptions(**overrides)


class TestReplay:
    """Test the bar replay loop."""
    
    def test_not_enough_bars(self, engine):
        """Test the warm-up must leave bars to trade."""
        with pytest.raises(ConfigurationError) as exc_info:
            engine.run(ScriptedStrategy(), make_bars([100.0] * 5))
        assert exc_info.value.details == {"bars": 5, "warmup_bars": 5}
    
    def test_warmup_observed_once(self, engine):
        """Test warm-up bars are observed in one call and never evaluated."""
        strategy = ScriptedStrategy()
        engine.run(strategy, make_bars([100.0] * 12, spread=0.0))
        
        assert strategy.observed == [5]
        assert strategy.evaluated == list(range(5, 12))
    
    def test_no_evaluation_at_position_limit(self, engine):
        """Test the strategy is not asked while the account is full."""
        strategy = ScriptedStrategy({6: long_order(95.0, 105.0)})
        engine.run(strategy, make_bars([100.0] * 12, spread=0.0))
        
        assert 6 in strategy.evaluated
        assert 7 not in strategy.evaluated
    
    def test_entry_at_close_and_end_of_data(self, engine):
        """Test entries fill at the close and leftovers close at the final close."""
        bars = make_bars([100.0] * 12, spread=0.0)
        result = engine.run(ScriptedStrategy({6: long_order(95.0, 105.0)}), bars)
        
        trade = result.trades[0]
        assert trade.entry_price == 100.0
        assert trade.entry_bar == 6
        assert trade.exit_bar == 11
        assert trade.exit_reason is ExitReason.END_OF_DATA
        assert result.terminated_early is False
        assert result.start_time == bars[5].timestamp
        assert result.end_time == bars[-1].timestamp
    
    def test_take_profit(self, engine):
        """Test a target inside the bar range closes at the target."""
        bars = with_bar(make_bars([100.0] * 12, spread=0.0), 7, 106.0, 99.0)
        result = engine.run(ScriptedStrategy({6: long_order(95.0, 105.0)}), bars)
        
        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.TAKE_PROFIT
        assert trade.exit_price == 105.0
        assert trade.exit_bar == 7
        assert result.final_balance == pytest.approx(1000.0 + 100.0 - 1.0 - 1.05)
        assert result.winning_trades == 1
    
    def test_stop_wins_for_long(self, engine):
        """Test a bar touching both levels closes a long at the stop."""
        bars = with_bar(make_bars([100.0] * 12, spread=0.0), 7, 110.0, 90.0)
        result = engine.run(ScriptedStrategy({6: long_order(95.0, 105.0)}), bars)
        
        assert result.trades[0].exit_reason is ExitReason.STOP_LOSS
        assert result.trades[0].exit_price == 95.0
    
    def test_stop_wins_for_short(self, engine):
        """Test a bar touching both levels closes a short at the stop."""
        bars = with_bar(make_bars([100.0] * 12, spread=0.0), 7, 110.0, 90.0)
        result = engine.run(ScriptedStrategy({6: short_order(105.0, 95.0)}), bars)
        
        assert result.trades[0].exit_reason is ExitReason.STOP_LOSS
        assert result.trades[0].exit_price == 105.0
        assert result.losing_trades == 1
    
    def test_reentry_after_exit(self, engine):
        """Test a freed slot can be used on the exit bar."""
        bars = with_bar(make_bars([100.0] * 12, spread=0.0), 7, 106.0, 99.0)
        strategy = ScriptedStrategy({6: long_order(95.0, 105.0), 7: short_order(105.0, 95.0)})
        result = engine.run(strategy, bars)
        
        assert [t.entry_bar for t in result.trades] == [6, 7]
        assert result.trades[1].direction is TradeDirection.SHORT


class TestTermination:
    """Test liquidation and inactivity."""
    
    def test_liquidation_on_drawdown(self, engine):
        """Test marked drawdown past the limit liquidates at the next open."""
        bars = make_bars([100.0] * 7 + [94.0] * 6, spread=0.0)
        result = engine.run(ScriptedStrategy({6: long_order(50.0, 200.0)}), bars)
        
        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.LIQUIDATION
        assert trade.exit_bar == 8
        assert trade.exit_price == bars[8].open
        assert result.terminated_early is True
        assert result.termination_reason.startswith("Liquidated")
        assert result.end_time == bars[8].timestamp
    
    def test_inactivity(self):
        """Test an idle account is terminated."""
        engine = BacktestEngine(BacktestOptions(warmup_bars=5, inactivity_period=timedelta(hours=10)))
        result = engine.run(ScriptedStrategy(), make_bars([100.0] * 30, spread=0.0))
        
        assert result.terminated_early is True
        assert result.termination_reason.startswith("Inactivity")
        assert result.max_inactive_bars == 11
        assert result.total_trades == 0
    
    def test_inactivity_closes_positions(self):
        """Test open positions close at the close when idle too long."""
        engine = BacktestEngine(BacktestOptions(warmup_bars=5, inactivity_period=timedelta(hours=10)))
        result = engine.run(ScriptedStrategy({5: long_order(95.0, 105.0)}), make_bars([100.0] * 30, spread=0.0))
        
        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.INACTIVITY
        assert trade.exit_bar == 16
    
    def test_trading_resets_inactivity(self):
        """Test each new entry restarts the idle count."""
        engine = BacktestEngine(BacktestOptions(warmup_bars=5, inactivity_period=timedelta(hours=10)))
        bars = with_bar(make_bars([100.0] * 30, spread=0.0), 12, 106.0, 99.0)
        strategy = ScriptedStrategy({5: long_order(95.0, 105.0), 14: long_order(95.0, 105.0)})
        result = engine.run(strategy, bars)
        
        assert result.total_trades == 2
        assert result.trades[1].exit_bar == 25


class TestRunBehaviour:
    """Test determinism, cancellation and sweeps."""
    
    def test_deterministic(self, walk_bars):
        """Test identical inputs give identical results."""
        configuration = StrategyConfiguration.from_kind_names(["supertrend", "mcginley_dynamic"])
        engine = BacktestEngine(BacktestOptions(warmup_bars=50))
        
        first = engine.run(IndicatorStrategy(configuration.clone()), walk_bars)
        second = engine.run(IndicatorStrategy(configuration.clone()), walk_bars)
        assert first == second
    
    def test_cancellation(self, engine):
        """Test a set cancel event abandons the run."""
        cancel_event = threading.Event()
        cancel_event.set()
        with pytest.raises(SearchCancelled):
            engine.run(ScriptedStrategy(), make_bars([100.0] * 12), cancel_event)
    
    def test_run_sweep(self, engine):
        """Test one result per account setting, limits varying slowest."""
        bars = make_bars([100.0] * 12, spread=0.0)
        results = engine.run_sweep(
            lambda: ScriptedStrategy({6: long_order(95.0, 105.0)}),
            bars,
            max_concurrent_trades=(1, 2),
            risk_percentages=(1.0, 2.0),
        )
        
        assert [(r.max_concurrent_trades, r.risk_percentage) for r in results] == [
            (1, 1.0), (1, 2.0), (2, 1.0), (2, 2.0)
        ]
        assert all(r.total_trades == 1 for r in results)
        assert engine.options.risk_percentage == 1.0


class TestUptrendScenario:
    """Test a single forced long on a steadily rising market with default options."""
    
    def test_single_long_settles_at_first_bound(self):
        """Test the long exits at the target and the balance matches a hand-computed P&L."""
        bars = make_bars([100.0 + i for i in range(150)])
        entry = bars[101].close
        stop, target = entry * 0.95, entry * 1.10
        options = BacktestOptions()
        
        result = BacktestEngine(options).run(ScriptedStrategy({101: long_order(stop, target)}), bars)
        
        assert result.total_trades == 1
        trade = result.trades[0]
        assert trade.entry_bar == 101
        assert trade.entry_price == entry
        # Lows keep rising so the stop is never touched; the first high at or above the target ends it
        first_touch = next(i for i in range(102, 150) if bars[i].high >= target)
        assert trade.exit_reason is ExitReason.TAKE_PROFIT
        assert trade.exit_bar == first_touch
        assert trade.exit_price == pytest.approx(target)
        
        risk_amount = options.initial_balance * options.risk_percentage / 100
        quantity = risk_amount / ((entry - stop) / options.leverage)
        assert quantity == pytest.approx(10 / (0.05 * entry / 10))
        entry_fee = entry * quantity * options.fee_percentage / 100
        exit_fee = target * quantity * options.fee_percentage / 100
        expected = options.initial_balance - entry_fee + (target - entry) * quantity - exit_fee
        
        assert result.final_balance == pytest.approx(expected)
        assert result.final_balance == pytest.approx(1197.9)
        assert result.winning_trades == 1
        assert result.terminated_early is False
