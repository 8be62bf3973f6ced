"""
Backtesting engine for evaluating trading strategies.

The engine replays bars through a strategy and a simulated account:

    WARMING    first ``warmup_bars`` bars only feed indicator state
    TRADING    per bar: liquidation check, stop/target exits, new entries,
               inactivity check
    LIQUIDATED account breached its drawdown limit or sat idle too long
    FINISHED   remaining positions closed at the final close
"""

import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ...core.exceptions import ConfigurationError, SearchCancelled, ValidationError
from ...core.logging import get_logger
from ...data.bars import Bar, BarWindow, TimeFrame
from ...utils.validators import validate_positive, validate_range
from .account import BacktestAccount, ExitReason, Position
from .metrics import BacktestResult, PerformanceCalculator
from .strategies import TradeDirection, TradingStrategy

logger = get_logger(__name__)


class BacktestState(Enum):
    """Lifecycle of one backtest run."""
    WARMING = "warming"
    TRADING = "trading"
    LIQUIDATED = "liquidated"
    FINISHED = "finished"


@dataclass(frozen=True)
class BacktestOptions:
    """Account and replay settings for the backtest engine."""
    
    initial_balance: float = 1000.0
    fee_percentage: float = 0.05
    leverage: int = 10
    risk_percentage: float = 1.0
    max_concurrent_trades: int = 1
    warmup_bars: int = 100
    inactivity_period: timedelta = field(default_factory=lambda: timedelta(hours=240))
    liquidation_drawdown: float = 0.5
    timeframe: TimeFrame = TimeFrame.HOUR_1
    
    def __post_init__(self):
        try:
            validate_positive("initial_balance", self.initial_balance)
            validate_positive("fee_percentage", self.fee_percentage, allow_zero=True)
            validate_positive("leverage", self.leverage)
            validate_range("risk_percentage", self.risk_percentage, 1e-9, 100.0)
            validate_positive("max_concurrent_trades", self.max_concurrent_trades)
            validate_positive("warmup_bars", self.warmup_bars, allow_zero=True)
            validate_range("liquidation_drawdown", self.liquidation_drawdown, 1e-9, 1.0)
        except ValidationError as e:
            raise ConfigurationError("Invalid backtest options", details=str(e))
    
    @property
    def inactivity_threshold(self) -> int:
        """Inactivity period expressed in bars of the active timeframe."""
        return max(1, self.timeframe.bars_in(self.inactivity_period))


class BacktestEngine:
    """Main backtesting engine for evaluating trading strategies."""
    
    def __init__(self, options: Optional[BacktestOptions] = None):
        """
        Initialize backtesting engine.
        
        Args:
            options: Account and replay settings
        """
        self.options = options or BacktestOptions()
        self.performance_calculator = PerformanceCalculator()
    
    def run(
        self,
        strategy: TradingStrategy,
        bars: Sequence[Bar],
        cancel_event: Optional[threading.Event] = None
    ) -> BacktestResult:
        """
        Replay ``bars`` through ``strategy``.
        
        Args:
            strategy: Strategy deciding entries
            bars: Bars in strictly increasing timestamp order
            cancel_event: Polled between bars; when set the run is abandoned
        
        Returns:
            Backtest result
        
        Raises:
            ConfigurationError: If there are no more bars than warm-up bars
            SearchCancelled: If ``cancel_event`` is set during the replay
        """
        opts = self.options
        warmup = opts.warmup_bars
        if len(bars) <= warmup:
            raise ConfigurationError(
                "Not enough bars for backtesting",
                details={"bars": len(bars), "warmup_bars": warmup}
            )
        
        account = BacktestAccount(
            initial_balance=opts.initial_balance,
            fee_percentage=opts.fee_percentage,
            leverage=opts.leverage,
            risk_percentage=opts.risk_percentage,
            max_concurrent_trades=opts.max_concurrent_trades,
        )
        
        state = BacktestState.WARMING
        if warmup > 0:
            strategy.observe(BarWindow(bars, warmup))
        
        state = BacktestState.TRADING
        threshold = opts.inactivity_threshold
        last_trade_bar = warmup
        max_inactive_bars = 0
        termination_reason = ""
        start_time = bars[warmup].timestamp
        end_time = start_time
        
        for i in range(warmup, len(bars)):
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelled("Backtest cancelled", details={"bar": i})
            
            bar = bars[i]
            end_time = bar.timestamp
            
            if i > 0:
                mark = bars[i - 1].close
                drawdown = account.drawdown_at(mark)
                if drawdown >= opts.liquidation_drawdown or account.equity(mark) <= 0:
                    account.close_all(bar.open, i, ExitReason.LIQUIDATION)
                    account.liquidate()
                    state = BacktestState.LIQUIDATED
                    termination_reason = (
                        f"Liquidated: drawdown {drawdown:.2%} >= {opts.liquidation_drawdown:.2%}"
                    )
                    break
            
            for position in list(account.open_positions.values()):
                exit_price, reason = self._resolve_exit(position, bar)
                if reason is not None:
                    account.close_position(position.id, exit_price, i, reason)
            
            if account.can_open:
                order = strategy.evaluate(BarWindow(bars, i + 1))
                if order.is_entry:
                    account.open_position(order.direction, bar.close, order.stop_loss, order.take_profit, i)
                    last_trade_bar = i
            
            inactive = i - last_trade_bar
            max_inactive_bars = max(max_inactive_bars, inactive)
            if inactive > threshold:
                account.close_all(bar.close, i, ExitReason.INACTIVITY)
                account.liquidate()
                state = BacktestState.LIQUIDATED
                termination_reason = f"Inactivity: no trade for {inactive} bars (limit {threshold})"
                break
        
        if state is BacktestState.TRADING:
            account.close_all(bars[-1].close, len(bars) - 1, ExitReason.END_OF_DATA)
            state = BacktestState.FINISHED
        
        logger.debug(
            f"Backtest {state.value}: {account.total_trades} trades, "
            f"balance {account.balance:.2f}"
        )
        
        return self.performance_calculator.build_result(
            account,
            start_time=start_time,
            end_time=end_time,
            max_inactive_bars=max_inactive_bars,
            timeframe=opts.timeframe,
            terminated_early=state is BacktestState.LIQUIDATED,
            termination_reason=termination_reason,
        )
    
    @staticmethod
    def _resolve_exit(position: Position, bar: Bar):
        """Exit price and reason for a position on this bar; the stop wins ties."""
        if position.direction is TradeDirection.LONG:
            if bar.low <= position.stop_loss:
                return position.stop_loss, ExitReason.STOP_LOSS
            if bar.high >= position.take_profit:
                return position.take_profit, ExitReason.TAKE_PROFIT
        else:
            if bar.high >= position.stop_loss:
                return position.stop_loss, ExitReason.STOP_LOSS
            if bar.low <= position.take_profit:
                return position.take_profit, ExitReason.TAKE_PROFIT
        return None, None
    
    def run_sweep(
        self,
        strategy_factory: Callable[[], TradingStrategy],
        bars: Sequence[Bar],
        max_concurrent_trades: Sequence[int] = (1,),
        risk_percentages: Sequence[float] = (1.0,),
        cancel_event: Optional[threading.Event] = None
    ) -> List[BacktestResult]:
        """
        Replay one strategy under every combination of account settings.
        
        Args:
            strategy_factory: Builds a fresh strategy per run
            bars: Bars to replay
            max_concurrent_trades: Position limits to try
            risk_percentages: Per-trade risk shares to try
            cancel_event: Forwarded to every run
        
        Returns:
            One result per (limit, risk) pair, limits varying slowest
        """
        results = []
        for limit in max_concurrent_trades:
            for risk in risk_percentages:
                options = dataclasses.replace(
                    self.options, max_concurrent_trades=limit, risk_percentage=risk
                )
                engine = BacktestEngine(options)
                results.append(engine.run(strategy_factory(), bars, cancel_event))
        return results
