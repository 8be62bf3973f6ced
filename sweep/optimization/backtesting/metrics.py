"""
Backtest results and performance metrics.

This module provides the immutable result of one backtest run, the
calculator deriving risk-adjusted statistics from closed trades, and an
aggregator summarizing many results for reports.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

import numpy as np
import pandas as pd

from ...data.bars import TimeFrame
from ...utils.helpers import safe_divide
from .account import BacktestAccount, ClosedTrade

_SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class BacktestResult:
    """Outcome of a single backtest run."""
    
    initial_balance: float
    final_balance: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    gross_profit: float
    gross_loss: float
    max_drawdown: float
    sharpe_ratio: float
    start_time: int
    end_time: int
    max_inactive_bars: int
    timeframe: TimeFrame
    max_concurrent_trades: int = 1
    risk_percentage: float = 1.0
    terminated_early: bool = False
    termination_reason: str = ""
    trades: Tuple[ClosedTrade, ...] = field(default=(), repr=False)
    
    @property
    def net_profit(self) -> float:
        return self.final_balance - self.initial_balance
    
    @property
    def return_percentage(self) -> float:
        return safe_divide(self.net_profit, self.initial_balance) * 100.0
    
    @property
    def win_rate(self) -> float:
        return safe_divide(self.winning_trades, self.total_trades)
    
    @property
    def profit_factor(self) -> float:
        """Gross profit over gross loss; infinite when only winners were booked."""
        if self.gross_loss == 0:
            return math.inf if self.gross_profit > 0 else 0.0
        return self.gross_profit / self.gross_loss
    
    @property
    def max_drawdown_percent(self) -> float:
        return self.max_drawdown * 100.0
    
    @property
    def max_days_inactive(self) -> int:
        bars_per_day = 1440 / self.timeframe.minutes
        return int(math.floor(self.max_inactive_bars / bars_per_day))
    
    @property
    def trading_activity_percentage(self) -> float:
        """Share of the run not covered by the longest idle stretch, in percent."""
        span_days = (self.end_time - self.start_time) / _SECONDS_PER_DAY
        if span_days <= 0:
            return 0.0
        activity = 100.0 - self.max_days_inactive * 100.0 / span_days
        return float(min(100.0, max(0.0, activity)))
    
    def is_valid(self, max_drawdown_percent: float = 30.0) -> bool:
        """At least one trade and drawdown within the ceiling."""
        return self.total_trades > 0 and self.max_drawdown_percent <= max_drawdown_percent
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert result to a JSON friendly dictionary (trades omitted)."""
        return {
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "net_profit": self.net_profit,
            "return_percentage": self.return_percentage,
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "win_rate": self.win_rate,
            "profit_factor": self.profit_factor,
            "max_drawdown_percent": self.max_drawdown_percent,
            "sharpe_ratio": self.sharpe_ratio,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "max_days_inactive": self.max_days_inactive,
            "trading_activity_percentage": self.trading_activity_percentage,
            "timeframe": self.timeframe.label,
            "max_concurrent_trades": self.max_concurrent_trades,
            "risk_percentage": self.risk_percentage,
            "terminated_early": self.terminated_early,
            "termination_reason": self.termination_reason,
        }


class PerformanceCalculator:
    """Calculator for trade based performance metrics."""
    
    def calculate_sharpe_ratio(self, profits: Sequence[float]) -> float:
        """
        Per-trade Sharpe ratio: mean profit over the population standard deviation.
        
        Returns:
            0.0 without trades or when every trade made the same profit
        """
        values = np.asarray(profits, dtype=float)
        if values.size == 0:
            return 0.0
        std = float(np.std(values))
        if std == 0.0:
            return 0.0
        return float(np.mean(values)) / std
    
    def build_result(
        self,
        account: BacktestAccount,
        start_time: int,
        end_time: int,
        max_inactive_bars: int,
        timeframe: TimeFrame,
        terminated_early: bool = False,
        termination_reason: str = ""
    ) -> BacktestResult:
        """Freeze an account's state into a BacktestResult."""
        trades = tuple(account.closed_trades)
        return BacktestResult(
            initial_balance=account.initial_balance,
            final_balance=account.balance,
            total_trades=len(trades),
            winning_trades=account.winning_trades,
            losing_trades=account.losing_trades,
            gross_profit=account.gross_profit,
            gross_loss=account.gross_loss,
            max_drawdown=account.max_drawdown,
            sharpe_ratio=self.calculate_sharpe_ratio([t.profit for t in trades]),
            start_time=start_time,
            end_time=end_time,
            max_inactive_bars=max_inactive_bars,
            timeframe=timeframe,
            max_concurrent_trades=account.max_concurrent_trades,
            risk_percentage=account.risk_percentage,
            terminated_early=terminated_early,
            termination_reason=termination_reason,
            trades=trades,
        )
    
    def summarize(self, results: Sequence[BacktestResult]) -> Dict[str, float]:
        """Aggregate statistics of many results, for reports."""
        return MetricsAggregator.aggregate(results)


class MetricsAggregator:
    """Aggregator for summarizing many backtest results."""
    
    SUMMARY_METRICS = [
        "net_profit",
        "return_percentage",
        "win_rate",
        "profit_factor",
        "max_drawdown_percent",
        "sharpe_ratio",
        "total_trades",
        "trading_activity_percentage",
    ]
    
    @staticmethod
    def to_frame(results: Sequence[BacktestResult]) -> pd.DataFrame:
        return pd.DataFrame([r.to_dict() for r in results])
    
    @classmethod
    def aggregate(cls, results: Sequence[BacktestResult]) -> Dict[str, float]:
        """
        Mean, median, min and max of the headline metrics.
        
        Infinite profit factors are ignored in the aggregate.
        """
        if not results:
            return {}
        
        frame = cls.to_frame(results)[cls.SUMMARY_METRICS].replace([np.inf, -np.inf], np.nan)
        aggregated: Dict[str, float] = {}
        for metric_name in cls.SUMMARY_METRICS:
            column = frame[metric_name].dropna()
            if column.empty:
                continue
            aggregated[f"{metric_name}_mean"] = float(column.mean())
            aggregated[f"{metric_name}_median"] = float(column.median())
            aggregated[f"{metric_name}_min"] = float(column.min())
            aggregated[f"{metric_name}_max"] = float(column.max())
        return aggregated
