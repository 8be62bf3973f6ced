"""
Simulated trading account for backtests.

The account sizes every position so that a stop-out costs a fixed share of
the current balance (scaled by leverage), charges a percentage fee on entry
and exit notional, and tracks win/loss statistics and drawdown.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from ...core.exceptions import RiskError
from ...core.logging import get_logger
from .strategies import TradeDirection

logger = get_logger(__name__)

# Stops further than this fraction of price are sized with the default distance
MAX_STOP_DISTANCE = 0.10
DEFAULT_STOP_DISTANCE = 0.01


class ExitReason(Enum):
    """Why a position was closed."""
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    END_OF_DATA = "end_of_data"
    LIQUIDATION = "liquidation"
    INACTIVITY = "inactivity"


@dataclass
class Position:
    """An open trade."""
    
    id: int
    direction: TradeDirection
    entry_price: float
    stop_loss: float
    take_profit: float
    quantity: float
    entry_bar: int
    entry_fee: float
    
    def raw_pnl(self, price: float) -> float:
        if self.direction is TradeDirection.LONG:
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity


@dataclass(frozen=True)
class ClosedTrade:
    """A completed trade."""
    
    id: int
    direction: TradeDirection
    entry_price: float
    exit_price: float
    quantity: float
    entry_bar: int
    exit_bar: int
    fees: float
    profit: float
    exit_reason: ExitReason


class BacktestAccount:
    """Balance, open positions and trade statistics of one simulated run."""
    
    def __init__(
        self,
        initial_balance: float = 1000.0,
        fee_percentage: float = 0.05,
        leverage: int = 10,
        risk_percentage: float = 1.0,
        max_concurrent_trades: int = 1
    ):
        """
        Initialize account.
        
        Args:
            initial_balance: Starting balance
            fee_percentage: Fee charged on entry and exit notional, in percent
            leverage: Position leverage
            risk_percentage: Share of balance risked per trade, in percent
            max_concurrent_trades: Cap on simultaneously open positions
        """
        self.initial_balance = initial_balance
        self.balance = initial_balance
        self.fee_percentage = fee_percentage
        self.leverage = leverage
        self.risk_percentage = risk_percentage
        self.max_concurrent_trades = max_concurrent_trades
        
        self.open_positions: Dict[int, Position] = {}
        self.closed_trades: List[ClosedTrade] = []
        self.liquidated = False
        
        self.peak_balance = initial_balance
        self.max_drawdown = 0.0
        self.gross_profit = 0.0
        self.gross_loss = 0.0
        self.winning_trades = 0
        self.losing_trades = 0
        self._next_id = 1
    
    @property
    def can_open(self) -> bool:
        return not self.liquidated and len(self.open_positions) < self.max_concurrent_trades
    
    def open_position(
        self,
        direction: TradeDirection,
        price: float,
        stop_loss: float,
        take_profit: float,
        bar_index: int
    ) -> Position:
        """
        Open a position at ``price``.
        
        A missing stop, or one on the wrong side of price, is replaced by a
        stop at the default distance; a missing or wrong-sided take profit is
        dropped (NaN).
        
        Raises:
            RiskError: If the account is liquidated or already at its
                concurrent position limit, or the direction is NONE
        """
        if self.liquidated:
            raise RiskError("Cannot open a position on a liquidated account")
        if len(self.open_positions) >= self.max_concurrent_trades:
            raise RiskError(
                "Concurrent position limit reached",
                details={"open": len(self.open_positions), "max": self.max_concurrent_trades}
            )
        if direction is TradeDirection.NONE:
            raise RiskError("Cannot open a position without a direction")
        
        sign = 1.0 if direction is TradeDirection.LONG else -1.0
        if not math.isfinite(stop_loss) or sign * (price - stop_loss) <= 0:
            stop_loss = price - sign * price * DEFAULT_STOP_DISTANCE
        if not math.isfinite(take_profit) or sign * (take_profit - price) <= 0:
            take_profit = math.nan
        
        distance = abs(price - stop_loss)
        if distance <= 0 or distance > price * MAX_STOP_DISTANCE:
            distance = price * DEFAULT_STOP_DISTANCE
        
        risk_amount = self.balance * self.risk_percentage / 100.0
        quantity = risk_amount / (distance / self.leverage)
        entry_fee = price * quantity * self.fee_percentage / 100.0
        
        position = Position(
            id=self._next_id,
            direction=direction,
            entry_price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            quantity=quantity,
            entry_bar=bar_index,
            entry_fee=entry_fee,
        )
        self._next_id += 1
        self.open_positions[position.id] = position
        self.balance -= entry_fee
        self._update_drawdown()
        return position
    
    def close_position(self, position_id: int, price: float, bar_index: int, reason: ExitReason) -> ClosedTrade:
        """Close an open position at ``price`` and book its result."""
        position = self.open_positions.pop(position_id)
        exit_fee = price * position.quantity * self.fee_percentage / 100.0
        net = position.raw_pnl(price) - exit_fee
        self.balance += net
        
        profit = net - position.entry_fee
        if profit > 0:
            self.winning_trades += 1
            self.gross_profit += profit
        else:
            self.losing_trades += 1
            self.gross_loss += -profit
        
        trade = ClosedTrade(
            id=position.id,
            direction=position.direction,
            entry_price=position.entry_price,
            exit_price=price,
            quantity=position.quantity,
            entry_bar=position.entry_bar,
            exit_bar=bar_index,
            fees=position.entry_fee + exit_fee,
            profit=profit,
            exit_reason=reason,
        )
        self.closed_trades.append(trade)
        self._update_drawdown()
        return trade
    
    def close_all(self, price: float, bar_index: int, reason: ExitReason) -> List[ClosedTrade]:
        return [
            self.close_position(position_id, price, bar_index, reason)
            for position_id in list(self.open_positions)
        ]
    
    def equity(self, mark_price: float) -> float:
        """Balance plus unrealized P&L of open positions at ``mark_price``."""
        return self.balance + sum(p.raw_pnl(mark_price) for p in self.open_positions.values())
    
    def drawdown_at(self, mark_price: float) -> float:
        """Fractional decline of marked equity from the peak balance."""
        if self.peak_balance <= 0:
            return 1.0
        return max(0.0, (self.peak_balance - self.equity(mark_price)) / self.peak_balance)
    
    def liquidate(self) -> None:
        """Mark the account terminal; no positions can be opened afterwards."""
        if not self.liquidated:
            logger.debug(f"Account liquidated at balance {self.balance:.2f}")
        self.liquidated = True
    
    def _update_drawdown(self) -> None:
        if self.balance > self.peak_balance:
            self.peak_balance = self.balance
        if self.peak_balance > 0:
            drawdown = (self.peak_balance - self.balance) / self.peak_balance
            self.max_drawdown = max(self.max_drawdown, drawdown)
    
    @property
    def total_trades(self) -> int:
        return len(self.closed_trades)
