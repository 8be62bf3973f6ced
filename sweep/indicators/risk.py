"""
Risk management indicators.
"""

import math

from ..data.bars import Bar
from .averages import WilderMovingAverage, true_range
from .base import RiskManagementIndicator, RiskLevels


class AtrBands(RiskManagementIndicator):
    """Stops at ``close -/+ ATR * multiplier``; targets at stop distance times the reward ratio."""
    
    def _reset_state(self) -> None:
        super()._reset_state()
        self._atr = WilderMovingAverage(self.parameters.period)
        self._previous_close = math.nan
    
    def _process(self, bar: Bar, index: int) -> None:
        atr = self._atr.update(true_range(bar, self._previous_close))
        self._previous_close = bar.close
        if math.isnan(atr):
            self._levels.append(RiskLevels.unavailable())
            return
        
        distance = atr * self.parameters.multiplier
        reward = distance * self.parameters.risk_reward_ratio
        self._levels.append(RiskLevels(
            long_stop=bar.close - distance,
            short_stop=bar.close + distance,
            long_take_profit=bar.close + reward,
            short_take_profit=bar.close - reward,
        ))
