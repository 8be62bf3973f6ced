"""
Trend indicators: Supertrend, McGinley dynamic and LWPI.
"""

import math

from ..data.bars import Bar
from .averages import SimpleMovingAverage, WilderMovingAverage, true_range
from .base import TrendIndicator, TrendSignal


class Supertrend(TrendIndicator):
    """
    ATR trailing bands around hl2.
    
    The lower band only rises while price holds above it and the upper band
    only falls while price holds below it; the trend flips when the close
    crosses the band on the opposite side.
    """
    
    def _reset_state(self) -> None:
        super()._reset_state()
        self._atr = WilderMovingAverage(self.parameters.atr_period)
        self._previous_close = math.nan
        self._lower = math.nan
        self._upper = math.nan
        self._direction = 0
    
    def _process(self, bar: Bar, index: int) -> None:
        atr = self._atr.update(true_range(bar, self._previous_close))
        if math.isnan(atr):
            self._previous_close = bar.close
            self._signals.append(TrendSignal.NEUTRAL)
            return
        
        offset = self.parameters.factor * atr
        lower = bar.hl2 - offset
        upper = bar.hl2 + offset
        
        if not math.isnan(self._lower) and self._previous_close > self._lower:
            lower = max(lower, self._lower)
        if not math.isnan(self._upper) and self._previous_close < self._upper:
            upper = min(upper, self._upper)
        
        if self._direction == 0:
            direction = 1 if bar.close >= bar.hl2 else -1
        elif self._direction == -1 and bar.close > self._upper:
            direction = 1
        elif self._direction == 1 and bar.close < self._lower:
            direction = -1
        else:
            direction = self._direction
        
        self._lower, self._upper, self._direction = lower, upper, direction
        self._previous_close = bar.close
        self._signals.append(TrendSignal.BULLISH if direction == 1 else TrendSignal.BEARISH)


class McGinleyDynamic(TrendIndicator):
    """McGinley dynamic average; optionally requires the last bar to agree."""
    
    def _reset_state(self) -> None:
        super()._reset_state()
        self._dynamic = math.nan
        self._previous_close = math.nan
        self._seen = 0
    
    def _process(self, bar: Bar, index: int) -> None:
        period = self.parameters.period
        close = bar.close
        if math.isnan(self._dynamic) or self._dynamic <= 0 or close <= 0:
            self._dynamic = close
        else:
            self._dynamic += (close - self._dynamic) / (period * (close / self._dynamic) ** 4)
        self._seen += 1
        
        signal = TrendSignal.NEUTRAL
        if self._seen >= period:
            momentum_up = not self.parameters.require_momentum or close > self._previous_close
            momentum_down = not self.parameters.require_momentum or close < self._previous_close
            if close > self._dynamic and momentum_up:
                signal = TrendSignal.BULLISH
            elif close < self._dynamic and momentum_down:
                signal = TrendSignal.BEARISH
        
        self._previous_close = close
        self._signals.append(signal)


class Lwpi(TrendIndicator):
    """
    Larry Williams proxy index, ``50 * SMA(open - close) / SMA(TR) + 50``.
    
    Bullish on the bar the smoothed index crosses below 50, bearish on the
    bar it crosses above.
    """
    
    MIDDLE = 50.0
    
    def _reset_state(self) -> None:
        super()._reset_state()
        self._body = SimpleMovingAverage(self.parameters.period)
        self._range = SimpleMovingAverage(self.parameters.period)
        self._smoothed = SimpleMovingAverage(self.parameters.smoothing_period)
        self._previous_close = math.nan
        self._previous_value = math.nan
    
    def _process(self, bar: Bar, index: int) -> None:
        body = self._body.update(bar.open - bar.close)
        average_range = self._range.update(true_range(bar, self._previous_close))
        self._previous_close = bar.close
        
        value = math.nan
        if not math.isnan(body):
            raw = self.MIDDLE if average_range == 0 else self.MIDDLE * body / average_range + self.MIDDLE
            value = self._smoothed.update(raw)
        
        signal = TrendSignal.NEUTRAL
        if not math.isnan(value) and not math.isnan(self._previous_value):
            if self._previous_value >= self.MIDDLE > value:
                signal = TrendSignal.BULLISH
            elif self._previous_value <= self.MIDDLE < value:
                signal = TrendSignal.BEARISH
        
        self._previous_value = value
        self._signals.append(signal)
