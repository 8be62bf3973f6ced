"""
Incremental moving averages used by the indicators.

Each average consumes one value per bar and reports NaN until it has seen a
full window.
"""

import math
from collections import deque

from ..data.bars import Bar


def true_range(bar: Bar, previous_close: float) -> float:
    if math.isnan(previous_close):
        return bar.high - bar.low
    return max(
        bar.high - bar.low,
        abs(bar.high - previous_close),
        abs(bar.low - previous_close),
    )


class SimpleMovingAverage:
    """Rolling arithmetic mean over a fixed window."""
    
    def __init__(self, period: int):
        self.period = period
        self._window = deque(maxlen=period)
        self._sum = 0.0
        self.value = math.nan
    
    def update(self, x: float) -> float:
        if len(self._window) == self.period:
            self._sum -= self._window[0]
        self._window.append(x)
        self._sum += x
        if len(self._window) == self.period:
            self.value = self._sum / self.period
        return self.value


class WilderMovingAverage:
    """Wilder's smoothing (RMA), seeded with the simple mean of the first window."""
    
    def __init__(self, period: int):
        self.period = period
        self._count = 0
        self._seed = 0.0
        self.value = math.nan
    
    def update(self, x: float) -> float:
        self._count += 1
        if self._count < self.period:
            self._seed += x
        elif self._count == self.period:
            self.value = (self._seed + x) / self.period
        else:
            self.value = (self.value * (self.period - 1) + x) / self.period
        return self.value
