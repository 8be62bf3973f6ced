"""
Volume indicators.
"""

import math

from ..data.bars import Bar
from .averages import SimpleMovingAverage
from .base import VolumeIndicator, VolumeSignal


class NormalizedVolume(VolumeIndicator):
    """Bar volume as a percentage of its moving average."""
    
    def _reset_state(self) -> None:
        super()._reset_state()
        self._average = SimpleMovingAverage(self.parameters.volume_period)
        self.normalized = math.nan
    
    def _process(self, bar: Bar, index: int) -> None:
        average = self._average.update(bar.volume)
        if math.isnan(average) or average == 0:
            self.normalized = math.nan
            self._signals.append(VolumeSignal.NORMAL)
            return
        
        self.normalized = bar.volume / average * 100.0
        params = self.parameters
        if self.normalized >= params.high_volume:
            signal = VolumeSignal.HIGH
        elif params.normal_high_volume < self.normalized < params.high_volume:
            signal = VolumeSignal.NORMAL
        elif self.normalized <= params.low_volume:
            signal = VolumeSignal.LOW
        else:
            signal = VolumeSignal.NORMAL
        self._signals.append(signal)
