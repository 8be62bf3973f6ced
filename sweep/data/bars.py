"""
Bar data model and timeframe handling.

Bars are immutable OHLCV candles ordered by strictly increasing unix
timestamp (seconds). BarWindow exposes a growing prefix of a bar list without
copying, which is how the backtest engine hands history to a strategy.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from collections import abc
from typing import Iterator, List, Sequence, Union

import pandas as pd

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Bar:
    """One OHLCV candle."""
    
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    
    @property
    def hl2(self) -> float:
        return (self.high + self.low) / 2.0


class TimeFrame(Enum):
    """Bar interval expressed in minutes."""
    
    MINUTE_1 = 1
    MINUTE_5 = 5
    MINUTE_15 = 15
    MINUTE_30 = 30
    HOUR_1 = 60
    HOUR_2 = 120
    HOUR_4 = 240
    HOUR_8 = 480
    HOUR_12 = 720
    DAY_1 = 1440
    WEEK_1 = 10080
    
    @property
    def minutes(self) -> int:
        return self.value
    
    @property
    def seconds(self) -> int:
        return self.value * 60
    
    @property
    def bars_per_hour(self) -> float:
        return 60.0 / self.value
    
    @property
    def label(self) -> str:
        if self.value % 10080 == 0:
            return f"{self.value // 10080}w"
        if self.value % 1440 == 0:
            return f"{self.value // 1440}d"
        if self.value % 60 == 0:
            return f"{self.value // 60}h"
        return f"{self.value}m"
    
    def bars_in(self, duration: timedelta) -> int:
        """Number of whole bars covering a wall-clock duration."""
        return int(duration.total_seconds() // self.seconds)
    
    @classmethod
    def parse(cls, text: Union[str, "TimeFrame"]) -> "TimeFrame":
        """
        Parse a timeframe from a label ("15m", "4h", "1d", "1w") or enum name.
        
        Raises:
            ValidationError: If the text names no supported timeframe
        """
        if isinstance(text, TimeFrame):
            return text
        
        cleaned = str(text).strip()
        if cleaned.upper() in cls.__members__:
            return cls[cleaned.upper()]
        
        units = {"m": 1, "h": 60, "d": 1440, "w": 10080}
        lowered = cleaned.lower()
        if lowered and lowered[-1] in units and lowered[:-1].isdigit():
            minutes = int(lowered[:-1]) * units[lowered[-1]]
            for member in cls:
                if member.value == minutes:
                    return member
        
        raise ValidationError(f"Unsupported timeframe: {text!r}")


class BarWindow(abc.Sequence):
    """Read-only view over bars[0:length] of an underlying bar list."""
    
    __slots__ = ("_bars", "_length")
    
    def __init__(self, bars: Sequence[Bar], length: int):
        if not 0 <= length <= len(bars):
            raise ValueError(f"Window length {length} outside 0..{len(bars)}")
        self._bars = bars
        self._length = length
    
    def __len__(self) -> int:
        return self._length
    
    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._bars[i] for i in range(*index.indices(self._length))]
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("bar window index out of range")
        return self._bars[index]
    
    def __iter__(self) -> Iterator[Bar]:
        for i in range(self._length):
            yield self._bars[i]
    
    @property
    def last(self) -> Bar:
        return self[self._length - 1]


def validate_bars(bars: Sequence[Bar]) -> bool:
    """
    Check that bars are strictly increasing in time with sane prices.
    
    Raises:
        ValidationError: On the first offending bar
    """
    previous = None
    for index, bar in enumerate(bars):
        if previous is not None and bar.timestamp <= previous.timestamp:
            raise ValidationError(
                "Bars must be strictly increasing in timestamp",
                details={"index": index, "timestamp": bar.timestamp, "previous": previous.timestamp}
            )
        if not all(math.isfinite(v) for v in (bar.open, bar.high, bar.low, bar.close, bar.volume)):
            raise ValidationError("Bar contains non-finite values", details={"index": index})
        if bar.low > bar.high:
            raise ValidationError("Bar low exceeds high", details={"index": index})
        previous = bar
    return True


def bars_to_dataframe(bars: Sequence[Bar]) -> pd.DataFrame:
    """Convert bars to a DataFrame with OHLCV columns."""
    return pd.DataFrame(
        [(b.timestamp, b.open, b.high, b.low, b.close, b.volume) for b in bars],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )


def bars_from_dataframe(df: pd.DataFrame) -> List[Bar]:
    """Convert a DataFrame with integer second timestamps into bars."""
    return [
        Bar(int(row.timestamp), float(row.open), float(row.high),
            float(row.low), float(row.close), float(row.volume))
        for row in df.itertuples(index=False)
    ]


def convert_timeframe(bars: Sequence[Bar], timeframe: TimeFrame) -> List[Bar]:
    """
    Aggregate bars into a coarser timeframe.
    
    Bars are bucketed by ``timestamp // timeframe.seconds``. Each bucket keeps
    the first timestamp and open, the highest high, the lowest low, the last
    close and the summed volume.
    
    Args:
        bars: Source bars (any finer interval)
        timeframe: Target interval
    
    Returns:
        Aggregated bars ordered by bucket
    """
    if timeframe is TimeFrame.MINUTE_1 or not bars:
        return list(bars)
    
    df = bars_to_dataframe(bars).sort_values("timestamp", kind="mergesort")
    bucket = df["timestamp"] // timeframe.seconds
    grouped = df.groupby(bucket, sort=True).agg(
        timestamp=("timestamp", "first"),
        open=("open", "first"),
        high=("high", "max"),
        low=("low", "min"),
        close=("close", "last"),
        volume=("volume", "sum"),
    )
    return bars_from_dataframe(grouped.reset_index(drop=True))
