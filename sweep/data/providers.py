"""
Historical bar providers.

This module provides the CSV loader feeding the backtest engine. Files carry
the columns ``timestamp, open, high, low, close, volume`` where timestamps may
be unix seconds, unix milliseconds or anything ``pandas.to_datetime`` parses.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from ..core.exceptions import DataProviderError, ValidationError
from ..core.logging import get_logger
from ..utils.decorators import log_execution_time
from ..utils.validators import validate_ohlcv_dataframe, OHLCV_COLUMNS
from .bars import Bar, TimeFrame, bars_from_dataframe, convert_timeframe, validate_bars

logger = get_logger(__name__)

# Larger integer timestamps are treated as milliseconds
_MILLISECOND_THRESHOLD = 10_000_000_000
_SECONDS_PER_DAY = 86_400


class BarProvider(ABC):
    """Abstract base class for bar providers."""
    
    @abstractmethod
    def get_bars(self, timeframe: Optional[TimeFrame] = None) -> List[Bar]:
        """Get historical bars, optionally aggregated to a timeframe."""
        pass


class CSVBarProvider(BarProvider):
    """Bar provider that reads from CSV files."""
    
    def __init__(self, data_path: Union[str, Path], lookback_days: Optional[int] = None):
        """
        Initialize CSV bar provider.
        
        Args:
            data_path: Path to CSV data file
            lookback_days: Keep only the trailing number of days (optional)
        """
        self.data_path = Path(data_path)
        self.lookback_days = lookback_days
        self._data: Optional[pd.DataFrame] = None
    
    @log_execution_time()
    def load(self) -> pd.DataFrame:
        """Load, normalize and cache the CSV contents."""
        if self._data is not None:
            return self._data
        
        if not self.data_path.exists():
            raise DataProviderError(f"Data file not found: {self.data_path}")
        
        try:
            raw = pd.read_csv(self.data_path)
        except (OSError, ValueError) as e:
            raise DataProviderError(f"Failed to read {self.data_path}: {str(e)}")
        
        raw.columns = [str(c).strip().lower() for c in raw.columns]
        try:
            validate_ohlcv_dataframe(raw, required_columns=OHLCV_COLUMNS)
        except ValidationError as e:
            raise DataProviderError(f"Invalid bar data in {self.data_path}", details=str(e))
        
        data = raw[OHLCV_COLUMNS].copy()
        data["timestamp"] = self._to_unix_seconds(data["timestamp"])
        data = (
            data.sort_values("timestamp", kind="mergesort")
            .drop_duplicates(subset=["timestamp"], keep="first")
            .reset_index(drop=True)
        )
        
        if self.lookback_days:
            cutoff = int(data["timestamp"].iloc[-1]) - self.lookback_days * _SECONDS_PER_DAY
            data = data[data["timestamp"] >= cutoff].reset_index(drop=True)
        
        logger.info(f"Loaded {len(data)} bars from {self.data_path}")
        self._data = data
        return data
    
    def get_bars(self, timeframe: Optional[TimeFrame] = None) -> List[Bar]:
        """Get bars, aggregated to ``timeframe`` when given."""
        bars = bars_from_dataframe(self.load())
        validate_bars(bars)
        if timeframe is not None:
            bars = convert_timeframe(bars, timeframe)
            logger.info(f"Converted to {len(bars)} bars at {timeframe.label}")
        return bars
    
    @staticmethod
    def _to_unix_seconds(column: pd.Series) -> pd.Series:
        if pd.api.types.is_numeric_dtype(column):
            values = column.astype(np.int64)
            if len(values) and values.abs().max() >= _MILLISECOND_THRESHOLD:
                values = values // 1000
            return values
        
        try:
            parsed = pd.to_datetime(column, utc=True)
        except (ValueError, TypeError) as e:
            raise DataProviderError("Unparseable timestamp column", details=str(e))
        return (parsed - pd.Timestamp("1970-01-01", tz="UTC")) // pd.Timedelta(seconds=1)
