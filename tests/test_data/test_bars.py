"""
Tests for bar data model, windows and timeframes.
"""

import pytest
from datetime import timedelta

from sweep.core.exceptions import ValidationError
from sweep.data.bars import (
    Bar, BarWindow, TimeFrame, convert_timeframe, validate_bars,
    bars_to_dataframe, bars_from_dataframe
)
from conftest import make_bars, START_TIMESTAMP

pytestmark = [
    pytest.mark.unit,
    pytest.mark.data
]


class TestTimeFrame:
    """Test timeframe parsing and arithmetic."""
    
    @pytest.mark.parametrize("text, expected", [
        ("1m", TimeFrame.MINUTE_1),
        ("15m", TimeFrame.MINUTE_15),
        ("60m", TimeFrame.HOUR_1),
        ("1h", TimeFrame.HOUR_1),
        ("4H", TimeFrame.HOUR_4),
        ("1d", TimeFrame.DAY_1),
        ("1w", TimeFrame.WEEK_1),
        ("HOUR_12", TimeFrame.HOUR_12),
        ("day_1", TimeFrame.DAY_1),
    ])
    def test_parse(self, text, expected):
        """Test parsing labels and enum names."""
        assert TimeFrame.parse(text) is expected
    
    def test_parse_passthrough(self):
        """Test parsing an existing member."""
        assert TimeFrame.parse(TimeFrame.MINUTE_5) is TimeFrame.MINUTE_5
    
    @pytest.mark.parametrize("text", ["7m", "h", "", "fortnight", "1y"])
    def test_parse_invalid(self, text):
        """Test unsupported timeframes are rejected."""
        with pytest.raises(ValidationError):
            TimeFrame.parse(text)
    
    def test_labels(self):
        """Test round trip between members and labels."""
        for timeframe in TimeFrame:
            assert TimeFrame.parse(timeframe.label) is timeframe
    
    def test_bars_in(self):
        """Test converting durations into bar counts."""
        assert TimeFrame.HOUR_1.bars_in(timedelta(hours=240)) == 240
        assert TimeFrame.HOUR_4.bars_in(timedelta(hours=240)) == 60
        assert TimeFrame.MINUTE_15.bars_in(timedelta(hours=1)) == 4
        assert TimeFrame.DAY_1.bars_in(timedelta(hours=36)) == 1
    
    def test_units(self):
        """Test minute, second and per-hour properties."""
        assert TimeFrame.HOUR_2.minutes == 120
        assert TimeFrame.HOUR_2.seconds == 7200
        assert TimeFrame.MINUTE_15.bars_per_hour == 4.0


class TestBarWindow:
    """Test the prefix view over a bar list."""
    
    def test_length_and_indexing(self):
        """Test a window hides bars past its length."""
        bars = make_bars([1, 2, 3, 4, 5])
        window = BarWindow(bars, 3)
        
        assert len(window) == 3
        assert window[0] is bars[0]
        assert window[-1] is bars[2]
        assert window.last is bars[2]
        with pytest.raises(IndexError):
            window[3]
    
    def test_slicing_and_iteration(self):
        """Test slices and iteration stay inside the window."""
        bars = make_bars([1, 2, 3, 4, 5])
        window = BarWindow(bars, 4)
        
        assert window[1:] == bars[1:4]
        assert list(window) == bars[:4]
        assert bars[4] not in window
    
    def test_invalid_length(self):
        """Test lengths beyond the list are rejected."""
        with pytest.raises(ValueError):
            BarWindow(make_bars([1, 2]), 3)


class TestBarValidation:
    """Test bar sequence validation."""
    
    def test_valid_bars(self):
        """Test increasing bars pass."""
        assert validate_bars(make_bars([1, 2, 3])) is True
    
    def test_duplicate_timestamp(self):
        """Test non-increasing timestamps are rejected."""
        bars = make_bars([1, 2, 3])
        bars[2] = Bar(bars[1].timestamp, 2, 3, 1, 3, 10)
        with pytest.raises(ValidationError) as exc_info:
            validate_bars(bars)
        assert exc_info.value.details["index"] == 2
    
    def test_non_finite_price(self):
        """Test NaN prices are rejected."""
        bars = [Bar(START_TIMESTAMP, 1.0, 2.0, 0.5, float("nan"), 1.0)]
        with pytest.raises(ValidationError):
            validate_bars(bars)
    
    def test_inverted_range(self):
        """Test low above high is rejected."""
        bars = [Bar(START_TIMESTAMP, 1.0, 1.0, 2.0, 1.5, 1.0)]
        with pytest.raises(ValidationError):
            validate_bars(bars)


class TestTimeframeConversion:
    """Test bar aggregation."""
    
    def _minute_bars(self, count):
        return make_bars([100 + i for i in range(count)], step=60, spread=1.0, volume=10.0)
    
    def test_one_minute_target_returns_input(self):
        """Test the 1-minute target leaves bars untouched."""
        bars = self._minute_bars(10)
        assert convert_timeframe(bars, TimeFrame.MINUTE_1) == bars
    
    def test_aggregate_to_hours(self):
        """Test OHLCV aggregation per bucket."""
        bars = self._minute_bars(120)
        hourly = convert_timeframe(bars, TimeFrame.HOUR_1)
        
        assert len(hourly) == 2
        first_bucket = bars[:60]
        assert hourly[0].timestamp == first_bucket[0].timestamp
        assert hourly[0].open == first_bucket[0].open
        assert hourly[0].high == max(b.high for b in first_bucket)
        assert hourly[0].low == min(b.low for b in first_bucket)
        assert hourly[0].close == first_bucket[-1].close
        assert hourly[0].volume == pytest.approx(600.0)
    
    def test_partial_bucket(self):
        """Test a trailing partial bucket is kept."""
        bars = self._minute_bars(75)
        hourly = convert_timeframe(bars, TimeFrame.HOUR_1)
        
        assert len(hourly) == 2
        assert hourly[1].close == bars[-1].close
    
    def test_empty_input(self):
        """Test converting nothing yields nothing."""
        assert convert_timeframe([], TimeFrame.HOUR_4) == []
    
    def test_dataframe_round_trip(self):
        """Test conversion to and from DataFrames."""
        bars = make_bars([5, 6, 7])
        assert bars_from_dataframe(bars_to_dataframe(bars)) == bars
