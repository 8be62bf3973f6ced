"""
Parameter field specifications.

A specification describes the bounded, stepped range of one indicator
parameter and knows how to sample, perturb, step through, validate and
serialize values of that range.
"""

import math
import random
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from ...core.exceptions import DecodeError

# Numeric perturbation span as a fraction of (max - min) at full intensity
PERTURB_SCALE = 0.3
# Probability factor for flipping a toggle at full intensity
FLIP_SCALE = 0.3
# Float grid tolerance
_EPSILON = 1e-9
_GRID_DECIMALS = 10

Number = Union[int, float]


@dataclass(frozen=True)
class ParameterField:
    """Introspection record for one parameter value and its range."""
    
    name: str
    value: Any
    min: Any
    max: Any
    step: Any
    kind: str
    
    @property
    def step_count(self) -> int:
        if self.kind == "bool":
            return 2
        return int(math.floor((self.max - self.min) / self.step + _EPSILON)) + 1


class ParameterSpec(ABC):
    """Abstract base class for parameter specifications."""
    
    kind: str = ""
    fmt: str = ""
    
    @property
    def size(self) -> int:
        """Encoded width in bytes."""
        return struct.calcsize(self.fmt)
    
    @abstractmethod
    def first(self) -> Any:
        """Minimum grid value."""
        pass
    
    @abstractmethod
    def next(self, value: Any) -> Optional[Any]:
        """Next grid value after ``value``, or None when the range is exhausted."""
        pass
    
    @abstractmethod
    def step_count(self) -> int:
        """Number of grid points in this range."""
        pass
    
    @abstractmethod
    def sample(self, rng: random.Random) -> Any:
        """Draw a grid point uniformly at random."""
        pass
    
    @abstractmethod
    def perturb(self, value: Any, intensity: float, rng: random.Random) -> Any:
        """Return a nearby value; the neighbourhood grows with intensity."""
        pass
    
    @abstractmethod
    def validate(self, value: Any) -> bool:
        """Check if a value is within this parameter range."""
        pass
    
    @abstractmethod
    def coerce(self, value: Any) -> Any:
        """Convert a loosely typed value (e.g. parsed JSON) to this range's type."""
        pass
    
    @abstractmethod
    def describe(self, name: str, value: Any) -> ParameterField:
        pass
    
    def grid_points(self) -> List[Any]:
        """All grid values in ascending order."""
        points = []
        value = self.first()
        while value is not None:
            points.append(value)
            value = self.next(value)
        return points
    
    def pack(self, value: Any) -> bytes:
        return struct.pack(self.fmt, value)
    
    def unpack(self, data: bytes, offset: int) -> Any:
        return struct.unpack_from(self.fmt, data, offset)[0]


class IntRange(ParameterSpec):
    """Stepped integer range specification."""
    
    kind = "int"
    fmt = "<i"
    
    def __init__(self, low: int, high: int, step: int = 1):
        if step <= 0 or high < low:
            raise ValueError(f"Invalid integer range ({low}, {high}) step {step}")
        self.low = low
        self.high = high
        self.step = step
    
    def first(self) -> int:
        return self.low
    
    def next(self, value: int) -> Optional[int]:
        index = (value - self.low) // self.step + 1
        if index >= self.step_count():
            return None
        return self.low + index * self.step
    
    def step_count(self) -> int:
        return (self.high - self.low) // self.step + 1
    
    def sample(self, rng: random.Random) -> int:
        return self.low + rng.randrange(self.step_count()) * self.step
    
    def perturb(self, value: int, intensity: float, rng: random.Random) -> int:
        span = math.ceil((self.high - self.low) * intensity * PERTURB_SCALE)
        if span <= 0:
            return value
        return self.clamp(value + rng.randint(-span, span))
    
    def clamp(self, value: Number) -> int:
        return int(min(self.high, max(self.low, int(round(value)))))
    
    def validate(self, value: Any) -> bool:
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and self.low <= value <= self.high
        )
    
    def coerce(self, value: Any) -> Any:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    
    def describe(self, name: str, value: int) -> ParameterField:
        return ParameterField(name, value, self.low, self.high, self.step, self.kind)
    
    def __repr__(self) -> str:
        return f"IntRange({self.low}, {self.high}, {self.step})"


class FloatRange(ParameterSpec):
    """Stepped floating point range specification."""
    
    kind = "float"
    fmt = "<d"
    
    def __init__(self, low: float, high: float, step: float):
        if step <= 0 or high < low:
            raise ValueError(f"Invalid float range ({low}, {high}) step {step}")
        self.low = float(low)
        self.high = float(high)
        self.step = float(step)
    
    def _point(self, index: int) -> float:
        # Derived from the index, never by repeated addition of the step
        return min(self.high, round(self.low + index * self.step, _GRID_DECIMALS))
    
    def first(self) -> float:
        return self.low
    
    def next(self, value: float) -> Optional[float]:
        index = int(math.floor((value - self.low) / self.step + _EPSILON)) + 1
        if index >= self.step_count():
            return None
        return self._point(index)
    
    def step_count(self) -> int:
        return int(math.floor((self.high - self.low) / self.step + _EPSILON)) + 1
    
    def sample(self, rng: random.Random) -> float:
        return self._point(rng.randrange(self.step_count()))
    
    def perturb(self, value: float, intensity: float, rng: random.Random) -> float:
        span = (self.high - self.low) * intensity * PERTURB_SCALE
        if span <= 0:
            return value
        return self.clamp(value + rng.uniform(-span, span))
    
    def clamp(self, value: Number) -> float:
        return float(min(self.high, max(self.low, float(value))))
    
    def validate(self, value: Any) -> bool:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
            and self.low <= value <= self.high
        )
    
    def coerce(self, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value
    
    def describe(self, name: str, value: float) -> ParameterField:
        return ParameterField(name, value, self.low, self.high, self.step, self.kind)
    
    def __repr__(self) -> str:
        return f"FloatRange({self.low}, {self.high}, {self.step})"


class Toggle(ParameterSpec):
    """Boolean switch, encoded as a 4-byte integer 0/1."""
    
    kind = "bool"
    fmt = "<i"
    
    def first(self) -> bool:
        return False
    
    def next(self, value: bool) -> Optional[bool]:
        return None if value else True
    
    def step_count(self) -> int:
        return 2
    
    def sample(self, rng: random.Random) -> bool:
        return rng.randrange(2) == 1
    
    def perturb(self, value: bool, intensity: float, rng: random.Random) -> bool:
        if rng.random() < intensity * FLIP_SCALE:
            return not value
        return value
    
    def validate(self, value: Any) -> bool:
        return isinstance(value, bool)
    
    def coerce(self, value: Any) -> Any:
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        return value
    
    def describe(self, name: str, value: bool) -> ParameterField:
        return ParameterField(name, value, False, True, 1, self.kind)
    
    def pack(self, value: bool) -> bytes:
        return struct.pack(self.fmt, 1 if value else 0)
    
    def unpack(self, data: bytes, offset: int) -> bool:
        raw = struct.unpack_from(self.fmt, data, offset)[0]
        if raw not in (0, 1):
            raise DecodeError(f"Toggle value must be 0 or 1, got {raw}")
        return raw == 1
    
    def __repr__(self) -> str:
        return "Toggle()"
