"""
Strategy configurations: the candidate type of the parameter search.

A StrategyConfiguration is an ordered list of indicator parameter sets whose
roles are resolved once at construction. Search operations never modify a
configuration in place except for the explicit grid walk (``reset`` /
``increment_single``); sampling and perturbation return new configurations.
"""

import copy
import math
import random
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ...core.exceptions import ConfigurationError, DecodeError
from .base import IndicatorParameterSet, IndicatorRole
from .codec import COUNT
from .kinds import AtrBandsParameters
from .registry import ParameterRegistry, resolve_registry
from .specs import ParameterField


class StrategyConfiguration:
    """Ordered indicator parameter sets tagged by role."""
    
    def __init__(
        self,
        parameter_sets: Iterable[IndicatorParameterSet],
        add_default_risk: bool = True
    ):
        """
        Initialize a strategy configuration.
        
        Args:
            parameter_sets: Parameter sets in evaluation order
            add_default_risk: Append default ATR bands when no risk
                management set is present
        
        Raises:
            ConfigurationError: If no parameter sets are given
        """
        sets = list(parameter_sets)
        if not sets:
            raise ConfigurationError("Strategy configuration needs at least one indicator")
        if add_default_risk and not any(s.ROLE is IndicatorRole.RISK_MANAGEMENT for s in sets):
            sets.append(AtrBandsParameters())
        
        self._sets: Tuple[IndicatorParameterSet, ...] = tuple(sets)
        self.trend = tuple(s for s in sets if s.ROLE is IndicatorRole.TREND)
        self.volume = tuple(s for s in sets if s.ROLE is IndicatorRole.VOLUME)
        self.risk_management = tuple(s for s in sets if s.ROLE is IndicatorRole.RISK_MANAGEMENT)
    
    @classmethod
    def from_kind_names(
        cls,
        names: Sequence[str],
        registry: Optional[ParameterRegistry] = None
    ) -> "StrategyConfiguration":
        """Default-valued configuration for the named kinds."""
        registry = resolve_registry(registry)
        return cls([registry.by_name(name)() for name in names])
    
    @property
    def parameter_sets(self) -> Tuple[IndicatorParameterSet, ...]:
        return self._sets
    
    @property
    def name(self) -> str:
        return "+".join(s.KIND_NAME for s in self._sets if s.ROLE is not IndicatorRole.RISK_MANAGEMENT)
    
    def __iter__(self) -> Iterator[IndicatorParameterSet]:
        return iter(self._sets)
    
    def __len__(self) -> int:
        return len(self._sets)
    
    def __getitem__(self, index: int) -> IndicatorParameterSet:
        return self._sets[index]
    
    def describe(self) -> List[Tuple[str, List[ParameterField]]]:
        return [(s.name, s.describe()) for s in self._sets]
    
    # -- Grid walking ------------------------------------------------------
    
    def reset(self) -> None:
        for parameter_set in self._sets:
            parameter_set.reset()
    
    def increment_single(self) -> bool:
        """
        Advance to the next grid point across all sets.
        
        The first set is the least significant digit; each set carries into
        the next one when it wraps.
        """
        for parameter_set in self._sets:
            if parameter_set.increment_single():
                return True
        return False
    
    def permutation_count(self) -> int:
        return math.prod(s.permutation_count() for s in self._sets)
    
    # -- Search moves --------------------------------------------------------
    
    def random_sample(self, rng: random.Random) -> "StrategyConfiguration":
        return StrategyConfiguration([s.random_sample(rng) for s in self._sets], add_default_risk=False)
    
    def perturb(self, intensity: float, rng: random.Random) -> "StrategyConfiguration":
        return StrategyConfiguration([s.perturb(intensity, rng) for s in self._sets], add_default_risk=False)
    
    def clone(self) -> "StrategyConfiguration":
        return copy.deepcopy(self)
    
    # -- Serialization -------------------------------------------------------
    
    def encode(self) -> bytes:
        """``[count][len][set]...`` with 4-byte little-endian counts and lengths."""
        chunks = [COUNT.pack(len(self._sets))]
        for parameter_set in self._sets:
            blob = parameter_set.encode()
            chunks.append(COUNT.pack(len(blob)))
            chunks.append(blob)
        return b"".join(chunks)
    
    @classmethod
    def decode(cls, data: bytes, registry: Optional[ParameterRegistry] = None) -> "StrategyConfiguration":
        registry = resolve_registry(registry)
        data = bytes(data)
        if len(data) < COUNT.size:
            raise DecodeError("Configuration payload too short")
        
        (count,) = COUNT.unpack_from(data, 0)
        if count <= 0:
            raise DecodeError(f"Invalid parameter set count {count}")
        
        offset = COUNT.size
        sets = []
        for _ in range(count):
            if offset + COUNT.size > len(data):
                raise DecodeError("Configuration payload truncated")
            (length,) = COUNT.unpack_from(data, offset)
            offset += COUNT.size
            if length < 0 or offset + length > len(data):
                raise DecodeError(f"Invalid parameter set length {length}")
            sets.append(registry.decode(data[offset:offset + length]))
            offset += length
        
        if offset != len(data):
            raise DecodeError(f"{len(data) - offset} trailing bytes after configuration")
        return cls(sets, add_default_risk=False)
    
    def to_descriptors(self) -> List[Dict[str, Any]]:
        return [s.to_descriptor() for s in self._sets]
    
    @classmethod
    def from_descriptors(
        cls,
        descriptors: Sequence[Dict[str, Any]],
        registry: Optional[ParameterRegistry] = None
    ) -> "StrategyConfiguration":
        registry = resolve_registry(registry)
        return cls([registry.from_descriptor(d) for d in descriptors], add_default_risk=False)
    
    # -- Identity --------------------------------------------------------------
    
    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, StrategyConfiguration):
            return NotImplemented
        return self._sets == other._sets
    
    def __hash__(self) -> int:
        return hash(self._sets)
    
    def __repr__(self) -> str:
        return f"StrategyConfiguration({list(self._sets)!r})"
