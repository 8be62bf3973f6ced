"""
Indicator parameter sets.

An IndicatorParameterSet is the named, typed bundle of parameter values for
one indicator kind. Subclasses declare ``KIND_TAG``, ``KIND_NAME``, ``ROLE``
and an ordered ``FIELDS`` mapping of field name to ParameterSpec; everything
else (stepping, sampling, perturbation, serialization, equality) is shared.
"""

import copy
import math
import random
from enum import Enum
from typing import Any, Dict, List, Optional

from ...core.exceptions import ValidationError
from ...utils.validators import validate_probability
from .codec import encode_parameters
from .specs import ParameterField, ParameterSpec


class IndicatorRole(Enum):
    """Capability an indicator contributes to a strategy."""
    TREND = "trend"
    VOLUME = "volume"
    RISK_MANAGEMENT = "risk_management"


class IndicatorParameterSet:
    """
    Parameter values for one indicator kind.
    
    Values always lie within their declared ranges: the constructor and
    ``set`` validate, and every search operation returns in-range sets.
    Field values are also readable as attributes (``params.period``).
    """
    
    KIND_TAG: int = -1
    KIND_NAME: str = ""
    ROLE: Optional[IndicatorRole] = None
    FIELDS: Dict[str, ParameterSpec] = {}
    
    def __init__(self, name: Optional[str] = None, **values: Any):
        """
        Initialize a parameter set at the minimum of every range.
        
        Args:
            name: Display name (defaults to the kind name)
            **values: Field values overriding the minimum
        """
        self.name = self.KIND_NAME if name is None else name
        self._values: Dict[str, Any] = {
            field_name: spec.first() for field_name, spec in self.FIELDS.items()
        }
        for field_name, value in values.items():
            self.set(field_name, value)
    
    def __getattr__(self, item: str) -> Any:
        values = self.__dict__.get("_values")
        if values is not None and item in values:
            return values[item]
        raise AttributeError(f"{type(self).__name__} has no attribute {item!r}")
    
    # -- Field access ----------------------------------------------------
    
    def get(self, field_name: str) -> Any:
        if field_name not in self._values:
            raise ValidationError(f"Unknown {self.KIND_NAME} parameter: {field_name}")
        return self._values[field_name]
    
    def set(self, field_name: str, value: Any) -> None:
        """
        Set one field value.
        
        Raises:
            ValidationError: For unknown fields or values outside the range
        """
        spec = self.FIELDS.get(field_name)
        if spec is None:
            raise ValidationError(f"Unknown {self.KIND_NAME} parameter: {field_name}")
        if not spec.validate(value):
            raise ValidationError(
                f"Invalid value for {self.KIND_NAME}.{field_name}: {value!r}",
                details=repr(spec)
            )
        self._values[field_name] = value
    
    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)
    
    def describe(self) -> List[ParameterField]:
        """Field descriptors in declared order."""
        return [spec.describe(name, self._values[name]) for name, spec in self.FIELDS.items()]
    
    # -- Grid walking ------------------------------------------------------
    
    def reset(self) -> None:
        """Move every field to its minimum."""
        for field_name, spec in self.FIELDS.items():
            self._values[field_name] = spec.first()
    
    def increment_single(self) -> bool:
        """
        Advance to the next grid point.
        
        The last declared field is the least significant digit. A field that
        overflows returns to its minimum and carries into the field declared
        before it.
        
        Returns:
            False once the final grid point has been passed; the set is then
            back at its minimum
        """
        for field_name in reversed(list(self.FIELDS)):
            spec = self.FIELDS[field_name]
            following = spec.next(self._values[field_name])
            if following is not None:
                self._values[field_name] = following
                return True
            self._values[field_name] = spec.first()
        return False
    
    @classmethod
    def permutation_count(cls) -> int:
        """Number of grid points of this kind."""
        return math.prod(spec.step_count() for spec in cls.FIELDS.values())
    
    # -- Search moves --------------------------------------------------------
    
    def random_sample(self, rng: random.Random) -> "IndicatorParameterSet":
        """A fresh set with every field drawn uniformly from its grid."""
        sampled = type(self)(name=self.name)
        for field_name, spec in self.FIELDS.items():
            sampled._values[field_name] = spec.sample(rng)
        return sampled
    
    def perturb(self, intensity: float, rng: random.Random) -> "IndicatorParameterSet":
        """
        A neighbouring set.
        
        Args:
            intensity: Neighbourhood size in [0, 1]
            rng: Random source
        """
        validate_probability("intensity", intensity)
        neighbour = self.clone()
        for field_name, spec in self.FIELDS.items():
            neighbour._values[field_name] = spec.perturb(self._values[field_name], intensity, rng)
        return neighbour
    
    def clone(self) -> "IndicatorParameterSet":
        return copy.deepcopy(self)
    
    # -- Serialization -------------------------------------------------------
    
    def encode(self) -> bytes:
        return encode_parameters(self)
    
    def to_descriptor(self) -> Dict[str, Any]:
        """Portable description of this set."""
        return {
            "kind": self.KIND_NAME,
            "name": self.name,
            "role": self.ROLE.value if self.ROLE else None,
            "parameters": self.values,
        }
    
    @classmethod
    def from_descriptor(cls, descriptor: Dict[str, Any]) -> "IndicatorParameterSet":
        parameters = descriptor.get("parameters", {})
        values = {
            name: cls.FIELDS[name].coerce(value) if name in cls.FIELDS else value
            for name, value in parameters.items()
        }
        return cls(name=descriptor.get("name"), **values)
    
    # -- Identity --------------------------------------------------------------
    
    def _identity(self):
        return (self.KIND_TAG, tuple(self._values[name] for name in self.FIELDS))
    
    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, IndicatorParameterSet):
            return NotImplemented
        return self._identity() == other._identity()
    
    def __hash__(self) -> int:
        return hash(self._identity())
    
    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self._values.items())
        return f"{type(self).__name__}({fields})"
