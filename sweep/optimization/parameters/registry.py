"""
Parameter kind registry.

The registry maps kind tags to parameter set classes for decoding. Each tag
can be registered once; the default registry is filled at import time with
the built-in kinds and is only read afterwards.
"""

from typing import Any, Dict, Iterable, List, Optional, Type

from ...core.exceptions import ConfigurationError, DecodeError
from .base import IndicatorParameterSet
from .codec import decode_parameters
from .kinds import BUILTIN_KINDS


class ParameterRegistry:
    """Write-once-per-kind mapping of kind tag to parameter set class."""
    
    def __init__(self, kinds: Iterable[Type[IndicatorParameterSet]] = ()):
        self._by_tag: Dict[int, Type[IndicatorParameterSet]] = {}
        self._by_name: Dict[str, Type[IndicatorParameterSet]] = {}
        for kind in kinds:
            self.register(kind)
    
    def register(self, kind: Type[IndicatorParameterSet]) -> Type[IndicatorParameterSet]:
        """
        Register a parameter kind.
        
        Raises:
            ConfigurationError: If the tag is out of range or already taken,
                or the kind name is already taken
        """
        tag = kind.KIND_TAG
        if not isinstance(tag, int) or not 0 <= tag <= 0xFF:
            raise ConfigurationError(f"Kind tag for {kind.__name__} must fit in one byte, got {tag!r}")
        if tag in self._by_tag:
            raise ConfigurationError(
                f"Kind tag 0x{tag:02x} already registered",
                details={"existing": self._by_tag[tag].__name__, "new": kind.__name__}
            )
        if kind.KIND_NAME in self._by_name:
            raise ConfigurationError(f"Kind name {kind.KIND_NAME!r} already registered")
        self._by_tag[tag] = kind
        self._by_name[kind.KIND_NAME] = kind
        return kind
    
    def lookup(self, tag: int) -> Type[IndicatorParameterSet]:
        try:
            return self._by_tag[tag]
        except KeyError:
            raise DecodeError(f"Unknown parameter kind tag 0x{tag:02x}")
    
    def by_name(self, name: str) -> Type[IndicatorParameterSet]:
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown indicator kind {name!r}",
                details=sorted(self._by_name)
            )
    
    def kinds(self) -> List[Type[IndicatorParameterSet]]:
        return [self._by_tag[tag] for tag in sorted(self._by_tag)]
    
    def decode(self, data: bytes) -> IndicatorParameterSet:
        return decode_parameters(data, self)
    
    def from_descriptor(self, descriptor: Dict[str, Any]) -> IndicatorParameterSet:
        kind = self.by_name(descriptor.get("kind", ""))
        return kind.from_descriptor(descriptor)
    
    def __contains__(self, tag: int) -> bool:
        return tag in self._by_tag
    
    def __len__(self) -> int:
        return len(self._by_tag)


_DEFAULT_REGISTRY = ParameterRegistry(BUILTIN_KINDS)


def default_registry() -> ParameterRegistry:
    """Registry holding the built-in parameter kinds."""
    return _DEFAULT_REGISTRY


def resolve_registry(registry: Optional[ParameterRegistry]) -> ParameterRegistry:
    return registry if registry is not None else _DEFAULT_REGISTRY
