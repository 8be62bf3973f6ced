"""
Binary layout for parameter sets.

    [kind tag: 1 byte][name length: 4 bytes LE signed][name: UTF-8][fields]

Fields follow in declared order, each fixed width and little-endian: integers
and toggles as 4-byte signed ints, floats as 8-byte IEEE-754 doubles.
"""

import struct
from typing import TYPE_CHECKING

from ...core.exceptions import DecodeError, ValidationError

if TYPE_CHECKING:
    from .registry import ParameterRegistry
    from .base import IndicatorParameterSet

HEADER = struct.Struct("<Bi")
COUNT = struct.Struct("<i")


def encode_parameters(parameters: "IndicatorParameterSet") -> bytes:
    """Serialize one parameter set."""
    name = parameters.name.encode("utf-8")
    chunks = [HEADER.pack(parameters.KIND_TAG, len(name)), name]
    for field_name, spec in parameters.FIELDS.items():
        chunks.append(spec.pack(parameters.get(field_name)))
    return b"".join(chunks)


def decode_parameters(data: bytes, registry: "ParameterRegistry") -> "IndicatorParameterSet":
    """
    Deserialize one parameter set.
    
    Args:
        data: Encoded bytes
        registry: Registry resolving the kind tag
    
    Returns:
        Decoded parameter set
    
    Raises:
        DecodeError: For truncated or oversized payloads, unknown tags,
            malformed names or out-of-range values
    """
    data = bytes(data)
    if len(data) < HEADER.size:
        raise DecodeError(f"Payload too short: {len(data)} bytes")
    
    tag, name_length = HEADER.unpack_from(data, 0)
    kind = registry.lookup(tag)
    
    offset = HEADER.size
    if name_length < 0 or offset + name_length > len(data):
        raise DecodeError(f"Invalid name length {name_length} for {len(data)}-byte payload")
    try:
        name = data[offset:offset + name_length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("Parameter set name is not valid UTF-8", details=str(e))
    offset += name_length
    
    expected = sum(spec.size for spec in kind.FIELDS.values())
    if len(data) - offset != expected:
        raise DecodeError(
            f"{kind.KIND_NAME} payload length mismatch",
            details={"expected": expected, "actual": len(data) - offset}
        )
    
    values = {}
    for field_name, spec in kind.FIELDS.items():
        values[field_name] = spec.unpack(data, offset)
        offset += spec.size
    
    try:
        return kind(name=name, **values)
    except ValidationError as e:
        raise DecodeError(f"Decoded {kind.KIND_NAME} value out of range", details=str(e))
