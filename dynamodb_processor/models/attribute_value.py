"""
Attribute Value Codec

DynamoDB's low-level API tags every value with its type (``{"S": "abc"}``,
``{"N": "12.5"}``, ``{"M": {...}}``). This module models that tag explicitly
as :class:`AttributeType` and converts between three representations:

1. Plain Python values (``str``, ``int``/``Decimal``, ``bool``, ``bytes``,
   ``None``, sets, lists, dicts)
2. :class:`AttributeValue` - a frozen, tagged variant used throughout the
   query core (descriptor values, result rows, continuation keys)
3. Wire dictionaries exchanged with boto3's low-level client

Numbers travel as decimal strings and are decoded with boto3's
``DYNAMODB_CONTEXT`` so precision is never lost to float conversion.
Floats are rejected, the same way boto3's ``TypeSerializer`` rejects them.

Round-trip law: ``from_wire(to_wire(v)) == v`` for every supported ``v``.
"""

import base64
import binascii
from collections.abc import Mapping
from decimal import Decimal, DecimalException
from enum import Enum
from typing import Any, Dict, Optional

from boto3.dynamodb.types import DYNAMODB_CONTEXT, Binary
from pydantic import BaseModel, ConfigDict

from ..exceptions import AttributeCodecError


class AttributeType(str, Enum):
    """DynamoDB attribute type descriptors."""
    STRING = "S"
    NUMBER = "N"
    BINARY = "B"
    BOOLEAN = "BOOL"
    NULL = "NULL"
    STRING_SET = "SS"
    NUMBER_SET = "NS"
    BINARY_SET = "BS"
    LIST = "L"
    MAP = "M"


_BINARY_TYPES = (bytes, bytearray, Binary)

_SEQUENCE_TYPES = frozenset({
    AttributeType.STRING_SET,
    AttributeType.NUMBER_SET,
    AttributeType.BINARY_SET,
    AttributeType.LIST,
})


class AttributeValue(BaseModel):
    """A single DynamoDB value together with its type tag.

    The payload shape depends on ``type``:

    - ``S``: ``str``
    - ``N``: decimal string
    - ``B``: ``bytes``
    - ``BOOL``: ``bool``
    - ``NULL``: ``True``
    - ``SS`` / ``NS`` / ``BS``: sorted tuple of ``str`` / decimal strings / ``bytes``
    - ``L``: tuple of ``AttributeValue``
    - ``M``: dict of ``str`` to ``AttributeValue``
    """

    type: AttributeType
    value: Any

    model_config = ConfigDict(frozen=True)

    @classmethod
    def string(cls, value: str) -> 'AttributeValue':
        return cls(type=AttributeType.STRING, value=value)

    @classmethod
    def number(cls, value: Any) -> 'AttributeValue':
        return cls(type=AttributeType.NUMBER, value=_encode_number(value))

    def to_dynamodb(self, binary_as_base64: bool = False) -> Dict[str, Any]:
        """Render as a boto3 low-level wire dictionary.

        Args:
            binary_as_base64: Emit binary payloads as base64 text (for JSON)

        Returns:
            Single-key dictionary such as ``{"S": "abc"}``
        """
        tag = self.type.value
        if self.type is AttributeType.BINARY:
            return {tag: _dump_binary(self.value, binary_as_base64)}
        if self.type is AttributeType.BINARY_SET:
            return {tag: [_dump_binary(b, binary_as_base64) for b in self.value]}
        if self.type in (AttributeType.STRING_SET, AttributeType.NUMBER_SET):
            return {tag: list(self.value)}
        if self.type is AttributeType.LIST:
            return {tag: [child.to_dynamodb(binary_as_base64) for child in self.value]}
        if self.type is AttributeType.MAP:
            return {tag: {k: child.to_dynamodb(binary_as_base64) for k, child in self.value.items()}}
        return {tag: self.value}

    @classmethod
    def from_dynamodb(cls, raw: Mapping, binary_as_base64: bool = False) -> 'AttributeValue':
        """Parse a boto3 low-level wire dictionary.

        Args:
            raw: Single-key dictionary such as ``{"N": "12"}``
            binary_as_base64: Binary payloads arrive as base64 text

        Raises:
            AttributeCodecError: If the dictionary is not a valid tagged value
        """
        if not isinstance(raw, Mapping) or len(raw) != 1:
            raise AttributeCodecError(f"Expected a single-key attribute value, got: {raw!r}")

        tag, payload = next(iter(raw.items()))
        try:
            attr_type = AttributeType(tag)
        except ValueError as e:
            raise AttributeCodecError(f"Unknown attribute type descriptor: {tag!r}", original_error=e) from e

        if attr_type in _SEQUENCE_TYPES and not isinstance(payload, (list, tuple)):
            raise AttributeCodecError(f"{tag} attribute value must be a list, got {type(payload).__name__}")
        if attr_type is AttributeType.MAP and not isinstance(payload, Mapping):
            raise AttributeCodecError(f"M attribute value must be a map, got {type(payload).__name__}")

        if attr_type is AttributeType.STRING:
            return cls(type=attr_type, value=str(payload))
        if attr_type is AttributeType.NUMBER:
            return cls(type=attr_type, value=_encode_number(str(payload)))
        if attr_type is AttributeType.BINARY:
            return cls(type=attr_type, value=_load_binary(payload, binary_as_base64))
        if attr_type is AttributeType.BOOLEAN:
            return cls(type=attr_type, value=bool(payload))
        if attr_type is AttributeType.NULL:
            return cls(type=attr_type, value=True)
        if attr_type is AttributeType.STRING_SET:
            return cls(type=attr_type, value=tuple(sorted(str(s) for s in payload)))
        if attr_type is AttributeType.NUMBER_SET:
            numbers = sorted(Decimal(_encode_number(str(n))) for n in payload)
            return cls(type=attr_type, value=tuple(str(n) for n in numbers))
        if attr_type is AttributeType.BINARY_SET:
            return cls(type=attr_type, value=tuple(sorted(_load_binary(b, binary_as_base64) for b in payload)))
        if attr_type is AttributeType.LIST:
            return cls(type=attr_type, value=tuple(cls.from_dynamodb(child, binary_as_base64) for child in payload))
        return cls(type=attr_type, value={str(k): cls.from_dynamodb(child, binary_as_base64) for k, child in payload.items()})


def _encode_number(value: Any) -> str:
    if isinstance(value, float):
        raise AttributeCodecError("Float types are not supported. Use Decimal types instead.")
    try:
        number = DYNAMODB_CONTEXT.create_decimal(value)
    except (DecimalException, TypeError, ValueError) as e:
        raise AttributeCodecError(f"Number {value!r} cannot be represented in DynamoDB", original_error=e) from e
    if not number.is_finite():
        raise AttributeCodecError(f"Number {value!r} is not finite")
    return str(number)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, Binary):
        return bytes(value.value)
    return bytes(value)


def _dump_binary(value: bytes, as_base64: bool):
    return base64.b64encode(value).decode("ascii") if as_base64 else value


def _load_binary(payload: Any, from_base64: bool) -> bytes:
    if from_base64:
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise AttributeCodecError("Binary attribute is not valid base64", original_error=e) from e
    if not isinstance(payload, _BINARY_TYPES):
        raise AttributeCodecError(f"Binary attribute value must be bytes, got {type(payload).__name__}")
    return _to_bytes(payload)


def _encode_set(values) -> AttributeValue:
    if not values:
        raise AttributeCodecError("Empty sets cannot be stored in DynamoDB")

    if all(isinstance(v, str) for v in values):
        return AttributeValue(type=AttributeType.STRING_SET, value=tuple(sorted(values)))

    if all(isinstance(v, (int, Decimal)) and not isinstance(v, bool) for v in values):
        numbers = sorted(Decimal(_encode_number(v)) for v in values)
        return AttributeValue(type=AttributeType.NUMBER_SET, value=tuple(str(n) for n in numbers))

    if all(isinstance(v, _BINARY_TYPES) for v in values):
        return AttributeValue(type=AttributeType.BINARY_SET, value=tuple(sorted(_to_bytes(v) for v in values)))

    raise AttributeCodecError(f"Set members must all be strings, numbers or binary: {values!r}")


def to_wire(value: Any) -> AttributeValue:
    """Convert a plain Python value into a tagged attribute value.

    Supported kinds are None, bool, str, int and Decimal, bytes, sets of one
    scalar kind, lists and tuples, and mappings with string keys. Floats are
    not supported; pass a Decimal instead.

    Raises:
        AttributeCodecError: For floats, non-finite numbers, empty or mixed
            sets, non-string map keys and unsupported types
    """
    if value is None:
        return AttributeValue(type=AttributeType.NULL, value=True)
    # bool is an int subclass, so it must be matched first
    if isinstance(value, bool):
        return AttributeValue(type=AttributeType.BOOLEAN, value=value)
    if isinstance(value, str):
        return AttributeValue(type=AttributeType.STRING, value=value)
    if isinstance(value, (int, Decimal, float)):
        return AttributeValue.number(value)
    if isinstance(value, _BINARY_TYPES):
        return AttributeValue(type=AttributeType.BINARY, value=_to_bytes(value))
    if isinstance(value, (set, frozenset)):
        return _encode_set(value)
    if isinstance(value, (list, tuple)):
        return AttributeValue(type=AttributeType.LIST, value=tuple(to_wire(v) for v in value))
    if isinstance(value, Mapping):
        encoded = {}
        for key, member in value.items():
            if not isinstance(key, str):
                raise AttributeCodecError(f"Map keys must be strings, got {type(key).__name__}")
            encoded[key] = to_wire(member)
        return AttributeValue(type=AttributeType.MAP, value=encoded)

    raise AttributeCodecError(f"Unsupported type for DynamoDB attribute: {type(value).__name__}")


def from_wire(attribute: AttributeValue) -> Any:
    """Convert a tagged attribute value back into a plain Python value."""
    attr_type = attribute.type
    if attr_type is AttributeType.STRING:
        return attribute.value
    if attr_type is AttributeType.NUMBER:
        return DYNAMODB_CONTEXT.create_decimal(attribute.value)
    if attr_type is AttributeType.BINARY:
        return attribute.value
    if attr_type is AttributeType.BOOLEAN:
        return attribute.value
    if attr_type is AttributeType.NULL:
        return None
    if attr_type is AttributeType.STRING_SET:
        return set(attribute.value)
    if attr_type is AttributeType.NUMBER_SET:
        return {DYNAMODB_CONTEXT.create_decimal(n) for n in attribute.value}
    if attr_type is AttributeType.BINARY_SET:
        return set(attribute.value)
    if attr_type is AttributeType.LIST:
        return [from_wire(child) for child in attribute.value]
    if attr_type is AttributeType.MAP:
        return {k: from_wire(child) for k, child in attribute.value.items()}

    raise AttributeCodecError(f"Unhandled attribute type: {attr_type!r}")


# =============================================================================
# Item helpers
# =============================================================================

def serialize_item(item: Mapping) -> Dict[str, AttributeValue]:
    """Encode every attribute of a plain Python item."""
    return {name: to_wire(value) for name, value in item.items()}


def deserialize_item(item: Mapping) -> Dict[str, Any]:
    """Decode every attribute of a tagged item into plain Python values."""
    return {name: from_wire(value) for name, value in item.items()}


def item_from_dynamodb(raw: Optional[Mapping], binary_as_base64: bool = False) -> Optional[Dict[str, AttributeValue]]:
    """Parse a wire-form item (or key) returned by the low-level client."""
    if raw is None:
        return None
    return {name: AttributeValue.from_dynamodb(value, binary_as_base64) for name, value in raw.items()}


def item_to_dynamodb(item: Optional[Mapping], binary_as_base64: bool = False) -> Optional[Dict[str, Dict[str, Any]]]:
    """Render a tagged item (or key) in the low-level client's wire form."""
    if item is None:
        return None
    return {name: value.to_dynamodb(binary_as_base64) for name, value in item.items()}
