"""
Encoder and decoder for the compact binary format used by the store.

Request and response bodies of the store are compact binary objects. A
top-level object is sent without its type byte: a VarUInt payload size
followed by the fields. Every field of a (non-uniform) object carries a type
byte, a name and its payload; array items carry a type byte but no name.

Integers that describe sizes are VarUInts: big-endian, 1 to 9 bytes, where
the number of leading 1 bits in the first byte is the number of bytes that
follow it.
"""

import enum
import struct
import uuid
from typing import Any, Dict, List, Mapping, Tuple

from ..application.exceptions import CompactBinaryError

CONTENT_TYPE = "application/x-ue-cb"

_HASH_SIZE = 20
_OBJECT_ID_SIZE = 12


class FieldType(enum.IntEnum):
    NONE = 0x00
    NULL = 0x01
    OBJECT = 0x02
    UNIFORM_OBJECT = 0x03
    ARRAY = 0x04
    UNIFORM_ARRAY = 0x05
    BINARY = 0x06
    STRING = 0x07
    INTEGER_POSITIVE = 0x08
    INTEGER_NEGATIVE = 0x09
    FLOAT32 = 0x0A
    FLOAT64 = 0x0B
    BOOL_FALSE = 0x0C
    BOOL_TRUE = 0x0D
    OBJECT_ATTACHMENT = 0x0E
    BINARY_ATTACHMENT = 0x0F
    HASH = 0x10
    UUID = 0x11
    DATE_TIME = 0x12
    TIME_SPAN = 0x13
    OBJECT_ID = 0x14
    CUSTOM_BY_ID = 0x1E
    CUSTOM_BY_NAME = 0x1F


_TYPE_MASK = 0x1F
_HAS_FIELD_NAME = 0x80

_MAX_VAR_UINT = (1 << 64) - 1


# --- VarUInt ---

def _measure_var_uint(value: int) -> int:
    if value == 0:
        return 1
    return min((value.bit_length() - 1) // 7 + 1, 9)


def encode_var_uint(value: int) -> bytes:
    """Encodes an unsigned integer of at most 64 bits as a VarUInt."""

    if value < 0 or value > _MAX_VAR_UINT:
        raise CompactBinaryError(f"VarUInt out of range: {value}")

    byte_count = _measure_var_uint(value)
    data = bytearray(value.to_bytes(byte_count, "big"))
    data[0] |= (0xFF << (9 - byte_count)) & 0xFF
    return bytes(data)


def decode_var_uint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decodes a VarUInt; returns the value and the offset past it."""

    if offset >= len(data):
        raise CompactBinaryError("Unexpected end of data reading VarUInt")

    first = data[offset]
    byte_count = 1
    while byte_count < 9 and first & (0x80 >> (byte_count - 1)):
        byte_count += 1

    end = offset + byte_count
    if end > len(data):
        raise CompactBinaryError("Unexpected end of data reading VarUInt")

    value = first & (0xFF >> byte_count)
    for byte in data[offset + 1:end]:
        value = (value << 8) | byte
    return value, end


# --- Encoding ---

def _field_type_of(value: Any) -> FieldType:
    # bool must be tested before int
    if value is None:
        return FieldType.NULL
    if isinstance(value, bool):
        return FieldType.BOOL_TRUE if value else FieldType.BOOL_FALSE
    if isinstance(value, int):
        if value >= 0:
            return FieldType.INTEGER_POSITIVE
        return FieldType.INTEGER_NEGATIVE
    if isinstance(value, float):
        return FieldType.FLOAT64
    if isinstance(value, str):
        return FieldType.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        return FieldType.BINARY
    if isinstance(value, Mapping):
        return FieldType.OBJECT
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    raise CompactBinaryError(
        f"Cannot encode value of type {type(value).__name__}"
    )


def _encode_payload(field_type: FieldType, value: Any) -> bytes:
    if field_type in (
        FieldType.NULL, FieldType.BOOL_TRUE, FieldType.BOOL_FALSE
    ):
        return b""
    if field_type is FieldType.INTEGER_POSITIVE:
        return encode_var_uint(value)
    if field_type is FieldType.INTEGER_NEGATIVE:
        return encode_var_uint(~value)
    if field_type is FieldType.FLOAT64:
        return struct.pack(">d", value)
    if field_type is FieldType.STRING:
        raw = value.encode("utf-8")
        return encode_var_uint(len(raw)) + raw
    if field_type is FieldType.BINARY:
        raw = bytes(value)
        return encode_var_uint(len(raw)) + raw
    if field_type is FieldType.OBJECT:
        return _encode_object_payload(value)
    return _encode_array_payload(value)


def _encode_object_payload(obj: Mapping) -> bytes:
    fields = bytearray()
    for name, value in obj.items():
        if not isinstance(name, str):
            raise CompactBinaryError(f"Field names must be strings: {name!r}")
        field_type = _field_type_of(value)
        raw_name = name.encode("utf-8")
        fields.append(field_type | _HAS_FIELD_NAME)
        fields += encode_var_uint(len(raw_name))
        fields += raw_name
        fields += _encode_payload(field_type, value)
    return encode_var_uint(len(fields)) + bytes(fields)


def _encode_array_payload(items) -> bytes:
    body = bytearray(encode_var_uint(len(items)))
    for item in items:
        field_type = _field_type_of(item)
        body.append(field_type)
        body += _encode_payload(field_type, item)
    return encode_var_uint(len(body)) + bytes(body)


def encode(obj: Mapping[str, Any]) -> bytes:
    """
    Serializes a mapping as a top-level compact binary object.

    Args:
        obj: The object to encode. Values may be mappings, lists, tuples,
            strings, bytes, ints, floats, bools or None.

    Returns:
        The encoded object, without a leading type byte.

    Raises:
        CompactBinaryError: If a value cannot be represented.
    """

    if not isinstance(obj, Mapping):
        raise CompactBinaryError("Top-level value must be an object")
    return _encode_object_payload(obj)


# --- Decoding ---

class _Reader:
    """Sequential reader over a compact binary buffer."""

    def __init__(self, data: bytes, offset: int = 0, end: int = None):
        self.data = data
        self.offset = offset
        self.end = len(data) if end is None else end

    def take(self, size: int) -> bytes:
        if self.offset + size > self.end:
            raise CompactBinaryError("Unexpected end of data")
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def var_uint(self) -> int:
        value, offset = decode_var_uint(self.data, self.offset)
        if offset > self.end:
            raise CompactBinaryError("Unexpected end of data reading VarUInt")
        self.offset = offset
        return value

    def byte(self) -> int:
        return self.take(1)[0]

    def sized(self) -> "_Reader":
        """Returns a reader over a VarUInt-prefixed block and skips it."""
        size = self.var_uint()
        start = self.offset
        self.take(size)
        return _Reader(self.data, start, start + size)

    def at_end(self) -> bool:
        return self.offset >= self.end


def _field_type(raw: int) -> Tuple[FieldType, bool]:
    try:
        field_type = FieldType(raw & _TYPE_MASK)
    except ValueError:
        raise CompactBinaryError(f"Unknown field type 0x{raw:02x}") from None
    return field_type, bool(raw & _HAS_FIELD_NAME)


def _read_name(reader: _Reader) -> str:
    size = reader.var_uint()
    try:
        return reader.take(size).decode("utf-8")
    except UnicodeDecodeError as e:
        raise CompactBinaryError(f"Invalid field name: {e}") from e


def _read_payload(reader: _Reader, field_type: FieldType) -> Any:
    if field_type in (FieldType.NONE, FieldType.NULL):
        return None
    if field_type is FieldType.BOOL_TRUE:
        return True
    if field_type is FieldType.BOOL_FALSE:
        return False
    if field_type is FieldType.INTEGER_POSITIVE:
        return reader.var_uint()
    if field_type is FieldType.INTEGER_NEGATIVE:
        return ~reader.var_uint()
    if field_type is FieldType.FLOAT32:
        return struct.unpack(">f", reader.take(4))[0]
    if field_type is FieldType.FLOAT64:
        return struct.unpack(">d", reader.take(8))[0]
    if field_type is FieldType.STRING:
        try:
            return reader.take(reader.var_uint()).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CompactBinaryError(f"Invalid string field: {e}") from e
    if field_type is FieldType.BINARY:
        return reader.take(reader.var_uint())
    if field_type in (
        FieldType.HASH,
        FieldType.OBJECT_ATTACHMENT,
        FieldType.BINARY_ATTACHMENT,
    ):
        return reader.take(_HASH_SIZE).hex()
    if field_type is FieldType.UUID:
        return uuid.UUID(bytes=reader.take(16))
    if field_type is FieldType.OBJECT_ID:
        return reader.take(_OBJECT_ID_SIZE).hex()
    if field_type in (FieldType.DATE_TIME, FieldType.TIME_SPAN):
        return struct.unpack(">q", reader.take(8))[0]
    if field_type in (FieldType.CUSTOM_BY_ID, FieldType.CUSTOM_BY_NAME):
        return reader.take(reader.var_uint())
    if field_type in (FieldType.OBJECT, FieldType.UNIFORM_OBJECT):
        return _read_object(reader.sized(), field_type)
    return _read_array(reader.sized(), field_type)


def _read_object(reader: _Reader, field_type: FieldType) -> Dict[str, Any]:
    obj = {}
    uniform_type = None
    if field_type is FieldType.UNIFORM_OBJECT and not reader.at_end():
        uniform_type, _ = _field_type(reader.byte())

    while not reader.at_end():
        if uniform_type is None:
            item_type, has_name = _field_type(reader.byte())
        else:
            item_type, has_name = uniform_type, True
        if not has_name:
            raise CompactBinaryError("Object field without a name")
        name = _read_name(reader)
        obj[name] = _read_payload(reader, item_type)
    return obj


def _read_array(reader: _Reader, field_type: FieldType) -> List[Any]:
    count = reader.var_uint()
    uniform_type = None
    if field_type is FieldType.UNIFORM_ARRAY and count:
        uniform_type, _ = _field_type(reader.byte())

    items = []
    for _ in range(count):
        if uniform_type is None:
            item_type, has_name = _field_type(reader.byte())
            if has_name:
                _read_name(reader)
        else:
            item_type = uniform_type
        items.append(_read_payload(reader, item_type))

    if not reader.at_end():
        raise CompactBinaryError("Array size does not match its items")
    return items


def decode(data: bytes) -> Dict[str, Any]:
    """
    Deserializes a top-level compact binary object.

    Args:
        data: The encoded object, without a leading type byte.

    Returns:
        The object as a dict. Nested objects become dicts, arrays become
        lists, hashes and object ids become hex strings.

    Raises:
        CompactBinaryError: If the data is truncated or malformed.
    """

    reader = _Reader(bytes(data))
    obj = _read_object(reader.sized(), FieldType.OBJECT)
    if not reader.at_end():
        raise CompactBinaryError("Trailing data after object")
    return obj
