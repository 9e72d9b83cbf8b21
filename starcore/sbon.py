"""SBON, the tagged binary value format used inside worlds, players and assets.

Values decode to plain Python objects: None, float, bool, int, str, list
and dict. ``Sbon`` wraps a decoded value with path navigation and typed
accessors.
"""
import json
import struct
from enum import IntEnum

from .byte_reader import ByteReader
from .errors import SbonFormatError, SbonTypeError


class SbonType(IntEnum):
    NULL = 1
    DOUBLE = 2
    BOOL = 3
    VARINT = 4
    STRING = 5
    LIST = 6
    MAP = 7


def read_dynamic(reader: ByteReader):
    tag = reader.read_byte()
    if tag == SbonType.NULL:
        return None
    elif tag == SbonType.DOUBLE:
        return reader.read_double()
    elif tag == SbonType.BOOL:
        return reader.read_bool()
    elif tag == SbonType.VARINT:
        return reader.read_signed_varint()
    elif tag == SbonType.STRING:
        return reader.read_string()
    elif tag == SbonType.LIST:
        return read_list(reader)
    elif tag == SbonType.MAP:
        return read_map(reader)
    raise SbonFormatError(f"Unknown dynamic type {tag:#x} at offset {reader.pos - 1}")


def read_list(reader: ByteReader) -> list:
    count = reader.read_varint()
    return [read_dynamic(reader) for _ in range(count)]


def read_map(reader: ByteReader) -> dict:
    count = reader.read_varint()
    result = {}
    for _ in range(count):
        key = reader.read_string()
        result[key] = read_dynamic(reader)
    return result


def read_sbon(reader: ByteReader):
    return Sbon.wrap(read_dynamic(reader))


def decode(data, offset=0):
    """Decodes the single value starting at ``offset``; a null value is None."""
    return read_sbon(ByteReader(data, offset, error=SbonFormatError))


# --- Encoding (fixtures, round trips) ---

def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"Unsigned varint cannot hold {value}")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append(0x80 | (value & 0x7F))
        value >>= 7
    return bytes(reversed(groups))


def encode_signed_varint(value: int) -> bytes:
    if value < 0:
        return encode_varint(((-value - 1) << 1) | 1)
    return encode_varint(value << 1)


def encode_string(value: str) -> bytes:
    raw = value.encode('utf-8')
    return encode_varint(len(raw)) + raw


def encode(value) -> bytes:
    out = bytearray()
    _encode_into(out, value)
    return bytes(out)


def _encode_into(out, value):
    if isinstance(value, Sbon):
        value = value.value
    if value is None:
        out.append(SbonType.NULL)
    elif isinstance(value, bool):
        out.append(SbonType.BOOL)
        out.append(1 if value else 0)
    elif isinstance(value, int):
        out.append(SbonType.VARINT)
        out += encode_signed_varint(value)
    elif isinstance(value, float):
        out.append(SbonType.DOUBLE)
        out += struct.pack('>d', value)
    elif isinstance(value, str):
        out.append(SbonType.STRING)
        out += encode_string(value)
    elif isinstance(value, (list, tuple)):
        out.append(SbonType.LIST)
        out += encode_varint(len(value))
        for item in value:
            _encode_into(out, item)
    elif isinstance(value, dict):
        out.append(SbonType.MAP)
        out += encode_varint(len(value))
        for key, item in value.items():
            out += encode_string(key)
            _encode_into(out, item)
    else:
        raise SbonTypeError(f"Cannot encode {type(value).__name__} as SBON")


class Sbon:
    """Navigable view over a decoded, non-null SBON value."""

    def __init__(self, value):
        if value is None:
            raise ValueError("Value cannot be None")
        self.value = value

    @classmethod
    def wrap(cls, value):
        if value is None:
            return None
        return cls(value)

    def get_by_path(self, path, default=None):
        """Follows ``a/0/b`` through maps (by key) and lists (by index).

        Returns ``default`` wrapped (or None) when a step is missing.
        """
        current = self
        for key in path.split('/'):
            if current.is_map():
                current = current.get_by_key(key)
            elif current.is_list():
                try:
                    index = int(key)
                except ValueError:
                    raise SbonTypeError(f"List index expected for '{key}' in path {path}") from None
                current = current.get_by_index(index)
            else:
                raise SbonTypeError(
                    f"Cannot traverse to key {key} in path {path}: "
                    f"{type(current.value).__name__} is not a list or a map")
            if current is None:
                return Sbon.wrap(default)
        return current

    def try_paths(self, *paths):
        for path in paths:
            found = self.get_by_path(path)
            if found is not None:
                return found
        return None

    def get_by_key(self, key):
        return Sbon.wrap(self.as_map().get(key))

    def get_by_index(self, index):
        items = self.as_list()
        if index < 0 or index >= len(items):
            return None
        return Sbon.wrap(items[index])

    def contains_key(self, key) -> bool:
        return key in self.as_map()

    def size(self) -> int:
        if not isinstance(self.value, (list, dict)):
            raise SbonTypeError(f"{self._kind()} has no size")
        return len(self.value)

    def is_list(self) -> bool:
        return isinstance(self.value, list)

    def is_map(self) -> bool:
        return isinstance(self.value, dict)

    def _kind(self):
        return type(self.value).__name__

    def _is_number(self):
        return isinstance(self.value, (int, float)) and not isinstance(self.value, bool)

    def as_int(self) -> int:
        if not self._is_number():
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a number")
        return int(self.value)

    def as_float(self) -> float:
        if not self._is_number():
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a number")
        return float(self.value)

    def as_string(self) -> str:
        if not isinstance(self.value, str):
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a string")
        return self.value

    def as_bool(self) -> bool:
        if not isinstance(self.value, bool):
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a bool")
        return self.value

    def as_list(self) -> list:
        if not self.is_list():
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a list")
        return self.value

    def as_map(self) -> dict:
        if not self.is_map():
            raise SbonTypeError(f"This sbon is a {self._kind()}, not a map")
        return self.value

    def as_sbon_list(self):
        # Null items stay None
        return [Sbon.wrap(item) for item in self.as_list()]

    def as_sbon_map(self):
        return {key: Sbon.wrap(item) for key, item in self.as_map().items()}

    def to_json(self, indent=2) -> str:
        return json.dumps(self.value, indent=indent, ensure_ascii=False)

    def __eq__(self, other):
        if isinstance(other, Sbon):
            return self.value == other.value
        return NotImplemented

    def __repr__(self):
        return f"Sbon({self.value!r})"

    def __str__(self):
        return str(self.value)
