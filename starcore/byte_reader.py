import struct

from .errors import FormatError


class ByteReader:
    """Big-endian cursor over an immutable buffer.

    Every logical read owns its own ByteReader, so several readers can walk
    the same buffer at once.
    """

    def __init__(self, data, pos=0, error=FormatError):
        self.data = data
        self.pos = pos
        self.error = error

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def seek(self, pos):
        self.pos = pos

    def skip(self, n):
        self.read_bytes(n)

    def read_bytes(self, n: int):
        if n < 0 or self.pos + n > len(self.data):
            raise self.error(f"Not enough data at {self.pos}: need {n}, have {self.remaining()}")
        value = self.data[self.pos:self.pos + n]
        self.pos += n
        return value

    def _unpack(self, fmt, size):
        return struct.unpack(fmt, self.read_bytes(size))[0]

    def read_byte(self) -> int:
        if self.pos >= len(self.data):
            raise self.error(f"Unexpected end of data at {self.pos}")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def read_int16(self) -> int:
        return self._unpack('>h', 2)

    def read_uint16(self) -> int:
        return self._unpack('>H', 2)

    def read_int32(self) -> int:
        return self._unpack('>i', 4)

    def read_uint32(self) -> int:
        return self._unpack('>I', 4)

    def read_int64(self) -> int:
        return self._unpack('>q', 8)

    def read_float(self) -> float:
        return self._unpack('>f', 4)

    def read_double(self) -> float:
        return self._unpack('>d', 8)

    def read_varint(self) -> int:
        """Unsigned VLQ: 7-bit groups, most significant first, high bit = more."""
        value = 0
        while True:
            b = self.read_byte()
            value = (value << 7) | (b & 0x7F)
            if not (b & 0x80):
                return value

    def read_signed_varint(self) -> int:
        v = self.read_varint()
        if v & 1:
            return -(v >> 1) - 1
        return v >> 1

    def read_string(self) -> str:
        length = self.read_varint()
        return self.decode_utf8(self.read_bytes(length))

    def read_fixed_string(self, length: int) -> str:
        """Reads a string padded with trailing NUL bytes."""
        raw = bytes(self.read_bytes(length))
        return self.decode_utf8(raw.rstrip(b'\x00'))

    def decode_utf8(self, raw) -> str:
        try:
            return bytes(raw).decode('utf-8')
        except UnicodeDecodeError as e:
            raise self.error(f"Invalid UTF-8 string ending at {self.pos}: {e}") from e
