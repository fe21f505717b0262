"""
osu! database primitives.

Little-endian fixed-width integers and floats, ULEB128 lengths and the
osu! string encoding (``0x00`` for an absent string, ``0x0b`` followed by a
ULEB128 byte length and UTF-8 payload otherwise).
"""

import struct
from typing import BinaryIO

STRING_ABSENT = 0x00
STRING_PRESENT = 0x0B

_INT8 = struct.Struct("<B")
_INT16 = struct.Struct("<h")
_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_SINGLE = struct.Struct("<f")
_DOUBLE = struct.Struct("<d")


class BinaryFormatError(Exception):
    """Raised when a buffer does not hold the expected primitive."""

    def __init__(self, message: str, offset: int):
        super().__init__(f"{message} at byte {offset}")
        self.offset = offset


class OsuReader:
    """Sequential reader over an in-memory osu! database."""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def _take(self, size: int, what: str) -> bytes:
        if size < 0:
            raise BinaryFormatError(f"Negative size {size} while reading {what}", self.offset)
        end = self.offset + size
        if end > len(self.data):
            raise BinaryFormatError(f"Unexpected end of file while reading {what}", self.offset)
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def _unpack(self, fmt: struct.Struct, what: str):
        return fmt.unpack(self._take(fmt.size, what))[0]

    def skip(self, size: int) -> None:
        self._take(size, "padding")

    def read_byte(self) -> int:
        return self._unpack(_INT8, "byte")

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def read_short(self) -> int:
        return self._unpack(_INT16, "short")

    def read_int(self) -> int:
        return self._unpack(_INT32, "int")

    def read_long(self) -> int:
        return self._unpack(_INT64, "long")

    def read_single(self) -> float:
        return self._unpack(_SINGLE, "single")

    def read_double(self) -> float:
        return self._unpack(_DOUBLE, "double")

    def read_uleb128(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self.read_byte()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7

    def read_string(self) -> str | None:
        start = self.offset
        marker = self.read_byte()
        if marker == STRING_ABSENT:
            return None
        if marker != STRING_PRESENT:
            raise BinaryFormatError(f"Invalid string marker 0x{marker:02x}", start)
        length = self.read_uleb128()
        payload = self._take(length, "string payload")
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BinaryFormatError(f"Invalid UTF-8 in string: {e.reason}", start) from e

    def at_end(self) -> bool:
        return self.offset >= len(self.data)


def write_int(stream: BinaryIO, value: int) -> None:
    stream.write(_INT32.pack(value))


def write_uleb128(stream: BinaryIO, value: int) -> None:
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            stream.write(_INT8.pack(byte | 0x80))
        else:
            stream.write(_INT8.pack(byte))
            return


def write_string(stream: BinaryIO, value: str | None) -> None:
    if value is None:
        stream.write(_INT8.pack(STRING_ABSENT))
        return
    payload = value.encode("utf-8")
    stream.write(_INT8.pack(STRING_PRESENT))
    write_uleb128(stream, len(payload))
    stream.write(payload)
