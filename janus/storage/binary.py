# janus/storage/binary.py

"""
Primitive binary encoding for the store file

Layout matches .NET BinaryReader/BinaryWriter: little-endian integers,
7-bit encoded length prefixes for UTF-8 strings, one byte booleans.
"""
import io
import struct
from typing import BinaryIO, Optional

from janus.errors import FormatError

_INT32 = struct.Struct('<i')
_UINT32 = struct.Struct('<I')
_UINT64 = struct.Struct('<Q')
_DOUBLE = struct.Struct('<d')

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


class BinaryReader:
    """Reads primitives from a binary stream; truncation is a FormatError"""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def _read(self, size: int) -> bytes:
        data = self.stream.read(size)
        if len(data) != size:
            raise FormatError(f"Unexpected end of stream: wanted {size} bytes, got {len(data)}")
        return data

    def read_byte(self) -> int:
        return self._read(1)[0]

    def remaining(self) -> Optional[int]:
        """Bytes left in a seekable stream, None when unknown"""
        if not self.stream.seekable():
            return None
        position = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(position)
        return end - position

    def read_7bit_int(self) -> int:
        result = 0
        for shift in range(0, 28, 7):
            byte = self.read_byte()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
        # 5th byte carries the top 4 bits of a 32-bit value
        byte = self.read_byte()
        if byte > 0x0F:
            raise FormatError("Invalid 7-bit encoded integer")
        return result | (byte << 28)

    def read_string(self) -> str:
        length = self.read_7bit_int()
        if length > INT32_MAX:
            raise FormatError(f"Negative string length: {length - 2 ** 32}")
        remaining = self.remaining()
        if remaining is not None and length > remaining:
            raise FormatError(f"String length {length} exceeds the {remaining} bytes left in the stream")
        try:
            return self._read(length).decode('utf-8')
        except UnicodeDecodeError as e:
            raise FormatError(f"Invalid UTF-8 string: {e}")

    def read_char(self) -> str:
        lead = self.read_byte()
        if lead < 0x80:
            return chr(lead)
        if lead >> 5 == 0b110:
            extra = 1
        elif lead >> 4 == 0b1110:
            extra = 2
        elif lead >> 3 == 0b11110:
            extra = 3
        else:
            raise FormatError(f"Invalid UTF-8 lead byte: {lead:#04x}")
        try:
            return (bytes([lead]) + self._read(extra)).decode('utf-8')
        except UnicodeDecodeError as e:
            raise FormatError(f"Invalid UTF-8 character: {e}")

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def read_int32(self) -> int:
        return _INT32.unpack(self._read(4))[0]

    def read_uint32(self) -> int:
        return _UINT32.unpack(self._read(4))[0]

    def read_uint64(self) -> int:
        return _UINT64.unpack(self._read(8))[0]

    def read_double(self) -> float:
        return _DOUBLE.unpack(self._read(8))[0]


class BinaryWriter:
    """Writes primitives to a binary stream"""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write_7bit_int(self, value: int):
        if value < 0:
            raise ValueError(f"Cannot 7-bit encode a negative value: {value}")
        out = bytearray()
        while value >= 0x80:
            out.append((value & 0x7F) | 0x80)
            value >>= 7
        out.append(value)
        self.stream.write(bytes(out))

    def write_string(self, value: str):
        try:
            data = value.encode('utf-8')
        except UnicodeEncodeError as e:
            raise FormatError(f"Cannot encode {value!r} as UTF-8: {e}")
        self.write_7bit_int(len(data))
        self.stream.write(data)

    def write_char(self, value: str):
        if len(value) != 1:
            raise ValueError(f"Expected a single character, got {value!r}")
        self.stream.write(value.encode('utf-8'))

    def write_bool(self, value: bool):
        self.stream.write(b'\x01' if value else b'\x00')

    def write_int32(self, value: int):
        self.stream.write(_INT32.pack(value))

    def write_uint32(self, value: int):
        self.stream.write(_UINT32.pack(value))

    def write_uint64(self, value: int):
        self.stream.write(_UINT64.pack(value))

    def write_double(self, value: float):
        self.stream.write(_DOUBLE.pack(value))
