"""
Binary stream reader for little-endian module data.

This module provides a BinaryStream class that reads fixed-width integers,
strings and LEB128 variable-length integers from an in-memory buffer, as used
by the WebAssembly container and its custom sections.
"""

import struct
from io import BytesIO
from typing import Callable, List, Optional, TypeVar, Union

T = TypeVar('T')


class BinaryStream:
    """
    Binary stream reader over a byte buffer.

    Reads past the end of the buffer raise EOFError instead of returning
    short data, so callers can report truncated input precisely.
    """

    def __init__(self, data: Union[bytes, bytearray, memoryview, BytesIO]):
        """
        Initialize a BinaryStream.

        Args:
            data: Raw bytes (or any buffer) or a BytesIO stream
        """
        if isinstance(data, BytesIO):
            self._stream = data
        else:
            self._stream = BytesIO(bytes(data))

    # ========== Position and Length ==========

    @property
    def position(self) -> int:
        """Get current stream position."""
        return self._stream.tell()

    @position.setter
    def position(self, value: int) -> None:
        """Set stream position."""
        self._stream.seek(value)

    @property
    def length(self) -> int:
        """Get stream length."""
        current = self._stream.tell()
        self._stream.seek(0, 2)  # Seek to end
        length = self._stream.tell()
        self._stream.seek(current)  # Restore position
        return length

    # ========== Primitive Readers ==========

    def read_bytes(self, count: int) -> bytes:
        """Read exactly ``count`` raw bytes."""
        data = self._stream.read(count)
        if len(data) != count:
            raise EOFError(
                f"Unexpected end of data at offset 0x{self.position:x} "
                f"(wanted {count} bytes, got {len(data)})"
            )
        return data

    def read_byte(self) -> int:
        """Read an unsigned byte."""
        return struct.unpack('<B', self.read_bytes(1))[0]

    def read_uint32(self) -> int:
        """Read an unsigned 32-bit integer."""
        return struct.unpack('<I', self.read_bytes(4))[0]

    # ========== String Readers ==========

    def read_string(self, length: int) -> str:
        """Read a fixed-length UTF-8 string."""
        return self.read_bytes(length).decode('utf-8', errors='replace')

    def read_name(self) -> str:
        """Read a length-prefixed (ULEB128) UTF-8 name."""
        return self.read_string(self.read_uleb128())

    # ========== Variable-Length Integer Readers ==========

    def read_uleb128(self) -> int:
        """Read an unsigned LEB128 encoded integer."""
        result = 0
        shift = 0
        while True:
            b = self.read_byte()
            result |= (b & 0x7F) << shift
            if (b & 0x80) == 0:
                break
            shift += 7
        return result

    def read_sleb128(self) -> int:
        """Read a signed LEB128 encoded integer."""
        result = 0
        shift = 0
        b = 0
        while True:
            b = self.read_byte()
            result |= (b & 0x7F) << shift
            shift += 7
            if (b & 0x80) == 0:
                break

        if b & 0x40:
            result -= 1 << shift

        return result

    # ========== Array Readers ==========

    def read_array(
        self,
        read_func: Callable[[], T],
        count: int,
        addr: Optional[int] = None
    ) -> List[T]:
        """
        Read an array using a custom read function.

        Args:
            read_func: Function to read each element
            count: Number of elements
            addr: Optional address to seek to

        Returns:
            List of read elements
        """
        if addr is not None:
            self.position = addr

        return [read_func() for _ in range(count)]

    # ========== Utility Methods ==========

    def dispose(self) -> None:
        """Close the stream."""
        self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.dispose()
