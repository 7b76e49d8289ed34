"""Small byte cursor shared by the ESC/POS sub-decoders.

Every read is bounds checked; asking for more bytes than the job holds raises
TruncationError, which the command decoder turns into a truncation result.
"""

import struct
from typing import Optional

from ..exceptions import TruncationError


class BaseParser:
    def __init__(self, data: bytes, pos: int = 0) -> None:
        self._data: bytes = data
        self._pos: int = pos

    @property
    def pos(self) -> int:
        return self._pos

    def has_more(self) -> bool:
        return self._pos < len(self._data)

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def peek_byte(self, ahead: int = 0) -> Optional[int]:
        """Return the byte `ahead` positions past the cursor, or None at EOF."""
        index = self._pos + ahead
        if index >= len(self._data):
            return None
        return self._data[index]

    def read_byte(self) -> int:
        if not self.has_more():
            raise TruncationError(
                "Unexpected end of data stream", context={"offset": self._pos}
            )
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def read_u16(self) -> int:
        # ESC/POS parameters are little-endian (nL nH)
        raw = self.read_fixed(2)
        return int(struct.unpack("<H", raw)[0])

    def read_u32(self) -> int:
        raw = self.read_fixed(4)
        return int(struct.unpack("<I", raw)[0])

    def read_fixed(self, length: int) -> bytes:
        if self.remaining() < length:
            raise TruncationError(
                "Insufficient data for fixed length read",
                context={
                    "offset": self._pos,
                    "needed": length,
                    "available": self.remaining(),
                },
            )
        start = self._pos
        self._pos += length
        return self._data[start : self._pos]

    def read_until(self, terminator: int) -> bytes:
        """Read up to (and consume) the terminator byte."""
        index = self._data.find(bytes([terminator]), self._pos)
        if index < 0:
            raise TruncationError(
                f"Missing terminator 0x{terminator:02x}",
                context={"offset": self._pos, "available": self.remaining()},
            )
        chunk = self._data[self._pos : index]
        self._pos = index + 1
        return chunk

    def skip(self, length: int) -> None:
        self.read_fixed(length)

    def slice(self, start: int, end: int) -> bytes:
        """Return already scanned bytes between two absolute positions."""
        return self._data[start:end]
