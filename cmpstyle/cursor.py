"""
Little-endian byte cursor and generic record readers.

All map and style decoding goes through ByteCursor, which reads from an
in-memory buffer. A read either returns a complete value or raises
UnexpectedEofError and leaves the position untouched.

Two record readers sit on top of the cursor:

- read_records: a known number of fixed-size records described by a
  struct format.
- read_bounded: variable-length records read until a section's declared
  byte size has been consumed.
"""

import struct
from typing import Any, Callable, List, TypeVar

import numpy as np

from cmpstyle.errors import TruncatedSectionError, UnexpectedEofError

T = TypeVar("T")

_U8 = struct.Struct("<B")
_I8 = struct.Struct("<b")
_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")

# 16.16 fixed point
FIXED_ONE = 65536.0


class ByteCursor:
    """
    Sequential little-endian reader over a bytes-like buffer.

    Args:
        data: The whole file contents

    Example:
        >>> cur = ByteCursor(b"\\x01\\x02\\x03")
        >>> cur.read_u16()
        513
        >>> cur.tell()
        2
    """

    def __init__(self, data: bytes):
        self._data = memoryview(bytes(data))
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data)

    def tell(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def seek(self, offset: int) -> None:
        """Move to an absolute offset. Seeking to the very end is allowed."""
        if offset < 0 or offset > len(self._data):
            raise UnexpectedEofError(offset, 0, len(self._data))
        self._pos = offset

    def skip(self, n: int) -> None:
        self._take(n)

    def read_exact(self, n: int) -> bytes:
        return bytes(self._take(n))

    def read_u8(self) -> int:
        return _U8.unpack(self._take(1))[0]

    def read_i8(self) -> int:
        return _I8.unpack(self._take(1))[0]

    def read_u16(self) -> int:
        return _U16.unpack(self._take(2))[0]

    def read_i16(self) -> int:
        return _I16.unpack(self._take(2))[0]

    def read_u32(self) -> int:
        return _U32.unpack(self._take(4))[0]

    def read_i32(self) -> int:
        return _I32.unpack(self._take(4))[0]

    def read_fixed(self) -> float:
        """Read an unsigned 16.16 fixed point value."""
        return self.read_u32() / FIXED_ONE

    def read_struct(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self._take(fmt.size))

    def read_array(self, dtype: str, count: int) -> np.ndarray:
        """
        Read `count` items of a little-endian numpy dtype (e.g. "<u2").

        Returns:
            A read-only array that owns its data
        """
        dt = np.dtype(dtype)
        raw = self._take(dt.itemsize * count)
        arr = np.frombuffer(raw, dtype=dt, count=count).copy()
        arr.flags.writeable = False
        return arr

    def _take(self, n: int) -> memoryview:
        if n < 0 or self._pos + n > len(self._data):
            raise UnexpectedEofError(self._pos, n, len(self._data) - self._pos)
        start = self._pos
        self._pos += n
        return self._data[start:self._pos]


def record_count(section_size: int, record_size: int) -> int:
    """Number of whole records that fit in a section."""
    return section_size // record_size


def read_records(
    cursor: ByteCursor,
    fmt: struct.Struct,
    count: int,
    factory: Callable[..., T],
) -> List[T]:
    """
    Read `count` fixed-size records.

    Args:
        cursor: Cursor positioned at the first record
        fmt: Record layout
        count: Number of records
        factory: Called with the unpacked fields of each record

    Returns:
        List of constructed records
    """
    raw = cursor.read_exact(fmt.size * count)
    return [factory(*fields) for fields in fmt.iter_unpack(raw)]


def require(cursor: ByteCursor, n: int, end: int, section: str) -> None:
    """Raise TruncatedSectionError unless `n` more bytes fit before `end`."""
    if cursor.tell() + n > end:
        raise TruncatedSectionError(section, cursor.tell(), n, end)


def read_bounded(
    cursor: ByteCursor,
    size: int,
    read_one: Callable[[ByteCursor, int], Any],
    section: str,
) -> List[Any]:
    """
    Read variable-length records until `size` bytes have been consumed.

    `read_one(cursor, end)` reads a single record and must call `require`
    before consuming bytes so nothing is read across `end`. A reader may
    return None to drop a record (e.g. sentinel entries); it is still
    counted against the budget.

    Args:
        cursor: Cursor positioned at the section start
        size: Declared section size in bytes
        read_one: Per-record reader
        section: Section name used in errors

    Returns:
        The non-None records in file order
    """
    end = cursor.tell() + size
    records = []
    while cursor.tell() < end:
        start = cursor.tell()
        record = read_one(cursor, end)
        if cursor.tell() == start:
            raise TruncatedSectionError(section, start, 1, end)
        if record is not None:
            records.append(record)
    return records
