"""
Decode errors for map and style files.

Every failure while decoding raises a subclass of DecodeError. DecodeError
is a ValueError so callers that only care about "bad input" can catch that.
"""

from typing import Optional, Tuple


class DecodeError(ValueError):
    """Base class for all map/style decoding failures."""


class AssetIOError(OSError, DecodeError):
    """The asset file could not be opened or read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason


class UnexpectedEofError(DecodeError):
    """A read or seek ran past the end of the buffer."""

    def __init__(self, offset: int, wanted: int, available: int):
        super().__init__(
            f"Unexpected EOF at offset {offset}: wanted {wanted} bytes, "
            f"{available} available"
        )
        self.offset = offset
        self.wanted = wanted
        self.available = available


class TruncatedSectionError(DecodeError):
    """A variable-length record would cross the end of its section."""

    def __init__(self, section: str, offset: int, wanted: int, end: int):
        super().__init__(
            f"Record in section '{section}' at offset {offset} needs {wanted} "
            f"bytes but the section ends at {end}"
        )
        self.section = section
        self.offset = offset
        self.wanted = wanted
        self.end = end


class SectionAlignmentError(DecodeError):
    """The cursor is not where the computed section layout says it should be."""

    def __init__(self, section: str, expected: int, actual: int):
        super().__init__(
            f"Section '{section}' misaligned: expected offset {expected}, "
            f"cursor at {actual}"
        )
        self.section = section
        self.expected = expected
        self.actual = actual


class CorruptColumnDataError(DecodeError):
    """A column pointer or block index is out of range."""

    def __init__(self, message: str, cell: Optional[Tuple[int, int]] = None):
        if cell is not None:
            message = f"Column ({cell[0]}, {cell[1]}): {message}"
        super().__init__(message)
        self.cell = cell


class InvalidUtf8Error(DecodeError):
    """A zone name is not valid UTF-8."""

    def __init__(self, offset: int, raw: bytes):
        super().__init__(f"Zone name at offset {offset} is not valid UTF-8: {raw!r}")
        self.offset = offset
        self.raw = raw
