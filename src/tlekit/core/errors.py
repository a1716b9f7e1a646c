"""Error kinds and exceptions raised while decoding TLE records."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Failure categories recorded on a record or carried by an exception."""

    TOO_SHORT_LINE = "too_short_line"
    CHECKSUM = "checksum"
    FIELD_FORMAT = "field_format"
    CONVERGENCE = "convergence"


class TLEError(ValueError):
    """Base class for TLE decoding failures.

    Attributes:
        kind: The :class:`ErrorKind` of this failure.
    """

    kind: ErrorKind


class TooShortLineError(TLEError):
    """A line ends before the columns a field or checksum needs."""

    kind = ErrorKind.TOO_SHORT_LINE


class ChecksumError(TLEError):
    """The embedded checksum digit does not match the line contents."""

    kind = ErrorKind.CHECKSUM


class FieldFormatError(TLEError):
    """A column range holds text that cannot be decoded as its type."""

    kind = ErrorKind.FIELD_FORMAT


class ConvergenceError(TLEError):
    """Kepler's equation could not be solved within the iteration cap."""

    kind = ErrorKind.CONVERGENCE
