"""
tlekit: Two-Line Element records for Python.

Parse, validate, edit and re-serialize TLE sets with exact column
conventions and checksums, and derive the Keplerian state at epoch
from the stored elements.
"""

from __future__ import annotations

__version__ = "0.1.0-dev"

from tlekit.core.tle import TLE, Field, OutputFormat
from tlekit.core.checksum import checksum, validate_line
from tlekit.core.orbit import StateVector, eccentric_anomaly, state_from_elements
from tlekit.core.errors import (
    ErrorKind,
    TLEError,
    TooShortLineError,
    ChecksumError,
    FieldFormatError,
    ConvergenceError,
)

__all__ = [
    "__version__",
    "TLE",
    "Field",
    "OutputFormat",
    "checksum",
    "validate_line",
    "StateVector",
    "eccentric_anomaly",
    "state_from_elements",
    "ErrorKind",
    "TLEError",
    "TooShortLineError",
    "ChecksumError",
    "FieldFormatError",
    "ConvergenceError",
]
