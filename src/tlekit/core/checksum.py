"""TLE mod-10 checksum."""

from __future__ import annotations

import logging

from tlekit.core.errors import ChecksumError, TooShortLineError
from tlekit.utils.constants import CHECKSUM_INDEX

logger = logging.getLogger(__name__)


def checksum(text: str) -> int:
    """Compute the checksum digit of ``text``.

    Every digit counts its value, every ``-`` counts 1, and all other
    characters count 0. The sum is taken mod 10.

    Args:
        text: Line contents to sum, normally columns 0-67 of a data line.

    Returns:
        The checksum digit (0-9).
    """
    total = 0
    for ch in text:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1
    return total % 10


def validate_line(line: str) -> None:
    """Check the embedded checksum digit of a data line.

    Args:
        line: A TLE line 1 or line 2.

    Raises:
        TooShortLineError: If the line has no checksum column.
        ChecksumError: If column 68 does not hold the computed digit.
    """
    if len(line) < CHECKSUM_INDEX + 1:
        logger.error("TLE line too short for checksum: %r", line)
        raise TooShortLineError(
            f"TLE line has {len(line)} characters, need {CHECKSUM_INDEX + 1}: {line!r}"
        )

    expected = checksum(line[:CHECKSUM_INDEX])
    actual = line[CHECKSUM_INDEX]
    if not actual.isdigit() or int(actual) != expected:
        logger.error("TLE checksum mismatch (computed %d, found %r): %r", expected, actual, line)
        raise ChecksumError(
            f"TLE checksum mismatch: computed {expected}, found {actual!r}: {line!r}"
        )
