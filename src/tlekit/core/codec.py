"""Fixed-column field codec for TLE lines.

Decoders slice a column range out of a line and convert it to a typed
value; encoders render a typed value back into a column range of exact
width. All functions are pure.

Overflow policy: a rendered value that is wider than its column loses its
rightmost characters. Reals are first rounded to the column's number of
decimals, so the kept digits never receive a carry from the dropped ones.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timedelta, timezone

from tlekit.core.errors import FieldFormatError, TooShortLineError
from tlekit.utils.constants import EPOCH_ORIGIN, TWO_DIGIT_YEAR_PIVOT

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
# ±MMMMM±E with an optional leading point on the mantissa
_PACKED_RE = re.compile(r"^([+-]?)\.?(\d+)([+-]\d)?$")

_ORIGIN_DATE: date = EPOCH_ORIGIN.date()


# --- Decoding ---


def extract(line: str, offset: int, width: int) -> str:
    """Return the raw column range ``[offset, offset + width)`` of ``line``.

    Raises:
        TooShortLineError: If the line ends before ``offset + width``.
    """
    if len(line) < offset + width:
        raise TooShortLineError(
            f"line has {len(line)} characters, field needs {offset + width}: {line!r}"
        )
    return line[offset:offset + width]


def parse_string(line: str, offset: int, width: int) -> str:
    """Decode a text field with surrounding blanks removed."""
    return extract(line, offset, width).strip()


def parse_int(line: str, offset: int, width: int) -> int:
    """Decode an integer field. A blank field decodes as 0.

    Raises:
        TooShortLineError: If the line is too short.
        FieldFormatError: If the field is not an integer.
    """
    text = extract(line, offset, width).strip()
    if not text:
        return 0
    if not _INT_RE.match(text):
        raise FieldFormatError(f"expected integer in columns {offset}-{offset + width - 1}, got {text!r}")
    return int(text)


def parse_float(line: str, offset: int, width: int) -> float:
    """Decode a real field written with an explicit decimal point.

    A blank field decodes as 0.0.

    Raises:
        TooShortLineError: If the line is too short.
        FieldFormatError: If the field is not a plain decimal number.
    """
    text = extract(line, offset, width).strip()
    if not text:
        return 0.0
    if not _DECIMAL_RE.match(text):
        raise FieldFormatError(f"expected decimal in columns {offset}-{offset + width - 1}, got {text!r}")
    return float(text)


def parse_packed(line: str, offset: int, width: int) -> float:
    """Decode an implied-decimal-point field with a one-digit exponent.

    ``-11606-4`` reads as ``-0.11606e-4``: the mantissa digits sit behind
    an assumed ``0.`` and the trailing signed digit is a power of ten.

    Raises:
        TooShortLineError: If the line is too short.
        FieldFormatError: If the field does not follow the packed layout.
    """
    text = extract(line, offset, width).strip()
    if not text:
        return 0.0
    match = _PACKED_RE.match(text)
    if match is None:
        raise FieldFormatError(f"expected packed exponent field in columns {offset}-{offset + width - 1}, got {text!r}")
    sign, digits, exponent = match.groups()
    return float(f"{sign}0.{digits}e{exponent or '+0'}")


def parse_implied_decimal(line: str, offset: int, width: int) -> float:
    """Decode a field whose leading ``0.`` is omitted (eccentricity).

    Raises:
        TooShortLineError: If the line is too short.
        FieldFormatError: If the field holds anything but digits.
    """
    text = extract(line, offset, width).strip()
    if not text:
        return 0.0
    if not text.isdigit():
        raise FieldFormatError(f"expected digits in columns {offset}-{offset + width - 1}, got {text!r}")
    return float(f"0.{text}")


def parse_char(line: str, offset: int) -> str:
    """Decode a single-column character field; a blank column gives ``""``."""
    return extract(line, offset, 1).strip()


def parse_epoch(line: str, offset: int, width: int) -> float:
    """Decode a ``YYDDD.DDDDDDDD`` epoch into days since :data:`EPOCH_ORIGIN`.

    Two-digit years below :data:`TWO_DIGIT_YEAR_PIVOT` are in the 2000s,
    the rest in the 1900s. Day 1.0 is midnight on January 1st.

    Raises:
        TooShortLineError: If the line is too short.
        FieldFormatError: If the year or day-of-year is not numeric.
    """
    text = extract(line, offset, width)
    year_text, day_text = text[:2], text[2:].strip()
    if not year_text.isdigit() or not _DECIMAL_RE.match(day_text):
        raise FieldFormatError(f"expected YYDDD.DDDDDDDD epoch, got {text!r}")

    year2 = int(year_text)
    year = 2000 + year2 if year2 < TWO_DIGIT_YEAR_PIVOT else 1900 + year2
    return _year_start(year) + float(day_text) - 1.0


def epoch_to_datetime(days: float) -> datetime:
    """Convert a day count since :data:`EPOCH_ORIGIN` to a UTC datetime."""
    return EPOCH_ORIGIN + timedelta(days=days)


def datetime_to_epoch(moment: datetime) -> float:
    """Convert a datetime to days since :data:`EPOCH_ORIGIN`.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH_ORIGIN) / timedelta(days=1)


def _year_start(year: int) -> int:
    return (date(year, 1, 1) - _ORIGIN_DATE).days


# --- Encoding ---


def fit(text: str, width: int, align: str = "<", fill: str = " ") -> str:
    """Pad ``text`` to ``width`` and drop rightmost characters that overflow."""
    return f"{text:{fill}{align}{width}}"[:width]


def format_string(value: str, width: int, align: str = "<", fill: str = " ") -> str:
    return fit(value, width, align, fill)


def format_int(value: int, width: int) -> str:
    """Right-align an integer in ``width`` columns."""
    return fit(str(int(value)), width, ">")


def format_float(value: float, width: int, decimals: int) -> str:
    """Right-align ``value`` rounded to ``decimals`` places, e.g. ``' 51.6416'``."""
    return fit(f"{value:.{decimals}f}", width, ">")


def format_decimal_fraction(value: float, width: int = 10, decimals: int = 8) -> str:
    """Render a signed fraction without its leading zero, e.g. ``'-.00002182'``.

    Positive values carry a blank in the sign column.
    """
    sign = "-" if value < 0 else " "
    text = f"{abs(value):.{decimals}f}"
    if text.startswith("0."):
        text = text[1:]
    return fit(sign + text, width)


def format_packed(value: float, width: int = 8) -> str:
    """Render ``value`` in the ``±MMMMM±E`` implied-decimal-point layout.

    The mantissa is normalised to [0.1, 1). Zero and magnitudes too small
    for a one-digit exponent render as ``' 00000-0'``; magnitudes too large
    clamp to ``99999+9``.
    """
    digits = width - 3
    zero = " " + "0" * digits + "-0"
    if value == 0 or not math.isfinite(value):
        return zero

    mantissa, exponent_text = f"{abs(value):.{digits - 1}e}".split("e")
    mantissa = mantissa.replace(".", "")
    exponent = int(exponent_text) + 1
    if exponent < -9:
        return zero
    if exponent > 9:
        mantissa, exponent = "9" * digits, 9

    sign = "-" if value < 0 else " "
    exponent_sign = "-" if exponent < 0 else "+"
    return f"{sign}{mantissa}{exponent_sign}{abs(exponent)}"


def format_implied_decimal(value: float, width: int = 7) -> str:
    """Render the fractional digits of ``|value|`` without the ``0.`` prefix.

    A magnitude of 1 or more keeps its integer digits in front of the
    fraction and is truncated to ``width``.
    """
    text = f"{abs(value):.{width}f}"
    if text.startswith("0."):
        text = text[2:]
    else:
        text = text.replace(".", "")
    return fit(text, width)


def format_char(value: str) -> str:
    """Render a one-column character; empty or unprintable gives a blank."""
    if len(value) == 1 and value.isprintable():
        return value
    return " "


def format_epoch(days: float) -> str:
    """Render days since :data:`EPOCH_ORIGIN` as ``YYDDD.DDDDDDDD``."""
    year = (_ORIGIN_DATE + timedelta(days=math.floor(days))).year
    day_of_year = days - _year_start(year) + 1.0
    text = f"{day_of_year:012.8f}"

    days_in_year = _year_start(year + 1) - _year_start(year)
    if float(text) >= days_in_year + 1:
        logger.debug("Epoch day %s rolls over into %d", text, year + 1)
        year += 1
        day_of_year -= days_in_year
        text = f"{day_of_year:012.8f}"

    return fit(f"{year % 100:02d}{text}", 14)
