"""TLE (Two-Line Element) record model.

A :class:`TLE` keeps the raw lines it was built from and decodes each field
on first access. Decoded values are cached, and values assigned through a
setter override whatever the raw text says. Output is always regenerated
field by field with fresh checksums.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, Flag, auto
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from tlekit.core import codec, orbit
from tlekit.core.checksum import checksum, validate_line
from tlekit.core.errors import ErrorKind, FieldFormatError, TLEError
from tlekit.core.orbit import StateVector
from tlekit.utils.constants import NAME_LENGTH, SECONDS_PER_DAY

logger = logging.getLogger(__name__)

_TWO_PI = 2 * math.pi
# rev/day -> rad/s and friends
_MEAN_MOTION_SCALE = _TWO_PI / SECONDS_PER_DAY
_MEAN_MOTION_DOT_SCALE = 2 * _TWO_PI / SECONDS_PER_DAY ** 2
_MEAN_MOTION_DDOT_SCALE = 6 * _TWO_PI / SECONDS_PER_DAY ** 3

_NAME, _LINE1, _LINE2 = 0, 1, 2


class OutputFormat(Enum):
    """Serialization shape of a record."""

    TWO_LINE = 2
    THREE_LINE = 3


class Field(Flag):
    """Identity of each decoded field; combined values form a presence set."""

    NAME = auto()
    SATELLITE_NUMBER = auto()
    CLASSIFICATION = auto()
    DESIGNATOR = auto()
    EPOCH = auto()
    MEAN_MOTION_DOT = auto()
    MEAN_MOTION_DDOT = auto()
    BSTAR = auto()
    EPHEMERIS_TYPE = auto()
    ELEMENT_NUMBER = auto()
    INCLINATION = auto()
    RAAN = auto()
    ECCENTRICITY = auto()
    ARG_PERIGEE = auto()
    MEAN_ANOMALY = auto()
    MEAN_MOTION = auto()
    REVOLUTION_NUMBER = auto()


@dataclass(frozen=True)
class _FieldSpec:
    """Where a field lives and how to decode and coerce it."""

    lines: tuple[int, ...]
    decode: Callable[[str], Any]
    coerce: Callable[[Any], Any]
    default: Any


def _char(value: Any) -> str:
    value = str(value)
    if len(value) > 1:
        raise ValueError(f"Expected a single character, got {value!r}")
    return value


def _catalog_number(value: Any) -> str:
    text = str(value).strip()
    return text.zfill(5) if text.isdigit() else text


def _check_line_number(line: str, number: str) -> None:
    if not line.startswith(number + " "):
        logger.error("Expected TLE line %s, got %r", number, line[:2])
        raise FieldFormatError(f"TLE line {number} must start with {number!r}, got {line[:2]!r}")


def _name(line: str) -> str:
    return codec.parse_string(line, 0, min(len(line), NAME_LENGTH))


_FIELDS: dict[Field, _FieldSpec] = {
    Field.NAME: _FieldSpec((_NAME,), _name, str, ""),
    # line 1 first, line 2 as a fallback
    Field.SATELLITE_NUMBER: _FieldSpec(
        (_LINE1, _LINE2), lambda line: _catalog_number(codec.parse_string(line, 2, 5)), _catalog_number, ""
    ),
    Field.CLASSIFICATION: _FieldSpec((_LINE1,), lambda line: codec.parse_char(line, 7), _char, ""),
    Field.DESIGNATOR: _FieldSpec((_LINE1,), lambda line: codec.parse_string(line, 9, 8), str, ""),
    Field.EPOCH: _FieldSpec((_LINE1,), lambda line: codec.parse_epoch(line, 18, 14), float, 0.0),
    Field.MEAN_MOTION_DOT: _FieldSpec(
        (_LINE1,), lambda line: codec.parse_float(line, 33, 10) * _MEAN_MOTION_DOT_SCALE, float, 0.0
    ),
    Field.MEAN_MOTION_DDOT: _FieldSpec(
        (_LINE1,), lambda line: codec.parse_packed(line, 44, 8) * _MEAN_MOTION_DDOT_SCALE, float, 0.0
    ),
    Field.BSTAR: _FieldSpec((_LINE1,), lambda line: codec.parse_packed(line, 53, 8), float, 0.0),
    Field.EPHEMERIS_TYPE: _FieldSpec((_LINE1,), lambda line: codec.parse_char(line, 62), _char, ""),
    Field.ELEMENT_NUMBER: _FieldSpec((_LINE1,), lambda line: codec.parse_int(line, 64, 4), int, 0),
    Field.INCLINATION: _FieldSpec((_LINE2,), lambda line: math.radians(codec.parse_float(line, 8, 8)), float, 0.0),
    Field.RAAN: _FieldSpec((_LINE2,), lambda line: math.radians(codec.parse_float(line, 17, 8)), float, 0.0),
    Field.ECCENTRICITY: _FieldSpec((_LINE2,), lambda line: codec.parse_implied_decimal(line, 26, 7), float, 0.0),
    Field.ARG_PERIGEE: _FieldSpec((_LINE2,), lambda line: math.radians(codec.parse_float(line, 34, 8)), float, 0.0),
    Field.MEAN_ANOMALY: _FieldSpec((_LINE2,), lambda line: math.radians(codec.parse_float(line, 43, 8)), float, 0.0),
    Field.MEAN_MOTION: _FieldSpec(
        (_LINE2,), lambda line: codec.parse_float(line, 52, 11) * _MEAN_MOTION_SCALE, float, 0.0
    ),
    Field.REVOLUTION_NUMBER: _FieldSpec((_LINE2,), lambda line: codec.parse_int(line, 63, 5), int, 0),
}


class _FieldProperty:
    """Read/write access to one field in its internal unit."""

    def __init__(self, field: Field, doc: str) -> None:
        self.field = field
        self.__doc__ = doc

    def __get__(self, obj: TLE | None, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj._read(self.field)

    def __set__(self, obj: TLE, value: Any) -> None:
        obj._write(self.field, value)


class _ConvertedProperty(_FieldProperty):
    """A field seen through a unit conversion, e.g. degrees for an angle."""

    def __init__(
        self,
        field: Field,
        doc: str,
        to_internal: Callable[[float], float],
        from_internal: Callable[[float], float],
    ) -> None:
        super().__init__(field, doc)
        self._to_internal = to_internal
        self._from_internal = from_internal

    def __get__(self, obj: TLE | None, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return self._from_internal(obj._read(self.field))

    def __set__(self, obj: TLE, value: Any) -> None:
        obj._write(self.field, self._to_internal(float(value)))


def _degrees(field: Field, what: str) -> _ConvertedProperty:
    return _ConvertedProperty(field, f"{what} in degrees.", math.radians, math.degrees)


def _angle_degrees(angle: float) -> float:
    # wrap after rounding to the column: output stays in [0, 360)
    return round(math.degrees(angle % _TWO_PI), 4) % 360.0


class TLE:
    """A lazily decoded Two-Line Element record.

    Build one with :meth:`from_lines`, or start from ``TLE()`` and fill it
    in through the setters. Each field is decoded from the raw text the
    first time it is read and cached afterwards. A decode failure does not
    raise: the field reads as zero, :attr:`last_error` records the failure
    kind, and the next read tries again.

    Angles are stored in radians. Every angle also has a ``*_deg``
    property that reads and writes degrees.

    Not safe for unsynchronized use from several threads, since reads
    populate the cache.
    """

    name = _FieldProperty(Field.NAME, "Satellite name from the name line.")
    satellite_number = _FieldProperty(Field.SATELLITE_NUMBER, "NORAD catalog number as text.")
    classification = _FieldProperty(Field.CLASSIFICATION, "Classification character, e.g. ``'U'``.")
    designator = _FieldProperty(Field.DESIGNATOR, "International designator, e.g. ``'98067A'``.")
    epoch_days = _FieldProperty(Field.EPOCH, "Epoch in fractional days since 1970-01-01 UTC.")
    mean_motion_dot = _FieldProperty(Field.MEAN_MOTION_DOT, "First derivative of mean motion in rad/s².")
    mean_motion_ddot = _FieldProperty(Field.MEAN_MOTION_DDOT, "Second derivative of mean motion in rad/s³.")
    bstar = _FieldProperty(Field.BSTAR, "B* drag term in inverse Earth radii.")
    ephemeris_type = _FieldProperty(Field.EPHEMERIS_TYPE, "Ephemeris type character.")
    element_number = _FieldProperty(Field.ELEMENT_NUMBER, "Element set number.")
    inclination = _FieldProperty(Field.INCLINATION, "Inclination in radians.")
    raan = _FieldProperty(Field.RAAN, "Right ascension of the ascending node in radians.")
    eccentricity = _FieldProperty(Field.ECCENTRICITY, "Eccentricity (dimensionless).")
    arg_perigee = _FieldProperty(Field.ARG_PERIGEE, "Argument of perigee in radians.")
    mean_anomaly = _FieldProperty(Field.MEAN_ANOMALY, "Mean anomaly in radians.")
    mean_motion = _FieldProperty(Field.MEAN_MOTION, "Mean motion in rad/s.")
    revolution_number = _FieldProperty(Field.REVOLUTION_NUMBER, "Revolution number at epoch.")

    inclination_deg = _degrees(Field.INCLINATION, "Inclination")
    raan_deg = _degrees(Field.RAAN, "Right ascension of the ascending node")
    arg_perigee_deg = _degrees(Field.ARG_PERIGEE, "Argument of perigee")
    mean_anomaly_deg = _degrees(Field.MEAN_ANOMALY, "Mean anomaly")
    mean_motion_rev_per_day = _ConvertedProperty(
        Field.MEAN_MOTION,
        "Mean motion in revolutions per day.",
        lambda value: value * _MEAN_MOTION_SCALE,
        lambda value: value / _MEAN_MOTION_SCALE,
    )

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._raw: list[str | None] = [None, None, None]
        self._values: dict[Field, Any] = {}
        self._present = Field(0)
        self._last_error: ErrorKind | None = None
        self._output_format = OutputFormat.TWO_LINE

    # --- Construction ---

    @classmethod
    def from_lines(cls, line1: str, line2: str, name: str | None = None, *, eager: bool = False) -> TLE:
        """Build a record from raw TLE lines.

        Args:
            line1: TLE line 1 (69 characters including checksum).
            line2: TLE line 2 (69 characters including checksum).
            name: Optional satellite name line. When given, the record
                serializes in three-line form.
            eager: Decode every field now instead of on first access.

        Returns:
            The new record. After an eager parse, :attr:`last_error` tells
            whether any field failed to decode.

        Raises:
            TooShortLineError: If a data line has no checksum column.
            ChecksumError: If a data line fails its checksum.
        """
        tle = cls()
        tle.assign(line1, line2, name, eager=eager)
        return tle

    def assign(self, line1: str, line2: str, name: str | None = None, *, eager: bool = False) -> None:
        """Replace this record's contents with freshly supplied lines.

        Both data lines are checksummed and must start with their line
        number before anything is stored. On failure the record is reset to
        the empty state, :attr:`last_error` holds the failure kind and the
        error is raised.

        Raises:
            TooShortLineError: If a data line has no checksum column.
            ChecksumError: If a data line fails its checksum.
            FieldFormatError: If the data lines are not numbered 1 and 2.
        """
        line1 = line1.strip()
        line2 = line2.strip()
        try:
            validate_line(line1)
            validate_line(line2)
            _check_line_number(line1, "1")
            _check_line_number(line2, "2")
        except TLEError as exc:
            self._reset()
            self._last_error = exc.kind
            raise

        self._reset()
        self._raw = [name.rstrip("\r\n") if name is not None else None, line1, line2]
        self._output_format = OutputFormat.THREE_LINE if name is not None else OutputFormat.TWO_LINE
        if eager:
            self.parse_all()

        logger.debug("Accepted TLE lines for satellite %r", line1[2:7].strip())

    def parse_all(self) -> TLE:
        """Decode every field now.

        Fields that fail keep their zero default and are marked cached so
        they are not decoded again.
        """
        for field in _FIELDS:
            value = self._read(field)
            if field not in self._present:
                self._values[field] = value
                self._present |= field
        return self

    # --- Field cache ---

    def _decode(self, field: Field) -> tuple[Any, bool, ErrorKind | None]:
        """Decode ``field`` from the raw lines without touching the cache.

        Returns the value, whether decoding succeeded, and the kind of the
        last failure seen on the way.
        """
        spec = _FIELDS[field]
        error = None
        for index in spec.lines:
            line = self._raw[index]
            if line is None:
                continue
            try:
                return spec.decode(line), True, error
            except TLEError as exc:
                logger.debug("Failed to decode %s: %s", field.name, exc)
                error = exc.kind
        return spec.default, False, error

    def _read(self, field: Field) -> Any:
        if field in self._present:
            return self._values[field]

        value, decoded, error = self._decode(field)
        if error is not None:
            self._last_error = error
        if decoded:
            self._values[field] = value
            self._present |= field
        return value

    def _peek(self, field: Field) -> Any:
        if field in self._present:
            return self._values[field]
        return self._decode(field)[0]

    def _write(self, field: Field, value: Any) -> None:
        self._values[field] = _FIELDS[field].coerce(value)
        self._present |= field

    def is_cached(self, field: Field) -> bool:
        """Whether ``field`` holds a decoded or assigned value."""
        return field in self._present

    @property
    def cached_fields(self) -> Field:
        """The set of fields whose values are decoded or assigned."""
        return self._present

    @property
    def last_error(self) -> ErrorKind | None:
        """Kind of the most recent construction or field decode failure."""
        return self._last_error

    def clear_error(self) -> None:
        self._last_error = None

    # --- Epoch ---

    @property
    def epoch(self) -> datetime:
        """Epoch as a UTC datetime."""
        return codec.epoch_to_datetime(self.epoch_days)

    @epoch.setter
    def epoch(self, value: datetime) -> None:
        self.epoch_days = codec.datetime_to_epoch(value)

    @property
    def epoch_timestamp(self) -> int:
        """Epoch as whole POSIX seconds."""
        return math.floor(self.epoch_days * SECONDS_PER_DAY)

    # --- Derived quantities ---

    @property
    def eccentric_anomaly(self) -> float:
        """Eccentric anomaly E in radians.

        Setting E stores the matching mean anomaly.

        Raises:
            ConvergenceError: If Kepler's equation cannot be solved.
        """
        return orbit.eccentric_anomaly(self.mean_anomaly, self.eccentricity)

    @eccentric_anomaly.setter
    def eccentric_anomaly(self, value: float) -> None:
        self.mean_anomaly = orbit.mean_anomaly_from_eccentric(value, self.eccentricity)

    @property
    def true_anomaly(self) -> float:
        """True anomaly ν in radians. Setting ν stores the matching mean anomaly."""
        return orbit.true_anomaly(self.eccentric_anomaly, self.eccentricity)

    @true_anomaly.setter
    def true_anomaly(self, value: float) -> None:
        self.eccentric_anomaly = orbit.eccentric_from_true(value, self.eccentricity)

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis in km."""
        return orbit.semi_major_axis(self.mean_motion)

    @property
    def semi_latus_rectum(self) -> float:
        return orbit.semi_latus_rectum(self.semi_major_axis, self.eccentricity)

    @property
    def radius(self) -> float:
        """Distance from the central body in km."""
        return orbit.radius(self.semi_latus_rectum, self.eccentricity, self.true_anomaly)

    def state_vector(self) -> StateVector:
        """Position and velocity at epoch from the classical elements.

        Raises:
            ConvergenceError: If Kepler's equation cannot be solved.
            ValueError: If the mean motion is not positive.
        """
        return orbit.state_from_elements(
            self.eccentricity,
            self.mean_anomaly,
            self.inclination,
            self.raan,
            self.arg_perigee,
            self.mean_motion,
            epoch=self.epoch,
        )

    @property
    def position(self) -> NDArray[np.float64]:
        return self.state_vector().position_km

    @property
    def velocity(self) -> NDArray[np.float64]:
        return self.state_vector().velocity_km_s

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def z(self) -> float:
        return float(self.position[2])

    @property
    def vx(self) -> float:
        return float(self.velocity[0])

    @property
    def vy(self) -> float:
        return float(self.velocity[1])

    @property
    def vz(self) -> float:
        return float(self.velocity[2])

    # --- Serialization ---

    @property
    def output_format(self) -> OutputFormat:
        return self._output_format

    @output_format.setter
    def output_format(self, value: OutputFormat) -> None:
        self._output_format = OutputFormat(value)

    def set_output_format(self, value: OutputFormat) -> TLE:
        """Switch between two- and three-line output. Returns ``self``."""
        self.output_format = value
        return self

    def name_line(self) -> str:
        """The name line, blank-padded to 24 columns."""
        return codec.format_string(self.name, NAME_LENGTH)

    def line1(self) -> str:
        """Regenerate line 1 from the current field values."""
        satellite_number = self.satellite_number
        body = "".join([
            "1 ",
            codec.format_string(satellite_number, 5, ">", "0" if satellite_number.isdigit() else " "),
            codec.format_char(self.classification),
            " ",
            codec.format_string(self.designator, 8),
            " ",
            codec.format_epoch(self.epoch_days),
            " ",
            codec.format_decimal_fraction(self.mean_motion_dot / _MEAN_MOTION_DOT_SCALE, 10, 8),
            " ",
            codec.format_packed(self.mean_motion_ddot / _MEAN_MOTION_DDOT_SCALE, 8),
            " ",
            codec.format_packed(self.bstar, 8),
            " ",
            codec.format_char(self.ephemeris_type),
            " ",
            codec.format_int(self.element_number, 4),
        ])
        return body + str(checksum(body))

    def line2(self) -> str:
        """Regenerate line 2 from the current field values."""
        satellite_number = self.satellite_number
        body = "".join([
            "2 ",
            codec.format_string(satellite_number, 5, ">", "0" if satellite_number.isdigit() else " "),
            " ",
            codec.format_float(_angle_degrees(self.inclination), 8, 4),
            " ",
            codec.format_float(_angle_degrees(self.raan), 8, 4),
            " ",
            codec.format_implied_decimal(self.eccentricity, 7),
            " ",
            codec.format_float(_angle_degrees(self.arg_perigee), 8, 4),
            " ",
            codec.format_float(_angle_degrees(self.mean_anomaly), 8, 4),
            " ",
            codec.format_float(self.mean_motion / _MEAN_MOTION_SCALE, 11, 8),
            codec.format_int(self.revolution_number, 5),
        ])
        return body + str(checksum(body))

    def to_lines(self) -> list[str]:
        """The record's lines in the current output format."""
        lines = []
        if self._output_format is OutputFormat.THREE_LINE:
            lines.append(self.name_line())
        lines.extend([self.line1(), self.line2()])
        return lines

    def serialize(self) -> str:
        """The record as newline-separated text in the current output format."""
        return "\n".join(self.to_lines())

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"TLE(satellite_number={self.satellite_number!r}, name={self.name!r})"

    # --- Value semantics ---

    def _key(self) -> tuple[Any, ...]:
        return tuple(self._peek(field) for field in _FIELDS) + (self._output_format,)

    def __eq__(self, other: object) -> bool:
        """Field-by-field comparison. Neither record's cache or last_error changes."""
        if not isinstance(other, TLE):
            return NotImplemented
        return self._key() == other._key()

    __hash__ = None  # type: ignore[assignment]

    def copy(self) -> TLE:
        """An independent record with its own raw lines and cache."""
        return copy.copy(self)

    def __copy__(self) -> TLE:
        clone = type(self).__new__(type(self))
        clone._raw = list(self._raw)
        clone._values = dict(self._values)
        clone._present = self._present
        clone._last_error = self._last_error
        clone._output_format = self._output_format
        return clone

    def __deepcopy__(self, memo: dict[int, Any]) -> TLE:
        return self.__copy__()
