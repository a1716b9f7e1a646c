"""Tests for the TLE record model."""

import copy
import math
from datetime import datetime, timedelta, timezone

import pytest

from tlekit.core.checksum import checksum, validate_line
from tlekit.core.errors import (
    ChecksumError,
    ConvergenceError,
    ErrorKind,
    FieldFormatError,
    TooShortLineError,
)
from tlekit.core.tle import TLE, Field, OutputFormat

# ISS (ZARYA), September 2008
ISS_NAME = "ISS (ZARYA)"
ISS_LINE1 = "1 25544U 98067A   08264.51782528 -.00002182  00000-0 -11606-4 0  2927"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391563537"

# ISS (ZARYA), December 2020
ISS_2020_LINE1 = "1 25544U 98067A   20344.91719907  .00001264  00000-0  29621-4 0  9993"
ISS_2020_LINE2 = "2 25544  51.6466 223.8666 0002416  90.3778  30.6140 15.48970462256430"


def with_checksum(body: str) -> str:
    return body + str(checksum(body))


def bad_inclination_line2() -> str:
    return with_checksum(ISS_LINE2[:8] + " 51.64x6" + ISS_LINE2[16:68])


@pytest.fixture
def iss() -> TLE:
    return TLE.from_lines(ISS_LINE1, ISS_LINE2)


class TestFromLines:
    def test_parse_basic(self, iss: TLE) -> None:
        assert iss.satellite_number == "25544"
        assert iss.classification == "U"
        assert iss.designator == "98067A"
        assert iss.ephemeris_type == "0"
        assert iss.element_number == 292
        assert iss.revolution_number == 56353
        assert iss.last_error is None

    def test_orbital_elements(self, iss: TLE) -> None:
        assert iss.inclination == pytest.approx(math.radians(51.6416))
        assert iss.inclination_deg == pytest.approx(51.6416)
        assert iss.raan_deg == pytest.approx(247.4627)
        assert iss.eccentricity == pytest.approx(0.0006703)
        assert iss.arg_perigee_deg == pytest.approx(130.5360)
        assert iss.mean_anomaly_deg == pytest.approx(325.0288)

    def test_mean_motion_units(self, iss: TLE) -> None:
        assert iss.mean_motion_rev_per_day == pytest.approx(15.72125391)
        assert iss.mean_motion == pytest.approx(15.72125391 * 2 * math.pi / 86400)

    def test_drag_terms(self, iss: TLE) -> None:
        assert iss.bstar == pytest.approx(-1.1606e-5)
        assert iss.mean_motion_dot == pytest.approx(2 * -0.00002182 * 2 * math.pi / 86400 ** 2)
        assert iss.mean_motion_ddot == 0.0

    def test_epoch(self, iss: TLE) -> None:
        expected = datetime(2008, 9, 20, 12, 25, 40, 104192, tzinfo=timezone.utc)
        assert abs(iss.epoch - expected) < timedelta(milliseconds=1)
        assert iss.epoch.tzinfo is timezone.utc
        assert iss.epoch_timestamp == int(expected.timestamp())

    def test_three_line(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, ISS_LINE2, name=ISS_NAME)
        assert tle.name == ISS_NAME
        assert tle.output_format is OutputFormat.THREE_LINE

    def test_two_line_has_no_name(self, iss: TLE) -> None:
        assert iss.name == ""
        assert iss.output_format is OutputFormat.TWO_LINE
        assert iss.last_error is None

    def test_surrounding_whitespace_ignored(self) -> None:
        tle = TLE.from_lines(ISS_LINE1 + "\r\n", " " + ISS_LINE2 + "\n", name=ISS_NAME + "\n")
        assert tle.satellite_number == "25544"
        assert tle.name == ISS_NAME

    def test_checksum_mismatch_raises(self) -> None:
        with pytest.raises(ChecksumError):
            TLE.from_lines(ISS_LINE1[:68] + "8", ISS_LINE2)

    def test_line2_checksum_mismatch_raises(self) -> None:
        with pytest.raises(ValueError):
            TLE.from_lines(ISS_LINE1, ISS_LINE2[:68] + "0")

    def test_too_short_raises(self) -> None:
        with pytest.raises(TooShortLineError):
            TLE.from_lines(ISS_LINE1[:68], ISS_LINE2)

    def test_swapped_lines_rejected(self) -> None:
        with pytest.raises(FieldFormatError, match="line 1"):
            TLE.from_lines(ISS_LINE2, ISS_LINE1)

    def test_mislabeled_line_recorded_on_assign(self, iss: TLE) -> None:
        with pytest.raises(FieldFormatError):
            iss.assign(ISS_LINE1, ISS_LINE1)
        assert iss.last_error is ErrorKind.FIELD_FORMAT
        assert iss.cached_fields == Field(0)

    def test_blank_padded_catalog_number(self) -> None:
        line1 = with_checksum("1     5" + ISS_LINE1[7:68])
        line2 = with_checksum("2     5" + ISS_LINE2[7:68])
        tle = TLE.from_lines(line1, line2)
        assert tle.satellite_number == "00005"

        again = TLE.from_lines(*tle.to_lines())
        assert again.satellite_number == "00005"
        assert again == tle


class TestLazyFields:
    def test_nothing_decoded_up_front(self, iss: TLE) -> None:
        assert iss.cached_fields == Field(0)
        iss.inclination
        assert iss.is_cached(Field.INCLINATION)
        assert not iss.is_cached(Field.RAAN)

    def test_eager_decodes_everything(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, ISS_LINE2, eager=True)
        assert all(tle.is_cached(field) for field in Field)
        assert tle.last_error is None

    def test_cached_value_survives_corrupted_text(self, iss: TLE) -> None:
        first = iss.inclination
        iss._raw[2] = "garbage"
        assert iss.inclination == first
        # fields not yet decoded see the corrupted line
        assert iss.raan == 0.0
        assert iss.last_error is ErrorKind.TOO_SHORT_LINE

    def test_decode_failure_is_local(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, bad_inclination_line2())
        assert tle.inclination == 0.0
        assert tle.last_error is ErrorKind.FIELD_FORMAT
        assert not tle.is_cached(Field.INCLINATION)
        assert tle.raan_deg == pytest.approx(247.4627)

    def test_decode_failure_retried(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, bad_inclination_line2())
        tle.inclination
        tle.clear_error()
        assert tle.last_error is None
        tle.inclination
        assert tle.last_error is ErrorKind.FIELD_FORMAT

    def test_eager_failure_marks_field_cached(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, bad_inclination_line2(), eager=True)
        assert tle.last_error is ErrorKind.FIELD_FORMAT
        assert tle.is_cached(Field.INCLINATION)
        assert tle.inclination == 0.0

    def test_satellite_number_falls_back_to_line2(self, iss: TLE) -> None:
        iss._raw[1] = "1"
        assert iss.satellite_number == "25544"
        assert iss.last_error is ErrorKind.TOO_SHORT_LINE

    def test_parse_all_returns_self(self, iss: TLE) -> None:
        assert iss.parse_all() is iss


class TestMutators:
    def test_setter_overrides_text(self, iss: TLE) -> None:
        iss.inclination_deg = 98.7
        assert iss.inclination == math.radians(98.7)
        assert iss.line2()[8:16] == " 98.7000"

    def test_setter_marks_cached(self) -> None:
        tle = TLE()
        tle.bstar = 1.5e-4
        assert tle.is_cached(Field.BSTAR)
        assert tle.bstar == 1.5e-4

    def test_setter_overrides_malformed_text(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, bad_inclination_line2())
        tle.inclination_deg = 51.6416
        assert tle.inclination == math.radians(51.6416)
        assert tle.line2() == ISS_LINE2

    def test_radian_setter(self, iss: TLE) -> None:
        iss.raan = 1.25
        assert iss.raan == 1.25
        assert iss.raan_deg == pytest.approx(math.degrees(1.25))

    def test_angles_normalized_on_output(self, iss: TLE) -> None:
        iss.raan_deg = -10.0
        iss.mean_anomaly_deg = 725.0
        line2 = iss.line2()
        assert line2[17:25] == "350.0000"
        assert line2[43:51] == "  5.0000"
        validate_line(line2)

    def test_angle_just_below_full_turn_wraps(self, iss: TLE) -> None:
        iss.raan = -1e-9
        iss.arg_perigee_deg = 359.99999
        line2 = iss.line2()
        assert line2[17:25] == "  0.0000"
        assert line2[34:42] == "  0.0000"
        validate_line(line2)

    def test_mean_motion_rev_per_day(self, iss: TLE) -> None:
        iss.mean_motion_rev_per_day = 1.00273791
        assert iss.mean_motion == pytest.approx(2 * math.pi / 86164.09, rel=1e-6)
        assert iss.line2()[52:63] == " 1.00273791"

    def test_epoch_setter(self, iss: TLE) -> None:
        iss.epoch = datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)
        assert iss.line1()[18:32] == "24045.50000000"

    def test_classification_single_char(self, iss: TLE) -> None:
        with pytest.raises(ValueError):
            iss.classification = "UU"

    def test_satellite_number_coerced(self) -> None:
        tle = TLE()
        tle.satellite_number = 5
        assert tle.satellite_number == "00005"
        assert tle.line1()[2:7] == "00005"


class TestSerialize:
    def test_round_trip_verbatim(self, iss: TLE) -> None:
        assert iss.to_lines() == [ISS_LINE1, ISS_LINE2]
        assert iss.serialize() == f"{ISS_LINE1}\n{ISS_LINE2}"
        assert str(iss) == iss.serialize()

    def test_round_trip_second_record(self) -> None:
        tle = TLE.from_lines(ISS_2020_LINE1, ISS_2020_LINE2)
        assert tle.to_lines() == [ISS_2020_LINE1, ISS_2020_LINE2]

    def test_three_line_output(self) -> None:
        tle = TLE.from_lines(ISS_LINE1, ISS_LINE2, name=ISS_NAME)
        lines = tle.to_lines()
        assert lines == [ISS_NAME.ljust(24), ISS_LINE1, ISS_LINE2]

    def test_output_format_switch(self, iss: TLE) -> None:
        assert iss.set_output_format(OutputFormat.THREE_LINE) is iss
        assert iss.to_lines()[0] == " " * 24
        iss.name = "ISS"
        assert iss.to_lines()[0] == "ISS".ljust(24)
        iss.set_output_format(OutputFormat.TWO_LINE)
        assert len(iss.to_lines()) == 2

    def test_long_name_truncated(self, iss: TLE) -> None:
        iss.name = "A" * 30
        assert iss.name_line() == "A" * 24

    def test_mutated_lines_carry_valid_checksums(self, iss: TLE) -> None:
        iss.bstar = 3.0093e-4
        iss.mean_motion_dot = -1e-12
        iss.eccentricity = 0.1234567
        for line in iss.to_lines():
            assert len(line) == 69
            validate_line(line)
        assert iss.line1()[53:61] == " 30093-3"
        assert iss.line2()[26:33] == "1234567"

    def test_overflowing_int_drops_rightmost(self, iss: TLE) -> None:
        iss.element_number = 123456
        line1 = iss.line1()
        assert line1[64:68] == "1234"
        validate_line(line1)

    def test_default_record_serializes(self) -> None:
        lines = TLE().to_lines()
        assert len(lines) == 2
        for line in lines:
            validate_line(line)


class TestValueSemantics:
    def test_copy_is_independent(self, iss: TLE) -> None:
        clone = iss.copy()
        clone.inclination_deg = 10.0
        assert iss.inclination_deg == pytest.approx(51.6416)
        assert clone != iss

    def test_copy_keeps_cache(self, iss: TLE) -> None:
        iss.raan_deg = 1.0
        clone = copy.copy(iss)
        assert clone.is_cached(Field.RAAN)
        assert clone == iss

    def test_deepcopy(self, iss: TLE) -> None:
        assert copy.deepcopy(iss) == iss

    def test_equal_records(self) -> None:
        lazy = TLE.from_lines(ISS_LINE1, ISS_LINE2)
        eager = TLE.from_lines(ISS_LINE1, ISS_LINE2, eager=True)
        assert lazy == eager
        assert lazy != TLE.from_lines(ISS_2020_LINE1, ISS_2020_LINE2)

    def test_equality_leaves_cache_alone(self) -> None:
        good = TLE.from_lines(ISS_LINE1, ISS_LINE2)
        bad = TLE.from_lines(ISS_LINE1, bad_inclination_line2())
        assert good != bad
        assert good.cached_fields == Field(0)
        assert bad.cached_fields == Field(0)
        assert bad.last_error is None

    def test_output_format_part_of_equality(self) -> None:
        assert TLE.from_lines(ISS_LINE1, ISS_LINE2) != TLE.from_lines(ISS_LINE1, ISS_LINE2, name="")

    def test_unhashable(self, iss: TLE) -> None:
        with pytest.raises(TypeError):
            hash(iss)

    def test_failed_assign_resets(self, iss: TLE) -> None:
        iss.inclination_deg = 10.0
        with pytest.raises(ChecksumError):
            iss.assign(ISS_LINE1[:68] + "0", ISS_LINE2)
        assert iss.last_error is ErrorKind.CHECKSUM
        assert iss.cached_fields == Field(0)
        assert iss.satellite_number == ""

    def test_assign_replaces_contents(self, iss: TLE) -> None:
        iss.assign(ISS_2020_LINE1, ISS_2020_LINE2, name=ISS_NAME)
        assert iss.to_lines() == [ISS_NAME.ljust(24), ISS_2020_LINE1, ISS_2020_LINE2]


class TestDerived:
    def test_eccentric_anomaly_solves_kepler(self, iss: TLE) -> None:
        E = iss.eccentric_anomaly
        assert E - iss.eccentricity * math.sin(E) == pytest.approx(iss.mean_anomaly, abs=1e-9)

    def test_semi_major_axis(self, iss: TLE) -> None:
        assert 6600 < iss.semi_major_axis < 6800
        assert iss.semi_latus_rectum == pytest.approx(iss.semi_major_axis * (1 - iss.eccentricity ** 2))

    def test_radius_between_apsides(self, iss: TLE) -> None:
        a, e = iss.semi_major_axis, iss.eccentricity
        assert a * (1 - e) <= iss.radius <= a * (1 + e)

    def test_state_vector(self, iss: TLE) -> None:
        state = iss.state_vector()
        r = math.sqrt(sum(c * c for c in state.position_km))
        v2 = sum(c * c for c in state.velocity_km_s)
        assert r == pytest.approx(iss.radius)
        assert v2 == pytest.approx(398600.4418 * (2 / r - 1 / iss.semi_major_axis))
        assert state.epoch == iss.epoch

    def test_scalar_components(self, iss: TLE) -> None:
        state = iss.state_vector()
        assert (iss.x, iss.y, iss.z) == pytest.approx(tuple(state.position_km))
        assert (iss.vx, iss.vy, iss.vz) == pytest.approx(tuple(state.velocity_km_s))

    def test_set_eccentric_anomaly(self, iss: TLE) -> None:
        iss.eccentric_anomaly = 2.0
        assert iss.mean_anomaly == 2.0 - iss.eccentricity * math.sin(2.0)

    def test_set_true_anomaly(self, iss: TLE) -> None:
        iss.true_anomaly = 1.0
        assert iss.true_anomaly == pytest.approx(1.0, abs=1e-6)

    def test_derived_follow_mutators(self, iss: TLE) -> None:
        before = iss.semi_major_axis
        iss.mean_motion_rev_per_day = 1.00273791
        assert iss.semi_major_axis > before

    def test_zero_mean_motion(self) -> None:
        with pytest.raises(ValueError, match="Mean motion"):
            TLE().semi_major_axis

    def test_hyperbolic_reports_convergence_error(self, iss: TLE) -> None:
        iss.eccentricity = 1.5
        with pytest.raises(ConvergenceError):
            iss.state_vector()
