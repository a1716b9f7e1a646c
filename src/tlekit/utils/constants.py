from __future__ import annotations

"""Physical constants and fixed-column layout of the TLE format.

All values in SI units unless otherwise noted.
"""

from datetime import datetime, timezone

# --- Earth parameters ---
EARTH_MU_KM3_S2: float = 398600.4418
"""Earth gravitational parameter (GM) in km³/s²."""

# --- Time ---
SECONDS_PER_DAY: int = 86400
"""Seconds in one day."""

EPOCH_ORIGIN: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)
"""Calendar origin of the fractional day count used for record epochs."""

TWO_DIGIT_YEAR_PIVOT: int = 57
"""Two-digit years below this are 20xx, the rest 19xx."""

# --- Line geometry ---
LINE_LENGTH: int = 69
"""Length of a TLE data line including the checksum digit."""

CHECKSUM_INDEX: int = 68
"""Column holding the checksum digit of a data line."""

NAME_LENGTH: int = 24
"""Width of the satellite name line."""

# --- Kepler solver ---
KEPLER_RELATIVE_TOLERANCE: float = 1e-7
"""Relative change in E below which the fixed-point iteration stops."""

KEPLER_MAX_ITERATIONS: int = 1000
"""Iteration cap after which the Kepler solve reports non-convergence."""
