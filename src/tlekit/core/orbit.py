"""Keplerian position and velocity from classical orbital elements.

Two-body quantities evaluated at a single instant: no perturbations and
no time stepping. Angles in radians, distances in km, mean motion in rad/s.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from numpy.typing import NDArray

from tlekit.core.errors import ConvergenceError
from tlekit.utils.constants import (
    EARTH_MU_KM3_S2 as MU,
    KEPLER_MAX_ITERATIONS,
    KEPLER_RELATIVE_TOLERANCE,
)

logger = logging.getLogger(__name__)


@dataclass
class StateVector:
    """Position and velocity in the inertial frame of the elements.

    Attributes:
        position_km: [x, y, z] position in km.
        velocity_km_s: [vx, vy, vz] velocity in km/s.
        epoch: Time of this state vector, if known.
    """

    position_km: NDArray[np.float64]  # shape (3,)
    velocity_km_s: NDArray[np.float64]  # shape (3,)
    epoch: datetime | None = None


def eccentric_anomaly(
    mean_anomaly: float,
    eccentricity: float,
    *,
    tolerance: float = KEPLER_RELATIVE_TOLERANCE,
    max_iterations: int = KEPLER_MAX_ITERATIONS,
) -> float:
    """Solve Kepler's equation M = E - e·sin(E) for E.

    Uses the fixed-point iteration E ← M + e·sin(E) starting from E = M,
    stopping once the relative change drops below ``tolerance``. A circular
    orbit returns M without iterating.

    Args:
        mean_anomaly: Mean anomaly M in radians.
        eccentricity: Eccentricity e, elliptic orbits only (0 <= e < 1).
        tolerance: Relative change in E that counts as converged.
        max_iterations: Iteration cap.

    Returns:
        Eccentric anomaly E in radians.

    Raises:
        ConvergenceError: If e is outside [0, 1), an input is not finite,
            or the iteration cap is reached.
    """
    if eccentricity == 0:
        return mean_anomaly
    if not (0 < eccentricity < 1) or not math.isfinite(mean_anomaly):
        logger.error("Kepler's equation has no elliptic solution for e=%r, M=%r", eccentricity, mean_anomaly)
        raise ConvergenceError(
            f"Kepler's equation has no elliptic solution for e={eccentricity!r}, M={mean_anomaly!r}"
        )

    E = mean_anomaly
    for iteration in range(1, max_iterations + 1):
        previous = E
        E = mean_anomaly + eccentricity * math.sin(previous)
        if E == previous or abs(E - previous) <= tolerance * abs(E):
            logger.debug("Kepler solve converged in %d iterations (e=%g)", iteration, eccentricity)
            return E

    logger.error("Kepler solve did not converge in %d iterations (e=%r, M=%r)", max_iterations, eccentricity, mean_anomaly)
    raise ConvergenceError(
        f"Kepler solve did not converge in {max_iterations} iterations "
        f"(e={eccentricity!r}, M={mean_anomaly!r})"
    )


def mean_anomaly_from_eccentric(eccentric: float, eccentricity: float) -> float:
    """Kepler's equation evaluated forward: M = E - e·sin(E)."""
    return eccentric - eccentricity * math.sin(eccentric)


def true_anomaly(eccentric: float, eccentricity: float) -> float:
    """Half-angle formula tan(ν/2) = sqrt((1+e)/(1-e))·tan(E/2).

    Returns ν in (-π, π].
    """
    half = eccentric / 2
    return 2 * math.atan2(
        math.sqrt(1 + eccentricity) * math.sin(half),
        math.sqrt(1 - eccentricity) * math.cos(half),
    )


def eccentric_from_true(nu: float, eccentricity: float) -> float:
    """Inverse of :func:`true_anomaly`."""
    half = nu / 2
    return 2 * math.atan2(
        math.sqrt(1 - eccentricity) * math.sin(half),
        math.sqrt(1 + eccentricity) * math.cos(half),
    )


def semi_major_axis(mean_motion: float, mu: float = MU) -> float:
    """Semi-major axis in km from mean motion in rad/s: a = (GM/n²)^(1/3).

    Raises:
        ValueError: If the mean motion is not positive.
    """
    if mean_motion <= 0:
        raise ValueError(f"Mean motion must be positive, got {mean_motion!r}")
    return (mu / mean_motion ** 2) ** (1.0 / 3.0)


def semi_latus_rectum(a: float, eccentricity: float) -> float:
    return a * (1 - eccentricity ** 2)


def radius(p: float, eccentricity: float, nu: float) -> float:
    """Orbital radius r = p / (1 + e·cos ν)."""
    return p / (1 + eccentricity * math.cos(nu))


def perifocal_to_inertial(inclination: float, raan: float, arg_perigee: float) -> NDArray[np.float64]:
    """Rotation matrix from the perifocal frame to the inertial frame.

    Equivalent to R3(-Ω)·R1(-i)·R3(-ω).
    """
    cos_O, sin_O = math.cos(raan), math.sin(raan)
    cos_w, sin_w = math.cos(arg_perigee), math.sin(arg_perigee)
    cos_i, sin_i = math.cos(inclination), math.sin(inclination)

    return np.array(
        [
            [cos_O * cos_w - sin_O * sin_w * cos_i, -cos_O * sin_w - sin_O * cos_w * cos_i, sin_O * sin_i],
            [sin_O * cos_w + cos_O * sin_w * cos_i, -sin_O * sin_w + cos_O * cos_w * cos_i, -cos_O * sin_i],
            [sin_w * sin_i, cos_w * sin_i, cos_i],
        ],
        dtype=np.float64,
    )


def state_from_elements(
    eccentricity: float,
    mean_anomaly: float,
    inclination: float,
    raan: float,
    arg_perigee: float,
    mean_motion: float,
    epoch: datetime | None = None,
) -> StateVector:
    """Cartesian state from the six classical elements.

    Args:
        eccentricity: Eccentricity e (0 <= e < 1).
        mean_anomaly: Mean anomaly M in radians.
        inclination: Inclination i in radians.
        raan: Right ascension of the ascending node Ω in radians.
        arg_perigee: Argument of perigee ω in radians.
        mean_motion: Mean motion n in rad/s.
        epoch: Optional time stamp for the returned state.

    Returns:
        A StateVector in km and km/s.

    Raises:
        ConvergenceError: If Kepler's equation cannot be solved.
        ValueError: If the mean motion is not positive.
    """
    nu = true_anomaly(eccentric_anomaly(mean_anomaly, eccentricity), eccentricity)
    p = semi_latus_rectum(semi_major_axis(mean_motion), eccentricity)
    r = radius(p, eccentricity, nu)
    v0 = math.sqrt(MU / p)

    rotation = perifocal_to_inertial(inclination, raan, arg_perigee)
    position = rotation @ np.array([r * math.cos(nu), r * math.sin(nu), 0.0])
    velocity = rotation @ np.array([-v0 * math.sin(nu), v0 * (eccentricity + math.cos(nu)), 0.0])

    return StateVector(position_km=position, velocity_km_s=velocity, epoch=epoch)
