"""Central-body gravity field for satellite propagation.

Provides point-mass gravity plus the zonal harmonics J2, J3 and J4 of the
Earth. Core kernels are numba-compiled for performance.

Models available:
- POINT_MASS: Keplerian 1/r^2 gravity
- J2: point mass + oblateness
- J3: point mass + J2 + J3 ("pear" term)
- J4: point mass + J2 + J3 + J4

Zonal terms are rotationally symmetric about the pole, so they are evaluated
directly in the inertial frame (precession and nutation are neglected).

Reference:
- WGS84 ellipsoid parameters
- EGM96 unnormalized zonal coefficients

Example:
    >>> from satsim.environment.gravity import GravityField, GravityModel
    >>>
    >>> grav = GravityField(model=GravityModel.J2)
    >>> g = grav.field(0.0, position)  # [gx, gy, gz] in m/s^2
"""

from enum import Enum

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from satsim.errors import DomainError

# =============================================================================
# Constants
# =============================================================================

# WGS84 Earth parameters
MU_EARTH: float = 3.986004418e14  # Gravitational parameter [m^3/s^2]
R_EARTH_EQ: float = 6378137.0  # Equatorial radius [m]
R_EARTH_POLAR: float = 6356752.314245  # Polar radius [m]
OMEGA_EARTH: float = 7.2921159e-5  # Earth rotation rate [rad/s]

# EGM96 unnormalized zonal coefficients
J2: float = 1.08262668e-3
J3: float = -2.53265649e-6
J4: float = -1.61962159e-6

# Positions closer than this are outside the validity of the harmonic series
MIN_RADIUS: float = 1.0e6  # [m]


# =============================================================================
# Gravity Model Enum
# =============================================================================


class GravityModel(Enum):
    """Available gravity fidelity levels (value = highest zonal degree)."""

    POINT_MASS = 0
    J2 = 2
    J3 = 3
    J4 = 4


# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True)
def _point_mass(
    x: float, y: float, z: float,
    mu: float,
) -> tuple[float, float, float]:
    """Keplerian acceleration g = -mu/r^3 * r."""
    r_sq = x*x + y*y + z*z
    r = np.sqrt(r_sq)
    g_over_r = mu / (r_sq * r)
    return (-g_over_r * x, -g_over_r * y, -g_over_r * z)


@njit(cache=True)
def _zonal_j2(
    x: float, y: float, z: float,
    mu: float, r_eq: float, j2: float,
) -> tuple[float, float, float]:
    """J2 perturbation acceleration (oblateness)."""
    r_sq = x*x + y*y + z*z
    r = np.sqrt(r_sq)
    r5 = r_sq * r_sq * r
    z_sq_r_sq = z*z / r_sq

    factor = -1.5 * j2 * mu * r_eq * r_eq / r5

    return (
        factor * x * (1.0 - 5.0 * z_sq_r_sq),
        factor * y * (1.0 - 5.0 * z_sq_r_sq),
        factor * z * (3.0 - 5.0 * z_sq_r_sq),
    )


@njit(cache=True)
def _zonal_j3(
    x: float, y: float, z: float,
    mu: float, r_eq: float, j3: float,
) -> tuple[float, float, float]:
    """J3 perturbation acceleration (north/south asymmetry)."""
    r_sq = x*x + y*y + z*z
    r = np.sqrt(r_sq)
    r7 = r_sq * r_sq * r_sq * r

    factor = -2.5 * j3 * mu * r_eq**3 / r7
    horizontal = 3.0 * z - 7.0 * z**3 / r_sq

    return (
        factor * x * horizontal,
        factor * y * horizontal,
        factor * (6.0 * z*z - 7.0 * z**4 / r_sq - 0.6 * r_sq),
    )


@njit(cache=True)
def _zonal_j4(
    x: float, y: float, z: float,
    mu: float, r_eq: float, j4: float,
) -> tuple[float, float, float]:
    """J4 perturbation acceleration."""
    r_sq = x*x + y*y + z*z
    r = np.sqrt(r_sq)
    r7 = r_sq * r_sq * r_sq * r
    s = z*z / r_sq

    factor = 1.875 * j4 * mu * r_eq**4 / r7
    horizontal = 1.0 - 14.0 * s + 21.0 * s * s

    return (
        factor * x * horizontal,
        factor * y * horizontal,
        factor * z * (5.0 - 70.0 * s / 3.0 + 21.0 * s * s),
    )


# =============================================================================
# Gravity Field
# =============================================================================


@beartype
class GravityField:
    """Earth gravity field provider.

    Example:
        >>> grav = GravityField(model=GravityModel.POINT_MASS)
        >>> position = np.array([7.0e6, 0.0, 0.0])
        >>> g = grav.field(0.0, position)
    """

    def __init__(
        self,
        model: GravityModel = GravityModel.POINT_MASS,
        mu: float = MU_EARTH,
        radius: float = R_EARTH_EQ,
        min_radius: float = MIN_RADIUS,
    ) -> None:
        """Initialize gravity field.

        Args:
            model: Highest zonal term to include
            mu: Gravitational parameter [m^3/s^2]
            radius: Reference radius of the harmonic series [m]
            min_radius: Radius below which evaluation raises DomainError [m]
        """
        self.model = model
        self.mu = mu
        self.radius = radius
        self.min_radius = min_radius

    def _check_domain(self, t: float | None, position: NDArray[np.float64]) -> None:
        r = float(np.linalg.norm(position))
        if r < self.min_radius:
            raise DomainError(
                f"Gravity field evaluated at radius {r:.1f} m, below {self.min_radius:.1f} m",
                time=t,
                position=position,
            )

    def field(self, t: float, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gravitational acceleration [m/s^2] at an inertial position [m]."""
        self._check_domain(t, position)
        return self.acceleration(position)

    def acceleration(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gravitational acceleration without the domain check."""
        x, y, z = float(position[0]), float(position[1]), float(position[2])
        degree = self.model.value

        gx, gy, gz = _point_mass(x, y, z, self.mu)
        if degree >= 2:
            ax, ay, az = _zonal_j2(x, y, z, self.mu, self.radius, J2)
            gx, gy, gz = gx + ax, gy + ay, gz + az
        if degree >= 3:
            ax, ay, az = _zonal_j3(x, y, z, self.mu, self.radius, J3)
            gx, gy, gz = gx + ax, gy + ay, gz + az
        if degree >= 4:
            ax, ay, az = _zonal_j4(x, y, z, self.mu, self.radius, J4)
            gx, gy, gz = gx + ax, gy + ay, gz + az

        return np.array([gx, gy, gz])

    def potential(self, position: NDArray[np.float64]) -> float:
        """Gravitational potential energy per unit mass [J/kg] (zero at infinity)."""
        r = float(np.linalg.norm(position))
        s = float(position[2]) / r
        ratio = self.radius / r
        degree = self.model.value

        correction = 0.0
        if degree >= 2:
            correction -= J2 * ratio**2 * 0.5 * (3.0 * s**2 - 1.0)
        if degree >= 3:
            correction -= J3 * ratio**3 * 0.5 * (5.0 * s**3 - 3.0 * s)
        if degree >= 4:
            correction -= J4 * ratio**4 * 0.125 * (35.0 * s**4 - 30.0 * s**2 + 3.0)

        return -self.mu / r * (1.0 + correction)


# =============================================================================
# Convenience Functions
# =============================================================================


@beartype
def circular_velocity(altitude: float, mu: float = MU_EARTH) -> float:
    """Circular orbital speed [m/s] at an altitude above the equatorial radius."""
    return float(np.sqrt(mu / (R_EARTH_EQ + altitude)))


@beartype
def orbital_period(altitude: float, mu: float = MU_EARTH) -> float:
    """Period [s] of a circular orbit at an altitude above the equatorial radius."""
    r = R_EARTH_EQ + altitude
    return float(2 * np.pi * np.sqrt(r ** 3 / mu))
