"""Geomagnetic field as a tilted, Earth-fixed dipole.

Uses the degree-1 IGRF coefficients, so the field is the best-fitting
centred dipole. The dipole rotates with the Earth; the Earth-fixed frame is
related to the inertial frame by the Greenwich mean sidereal angle.

    B = (R/r)^3 * [3 (g . r_hat) r_hat - g],   g = (g11, h11, g10)

Reference: IGRF-13, epoch 2020.0 main field coefficients

Example:
    >>> from satsim.environment.magnetic import DipoleMagneticField
    >>>
    >>> mag = DipoleMagneticField()
    >>> b = mag.field(0.0, position)  # [T], inertial frame
"""

from datetime import datetime

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.environment.celestial import DEFAULT_EPOCH, JD_J2000, julian_date
from satsim.environment.gravity import OMEGA_EARTH, R_EARTH_EQ

# =============================================================================
# Constants
# =============================================================================

# IGRF-13 degree-1 Gauss coefficients, epoch 2020.0 [nT]
G10 = -29404.8
G11 = -1450.9
H11 = 4652.5

IGRF_REFERENCE_RADIUS = 6371200.0  # [m]

NANOTESLA = 1.0e-9


@beartype
def greenwich_sidereal_angle(epoch: datetime, seconds: float = 0.0) -> float:
    """Greenwich mean sidereal angle [rad] of ``epoch + seconds``."""
    days = julian_date(epoch, seconds) - JD_J2000
    gmst_deg = 280.46061837 + 360.98564736629 * days
    return float(np.radians(gmst_deg % 360.0))


@beartype
class DipoleMagneticField:
    """Tilted dipole geomagnetic field provider.

    Example:
        >>> mag = DipoleMagneticField()
        >>> b = mag.field(0.0, np.array([7.0e6, 0.0, 0.0]))
    """

    def __init__(
        self,
        epoch: datetime = DEFAULT_EPOCH,
        g10: float = G10,
        g11: float = G11,
        h11: float = H11,
        reference_radius: float = IGRF_REFERENCE_RADIUS,
    ) -> None:
        """Initialize the dipole.

        Args:
            epoch: Run epoch, fixes the Earth rotation angle at t = 0
            g10: Axial dipole coefficient [nT]
            g11: Equatorial dipole coefficient [nT]
            h11: Equatorial dipole coefficient [nT]
            reference_radius: Radius the coefficients refer to [m]
        """
        self.epoch = epoch
        self.reference_radius = reference_radius
        self.dipole_ecef = np.array([g11, h11, g10]) * NANOTESLA
        self._theta0 = greenwich_sidereal_angle(epoch)

    def earth_rotation(self, t: float) -> NDArray[np.float64]:
        """Rotation matrix mapping inertial components to Earth-fixed ones."""
        theta = self._theta0 + OMEGA_EARTH * t
        c, s = np.cos(theta), np.sin(theta)
        return np.array([
            [c, s, 0.0],
            [-s, c, 0.0],
            [0.0, 0.0, 1.0],
        ])

    def field_ecef(self, position_ecef: NDArray[np.float64]) -> NDArray[np.float64]:
        """Field [T] in the Earth-fixed frame at an Earth-fixed position [m]."""
        r = float(np.linalg.norm(position_ecef))
        r_hat = position_ecef / r
        g = self.dipole_ecef
        scale = (self.reference_radius / r) ** 3
        return scale * (3.0 * np.dot(g, r_hat) * r_hat - g)

    def field(self, t: float, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Field [T] in the inertial frame at an inertial position [m]."""
        rotation = self.earth_rotation(t)
        return rotation.T @ self.field_ecef(rotation @ position)

    def surface_strength(self) -> float:
        """Equatorial surface field strength of the dipole [T]."""
        return float(np.linalg.norm(self.dipole_ecef) * (self.reference_radius / R_EARTH_EQ) ** 3)
