"""Piecewise exponential atmosphere for orbital drag.

Density inside each band follows rho(h) = rho_base * exp(-(h - h_base) / H)
with the base density and scale height tabulated for a static, spherically
symmetric atmosphere from sea level to 1000 km.

Reference: Vallado, Fundamentals of Astrodynamics and Applications, Table 8-4

Example:
    >>> from satsim.environment.atmosphere import ExponentialAtmosphere
    >>>
    >>> atm = ExponentialAtmosphere()
    >>> rho = atm.density(400e3)  # ~3.7e-12 kg/m^3
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.environment.gravity import R_EARTH_EQ
from satsim.errors import DomainError

# =============================================================================
# Constants
# =============================================================================

# Band definitions: (base_altitude_km, base_density_kg_m3, scale_height_km)
BANDS = [
    (0.0, 1.225, 7.249),
    (25.0, 3.899e-2, 6.349),
    (30.0, 1.774e-2, 6.682),
    (40.0, 3.972e-3, 7.554),
    (50.0, 1.057e-3, 8.382),
    (60.0, 3.206e-4, 7.714),
    (70.0, 8.770e-5, 6.549),
    (80.0, 1.905e-5, 5.799),
    (90.0, 3.396e-6, 5.382),
    (100.0, 5.297e-7, 5.877),
    (110.0, 9.661e-8, 7.263),
    (120.0, 2.438e-8, 9.473),
    (130.0, 8.484e-9, 12.636),
    (140.0, 3.845e-9, 16.149),
    (150.0, 2.070e-9, 22.523),
    (180.0, 5.464e-10, 29.740),
    (200.0, 2.789e-10, 37.105),
    (250.0, 7.248e-11, 45.546),
    (300.0, 2.418e-11, 53.628),
    (350.0, 9.518e-12, 53.298),
    (400.0, 3.725e-12, 58.515),
    (450.0, 1.585e-12, 60.828),
    (500.0, 6.967e-13, 63.822),
    (600.0, 1.454e-13, 71.835),
    (700.0, 3.614e-14, 88.667),
    (800.0, 1.170e-14, 124.64),
    (900.0, 5.245e-15, 181.05),
    (1000.0, 3.019e-15, 268.00),
]

MAX_ALTITUDE = 1000.0e3  # Density is zero above this altitude [m]


# =============================================================================
# Result Classes
# =============================================================================


@beartype
@dataclass(frozen=True)
class DensityResult:
    """Atmospheric density at a given altitude.

    Attributes:
        altitude: Geometric altitude above the equatorial radius [m]
        density: Mass density [kg/m^3]
        scale_height: Scale height of the band containing the altitude [m]
    """
    altitude: float
    density: float
    scale_height: float

    @property
    def is_vacuum(self) -> bool:
        """True above the model ceiling."""
        return self.density == 0.0


# =============================================================================
# Atmosphere Model
# =============================================================================


@beartype
class ExponentialAtmosphere:
    """Static exponential atmosphere.

    Evaluating below ``min_altitude`` raises :class:`DomainError` (the
    satellite has re-entered); above ``max_altitude`` the density is zero.

    Example:
        >>> atm = ExponentialAtmosphere()
        >>> rho = atm.field(0.0, np.array([6778137.0, 0.0, 0.0]))
    """

    def __init__(
        self,
        min_altitude: float = 0.0,
        max_altitude: float = MAX_ALTITUDE,
        body_radius: float = R_EARTH_EQ,
    ) -> None:
        """Initialize atmosphere model.

        Args:
            min_altitude: Lowest valid altitude [m]
            max_altitude: Altitude above which density is zero [m]
            body_radius: Radius used to turn positions into altitudes [m]
        """
        self.min_altitude = min_altitude
        self.max_altitude = max_altitude
        self.body_radius = body_radius
        self._base_altitudes = np.array([band[0] for band in BANDS]) * 1000.0

    def _find_band(self, altitude: float) -> int:
        """Index of the band whose base is at or below the altitude."""
        return max(int(np.searchsorted(self._base_altitudes, altitude, side="right")) - 1, 0)

    def at_altitude(self, altitude: float) -> DensityResult:
        """Density and band scale height at a geometric altitude [m]."""
        if altitude < self.min_altitude:
            raise DomainError(
                f"Atmosphere evaluated at altitude {altitude:.1f} m, below {self.min_altitude:.1f} m"
            )

        index = self._find_band(altitude)
        h_base_km, rho_base, scale_km = BANDS[index]
        scale_height = scale_km * 1000.0

        if altitude > self.max_altitude:
            return DensityResult(altitude=altitude, density=0.0, scale_height=scale_height)

        density = rho_base * np.exp(-(altitude - h_base_km * 1000.0) / scale_height)
        return DensityResult(altitude=altitude, density=float(density), scale_height=scale_height)

    def density(self, altitude: float) -> float:
        """Density [kg/m^3] at a geometric altitude [m]."""
        return self.at_altitude(altitude).density

    def field(self, t: float, position: NDArray[np.float64]) -> float:
        """Density [kg/m^3] at an inertial position [m]."""
        altitude = float(np.linalg.norm(position)) - self.body_radius
        if altitude < self.min_altitude:
            raise DomainError(
                f"Atmosphere evaluated at altitude {altitude:.1f} m, below {self.min_altitude:.1f} m",
                time=t,
                position=position,
            )
        return self.density(altitude)

    def profile(
        self,
        altitudes: NDArray[np.float64] | list[float],
    ) -> dict[str, NDArray[np.float64]]:
        """Density over a range of altitudes [m]."""
        altitudes = np.asarray(altitudes, dtype=np.float64)

        return {
            "altitude": altitudes,
            "density": np.array([self.density(float(h)) for h in altitudes]),
        }
