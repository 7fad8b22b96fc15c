"""Analytic Sun and Moon ephemerides.

Low-precision series for the geocentric positions of the Sun and the Moon,
accurate to roughly 0.1% (Sun) and a few hundred km (Moon) over several
decades around J2000. Good enough for third-body perturbations, solar
radiation pressure and eclipse detection on a single satellite.

Reference: Montenbruck & Gill, Satellite Orbits, section 3.3.2

Positions are returned in the mean equator and equinox of J2000 (taken as
the simulator's inertial frame). The difference between UTC and TT is
ignored.

Example:
    >>> from datetime import datetime, timezone
    >>> from satsim.environment.celestial import SunEphemeris
    >>>
    >>> sun = SunEphemeris(epoch=datetime(2024, 3, 20, tzinfo=timezone.utc))
    >>> r_sun = sun.field(0.0, position)  # [m], ECI
"""

from datetime import datetime, timezone

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# =============================================================================
# Constants
# =============================================================================

AU = 1.495978707e11  # Astronomical unit [m]
R_SUN = 6.957e8  # Solar radius [m]
R_MOON = 1.7374e6  # Lunar radius [m]

JD_J2000 = 2451545.0
JD_UNIX_EPOCH = 2440587.5
SECONDS_PER_DAY = 86400.0
DAYS_PER_CENTURY = 36525.0

OBLIQUITY_J2000 = np.radians(23.43929111)  # Mean obliquity of the ecliptic

ARCSEC = np.pi / (180.0 * 3600.0)

DEFAULT_EPOCH = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Time Helpers
# =============================================================================


@beartype
def julian_date(epoch: datetime, seconds: float = 0.0) -> float:
    """Julian date of ``epoch + seconds``.

    Naive datetimes are interpreted as UTC.
    """
    if epoch.tzinfo is None:
        epoch = epoch.replace(tzinfo=timezone.utc)
    unix_seconds = epoch.timestamp() + seconds
    return JD_UNIX_EPOCH + unix_seconds / SECONDS_PER_DAY


@beartype
def julian_centuries(epoch: datetime, seconds: float = 0.0) -> float:
    """Julian centuries since J2000 of ``epoch + seconds``."""
    return (julian_date(epoch, seconds) - JD_J2000) / DAYS_PER_CENTURY


def _ecliptic_to_equatorial(vector: NDArray[np.float64]) -> NDArray[np.float64]:
    c, s = np.cos(OBLIQUITY_J2000), np.sin(OBLIQUITY_J2000)
    return np.array([
        vector[0],
        c * vector[1] - s * vector[2],
        s * vector[1] + c * vector[2],
    ])


# =============================================================================
# Sun
# =============================================================================


@beartype
def sun_position(epoch: datetime, seconds: float = 0.0) -> NDArray[np.float64]:
    """Geocentric position of the Sun [m].

    Args:
        epoch: Run epoch (UTC)
        seconds: Seconds elapsed since the epoch

    Returns:
        Sun position in the inertial frame [m]
    """
    T = julian_centuries(epoch, seconds)

    M = np.radians(357.5256 + 35999.049 * T)  # Mean anomaly
    longitude = np.radians(282.9400) + M + (6892.0 * np.sin(M) + 72.0 * np.sin(2.0 * M)) * ARCSEC
    distance = (149.619 - 2.499 * np.cos(M) - 0.021 * np.cos(2.0 * M)) * 1.0e9

    ecliptic = distance * np.array([np.cos(longitude), np.sin(longitude), 0.0])
    return _ecliptic_to_equatorial(ecliptic)


# =============================================================================
# Moon
# =============================================================================


@beartype
def moon_position(epoch: datetime, seconds: float = 0.0) -> NDArray[np.float64]:
    """Geocentric position of the Moon [m].

    Args:
        epoch: Run epoch (UTC)
        seconds: Seconds elapsed since the epoch

    Returns:
        Moon position in the inertial frame [m]
    """
    T = julian_centuries(epoch, seconds)

    # Fundamental arguments
    L0 = np.radians(218.31617 + 481267.88088 * T - 1.3972 * T)  # Mean longitude
    l = np.radians(134.96292 + 477198.86753 * T)  # Moon mean anomaly
    lp = np.radians(357.52543 + 35999.04944 * T)  # Sun mean anomaly
    F = np.radians(93.27283 + 483202.01873 * T)  # Argument of latitude
    D = np.radians(297.85027 + 445267.11135 * T)  # Mean elongation

    longitude = L0 + ARCSEC * (
        22640.0 * np.sin(l) + 769.0 * np.sin(2*l)
        - 4586.0 * np.sin(l - 2*D) + 2370.0 * np.sin(2*D)
        - 668.0 * np.sin(lp) - 412.0 * np.sin(2*F)
        - 212.0 * np.sin(2*l - 2*D) - 206.0 * np.sin(l + lp - 2*D)
        + 192.0 * np.sin(l + 2*D) - 165.0 * np.sin(lp - 2*D)
        + 148.0 * np.sin(l - lp) - 125.0 * np.sin(D)
        - 110.0 * np.sin(l + lp) - 55.0 * np.sin(2*F - 2*D)
    )

    latitude = ARCSEC * (
        18520.0 * np.sin(F + longitude - L0 + ARCSEC * (412.0 * np.sin(2*F) + 541.0 * np.sin(lp)))
        - 526.0 * np.sin(F - 2*D) + 44.0 * np.sin(l + F - 2*D)
        - 31.0 * np.sin(-l + F - 2*D) - 25.0 * np.sin(-2*l + F)
        - 23.0 * np.sin(lp + F - 2*D) + 21.0 * np.sin(-l + F)
        + 11.0 * np.sin(-lp + F - 2*D)
    )

    distance = (
        385000.0 - 20905.0 * np.cos(l) - 3699.0 * np.cos(2*D - l)
        - 2956.0 * np.cos(2*D) - 570.0 * np.cos(2*l)
        + 246.0 * np.cos(2*l - 2*D) - 205.0 * np.cos(lp - 2*D)
        - 171.0 * np.cos(l + 2*D) - 152.0 * np.cos(l + lp - 2*D)
    ) * 1000.0

    ecliptic = distance * np.array([
        np.cos(longitude) * np.cos(latitude),
        np.sin(longitude) * np.cos(latitude),
        np.sin(latitude),
    ])
    return _ecliptic_to_equatorial(ecliptic)


# =============================================================================
# Providers
# =============================================================================


@beartype
class SunEphemeris:
    """Sun position provider anchored at a run epoch."""

    def __init__(self, epoch: datetime = DEFAULT_EPOCH) -> None:
        self.epoch = epoch

    def position(self, t: float) -> NDArray[np.float64]:
        """Sun position [m] at ``t`` seconds after the epoch."""
        return sun_position(self.epoch, t)

    def field(self, t: float, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Sun position [m]; independent of the query position."""
        return self.position(t)


@beartype
class MoonEphemeris:
    """Moon position provider anchored at a run epoch."""

    def __init__(self, epoch: datetime = DEFAULT_EPOCH) -> None:
        self.epoch = epoch

    def position(self, t: float) -> NDArray[np.float64]:
        """Moon position [m] at ``t`` seconds after the epoch."""
        return moon_position(self.epoch, t)

    def field(self, t: float, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Moon position [m]; independent of the query position."""
        return self.position(t)
