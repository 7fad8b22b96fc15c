"""Third-body gravitational perturbations from the Sun and the Moon.

The perturbing acceleration in the geocentric frame is the direct pull of
the third body minus its pull on the Earth:

    a = mu_b * [ (r_b - r) / |r_b - r|^3 - r_b / |r_b|^3 ]
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.celestial import MoonEphemeris, SunEphemeris
from satsim.satellite.body import SatelliteBody

MU_SUN = 1.32712440018e20  # [m^3/s^2]
MU_MOON = 4.9048695e12  # [m^3/s^2]


@beartype
def third_body_acceleration(
    position: NDArray[np.float64],
    body_position: NDArray[np.float64],
    mu_body: float,
) -> NDArray[np.float64]:
    """Perturbing acceleration [m/s^2] of a point mass at ``body_position``."""
    r_sat_to_body = body_position - position
    d_sat = np.linalg.norm(r_sat_to_body)
    d_body = np.linalg.norm(body_position)
    return mu_body * (r_sat_to_body / d_sat**3 - body_position / d_body**3)


@beartype
class ThirdBodyAttraction:
    """Point-mass attraction of a third body given by an ephemeris."""

    def __init__(
        self,
        ephemeris: SunEphemeris | MoonEphemeris,
        mu: float,
        name: str,
    ) -> None:
        self.ephemeris = ephemeris
        self.mu = mu
        self.name = name

    @classmethod
    def sun(cls, ephemeris: SunEphemeris | None = None) -> "ThirdBodyAttraction":
        """Solar attraction."""
        return cls(SunEphemeris() if ephemeris is None else ephemeris, MU_SUN, "sun_third_body")

    @classmethod
    def moon(cls, ephemeris: MoonEphemeris | None = None) -> "ThirdBodyAttraction":
        """Lunar attraction."""
        return cls(MoonEphemeris() if ephemeris is None else ephemeris, MU_MOON, "moon_third_body")

    def force(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Third-body force [N], inertial frame."""
        body_position = self.ephemeris.position(t)
        return state.mass * third_body_acceleration(state.position, body_position, self.mu)
