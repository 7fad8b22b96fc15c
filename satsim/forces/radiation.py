"""Solar radiation pressure force.

Cannonball model: the force points from the Sun to the satellite with
magnitude

    |F| = P_1AU * (AU / d)^2 * Cr * A * illumination

where ``d`` is the Sun-satellite distance. The force is exactly zero inside
the Earth's umbra.
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.celestial import AU, SunEphemeris
from satsim.environment.shadow import ShadowModel, illumination
from satsim.satellite.body import SatelliteBody

SOLAR_PRESSURE_1AU = 4.56e-6  # [N/m^2]


@beartype
class SolarRadiationPressure:
    """Solar radiation pressure with Earth eclipse."""

    def __init__(
        self,
        sun: SunEphemeris | None = None,
        shadow_model: ShadowModel = ShadowModel.CYLINDRICAL,
        pressure_1au: float = SOLAR_PRESSURE_1AU,
        name: str = "solar_radiation_pressure",
    ) -> None:
        """Initialize SRP model.

        Args:
            sun: Sun position provider
            shadow_model: Eclipse geometry
            pressure_1au: Radiation pressure at 1 AU [N/m^2]
            name: Contributor name
        """
        self.sun = SunEphemeris() if sun is None else sun
        self.shadow_model = shadow_model
        self.pressure_1au = pressure_1au
        self.name = name

    def force_at(
        self,
        position: NDArray[np.float64],
        sun_position: NDArray[np.float64],
        body: SatelliteBody,
    ) -> NDArray[np.float64]:
        """SRP force [N] for explicit satellite and Sun positions."""
        lit = illumination(position, sun_position, self.shadow_model)
        if lit == 0.0:
            return np.zeros(3)

        sun_to_sat = position - sun_position
        d = float(np.linalg.norm(sun_to_sat))
        pressure = self.pressure_1au * (AU / d) ** 2
        magnitude = pressure * body.radiation_coefficient * body.radiation_area * lit
        return magnitude * sun_to_sat / d

    def force(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """SRP force [N], inertial frame."""
        return self.force_at(state.position, self.sun.position(t), body)
