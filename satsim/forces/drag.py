"""Atmospheric drag force.

Drag acts against the velocity relative to an atmosphere co-rotating with
the Earth:

    F = -0.5 * rho * Cd * A * |v_rel| * v_rel,   v_rel = v - omega_earth x r
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.atmosphere import ExponentialAtmosphere
from satsim.environment.gravity import OMEGA_EARTH
from satsim.satellite.body import SatelliteBody


@beartype
class AtmosphericDrag:
    """Cannonball drag using the body's drag coefficient and reference area."""

    def __init__(
        self,
        atmosphere: ExponentialAtmosphere | None = None,
        earth_rotation_rate: float = OMEGA_EARTH,
        name: str = "atmospheric_drag",
    ) -> None:
        """Initialize drag model.

        Args:
            atmosphere: Density provider (default exponential atmosphere)
            earth_rotation_rate: Rotation rate of the atmosphere about +z [rad/s]
            name: Contributor name
        """
        self.atmosphere = ExponentialAtmosphere() if atmosphere is None else atmosphere
        self.earth_rate = np.array([0.0, 0.0, earth_rotation_rate])
        self.name = name

    def relative_velocity(self, state: SatelliteState) -> NDArray[np.float64]:
        """Velocity relative to the co-rotating atmosphere [m/s]."""
        return state.velocity - np.cross(self.earth_rate, state.position)

    def force(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Drag force [N], inertial frame."""
        rho = self.atmosphere.field(t, state.position)
        if rho == 0.0:
            return np.zeros(3)

        v_rel = self.relative_velocity(state)
        speed = float(np.linalg.norm(v_rel))
        return -0.5 * rho * body.drag_coefficient * body.drag_area * speed * v_rel
