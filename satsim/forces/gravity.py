"""Central-body gravity force."""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.gravity import GravityField, GravityModel
from satsim.satellite.body import SatelliteBody


@beartype
class CentralGravity:
    """Earth gravity: point mass plus optional zonal J2-J4 terms.

    Example:
        >>> gravity = CentralGravity(GravityField(model=GravityModel.J2))
        >>> f = gravity.force(0.0, state, body)  # [N]
    """

    def __init__(self, field: GravityField | None = None, name: str = "central_gravity") -> None:
        self.field = GravityField() if field is None else field
        self.name = name

    @classmethod
    def with_degree(cls, degree: int) -> "CentralGravity":
        """Gravity truncated at zonal degree 0, 2, 3 or 4."""
        return cls(GravityField(model=GravityModel(degree)))

    def acceleration(self, t: float, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gravitational acceleration [m/s^2]."""
        return self.field.field(t, position)

    def force(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Gravity force [N] on the satellite, inertial frame."""
        return state.mass * self.acceleration(t, state.position)
