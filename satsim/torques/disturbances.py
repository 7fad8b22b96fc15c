"""Environmental and random disturbance torques.

- GravityGradientTorque: tau = 3 mu / r^3 * (r_b x I r_b), r_b the unit
  nadir vector in the body frame
- ResidualMagneticTorque: tau = m_res x B (body frame)
- RandomTorqueDisturbance: uniform random torque, redrawn after every
  accepted step and held constant while a step is being integrated
"""

import logging

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.gravity import MU_EARTH
from satsim.environment.magnetic import DipoleMagneticField
from satsim.satellite.body import SatelliteBody

logger = logging.getLogger(__name__)

DEFAULT_DISTURBANCE_INTENSITY = 1.0e-3  # Per-axis half-width [N*m]


@beartype
class GravityGradientTorque:
    """Gravity-gradient torque of a point-mass Earth."""

    def __init__(self, mu: float = MU_EARTH, name: str = "gravity_gradient") -> None:
        self.mu = mu
        self.name = name

    def torque(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Gravity-gradient torque [N*m], body frame."""
        r = state.radius
        r_body = state.vector_to_body(state.position / r)
        return 3.0 * self.mu / r**3 * np.cross(r_body, state.inertia @ r_body)


@beartype
class ResidualMagneticTorque:
    """Torque of the body's residual dipole in the geomagnetic field."""

    def __init__(self, magnetic: DipoleMagneticField, name: str = "residual_magnetic") -> None:
        self.magnetic = magnetic
        self.name = name

    def torque(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Residual magnetic torque [N*m], body frame."""
        b_body = state.vector_to_body(self.magnetic.field(t, state.position))
        return np.cross(body.residual_dipole, b_body)


@beartype
class RandomTorqueDisturbance:
    """Seeded uniform torque noise, piecewise constant over accepted steps.

    The value used while integrating a step is drawn when the previous step
    is accepted, so a rejected and retried step sees the same torque and the
    sequence depends only on the seed and the accepted-step count.
    """

    def __init__(
        self,
        intensity: float = DEFAULT_DISTURBANCE_INTENSITY,
        seed: int = 0,
        name: str = "random_disturbance",
    ) -> None:
        """Initialize the disturbance.

        Args:
            intensity: Per-axis half-width of the uniform distribution [N*m]
            seed: Seed of the generator
            name: Contributor name
        """
        if intensity < 0:
            raise ValueError(f"Intensity must be non-negative, got {intensity}")
        self.intensity = intensity
        self.seed = seed
        self.name = name
        self.reset()

    def reset(self) -> None:
        """Restart the sequence from the seed."""
        self._rng = np.random.default_rng(self.seed)
        self._current = self._draw()

    def _draw(self) -> NDArray[np.float64]:
        return self._rng.uniform(-self.intensity, self.intensity, size=3)

    def torque(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Disturbance torque held for the current step [N*m]."""
        return self._current.copy()

    def advance(self, t: float, state: SatelliteState) -> None:
        """Draw the torque for the next step."""
        self._current = self._draw()
