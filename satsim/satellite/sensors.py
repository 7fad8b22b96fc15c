"""On-board sensor models.

Each sensor reads the true state (and environment) and adds uniform noise
drawn from its own seeded generator, so runs with the same seeds are
reproducible. The magnetometer feeds the sensed B-dot detumbler and the
gyrometer the end-of-detumbling spin check.

Example:
    >>> mag = Magnetometer(noise_intensity=1e-7, seed=1)
    >>> b_measured = mag.sample(t, state, environment)  # [T], body frame
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.environment.model import Environment

DEFAULT_MAGNETOMETER_NOISE = 1.0e-7  # 100 nT [T]
DEFAULT_GYROMETER_NOISE = 1.0e-3  # [rad/s]


@beartype
class Magnetometer:
    """Three-axis magnetometer measuring the field in the body frame."""

    def __init__(
        self,
        noise_intensity: float = DEFAULT_MAGNETOMETER_NOISE,
        seed: int = 0,
    ) -> None:
        """Initialize the magnetometer.

        Args:
            noise_intensity: Half-width of the uniform noise per axis [T]
            seed: Seed of the noise generator
        """
        if noise_intensity < 0:
            raise ValueError(f"Noise intensity must be non-negative, got {noise_intensity}")
        self.noise_intensity = noise_intensity
        self.seed = seed
        self.reset()

    def reset(self) -> None:
        """Restart the noise sequence from the seed."""
        self._rng = np.random.default_rng(self.seed)

    def true_value(self, t: float, state: SatelliteState, environment: Environment) -> NDArray[np.float64]:
        """Noise-free body-frame field [T]."""
        return state.vector_to_body(environment.magnetic.field(t, state.position))

    def sample(self, t: float, state: SatelliteState, environment: Environment) -> NDArray[np.float64]:
        """Measured body-frame field [T]."""
        noise = self._rng.uniform(-self.noise_intensity, self.noise_intensity, size=3)
        return self.true_value(t, state, environment) + noise


@beartype
class Gyrometer:
    """Three-axis rate gyro measuring the body angular velocity."""

    def __init__(
        self,
        noise_intensity: float = DEFAULT_GYROMETER_NOISE,
        seed: int = 0,
    ) -> None:
        if noise_intensity < 0:
            raise ValueError(f"Noise intensity must be non-negative, got {noise_intensity}")
        self.noise_intensity = noise_intensity
        self.seed = seed
        self.reset()

    def reset(self) -> None:
        self._rng = np.random.default_rng(self.seed)

    def sample(
        self,
        t: float,
        state: SatelliteState,
        environment: Environment | None = None,
    ) -> NDArray[np.float64]:
        """Measured body rates [rad/s]."""
        noise = self._rng.uniform(-self.noise_intensity, self.noise_intensity, size=3)
        return state.angular_velocity + noise
