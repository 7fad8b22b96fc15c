"""Open-loop torque scenario.

A scenario is an ordered list of steps, each applying ``direction *
intensity`` while ``start <= t < start + duration``. When steps overlap the
first one in the list wins; outside every step the torque is zero.

Example:
    >>> scenario = TorqueScenario.manoeuvre()
    >>> scenario.torque(5.0, state, body)  # +x torque during the first step
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.errors import ConfigurationError
from satsim.satellite.body import SatelliteBody

DEFAULT_INTENSITY = 0.1  # [N*m]
MANOEUVRE_INTENSITY = 1.0e-4  # [N*m]


@beartype
@dataclass(frozen=True, eq=False)
class ScenarioStep:
    """One constant-torque interval.

    Attributes:
        start: Start time since the run epoch [s]
        duration: Length of the interval [s]
        direction: Body-frame torque direction, scaled by the intensity
    """
    start: float
    duration: float
    direction: NDArray[np.float64]

    def __post_init__(self) -> None:
        direction = np.array(self.direction, dtype=np.float64)
        if direction.shape != (3,):
            raise ConfigurationError(f"Step direction must be shape (3,), got {direction.shape}")
        if self.duration < 0:
            raise ConfigurationError(f"Step duration must be non-negative, got {self.duration}")
        direction.setflags(write=False)
        object.__setattr__(self, "direction", direction)

    def is_active(self, t: float) -> bool:
        return self.start <= t < self.start + self.duration


@beartype
class TorqueScenario:
    """Time-scheduled body torque."""

    def __init__(
        self,
        steps: list[ScenarioStep] | tuple[ScenarioStep, ...] = (),
        intensity: float = DEFAULT_INTENSITY,
        name: str = "torque_scenario",
    ) -> None:
        """Initialize scenario.

        Args:
            steps: Steps in priority order
            intensity: Torque magnitude multiplying each direction [N*m]
            name: Contributor name
        """
        self.steps = tuple(steps)
        self.intensity = intensity
        self.name = name

    @classmethod
    def from_tuples(
        cls,
        steps: list | tuple,
        intensity: float = DEFAULT_INTENSITY,
    ) -> "TorqueScenario":
        """Build from ``(start, duration, [x, y, z])`` triples."""
        return cls(
            steps=[
                ScenarioStep(float(start), float(duration), np.array(direction, dtype=np.float64))
                for start, duration, direction in steps
            ],
            intensity=intensity,
        )

    @classmethod
    def manoeuvre(cls) -> "TorqueScenario":
        """Spin up and down about +x, then about the (1, 1, 1) diagonal."""
        diagonal = np.ones(3) / np.sqrt(3.0)
        return cls(
            steps=[
                ScenarioStep(1.0, 20.0, np.array([1.0, 0.0, 0.0])),
                ScenarioStep(25.0, 20.0, np.array([-1.0, 0.0, 0.0])),
                ScenarioStep(50.0, 10.0, diagonal),
                ScenarioStep(65.0, 10.0, -diagonal),
            ],
            intensity=MANOEUVRE_INTENSITY,
            name="manoeuvre",
        )

    def active_step(self, t: float) -> ScenarioStep | None:
        """First step active at ``t``, if any."""
        for step in self.steps:
            if step.is_active(t):
                return step
        return None

    def torque(self, t: float, state: SatelliteState, body: SatelliteBody) -> NDArray[np.float64]:
        """Scheduled torque [N*m], body frame."""
        step = self.active_step(t)
        if step is None:
            return np.zeros(3)
        return self.intensity * step.direction

    def step_boundaries(self) -> list[float]:
        """Sorted times at which the scheduled torque may switch [s]."""
        times = {s.start for s in self.steps} | {s.start + s.duration for s in self.steps}
        return sorted(times)
