"""Guidance interface and the values it exchanges with the torque law.

A guidance policy produces the attitude reference the control law tracks.
Its cross-step memory is a frozen :class:`GuidanceState` value that the
propagator replaces after every accepted step; evaluation itself is pure.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState, normalize_quaternion


@beartype
@dataclass(frozen=True, eq=False)
class GuidanceCommand:
    """Attitude reference for the controller.

    Attributes:
        target_quaternion: Desired attitude, inertial -> body (scalar-first)
        target_angular_velocity: Desired body rates [rad/s]
    """
    target_quaternion: NDArray[np.float64]
    target_angular_velocity: NDArray[np.float64]

    def __post_init__(self) -> None:
        q = normalize_quaternion(np.array(self.target_quaternion, dtype=np.float64))
        w = np.array(self.target_angular_velocity, dtype=np.float64)
        if w.shape != (3,):
            raise ValueError(f"Target angular velocity must be shape (3,), got {w.shape}")
        q.setflags(write=False)
        w.setflags(write=False)
        object.__setattr__(self, "target_quaternion", q)
        object.__setattr__(self, "target_angular_velocity", w)

    @classmethod
    def hold(cls, quaternion: NDArray[np.float64]) -> "GuidanceCommand":
        """Hold a fixed attitude with zero rates."""
        return cls(target_quaternion=quaternion, target_angular_velocity=np.zeros(3))


@beartype
@dataclass(frozen=True)
class GuidanceState:
    """Guidance memory carried between accepted steps.

    Attributes:
        time: Time of the last accepted step [s]
        command: Latched command, if the policy keeps one
        overridden: True once an external command has been latched
    """
    time: float = 0.0
    command: GuidanceCommand | None = None
    overridden: bool = False


@runtime_checkable
class Guidance(Protocol):
    """Attitude guidance policy."""

    name: str

    def initial_state(self, state: SatelliteState | None = None) -> GuidanceState:
        ...

    def target(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceCommand:
        ...

    def advance(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceState:
        ...
