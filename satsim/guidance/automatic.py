"""Scripted attitude guidance recomputed from the orbital state.

Pointing modes:
- NADIR: body +z toward the Earth centre, body -y along the orbit normal
  (body +x then lies close to the velocity vector)
- VELOCITY: body +x along the inertial velocity, body -y along the orbit normal
- SUN: body +z toward the Sun
- INERTIAL: a fixed quaternion

NADIR and VELOCITY follow the rotating orbit frame, so their target rates
are the orbit rate expressed in the body frame.

Example:
    >>> guidance = AutomaticGuidance(PointingMode.NADIR)
    >>> command = guidance.target(t, state, guidance.initial_state())
"""

import logging
from enum import Enum

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import IDENTITY_QUATERNION, SatelliteState, dcm_to_quaternion
from satsim.environment.celestial import SunEphemeris
from satsim.guidance.base import GuidanceCommand, GuidanceState

logger = logging.getLogger(__name__)


class PointingMode(Enum):
    """Attitude pointing modes of the automatic guidance."""

    NADIR = "nadir"
    SUN = "sun"
    INERTIAL = "inertial"
    VELOCITY = "velocity"


def _unit(vector: NDArray[np.float64]) -> NDArray[np.float64]:
    return vector / np.linalg.norm(vector)


def _frame_to_quaternion(
    x_axis: NDArray[np.float64],
    y_axis: NDArray[np.float64],
    z_axis: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Quaternion of the body frame whose axes are given in inertial components."""
    return dcm_to_quaternion(np.vstack([x_axis, y_axis, z_axis]))


@beartype
def orbit_frame(state: SatelliteState) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Nadir-pointing frame of the current orbit.

    Returns:
        (dcm, omega): inertial -> orbit-frame DCM and the inertial angular
        velocity of the orbit frame [rad/s]
    """
    r = state.position
    h = np.cross(r, state.velocity)
    z_axis = -_unit(r)
    y_axis = -_unit(h)
    x_axis = np.cross(y_axis, z_axis)
    omega = h / float(np.dot(r, r))
    return np.vstack([x_axis, y_axis, z_axis]), omega


@beartype
class AutomaticGuidance:
    """Pointing guidance that needs no memory between steps."""

    def __init__(
        self,
        mode: PointingMode = PointingMode.NADIR,
        sun: SunEphemeris | None = None,
        inertial_quaternion: NDArray[np.float64] | None = None,
        name: str = "automatic_guidance",
    ) -> None:
        """Initialize guidance.

        Args:
            mode: Pointing mode
            sun: Sun ephemeris (SUN mode)
            inertial_quaternion: Fixed target attitude (INERTIAL mode)
            name: Policy name used in logs
        """
        self.mode = mode
        self.sun = SunEphemeris() if sun is None else sun
        self.inertial_quaternion = (
            IDENTITY_QUATERNION.copy() if inertial_quaternion is None
            else np.asarray(inertial_quaternion, dtype=np.float64)
        )
        self.name = name
        logger.info("Building automatic guidance (mode=%s)", mode.value)

    def initial_state(self, state: SatelliteState | None = None) -> GuidanceState:
        return GuidanceState(time=0.0 if state is None else state.time)

    def target(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceCommand:
        """Attitude reference at (t, state)."""
        if self.mode is PointingMode.INERTIAL:
            return GuidanceCommand.hold(self.inertial_quaternion)

        if self.mode is PointingMode.SUN:
            z_axis = _unit(self.sun.position(t) - state.position)
            reference = np.array([0.0, 0.0, 1.0])
            if abs(float(np.dot(reference, z_axis))) > 0.99:
                reference = np.array([1.0, 0.0, 0.0])
            x_axis = _unit(np.cross(reference, z_axis))
            y_axis = np.cross(z_axis, x_axis)
            return GuidanceCommand.hold(_frame_to_quaternion(x_axis, y_axis, z_axis))

        dcm, omega_inertial = orbit_frame(state)
        if self.mode is PointingMode.VELOCITY:
            x_axis = _unit(state.velocity)
            y_axis = dcm[1]
            z_axis = np.cross(x_axis, y_axis)
            dcm = np.vstack([x_axis, y_axis, z_axis])

        return GuidanceCommand(
            target_quaternion=dcm_to_quaternion(dcm),
            target_angular_velocity=dcm @ omega_inertial,
        )

    def advance(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceState:
        return GuidanceState(time=t)
