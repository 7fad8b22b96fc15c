"""Guidance commanded at runtime from outside the propagation loop.

Any thread may call :meth:`DynamicGuidance.command`; the request is stored
under a lock and only latched into the guidance state when the propagator
advances past an accepted step. Until a command is latched the guidance
holds the attitude of the latest accepted step.

Example:
    >>> guidance = DynamicGuidance()
    >>> # from an operator thread
    >>> guidance.command(q_target, np.zeros(3))
"""

import logging
import threading

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.guidance.base import GuidanceCommand, GuidanceState

logger = logging.getLogger(__name__)


@beartype
class DynamicGuidance:
    """Externally commanded attitude reference."""

    def __init__(self, name: str = "dynamic_guidance") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._pending: GuidanceCommand | None = None

    def command(
        self,
        quaternion: NDArray[np.float64],
        angular_velocity: NDArray[np.float64] | None = None,
    ) -> None:
        """Request a new attitude target; takes effect at the next accepted step."""
        pending = GuidanceCommand(
            target_quaternion=quaternion,
            target_angular_velocity=np.zeros(3) if angular_velocity is None else angular_velocity,
        )
        with self._lock:
            self._pending = pending

    @property
    def has_pending(self) -> bool:
        """True while a command waits to be latched."""
        with self._lock:
            return self._pending is not None

    def initial_state(self, state: SatelliteState | None = None) -> GuidanceState:
        if state is None:
            return GuidanceState()
        return GuidanceState(time=state.time, command=GuidanceCommand.hold(state.quaternion))

    def target(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceCommand:
        """Latched command, or a hold of the current attitude before any step."""
        if guidance_state.command is None:
            return GuidanceCommand.hold(state.quaternion)
        return guidance_state.command

    def advance(
        self,
        t: float,
        state: SatelliteState,
        guidance_state: GuidanceState,
    ) -> GuidanceState:
        """Latch a pending command, or re-anchor the hold to the accepted attitude."""
        with self._lock:
            pending, self._pending = self._pending, None

        if pending is not None:
            logger.debug("Latched dynamic guidance command at t=%.3f s", t)
            return GuidanceState(time=t, command=pending, overridden=True)
        if guidance_state.overridden:
            return GuidanceState(time=t, command=guidance_state.command, overridden=True)
        return GuidanceState(time=t, command=GuidanceCommand.hold(state.quaternion))
