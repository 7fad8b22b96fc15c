"""Phase-scheduled torque law.

The law is data: an ordered list of phases, each with a control policy,
and a transition table of ``(source, condition, target)`` rows. Exactly one
phase is active at a time. Transitions always move forward (target >
source), so the phase index never decreases; a phase with no outgoing
transition is terminal and stays active for the rest of the run.

Evaluation is pure. :meth:`AutomaticTorqueLaw.command` reads a frozen
:class:`TorqueLawState`; :meth:`AutomaticTorqueLaw.advance` returns the next
one and is called by the propagator exactly once per accepted step, so
rejected trial steps never touch control memory.

Example:
    >>> law = AutomaticTorqueLaw(
    ...     phases=[Phase("detumble", BDotDetumble(mag)), Phase("point", PDAttitudeControl())],
    ...     transitions=[Transition(0, SpinRateBelow(0.01), 1)],
    ...     guidance=AutomaticGuidance(PointingMode.NADIR),
    ... )
    >>> law_state = law.initial_state(state)
    >>> tau = law.command(t, state, body, law_state)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState, quaternion_angle, quaternion_error
from satsim.environment.magnetic import DipoleMagneticField
from satsim.errors import ConfigurationError
from satsim.guidance.base import Guidance, GuidanceCommand, GuidanceState
from satsim.satellite.body import SatelliteBody
from satsim.satellite.sensors import Gyrometer
from satsim.torques.control import (
    BDotDetumble,
    ControlPolicy,
    EstimatingPolicy,
    FieldRateEstimate,
    PDAttitudeControl,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Law State
# =============================================================================


@beartype
@dataclass(frozen=True, eq=False)
class TorqueLawState:
    """Control memory carried between accepted steps.

    Attributes:
        phase_index: Index of the active phase
        phase_start_time: Time the active phase was entered [s]
        time: Time of the last accepted step [s]
        integral: Integrated attitude error of the active phase [s]
        guidance_state: Memory of the guidance policy, if any
        estimate: Sensor memory of an estimating policy, if the active
            phase has one
    """
    phase_index: int = 0
    phase_start_time: float = 0.0
    time: float = 0.0
    integral: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    guidance_state: GuidanceState | None = None
    estimate: FieldRateEstimate | None = None

    def __post_init__(self) -> None:
        integral = np.array(self.integral, dtype=np.float64)
        integral.setflags(write=False)
        object.__setattr__(self, "integral", integral)


# =============================================================================
# Transition Conditions
# =============================================================================


@runtime_checkable
class TransitionCondition(Protocol):
    """Predicate evaluated after an accepted step."""

    def is_met(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
        command: GuidanceCommand | None,
    ) -> bool:
        ...


@beartype
@dataclass(frozen=True)
class SpinRateBelow:
    """Body spin magnitude below ``threshold`` [rad/s].

    With a ``gyrometer`` the check uses its noisy reading of the rates.
    """
    threshold: float
    gyrometer: Gyrometer | None = None

    def reset(self) -> None:
        if self.gyrometer is not None:
            self.gyrometer.reset()

    def is_met(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
        command: GuidanceCommand | None,
    ) -> bool:
        if self.gyrometer is None:
            return state.spin_rate < self.threshold
        return float(np.linalg.norm(self.gyrometer.sample(t, state))) < self.threshold


@beartype
@dataclass(frozen=True)
class ElapsedInPhase:
    """Active phase has lasted at least ``duration`` [s]."""
    duration: float

    def is_met(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
        command: GuidanceCommand | None,
    ) -> bool:
        return t - law_state.phase_start_time >= self.duration


@beartype
@dataclass(frozen=True)
class AttitudeErrorBelow:
    """Angle to the guidance target below ``threshold`` [rad]."""
    threshold: float

    def is_met(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
        command: GuidanceCommand | None,
    ) -> bool:
        if command is None:
            return False
        q_err = quaternion_error(state.quaternion, command.target_quaternion)
        return quaternion_angle(q_err) < self.threshold


@beartype
@dataclass(frozen=True)
class SimulationTimeAfter:
    """Simulation time at or past ``time`` [s]."""
    time: float

    def is_met(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
        command: GuidanceCommand | None,
    ) -> bool:
        return t >= self.time


# =============================================================================
# Phases and Transitions
# =============================================================================


@beartype
@dataclass(frozen=True)
class Phase:
    """Named phase of the torque law."""
    name: str
    policy: ControlPolicy


@beartype
@dataclass(frozen=True)
class Transition:
    """Row of the transition table: leave ``source`` for ``target`` when ``condition`` holds."""
    source: int
    condition: TransitionCondition
    target: int


# =============================================================================
# Torque Law
# =============================================================================


@beartype
class AutomaticTorqueLaw:
    """Phase-scheduled closed-loop torque law."""

    def __init__(
        self,
        phases: list[Phase] | tuple[Phase, ...],
        transitions: list[Transition] | tuple[Transition, ...] = (),
        guidance: Guidance | None = None,
        name: str = "torque_law",
    ) -> None:
        """Initialize and validate the law.

        Args:
            phases: Phases in activation order
            transitions: Transition table; rows for the same source are
                checked in order and the first satisfied one fires
            guidance: Attitude reference provider (identity hold if None)
            name: Contributor name

        Raises:
            ConfigurationError: If the table references unknown phases or
                moves backwards
        """
        self.phases = tuple(phases)
        self.transitions = tuple(transitions)
        self.guidance = guidance
        self.name = name
        self._validate()
        logger.info(
            "Building torque law %s with phases %s",
            name, [phase.name for phase in self.phases],
        )

    def _validate(self) -> None:
        if not self.phases:
            raise ConfigurationError("Torque law needs at least one phase")
        n = len(self.phases)
        for row in self.transitions:
            if not (0 <= row.source < n and 0 <= row.target < n):
                raise ConfigurationError(
                    f"Transition {row.source} -> {row.target} references a phase outside 0..{n - 1}"
                )
            if row.target <= row.source:
                raise ConfigurationError(
                    f"Transition {row.source} -> {row.target} must move to a later phase"
                )

    def _initial_estimate(self, phase_index: int, state: SatelliteState) -> FieldRateEstimate | None:
        policy = self.phases[phase_index].policy
        if isinstance(policy, EstimatingPolicy):
            return policy.initial_estimate(state.time, state)
        return None

    def reset(self) -> None:
        """Restart policies and conditions that keep per-run sensor noise."""
        members = [phase.policy for phase in self.phases] + [row.condition for row in self.transitions]
        for member in members:
            reset = getattr(member, "reset", None)
            if callable(reset):
                reset()

    def initial_state(self, state: SatelliteState) -> TorqueLawState:
        """Law state at the start of a run (first phase active)."""
        return TorqueLawState(
            phase_index=0,
            phase_start_time=state.time,
            time=state.time,
            integral=np.zeros(3),
            guidance_state=None if self.guidance is None else self.guidance.initial_state(state),
            estimate=self._initial_estimate(0, state),
        )

    def phase(self, law_state: TorqueLawState) -> Phase:
        """Active phase."""
        return self.phases[law_state.phase_index]

    def is_terminal(self, phase_index: int) -> bool:
        """True when no transition leaves ``phase_index``."""
        return all(row.source != phase_index for row in self.transitions)

    def reference(
        self,
        t: float,
        state: SatelliteState,
        law_state: TorqueLawState,
    ) -> GuidanceCommand | None:
        """Guidance command the active phase tracks."""
        if self.guidance is None:
            return None
        guidance_state = law_state.guidance_state
        if guidance_state is None:
            guidance_state = self.guidance.initial_state(state)
        return self.guidance.target(t, state, guidance_state)

    def command(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        law_state: TorqueLawState,
    ) -> NDArray[np.float64]:
        """Body torque [N*m] commanded at (t, state)."""
        policy = self.phase(law_state).policy
        if isinstance(policy, EstimatingPolicy):
            return policy.held_torque(t, state, body, law_state.estimate)
        reference = self.reference(t, state, law_state)
        return policy.torque(t, state, body, reference, law_state.integral)

    def advance(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        law_state: TorqueLawState,
    ) -> TorqueLawState:
        """Next law state after an accepted step ending at (t, state).

        Updates the integral and sensor memory, advances guidance and fires
        at most one transition out of the active phase.
        """
        reference = self.reference(t, state, law_state)
        policy = self.phase(law_state).policy
        integral = policy.update_integral(t - law_state.time, state, reference, law_state.integral)

        guidance_state = law_state.guidance_state
        if self.guidance is not None and guidance_state is not None:
            guidance_state = self.guidance.advance(t, state, guidance_state)

        estimate = law_state.estimate
        if isinstance(policy, EstimatingPolicy) and estimate is not None:
            estimate = policy.update_estimate(t, state, body, estimate)

        advanced = replace(
            law_state, time=t, integral=integral, guidance_state=guidance_state, estimate=estimate,
        )

        for row in self.transitions:
            if row.source != law_state.phase_index:
                continue
            if row.condition.is_met(t, state, law_state, reference):
                logger.info(
                    "Torque law %s: phase %s -> %s at t=%.3f s",
                    self.name, self.phases[row.source].name, self.phases[row.target].name, t,
                )
                return replace(
                    advanced,
                    phase_index=row.target,
                    phase_start_time=t,
                    integral=np.zeros(3),
                    estimate=self._initial_estimate(row.target, state),
                )
        return advanced


# =============================================================================
# Ready-Made Laws
# =============================================================================


@beartype
def detumble_then_point(
    magnetic: DipoleMagneticField,
    guidance: Guidance | None = None,
    spin_threshold: float = 0.01,
    controller: PDAttitudeControl | None = None,
    bdot_gain: float | None = None,
    detumbler: ControlPolicy | None = None,
    gyrometer: Gyrometer | None = None,
) -> AutomaticTorqueLaw:
    """B-dot detumbling followed by attitude tracking.

    Args:
        magnetic: Geomagnetic field provider used by the B-dot phase
        guidance: Attitude reference for the pointing phase
        spin_threshold: Spin rate that ends detumbling [rad/s]
        controller: Pointing controller (default PD gains if None)
        bdot_gain: B-dot gain (default if None)
        detumbler: Detumbling policy replacing the ideal B-dot, e.g. a
            :class:`SensedBDotDetumble`
        gyrometer: Rate sensor for the end-of-detumbling check (true spin if None)
    """
    if detumbler is None:
        detumbler = BDotDetumble(magnetic) if bdot_gain is None else BDotDetumble(magnetic, gain=bdot_gain)
    return AutomaticTorqueLaw(
        phases=[
            Phase("detumble", detumbler),
            Phase("point", PDAttitudeControl() if controller is None else controller),
        ],
        transitions=[Transition(0, SpinRateBelow(spin_threshold, gyrometer), 1)],
        guidance=guidance,
        name="detumble_then_point",
    )
