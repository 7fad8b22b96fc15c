"""Coupled orbit/attitude derivative model.

Sums every force and torque contributor at (t, state) and applies the
rigid-body equations:

    dr/dt = v
    dv/dt = sum(F_i) / m
    dq/dt = 0.5 * q (x) [0, w]
    dw/dt = I^-1 * (sum(tau_i) - w x I w)

Contributors are evaluated, and their outputs summed, in configuration
order so results are bit-for-bit reproducible. With an executor the
contributors run concurrently but are still reduced in that order.

Example:
    >>> aggregator = DynamicsAggregator(
    ...     body=SatelliteBody.cubesat_1u(),
    ...     forces=(CentralGravity(),),
    ...     torques=(GravityGradientTorque(),),
    ... )
    >>> derivative = aggregator.compute_derivative(0.0, state)
"""

import logging
from concurrent.futures import Executor

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.rigid_body import (
    TorqueToSpinEquation,
    quaternion_derivative,
    translational_acceleration,
)
from satsim.dynamics.state import SatelliteState, StateDerivative
from satsim.errors import IntegrationDivergence
from satsim.forces.base import ForceContribution, ForceModel
from satsim.satellite.body import SatelliteBody
from satsim.torques.base import TorqueContribution, TorqueModel
from satsim.torques.law import AutomaticTorqueLaw, TorqueLawState

logger = logging.getLogger(__name__)


@beartype
class DynamicsAggregator:
    """Derivative of the full satellite state under all active contributors."""

    def __init__(
        self,
        body: SatelliteBody,
        forces: list[ForceModel] | tuple[ForceModel, ...] = (),
        torques: list[TorqueModel] | tuple[TorqueModel, ...] = (),
        torque_law: AutomaticTorqueLaw | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            body: Satellite body shared by every contributor
            forces: Force contributors, in summation order
            torques: Torque contributors, in summation order
            torque_law: Closed-loop torque law, summed after the contributors
            executor: Optional executor for concurrent contributor evaluation
        """
        self.body = body
        self.forces = tuple(forces)
        self.torques = tuple(torques)
        self.torque_law = torque_law
        self.executor = executor
        self._equation = TorqueToSpinEquation(body.inertia)

        logger.info(
            "Building dynamics: forces=%s torques=%s law=%s parallel=%s",
            [f.name for f in self.forces],
            [t.name for t in self.torques],
            None if torque_law is None else torque_law.name,
            executor is not None,
        )

    # -------------------------------------------------------------------------
    # Control state
    # -------------------------------------------------------------------------

    def initial_control(self, state: SatelliteState) -> TorqueLawState | None:
        """Control state at the start of a run."""
        if self.torque_law is None:
            return None
        return self.torque_law.initial_state(state)

    def reset(self) -> None:
        """Restart contributors that keep per-run memory."""
        for contributor in self.forces + self.torques:
            reset = getattr(contributor, "reset", None)
            if callable(reset):
                reset()
        if self.torque_law is not None:
            self.torque_law.reset()

    def advance(
        self,
        t: float,
        state: SatelliteState,
        control: TorqueLawState | None,
    ) -> TorqueLawState | None:
        """Advance control memory after an accepted step; driver thread only."""
        for contributor in self.forces + self.torques:
            advance = getattr(contributor, "advance", None)
            if callable(advance):
                advance(t, state)

        if self.torque_law is None or control is None:
            return control
        return self.torque_law.advance(t, state, self.body, control)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def _evaluate(self, contributors: tuple, method: str, t: float, state: SatelliteState) -> list:
        if self.executor is None or len(contributors) < 2:
            return [getattr(c, method)(t, state, self.body) for c in contributors]
        # map() yields in submission order regardless of completion order
        return list(self.executor.map(lambda c: getattr(c, method)(t, state, self.body), contributors))

    @staticmethod
    def _check_finite(source: str, vector: NDArray[np.float64], t: float) -> NDArray[np.float64]:
        vector = np.asarray(vector, dtype=np.float64)
        if vector.shape != (3,):
            raise IntegrationDivergence(f"Contributor {source} returned shape {vector.shape}", time=t)
        if not np.all(np.isfinite(vector)):
            raise IntegrationDivergence(f"Contributor {source} returned a non-finite value", time=t)
        return vector

    def contributions(
        self,
        t: float,
        state: SatelliteState,
        control: TorqueLawState | None = None,
    ) -> tuple[list[ForceContribution], list[TorqueContribution]]:
        """Tagged per-source forces (inertial, N) and torques (body, N*m)."""
        forces = [
            ForceContribution(source=f.name, vector=self._check_finite(f.name, v, t))
            for f, v in zip(self.forces, self._evaluate(self.forces, "force", t, state))
        ]
        torques = [
            TorqueContribution(source=c.name, vector=self._check_finite(c.name, v, t))
            for c, v in zip(self.torques, self._evaluate(self.torques, "torque", t, state))
        ]

        if self.torque_law is not None:
            law_state = self.initial_control(state) if control is None else control
            tau = self.torque_law.command(t, state, self.body, law_state)
            name = self.torque_law.name
            torques.append(TorqueContribution(source=name, vector=self._check_finite(name, tau, t)))

        return forces, torques

    def total_force(self, t: float, state: SatelliteState) -> NDArray[np.float64]:
        """Sum of the force contributors [N], inertial frame."""
        forces, _ = self.contributions(t, state)
        return self._sum([f.vector for f in forces])

    @staticmethod
    def _sum(vectors: list[NDArray[np.float64]]) -> NDArray[np.float64]:
        total = np.zeros(3)
        for vector in vectors:
            total = total + vector
        return total

    def _equation_for(self, state: SatelliteState) -> TorqueToSpinEquation:
        if not np.array_equal(state.inertia, self._equation.inertia):
            self._equation = TorqueToSpinEquation(state.inertia)
        return self._equation

    def compute_derivative(
        self,
        t: float,
        state: SatelliteState,
        control: TorqueLawState | None = None,
    ) -> StateDerivative:
        """State derivative at (t, state).

        Raises:
            DomainError: A provider was evaluated outside its validity range
            IntegrationDivergence: A contributor produced a non-finite value
        """
        forces, torques = self.contributions(t, state, control)
        total_force = self._sum([f.vector for f in forces])
        total_torque = self._sum([c.vector for c in torques])

        return StateDerivative(
            position_dot=state.velocity.copy(),
            velocity_dot=translational_acceleration(total_force, state.mass),
            quaternion_dot=quaternion_derivative(state.quaternion, state.angular_velocity),
            angular_velocity_dot=self._equation_for(state).angular_acceleration(
                state.angular_velocity, total_torque,
            ),
            mass_dot=0.0,
        )
