"""Propagation engine.

Drives an integrator over the coupled dynamics, one accepted step at a
time:

1. Check cancellation and the safety bounds.
2. Attempt a step from the last accepted (t, y); on an adaptive rejection
   halve h and retry from the same point.
3. Renormalize the quaternion, check the state is finite and bounded.
4. Advance control memory (torque law, guidance, per-step disturbances).
5. Notify step handlers, then yield the accepted state.

The final step is shortened so the last accepted time equals ``t_end``
exactly. Errors stop the run after the last accepted step; everything
handlers received before that remains valid.

Example:
    >>> propagator = Propagator(aggregator, RungeKutta4(step_size=0.1))
    >>> summary = propagator.run(initial_state, t_end=600.0, handlers=[recorder])
    >>> summary.reason
    <TerminationReason.COMPLETED: 'completed'>
"""

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.aggregator import DynamicsAggregator
from satsim.dynamics.state import SatelliteState
from satsim.errors import DomainError, IntegrationDivergence, StepRejected
from satsim.propagation.integrators import Integrator, RungeKutta4, StepOutcome
from satsim.propagation.step_handler import StepHandler
from satsim.torques.law import TorqueLawState

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10_000_000
DEFAULT_MAX_REJECTIONS = 20
DEFAULT_MAX_POSITION_NORM = 1.0e10  # [m]
MIN_QUATERNION_NORM = 1e-12


# =============================================================================
# Run Bookkeeping
# =============================================================================


class TerminationReason(Enum):
    """Why a propagation run stopped."""

    COMPLETED = "completed"
    DIVERGED = "diverged"
    DOMAIN_ERROR = "domain-error"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    """Thread-safe cancel flag, checked by the propagator between steps."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@beartype
@dataclass(frozen=True)
class RunSummary:
    """Outcome of a propagation run.

    Attributes:
        start_time: Time of the initial state [s]
        end_time: Time of the last accepted state [s]
        steps: Number of accepted steps
        rejected_steps: Number of rejected adaptive trial steps
        reason: Why the run stopped
        error: The error that stopped the run, if any. A ``FAILED`` run
            holds the unexpected exception, which is also re-raised.
    """
    start_time: float
    end_time: float
    steps: int
    rejected_steps: int
    reason: TerminationReason
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.reason is TerminationReason.COMPLETED


# =============================================================================
# Propagator
# =============================================================================


@beartype
class Propagator:
    """Step-by-step propagation of the coupled orbit/attitude state."""

    def __init__(
        self,
        aggregator: DynamicsAggregator,
        integrator: Integrator | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_rejections: int = DEFAULT_MAX_REJECTIONS,
        max_position_norm: float = DEFAULT_MAX_POSITION_NORM,
    ) -> None:
        """Initialize the propagator.

        Args:
            aggregator: Derivative model
            integrator: Integration method (RK4 at 0.1 s if None)
            max_steps: Accepted-step limit; exceeding it counts as divergence
            max_rejections: Consecutive rejections tolerated before divergence
            max_position_norm: Radius beyond which the state is divergent [m]
        """
        self.aggregator = aggregator
        self.integrator = RungeKutta4() if integrator is None else integrator
        self.max_steps = max_steps
        self.max_rejections = max_rejections
        self.max_position_norm = max_position_norm
        self.last_summary: RunSummary | None = None
        self.control: TorqueLawState | None = None

    @staticmethod
    def _build_state(
        y: NDArray[np.float64], inertia: NDArray[np.float64], t: float,
    ) -> SatelliteState:
        """Unflatten an integrator state; a collapsed quaternion is divergence."""
        if np.linalg.norm(y[6:10]) < MIN_QUATERNION_NORM:
            raise IntegrationDivergence("Quaternion collapsed to zero length", time=t)
        return SatelliteState.from_array(y, inertia, time=t)

    def _check_state(self, state: SatelliteState) -> None:
        if not state.is_finite():
            raise IntegrationDivergence("State became non-finite", time=state.time)
        if state.radius > self.max_position_norm:
            raise IntegrationDivergence(
                f"Position norm {state.radius:.3e} m exceeds {self.max_position_norm:.3e} m",
                time=state.time,
            )

    def _attempt(
        self,
        integrator: Integrator,
        t: float,
        y: NDArray[np.float64],
        h: float,
        inertia: NDArray[np.float64],
        control: TorqueLawState | None,
    ) -> tuple[StepOutcome, float, int]:
        """Attempt a step, halving on rejection. Returns (outcome, h_used, rejections)."""

        def f(tau: float, y_stage: NDArray[np.float64]) -> NDArray[np.float64]:
            stage = self._build_state(y_stage, inertia, tau)
            return self.aggregator.compute_derivative(tau, stage, control).to_array()

        rejections = 0
        while True:
            try:
                return integrator.attempt(f, t, y, h), h, rejections
            except StepRejected as exc:
                rejections += 1
                logger.debug("%s; retrying with h=%.3e s", exc, h / 2)
                if rejections > self.max_rejections:
                    raise IntegrationDivergence(
                        f"{rejections} consecutive step rejections", time=t,
                    ) from exc
                h = h / 2

    def propagate(
        self,
        initial_state: SatelliteState,
        t_end: float,
        step_policy: Integrator | None = None,
        handlers: list[StepHandler] | tuple[StepHandler, ...] = (),
        cancel: CancellationToken | None = None,
    ) -> Iterator[SatelliteState]:
        """Lazily yield accepted states until ``t_end``.

        Args:
            initial_state: State at the start time
            t_end: End time [s]; must not precede the initial time
            step_policy: Integrator overriding the default for this run
            handlers: Step handlers notified after each accepted step
            cancel: Token checked at every step boundary

        Raises:
            DomainError: A provider was evaluated outside its domain
            IntegrationDivergence: The state diverged or steps kept failing

        Any other exception, including one raised by a step handler or by a
        handler's ``close()``, ends the run as ``FAILED`` and is re-raised
        after every handler has been closed.
        """
        integrator = self.integrator if step_policy is None else step_policy
        if t_end < initial_state.time:
            raise ValueError(f"t_end={t_end} precedes the initial time {initial_state.time}")

        start_time = initial_state.time
        state = initial_state.copy()
        inertia = state.inertia
        steps = 0
        rejected = 0
        reason = TerminationReason.COMPLETED
        error: Exception | None = None
        in_flight = False

        self.aggregator.reset()
        control = self.aggregator.initial_control(state)
        self.control = control
        h = integrator.initial_step(start_time, t_end)

        logger.info(
            "Propagating from t=%.3f s to t=%.3f s with %s", start_time, t_end, integrator.name,
        )
        try:
            for handler in handlers:
                handler.init(state, t_end)

            while state.time < t_end:
                if cancel is not None and cancel.is_cancelled:
                    reason = TerminationReason.CANCELLED
                    logger.info("Propagation cancelled at t=%.3f s", state.time)
                    break
                if steps >= self.max_steps:
                    raise IntegrationDivergence(
                        f"Step limit of {self.max_steps} reached", time=state.time,
                    )

                t = state.time
                h = min(h, t_end - t)
                outcome, h_used, rejections = self._attempt(
                    integrator, t, state.to_array(), h, inertia, control,
                )
                rejected += rejections

                t_new = t + h_used
                # Absorb round-off so the run lands exactly on t_end
                if t_end - t_new <= 1e-6 * h_used:
                    t_new = t_end
                new_state = self._build_state(outcome.y, inertia, t_new)
                self._check_state(new_state)

                control = self.aggregator.advance(t_new, new_state, control)
                self.control = control
                state = new_state
                steps += 1
                h = outcome.h_next

                is_last = state.time >= t_end
                for handler in handlers:
                    handler.handle(state, is_last)
                yield state

        except IntegrationDivergence as exc:
            reason, error = TerminationReason.DIVERGED, exc
            logger.error("Propagation diverged: %s", exc)
            raise
        except DomainError as exc:
            reason, error = TerminationReason.DOMAIN_ERROR, exc
            logger.error("Propagation stopped by domain error: %s", exc)
            raise
        except GeneratorExit:
            reason, in_flight = TerminationReason.CANCELLED, True
            raise
        except Exception as exc:
            reason, error = TerminationReason.FAILED, exc
            logger.error("Propagation failed: %s: %s", type(exc).__name__, exc)
            raise
        finally:
            close_error = self._close_handlers(handlers)
            if close_error is not None and error is None:
                reason, error = TerminationReason.FAILED, close_error
            self.last_summary = RunSummary(
                start_time=start_time,
                end_time=state.time,
                steps=steps,
                rejected_steps=rejected,
                reason=reason,
                error=error,
            )
            logger.info(
                "Propagation finished: %s after %d steps (%d rejected), t=%.3f s",
                reason.value, steps, rejected, state.time,
            )
            # An error already propagating takes precedence over a close error
            if close_error is not None and error is close_error and not in_flight:
                raise close_error

    @staticmethod
    def _close_handlers(handlers: list[StepHandler] | tuple[StepHandler, ...]) -> Exception | None:
        """Close every handler; return the first close error, log the rest."""
        first: Exception | None = None
        for handler in handlers:
            try:
                handler.close()
            except Exception as exc:
                logger.error("Step handler %s failed to close: %s", type(handler).__name__, exc)
                if first is None:
                    first = exc
        return first

    def run(
        self,
        initial_state: SatelliteState,
        t_end: float,
        step_policy: Integrator | None = None,
        handlers: list[StepHandler] | tuple[StepHandler, ...] = (),
        cancel: CancellationToken | None = None,
    ) -> RunSummary:
        """Propagate to completion and summarize.

        Divergence and domain errors end the run and are reported in the
        summary instead of being raised.
        """
        try:
            for _ in self.propagate(initial_state, t_end, step_policy, handlers, cancel):
                pass
        except (IntegrationDivergence, DomainError) as exc:
            # Already logged; the summary carries the error
            logger.debug("Run ended early: %s", type(exc).__name__)
        return self.last_summary
