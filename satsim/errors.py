"""Exception taxonomy for satsim.

All simulation failures derive from :class:`SatSimError` so callers can catch
one type at the run boundary.

- DomainError: a model was queried outside its valid input range
- IntegrationDivergence: the state became non-finite or unbounded
- StepRejected: adaptive step failed its local error check (recovered locally)
- ConfigurationError: invalid setup, raised before any propagation
"""

import numpy as np
from numpy.typing import NDArray


class SatSimError(Exception):
    """Base class for all satsim errors."""


class ConfigurationError(SatSimError):
    """Invalid or conflicting configuration detected before propagation."""


class DomainError(SatSimError):
    """A field, force or torque model was evaluated outside its valid domain.

    Attributes:
        time: Simulation time of the failed evaluation [s]
        position: Inertial position of the failed evaluation [m]
    """

    def __init__(
        self,
        message: str,
        time: float | None = None,
        position: NDArray[np.float64] | None = None,
    ) -> None:
        self.time = time
        self.position = None if position is None else np.array(position, dtype=np.float64)
        details = []
        if time is not None:
            details.append(f"t={time:.6f} s")
        if self.position is not None:
            details.append(f"r={np.array2string(self.position, precision=3)} m")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class IntegrationDivergence(SatSimError):
    """The integrated state became non-finite, unbounded, or uncontrollable."""

    def __init__(self, message: str, time: float | None = None) -> None:
        self.time = time
        if time is not None:
            message = f"{message} (t={time:.6f} s)"
        super().__init__(message)


class StepRejected(SatSimError):
    """Adaptive step rejected by the local error test.

    Handled inside the integrator by shrinking the step; it escapes only as
    the cause of an IntegrationDivergence when retries are exhausted.
    """

    def __init__(self, time: float, step_size: float, error_norm: float) -> None:
        self.time = time
        self.step_size = step_size
        self.error_norm = error_norm
        super().__init__(
            f"Step rejected at t={time:.6f} s with h={step_size:.3e} s "
            f"(error norm {error_norm:.3e})"
        )
