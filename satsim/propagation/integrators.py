"""Numerical integrators for the flat state vector.

Integrators advance ``y' = f(t, y)`` by one trial step. A fixed-step method
always accepts; an adaptive method raises :class:`StepRejected` when its
error estimate exceeds tolerance, leaving the caller to shrink the step and
retry from the same (t, y).

Methods:
- RungeKutta4: classical fourth-order Runge-Kutta, fixed step
- DormandPrince45: embedded 5(4) pair with error-controlled step size

Example:
    >>> rk4 = RungeKutta4(step_size=0.1)
    >>> outcome = rk4.attempt(f, t=0.0, y=y0, h=0.1)
    >>> y1 = outcome.y
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.errors import StepRejected

DerivativeFunction = Callable[[float, NDArray[np.float64]], NDArray[np.float64]]

DEFAULT_STEP = 0.1  # [s]


@beartype
@dataclass(frozen=True, eq=False)
class StepOutcome:
    """Result of an accepted trial step.

    Attributes:
        y: State at t + h
        h_next: Suggested size of the next step [s]
        error_norm: Scaled error estimate (0 for fixed-step methods)
    """
    y: NDArray[np.float64]
    h_next: float
    error_norm: float = 0.0


@runtime_checkable
class Integrator(Protocol):
    """One-step integration method."""

    name: str
    adaptive: bool

    def initial_step(self, t0: float, t_end: float) -> float:
        ...

    def attempt(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> StepOutcome:
        ...


# =============================================================================
# Classical Runge-Kutta
# =============================================================================


@beartype
class RungeKutta4:
    """Fixed-step classical Runge-Kutta (4th order)."""

    name = "rk4"
    adaptive = False

    def __init__(self, step_size: float = DEFAULT_STEP) -> None:
        if step_size <= 0:
            raise ValueError(f"Step size must be positive, got {step_size}")
        self.step_size = step_size

    def initial_step(self, t0: float, t_end: float) -> float:
        return self.step_size

    def attempt(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> StepOutcome:
        """Advance one RK4 step of size ``h``."""
        k1 = f(t, y)
        k2 = f(t + h/2, y + h/2 * k1)
        k3 = f(t + h/2, y + h/2 * k2)
        k4 = f(t + h, y + h * k3)

        y1 = y + (h / 6) * (k1 + 2*k2 + 2*k3 + k4)
        return StepOutcome(y=y1, h_next=self.step_size)


# =============================================================================
# Dormand-Prince 5(4)
# =============================================================================

# Butcher tableau
_C = np.array([0.0, 1/5, 3/10, 4/5, 8/9, 1.0, 1.0])
_A = (
    (),
    (1/5,),
    (3/40, 9/40),
    (44/45, -56/15, 32/9),
    (19372/6561, -25360/2187, 64448/6561, -212/729),
    (9017/3168, -355/33, 46732/5247, 49/176, -5103/18656),
    (35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84),
)
_B5 = np.array([35/384, 0.0, 500/1113, 125/192, -2187/6784, 11/84, 0.0])
_B4 = np.array([5179/57600, 0.0, 7571/16695, 393/640, -92097/339200, 187/2100, 1/40])
_E = _B5 - _B4


@beartype
class DormandPrince45:
    """Adaptive Dormand-Prince 5(4) integrator.

    The step is accepted when the RMS of the error estimate, scaled by
    ``atol + rtol * max(|y0|, |y1|)``, is at most one.

    Attributes:
        atol: Absolute tolerance
        rtol: Relative tolerance
        min_step: Smallest allowed step [s]
        max_step: Largest allowed step [s]
        first_step: Initial trial step, or None to use ``max_step / 100``
        safety: Safety factor of the step-size update
    """

    name = "dopri45"
    adaptive = True

    def __init__(
        self,
        atol: float = 1e-9,
        rtol: float = 1e-9,
        min_step: float = 1e-6,
        max_step: float = 60.0,
        first_step: float | None = None,
        safety: float = 0.9,
    ) -> None:
        if atol <= 0 or rtol < 0:
            raise ValueError("Tolerances must be positive")
        if not 0 < min_step <= max_step:
            raise ValueError(f"Need 0 < min_step <= max_step, got {min_step}, {max_step}")
        self.atol = atol
        self.rtol = rtol
        self.min_step = min_step
        self.max_step = max_step
        self.first_step = first_step
        self.safety = safety

    def initial_step(self, t0: float, t_end: float) -> float:
        h = self.max_step / 100.0 if self.first_step is None else self.first_step
        return float(np.clip(h, self.min_step, self.max_step))

    def _next_step(self, h: float, error_norm: float) -> float:
        if error_norm == 0.0:
            factor = 5.0
        else:
            factor = float(np.clip(self.safety * error_norm ** -0.2, 0.2, 5.0))
        return float(np.clip(h * factor, self.min_step, self.max_step))

    def attempt(
        self,
        f: DerivativeFunction,
        t: float,
        y: NDArray[np.float64],
        h: float,
    ) -> StepOutcome:
        """Advance one step of size ``h``.

        Raises:
            StepRejected: The error estimate exceeds tolerance (or is not finite)
        """
        k = np.empty((7, y.size))
        k[0] = f(t, y)
        for i in range(1, 7):
            y_stage = y + h * np.dot(_A[i], k[:i])
            k[i] = f(t + _C[i] * h, y_stage)

        y1 = y + h * np.dot(_B5, k)
        error = h * np.dot(_E, k)

        scale = self.atol + self.rtol * np.maximum(np.abs(y), np.abs(y1))
        error_norm = float(np.sqrt(np.mean((error / scale) ** 2)))

        if not np.isfinite(error_norm) or error_norm > 1.0:
            raise StepRejected(time=t, step_size=h, error_norm=error_norm)

        return StepOutcome(y=y1, h_next=self._next_step(h, error_norm), error_norm=error_norm)
