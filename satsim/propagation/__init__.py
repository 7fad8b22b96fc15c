"""Propagation engine, integrators, step handlers and ephemeris.

Example:
    >>> from satsim.propagation import Propagator, DormandPrince45, EphemerisRecorder
    >>>
    >>> recorder = EphemerisRecorder()
    >>> propagator = Propagator(aggregator, DormandPrince45(atol=1e-6, rtol=1e-9))
    >>> summary = propagator.run(state, t_end=5400.0, handlers=[recorder])
    >>> df = recorder.ephemeris.to_dataframe()
"""

from satsim.propagation.ephemeris import Ephemeris, EphemerisEntry
from satsim.propagation.integrators import (
    DormandPrince45,
    Integrator,
    RungeKutta4,
    StepOutcome,
)
from satsim.propagation.propagator import (
    CancellationToken,
    Propagator,
    RunSummary,
    TerminationReason,
)
from satsim.propagation.step_handler import (
    AsyncStepHandler,
    CallbackStepHandler,
    DecimatingStepHandler,
    EphemerisRecorder,
    ProgressStepHandler,
    StepHandler,
)

__all__ = [
    # Integrators
    "Integrator",
    "RungeKutta4",
    "DormandPrince45",
    "StepOutcome",
    # Propagator
    "Propagator",
    "RunSummary",
    "TerminationReason",
    "CancellationToken",
    # Step handlers
    "StepHandler",
    "EphemerisRecorder",
    "AsyncStepHandler",
    "CallbackStepHandler",
    "DecimatingStepHandler",
    "ProgressStepHandler",
    # Ephemeris
    "Ephemeris",
    "EphemerisEntry",
]
