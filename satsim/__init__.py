"""satsim - Coupled orbit and attitude simulation of a rigid satellite.

Integrates translational and rotational dynamics together under a
configurable set of forces, torques and a phase-scheduled control law,
recording a time-stamped ephemeris of the full state.

Example:
    >>> from satsim import Simulation, SimulationConfig
    >>>
    >>> config = SimulationConfig.from_dict({
    ...     "duration": 5400,
    ...     "forces": {"gravity_degree": 2, "drag": True},
    ...     "torques": {"law": "detumble_then_point"},
    ...     "initial_state": {"altitude": 500e3, "angular_velocity": [0.1, -0.05, 0.08]},
    ... })
    >>> result = Simulation.from_config(config).run()
    >>> df = result.to_dataframe()
"""

__version__ = "0.1.0"

from satsim.config import (
    BodyConfig,
    CircularOrbitConfig,
    ForceConfig,
    GuidanceConfig,
    InitialStateConfig,
    IntegratorConfig,
    OrbitalElementsConfig,
    SimulationConfig,
    TorqueConfig,
)
from satsim.dynamics.aggregator import DynamicsAggregator
from satsim.dynamics.state import SatelliteState, StateDerivative
from satsim.environment import Environment, EnvironmentSample
from satsim.errors import (
    ConfigurationError,
    DomainError,
    IntegrationDivergence,
    SatSimError,
    StepRejected,
)
from satsim.log import configure_logging
from satsim.propagation import (
    CancellationToken,
    DormandPrince45,
    Ephemeris,
    EphemerisRecorder,
    Propagator,
    RunSummary,
    RungeKutta4,
    TerminationReason,
)
from satsim.satellite import SatelliteBody
from satsim.simulation import Simulation, SimulationResult

__all__ = [
    "__version__",
    # Configuration
    "SimulationConfig",
    "IntegratorConfig",
    "ForceConfig",
    "TorqueConfig",
    "GuidanceConfig",
    "BodyConfig",
    "InitialStateConfig",
    "CircularOrbitConfig",
    "OrbitalElementsConfig",
    # State and dynamics
    "SatelliteState",
    "StateDerivative",
    "SatelliteBody",
    "DynamicsAggregator",
    "Environment",
    "EnvironmentSample",
    # Propagation
    "Propagator",
    "RungeKutta4",
    "DormandPrince45",
    "RunSummary",
    "TerminationReason",
    "CancellationToken",
    "Ephemeris",
    "EphemerisRecorder",
    # Simulation
    "Simulation",
    "SimulationResult",
    # Errors
    "SatSimError",
    "ConfigurationError",
    "DomainError",
    "IntegrationDivergence",
    "StepRejected",
    # Logging
    "configure_logging",
]
