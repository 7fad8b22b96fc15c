"""Torque contributors and the phase-scheduled torque law.

Example:
    >>> from satsim.torques import AutomaticTorqueLaw, Phase, Transition, SpinRateBelow
    >>> from satsim.torques import BDotDetumble, PDAttitudeControl
    >>>
    >>> law = AutomaticTorqueLaw(
    ...     phases=[Phase("detumble", BDotDetumble(mag)), Phase("point", PDAttitudeControl())],
    ...     transitions=[Transition(0, SpinRateBelow(0.01), 1)],
    ... )
"""

from satsim.torques.base import TorqueContribution, TorqueModel
from satsim.torques.control import (
    BDotDetumble,
    ConstantTorque,
    ControlPolicy,
    EstimatingPolicy,
    FieldRateEstimate,
    PDAttitudeControl,
    SensedBDotDetumble,
    ZeroTorque,
)
from satsim.torques.disturbances import (
    GravityGradientTorque,
    RandomTorqueDisturbance,
    ResidualMagneticTorque,
)
from satsim.torques.law import (
    AttitudeErrorBelow,
    AutomaticTorqueLaw,
    ElapsedInPhase,
    Phase,
    SimulationTimeAfter,
    SpinRateBelow,
    TorqueLawState,
    Transition,
    TransitionCondition,
    detumble_then_point,
)
from satsim.torques.scenario import ScenarioStep, TorqueScenario

__all__ = [
    # Interface
    "TorqueModel",
    "TorqueContribution",
    # Scenario
    "TorqueScenario",
    "ScenarioStep",
    # Disturbances
    "GravityGradientTorque",
    "ResidualMagneticTorque",
    "RandomTorqueDisturbance",
    # Control policies
    "ControlPolicy",
    "ZeroTorque",
    "ConstantTorque",
    "PDAttitudeControl",
    "BDotDetumble",
    "SensedBDotDetumble",
    "EstimatingPolicy",
    "FieldRateEstimate",
    # Torque law
    "AutomaticTorqueLaw",
    "TorqueLawState",
    "Phase",
    "Transition",
    "TransitionCondition",
    "SpinRateBelow",
    "ElapsedInPhase",
    "AttitudeErrorBelow",
    "SimulationTimeAfter",
    "detumble_then_point",
]
