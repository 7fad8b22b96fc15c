"""Dynamics module for coupled orbit/attitude simulation.

This module provides the state representation and the rigid-body equations
of motion. The aggregator that sums force and torque contributors lives in
:mod:`satsim.dynamics.aggregator`.

Example:
    >>> from satsim.dynamics import SatelliteState, TorqueToSpinEquation
    >>> import numpy as np
    >>>
    >>> state = SatelliteState.from_circular_orbit(
    ...     altitude=500e3, mass=1.04, inertia=np.diag([1.9e-3, 1.9e-3, 1.95e-3]),
    ... )
    >>> equation = TorqueToSpinEquation(state.inertia)
    >>> alpha = equation.angular_acceleration(state.angular_velocity, np.zeros(3))
"""

from satsim.dynamics.rigid_body import (
    TorqueToSpinEquation,
    euler_rotational_dynamics,
    quaternion_derivative,
    rot_acceleration_diagonal,
    translational_acceleration,
)
from satsim.dynamics.state import (
    IDENTITY_QUATERNION,
    STATE_SIZE,
    SatelliteState,
    StateDerivative,
    dcm_to_quaternion,
    normalize_quaternion,
    quaternion_angle,
    quaternion_conjugate,
    quaternion_error,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_to_dcm,
    quaternion_to_euler,
)

__all__ = [
    # State
    "SatelliteState",
    "StateDerivative",
    "STATE_SIZE",
    "IDENTITY_QUATERNION",
    # Quaternion utilities
    "quaternion_to_dcm",
    "dcm_to_quaternion",
    "quaternion_to_euler",
    "quaternion_from_axis_angle",
    "quaternion_multiply",
    "quaternion_conjugate",
    "quaternion_error",
    "quaternion_angle",
    "normalize_quaternion",
    # Rigid body dynamics
    "TorqueToSpinEquation",
    "quaternion_derivative",
    "euler_rotational_dynamics",
    "rot_acceleration_diagonal",
    "translational_acceleration",
]
