"""Rigid-body equations of motion for a satellite.

The equations use:
- Newton's second law for translational motion: F = m * a
- Euler's equations for rotational motion: M = I * alpha + omega x (I * omega)
- Quaternion kinematics for attitude propagation: q_dot = 0.5 * q (x) [0, omega]

The torque-to-spin relation lives in :class:`TorqueToSpinEquation` so the
gyroscopic coupling can be tested on its own.

Example:
    >>> import numpy as np
    >>> from satsim.dynamics import TorqueToSpinEquation
    >>>
    >>> equation = TorqueToSpinEquation(np.diag([1.9e-3, 1.9e-3, 2.0e-3]))
    >>> alpha = equation.angular_acceleration(
    ...     spin=np.array([0.1, 0.0, 0.05]),
    ...     torque=np.array([0.0, 1e-6, 0.0]),
    ... )
"""

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

# =============================================================================
# Numba-Optimized Kernels
# =============================================================================


@njit(cache=True)
def _euler_diagonal(
    wx: float, wy: float, wz: float,
    mx: float, my: float, mz: float,
    Ixx: float, Iyy: float, Izz: float,
) -> tuple[float, float, float]:
    """Euler's equations for a principal-axis (diagonal) inertia tensor."""
    return (
        (mx - (Izz - Iyy) * wy * wz) / Ixx,
        (my - (Ixx - Izz) * wz * wx) / Iyy,
        (mz - (Iyy - Ixx) * wx * wy) / Izz,
    )


@njit(cache=True)
def _quaternion_rate(
    q0: float, q1: float, q2: float, q3: float,
    wx: float, wy: float, wz: float,
) -> tuple[float, float, float, float]:
    """0.5 * q (x) [0, w] expanded component by component."""
    return (
        0.5 * (-wx*q1 - wy*q2 - wz*q3),
        0.5 * (wx*q0 + wz*q2 - wy*q3),
        0.5 * (wy*q0 - wz*q1 + wx*q3),
        0.5 * (wz*q0 + wy*q1 - wx*q2),
    )


# =============================================================================
# Rigid Body Dynamics
# =============================================================================


@beartype
def quaternion_derivative(
    q: NDArray[np.float64],
    omega: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Quaternion time derivative from the body angular velocity.

    Args:
        q: Attitude quaternion [q0, q1, q2, q3] (inertial -> body)
        omega: Angular velocity in the body frame [rad/s]

    Returns:
        dq/dt
    """
    return np.array(_quaternion_rate(
        float(q[0]), float(q[1]), float(q[2]), float(q[3]),
        float(omega[0]), float(omega[1]), float(omega[2]),
    ))


@beartype
def euler_rotational_dynamics(
    omega: NDArray[np.float64],
    moment: NDArray[np.float64],
    inertia: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Angular acceleration from Euler's equations (general inertia tensor).

    Euler's equations: I * omega_dot = M - omega x (I * omega)

    Args:
        omega: Angular velocity in the body frame [rad/s]
        moment: Total applied torque in the body frame [N*m]
        inertia: 3x3 inertia tensor [kg*m^2]

    Returns:
        Angular acceleration [rad/s^2]
    """
    gyroscopic = np.cross(omega, inertia @ omega)
    return np.linalg.solve(inertia, moment - gyroscopic)


@beartype
def rot_acceleration_diagonal(
    omega: NDArray[np.float64],
    moment: NDArray[np.float64],
    principal_moments: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Angular acceleration for a body expressed in its principal axes.

    Component form of Euler's equations:
        w1_dot = (M1 - (I3 - I2) * w2 * w3) / I1
        w2_dot = (M2 - (I1 - I3) * w3 * w1) / I2
        w3_dot = (M3 - (I2 - I1) * w1 * w2) / I3
    """
    return np.array(_euler_diagonal(
        float(omega[0]), float(omega[1]), float(omega[2]),
        float(moment[0]), float(moment[1]), float(moment[2]),
        float(principal_moments[0]), float(principal_moments[1]), float(principal_moments[2]),
    ))


@beartype
def translational_acceleration(
    total_force: NDArray[np.float64],
    mass: float,
) -> NDArray[np.float64]:
    """Newton's second law, a = F / m (inertial frame)."""
    return total_force / mass


@beartype
class TorqueToSpinEquation:
    """Torque to angular-acceleration relation of a rigid body.

    Dispatches to the principal-axis kernel when the inertia tensor is
    diagonal and to a linear solve otherwise; both include the gyroscopic
    coupling term omega x (I * omega).
    """

    def __init__(self, inertia: NDArray[np.float64]) -> None:
        """Initialize the equation.

        Args:
            inertia: 3x3 inertia tensor in the body frame [kg*m^2]
        """
        self.inertia = np.asarray(inertia, dtype=np.float64)
        off_diagonal = self.inertia - np.diag(np.diag(self.inertia))
        self.is_diagonal = bool(np.all(off_diagonal == 0.0))
        self._principal = np.diag(self.inertia).copy()

    def angular_acceleration(
        self,
        spin: NDArray[np.float64],
        torque: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Angular acceleration [rad/s^2] for the given spin and total torque."""
        if self.is_diagonal:
            return rot_acceleration_diagonal(spin, torque, self._principal)
        return euler_rotational_dynamics(spin, torque, self.inertia)

    def gyroscopic_torque(self, spin: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gyroscopic term omega x (I * omega) [N*m]."""
        return np.cross(spin, self.inertia @ spin)
