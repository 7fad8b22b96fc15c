"""Control policies used as torque-law phases.

Each policy maps the current state and guidance command to a body torque.
Policies are stateless. Their memory (the integral of the attitude error,
or the sensor history of :class:`SensedBDotDetumble`) is passed in from the
torque-law state and updated only after accepted steps.

Policies:
- ZeroTorque: no actuation
- ConstantTorque: fixed body torque
- PDAttitudeControl: quaternion-error PD (optionally PID) with saturation
- BDotDetumble: magnetorquer B-dot rate damping from the true spin
- SensedBDotDetumble: B-dot from filtered magnetometer differences

Example:
    >>> pd = PDAttitudeControl(kp=2e-4, kd=8e-4, max_torque=1e-3)
    >>> tau = pd.torque(t, state, body, command, np.zeros(3))
"""

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import IDENTITY_QUATERNION, SatelliteState, quaternion_error
from satsim.environment.magnetic import DipoleMagneticField
from satsim.environment.model import Environment
from satsim.guidance.base import GuidanceCommand
from satsim.satellite.body import SatelliteBody
from satsim.satellite.sensors import Magnetometer

DEFAULT_BDOT_GAIN = 5.4e4  # [A*m^2*s/T]
DEFAULT_BDOT_TIME_CONSTANT = 5.0  # [s]
DEFAULT_BDOT_SAMPLE_PERIOD = 0.1  # [s]
SAMPLE_TOLERANCE = 1e-9  # [s]


@runtime_checkable
class ControlPolicy(Protocol):
    """Torque policy of one torque-law phase."""

    name: str

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        ...


@beartype
@dataclass(frozen=True, eq=False)
class FieldRateEstimate:
    """Sensor memory of the magnetometer-driven B-dot estimator.

    Attributes:
        time: Time of the last magnetometer sample [s]
        field: Last measured body-frame field [T]
        rate: Low-pass filtered field derivative [T/s]
        dipole: Dipole commanded at the last sample [A*m^2]
    """
    time: float
    field: NDArray[np.float64]
    rate: NDArray[np.float64]
    dipole: NDArray[np.float64]

    def __post_init__(self) -> None:
        for name in ("field", "rate", "dipole"):
            value = np.array(getattr(self, name), dtype=np.float64)
            value.setflags(write=False)
            object.__setattr__(self, name, value)


@runtime_checkable
class EstimatingPolicy(Protocol):
    """Policy whose torque comes from sensor memory sampled at accepted steps."""

    def initial_estimate(self, t: float, state: SatelliteState) -> FieldRateEstimate:
        ...

    def update_estimate(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        estimate: FieldRateEstimate,
    ) -> FieldRateEstimate:
        ...

    def held_torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        estimate: FieldRateEstimate | None,
    ) -> NDArray[np.float64]:
        ...

    def update_integral(
        self,
        dt: float,
        state: SatelliteState,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        ...


# =============================================================================
# Open-Loop Policies
# =============================================================================


@beartype
class ZeroTorque:
    """No actuation."""

    def __init__(self, name: str = "zero") -> None:
        self.name = name

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return np.zeros(3)

    def update_integral(
        self,
        dt: float,
        state: SatelliteState,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return integral


@beartype
class ConstantTorque(ZeroTorque):
    """Fixed body-frame torque [N*m]."""

    def __init__(self, torque: NDArray[np.float64], name: str = "constant") -> None:
        super().__init__(name)
        self.value = np.array(torque, dtype=np.float64)

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return self.value.copy()


# =============================================================================
# Attitude Control
# =============================================================================


@beartype
class PDAttitudeControl:
    """Quaternion-feedback attitude controller.

    Control law (body frame):
        tau = -kp * e - kd * (w - w_ref) - ki * integral(e)

    where ``e`` is the vector part of the error quaternion between the
    current and the commanded attitude. Each axis is saturated at
    ``max_torque``; the integral is clamped at ``integral_limit`` to avoid
    windup.

    Attributes:
        kp: Proportional gain [N*m]
        kd: Derivative gain [N*m*s]
        ki: Integral gain [N*m/s]
        max_torque: Per-axis saturation [N*m], None for unlimited
        integral_limit: Per-axis clamp on the integral [s], None for unlimited
    """

    def __init__(
        self,
        kp: float = 2.0e-4,
        kd: float = 8.0e-4,
        ki: float = 0.0,
        max_torque: float | None = None,
        integral_limit: float | None = None,
        name: str = "pd_attitude",
    ) -> None:
        self.kp = kp
        self.kd = kd
        self.ki = ki
        self.max_torque = max_torque
        self.integral_limit = integral_limit
        self.name = name

    @staticmethod
    def _reference(
        command: GuidanceCommand | None,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        if command is None:
            return IDENTITY_QUATERNION, np.zeros(3)
        return command.target_quaternion, command.target_angular_velocity

    def attitude_error(
        self,
        state: SatelliteState,
        command: GuidanceCommand | None,
    ) -> NDArray[np.float64]:
        """Vector part of the error quaternion."""
        q_ref, _ = self._reference(command)
        return quaternion_error(state.quaternion, q_ref)[1:4]

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        _, w_ref = self._reference(command)
        error = self.attitude_error(state, command)
        rate_error = state.angular_velocity - w_ref

        tau = -self.kp * error - self.kd * rate_error - self.ki * integral

        if self.max_torque is not None:
            tau = np.clip(tau, -self.max_torque, self.max_torque)
        return tau

    def update_integral(
        self,
        dt: float,
        state: SatelliteState,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        if self.ki == 0.0 or dt <= 0:
            return integral

        updated = integral + self.attitude_error(state, command) * dt
        if self.integral_limit is not None:
            updated = np.clip(updated, -self.integral_limit, self.integral_limit)
        return updated


@beartype
class BDotDetumble:
    """Magnetorquer rate damping.

    The field derivative seen in the body frame is estimated from the spin,
    dB/dt ~ -w x B, which neglects the slow orbital variation of the field.
    The commanded dipole m = -k * dB/dt is clipped per axis at the body's
    ``max_dipole`` and produces tau = m x B.
    """

    def __init__(
        self,
        magnetic: DipoleMagneticField,
        gain: float = DEFAULT_BDOT_GAIN,
        name: str = "bdot",
    ) -> None:
        self.magnetic = magnetic
        self.gain = gain
        self.name = name

    def dipole(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Commanded dipole [A*m^2] and body-frame field [T]."""
        b_body = state.vector_to_body(self.magnetic.field(t, state.position))
        b_dot = -np.cross(state.angular_velocity, b_body)
        m = np.clip(-self.gain * b_dot, -body.max_dipole, body.max_dipole)
        return m, b_body

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        m, b_body = self.dipole(t, state, body)
        return np.cross(m, b_body)

    def update_integral(
        self,
        dt: float,
        state: SatelliteState,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return integral


@beartype
class SensedBDotDetumble:
    """Magnetorquer rate damping driven by magnetometer readings.

    At each sample the field derivative is the first-order difference of two
    noisy body-frame readings, smoothed by a first-order low-pass filter:

        rate = alpha * rate + (1 - alpha) * (B_k - B_{k-1}) / dt
        alpha = exp(-dt / time_constant)

    The dipole m = -k * rate is clipped per axis at the body's ``max_dipole``
    and held until the next sample. Between samples the torque is m x B with
    the true field. Samples are taken at accepted steps at least
    ``sample_period`` apart.
    """

    def __init__(
        self,
        magnetometer: Magnetometer,
        environment: Environment,
        gain: float = DEFAULT_BDOT_GAIN,
        time_constant: float = DEFAULT_BDOT_TIME_CONSTANT,
        sample_period: float = DEFAULT_BDOT_SAMPLE_PERIOD,
        name: str = "bdot",
    ) -> None:
        if time_constant <= 0:
            raise ValueError(f"Filter time constant must be positive, got {time_constant}")
        if sample_period < 0:
            raise ValueError(f"Sample period must be non-negative, got {sample_period}")
        self.magnetometer = magnetometer
        self.environment = environment
        self.gain = gain
        self.time_constant = time_constant
        self.sample_period = sample_period
        self.name = name

    def reset(self) -> None:
        self.magnetometer.reset()

    def initial_estimate(self, t: float, state: SatelliteState) -> FieldRateEstimate:
        """First reading; no rate is known yet so no dipole is commanded."""
        return FieldRateEstimate(
            time=t,
            field=self.magnetometer.sample(t, state, self.environment),
            rate=np.zeros(3),
            dipole=np.zeros(3),
        )

    def update_estimate(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        estimate: FieldRateEstimate,
    ) -> FieldRateEstimate:
        """Take a sample if one is due and recompute the held dipole."""
        dt = t - estimate.time
        if dt <= 0.0 or dt < self.sample_period - SAMPLE_TOLERANCE:
            return estimate

        measured = self.magnetometer.sample(t, state, self.environment)
        alpha = math.exp(-dt / self.time_constant)
        rate = alpha * estimate.rate + (1.0 - alpha) * (measured - estimate.field) / dt
        dipole = np.clip(-self.gain * rate, -body.max_dipole, body.max_dipole)
        return FieldRateEstimate(time=t, field=measured, rate=rate, dipole=dipole)

    def held_torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        estimate: FieldRateEstimate | None,
    ) -> NDArray[np.float64]:
        if estimate is None:
            return np.zeros(3)
        b_body = state.vector_to_body(self.environment.magnetic.field(t, state.position))
        return np.cross(estimate.dipole, b_body)

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        # No dipole is held without sensor memory
        return np.zeros(3)

    def update_integral(
        self,
        dt: float,
        state: SatelliteState,
        command: GuidanceCommand | None,
        integral: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return integral
