"""Satellite state vector and quaternion utilities.

The state vector contains:
- Position (3): [x, y, z] in the Earth-centred inertial (ECI) frame [m]
- Velocity (3): [vx, vy, vz] in the ECI frame [m/s]
- Quaternion (4): [q0, q1, q2, q3] attitude, scalar-first, ECI -> body
- Angular velocity (3): [wx, wy, wz] spin in the body frame [rad/s]
- Mass (1): satellite mass [kg]

Total: 14 integrated variables. The inertia tensor travels with the state but
is not integrated (no mass-depletion model).

Quaternion convention:
- Scalar-first: q = [q0, q1, q2, q3] where q0 is the scalar part
- Represents the rotation from the inertial frame to the body frame
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.environment.gravity import MU_EARTH, R_EARTH_EQ

STATE_SIZE = 14

IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])

# =============================================================================
# Quaternion Utilities
# =============================================================================


@beartype
def normalize_quaternion(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale a quaternion to unit length.

    Raises:
        ValueError: If the quaternion has (near) zero length
    """
    norm = np.linalg.norm(q)
    if norm < 1e-12:
        raise ValueError("Cannot normalize a zero-length quaternion")
    return q / norm


@beartype
def quaternion_multiply(q1: NDArray[np.float64], q2: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product q1 (x) q2 of two scalar-first quaternions."""
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
    ])


@beartype
def quaternion_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Quaternion conjugate (the inverse of a unit quaternion)."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


@beartype
def quaternion_to_dcm(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Direction cosine matrix of a quaternion.

    Args:
        q: Quaternion [q0, q1, q2, q3] describing the rotation frame A -> frame B

    Returns:
        3x3 matrix mapping vector components in A to components in B
    """
    q0, q1, q2, q3 = normalize_quaternion(q)

    return np.array([
        [1 - 2*(q2**2 + q3**2), 2*(q1*q2 + q0*q3), 2*(q1*q3 - q0*q2)],
        [2*(q1*q2 - q0*q3), 1 - 2*(q1**2 + q3**2), 2*(q2*q3 + q0*q1)],
        [2*(q1*q3 + q0*q2), 2*(q2*q3 - q0*q1), 1 - 2*(q1**2 + q2**2)],
    ])


@beartype
def dcm_to_quaternion(dcm: NDArray[np.float64]) -> NDArray[np.float64]:
    """Quaternion of a direction cosine matrix (inverse of quaternion_to_dcm).

    Uses Shepperd's method, branching on the largest diagonal term.
    """
    trace = np.trace(dcm)

    if trace > 0:
        s = 2.0 * np.sqrt(trace + 1.0)
        q0 = 0.25 * s
        q1 = (dcm[1, 2] - dcm[2, 1]) / s
        q2 = (dcm[2, 0] - dcm[0, 2]) / s
        q3 = (dcm[0, 1] - dcm[1, 0]) / s
    elif dcm[0, 0] > dcm[1, 1] and dcm[0, 0] > dcm[2, 2]:
        s = 2.0 * np.sqrt(1.0 + dcm[0, 0] - dcm[1, 1] - dcm[2, 2])
        q0 = (dcm[1, 2] - dcm[2, 1]) / s
        q1 = 0.25 * s
        q2 = (dcm[0, 1] + dcm[1, 0]) / s
        q3 = (dcm[0, 2] + dcm[2, 0]) / s
    elif dcm[1, 1] > dcm[2, 2]:
        s = 2.0 * np.sqrt(1.0 + dcm[1, 1] - dcm[0, 0] - dcm[2, 2])
        q0 = (dcm[2, 0] - dcm[0, 2]) / s
        q1 = (dcm[0, 1] + dcm[1, 0]) / s
        q2 = 0.25 * s
        q3 = (dcm[1, 2] + dcm[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + dcm[2, 2] - dcm[0, 0] - dcm[1, 1])
        q0 = (dcm[0, 1] - dcm[1, 0]) / s
        q1 = (dcm[0, 2] + dcm[2, 0]) / s
        q2 = (dcm[1, 2] + dcm[2, 1]) / s
        q3 = 0.25 * s

    q = np.array([q0, q1, q2, q3], dtype=np.float64)
    if q[0] < 0:
        q = -q
    return normalize_quaternion(q)


@beartype
def quaternion_from_axis_angle(axis: NDArray[np.float64], angle: float) -> NDArray[np.float64]:
    """Quaternion of a rotation by ``angle`` [rad] about ``axis``."""
    axis = axis / np.linalg.norm(axis)
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis])


@beartype
def quaternion_error(
    q_current: NDArray[np.float64],
    q_target: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Error quaternion rotating the target body frame onto the current one.

    The result is expressed in the current body frame and sign-fixed so the
    scalar part is non-negative (shortest rotation).
    """
    q_err = quaternion_multiply(quaternion_conjugate(q_target), q_current)
    if q_err[0] < 0:
        q_err = -q_err
    return q_err


@beartype
def quaternion_angle(q_error: NDArray[np.float64]) -> float:
    """Rotation angle [rad] of a (unit) error quaternion, in [0, pi]."""
    w = float(np.clip(abs(q_error[0]), 0.0, 1.0))
    return 2.0 * float(np.arccos(w))


@beartype
def quaternion_to_euler(q: NDArray[np.float64]) -> tuple[float, float, float]:
    """ZYX Euler angles (roll, pitch, yaw) [rad] of an inertial -> body quaternion."""
    q0, q1, q2, q3 = normalize_quaternion(q)

    roll = np.arctan2(2 * (q0 * q1 + q2 * q3), 1 - 2 * (q1**2 + q2**2))

    # Clamp at the gimbal-lock singularity
    sinp = 2 * (q0 * q2 - q3 * q1)
    pitch = np.copysign(np.pi / 2, sinp) if abs(sinp) >= 1 else np.arcsin(sinp)

    yaw = np.arctan2(2 * (q0 * q3 + q1 * q2), 1 - 2 * (q2**2 + q3**2))

    return float(roll), float(pitch), float(yaw)


# =============================================================================
# State Classes
# =============================================================================


@beartype
@dataclass
class SatelliteState:
    """Full satellite state at one instant.

    Attributes:
        position: [x, y, z] inertial position [m]
        velocity: [vx, vy, vz] inertial velocity [m/s]
        quaternion: [q0, q1, q2, q3] attitude, inertial -> body (scalar-first)
        angular_velocity: [wx, wy, wz] body spin rates [rad/s]
        mass: satellite mass [kg]
        inertia: 3x3 inertia tensor in the body frame [kg*m^2]
        time: simulation time since the run epoch [s]
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    quaternion: NDArray[np.float64]
    angular_velocity: NDArray[np.float64]
    mass: float
    inertia: NDArray[np.float64]
    time: float = 0.0

    def __post_init__(self) -> None:
        """Coerce arrays, check shapes and normalize the quaternion."""
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)
        self.quaternion = np.asarray(self.quaternion, dtype=np.float64)
        self.angular_velocity = np.asarray(self.angular_velocity, dtype=np.float64)
        self.inertia = np.asarray(self.inertia, dtype=np.float64)

        if self.position.shape != (3,):
            raise ValueError(f"Position must be shape (3,), got {self.position.shape}")
        if self.velocity.shape != (3,):
            raise ValueError(f"Velocity must be shape (3,), got {self.velocity.shape}")
        if self.quaternion.shape != (4,):
            raise ValueError(f"Quaternion must be shape (4,), got {self.quaternion.shape}")
        if self.angular_velocity.shape != (3,):
            raise ValueError(f"Angular velocity must be shape (3,), got {self.angular_velocity.shape}")
        if self.inertia.shape != (3, 3):
            raise ValueError(f"Inertia must be shape (3, 3), got {self.inertia.shape}")

        # Non-finite quaternions are left alone so divergence can be detected
        if np.all(np.isfinite(self.quaternion)):
            self.quaternion = normalize_quaternion(self.quaternion)

    @classmethod
    def from_circular_orbit(
        cls,
        altitude: float,
        mass: float,
        inertia: NDArray[np.float64],
        inclination_deg: float = 0.0,
        raan_deg: float = 0.0,
        arg_latitude_deg: float = 0.0,
        quaternion: NDArray[np.float64] | None = None,
        angular_velocity: NDArray[np.float64] | None = None,
        mu: float = MU_EARTH,
    ) -> "SatelliteState":
        """Create a state on a circular orbit.

        Args:
            altitude: Orbit altitude above the equatorial radius [m]
            mass: Satellite mass [kg]
            inertia: 3x3 inertia tensor [kg*m^2]
            inclination_deg: Orbital inclination [degrees]
            raan_deg: Right ascension of the ascending node [degrees]
            arg_latitude_deg: Argument of latitude at t=0 [degrees]
            quaternion: Initial attitude (identity if omitted)
            angular_velocity: Initial body rates (zero if omitted)
            mu: Gravitational parameter of the central body [m^3/s^2]
        """
        r = R_EARTH_EQ + altitude
        v = np.sqrt(mu / r)

        inc = np.radians(inclination_deg)
        raan = np.radians(raan_deg)
        u = np.radians(arg_latitude_deg)

        r_orbital = r * np.array([np.cos(u), np.sin(u), 0.0])
        v_orbital = v * np.array([-np.sin(u), np.cos(u), 0.0])

        R_raan = np.array([
            [np.cos(raan), -np.sin(raan), 0.0],
            [np.sin(raan), np.cos(raan), 0.0],
            [0.0, 0.0, 1.0],
        ])
        R_inc = np.array([
            [1.0, 0.0, 0.0],
            [0.0, np.cos(inc), -np.sin(inc)],
            [0.0, np.sin(inc), np.cos(inc)],
        ])
        R = R_raan @ R_inc

        return cls(
            position=R @ r_orbital,
            velocity=R @ v_orbital,
            quaternion=IDENTITY_QUATERNION.copy() if quaternion is None else quaternion,
            angular_velocity=np.zeros(3) if angular_velocity is None else angular_velocity,
            mass=mass,
            inertia=inertia,
            time=0.0,
        )

    @classmethod
    def from_orbital_elements(
        cls,
        semi_major_axis: float,
        eccentricity: float,
        mass: float,
        inertia: NDArray[np.float64],
        inclination_deg: float = 0.0,
        raan_deg: float = 0.0,
        arg_perigee_deg: float = 0.0,
        true_anomaly_deg: float = 0.0,
        quaternion: NDArray[np.float64] | None = None,
        angular_velocity: NDArray[np.float64] | None = None,
        mu: float = MU_EARTH,
    ) -> "SatelliteState":
        """Create a state from classical Keplerian elements (closed orbits).

        Position and velocity are built in the perifocal frame and rotated to
        the inertial frame by the 3-1-3 sequence (RAAN, inclination,
        argument of perigee).

        Args:
            semi_major_axis: Semi-major axis [m]
            eccentricity: Eccentricity, 0 <= e < 1
            mass: Satellite mass [kg]
            inertia: 3x3 inertia tensor [kg*m^2]
            inclination_deg: Orbital inclination [degrees]
            raan_deg: Right ascension of the ascending node [degrees]
            arg_perigee_deg: Argument of perigee [degrees]
            true_anomaly_deg: True anomaly at t=0 [degrees]
            quaternion: Initial attitude (identity if omitted)
            angular_velocity: Initial body rates (zero if omitted)
            mu: Gravitational parameter of the central body [m^3/s^2]

        Raises:
            ValueError: If the elements do not describe a closed orbit
        """
        if semi_major_axis <= 0 or not 0.0 <= eccentricity < 1.0:
            raise ValueError(
                f"Need a > 0 and 0 <= e < 1, got a={semi_major_axis}, e={eccentricity}"
            )
        p = semi_major_axis * (1.0 - eccentricity**2)
        nu = np.radians(true_anomaly_deg)
        r = p / (1.0 + eccentricity * np.cos(nu))

        r_pqw = r * np.array([np.cos(nu), np.sin(nu), 0.0])
        v_pqw = np.sqrt(mu / p) * np.array([-np.sin(nu), eccentricity + np.cos(nu), 0.0])

        raan = np.radians(raan_deg)
        inc = np.radians(inclination_deg)
        argp = np.radians(arg_perigee_deg)
        R_raan = np.array([
            [np.cos(raan), -np.sin(raan), 0.0],
            [np.sin(raan), np.cos(raan), 0.0],
            [0.0, 0.0, 1.0],
        ])
        R_inc = np.array([
            [1.0, 0.0, 0.0],
            [0.0, np.cos(inc), -np.sin(inc)],
            [0.0, np.sin(inc), np.cos(inc)],
        ])
        R_argp = np.array([
            [np.cos(argp), -np.sin(argp), 0.0],
            [np.sin(argp), np.cos(argp), 0.0],
            [0.0, 0.0, 1.0],
        ])
        R = R_raan @ R_inc @ R_argp

        return cls(
            position=R @ r_pqw,
            velocity=R @ v_pqw,
            quaternion=IDENTITY_QUATERNION.copy() if quaternion is None else quaternion,
            angular_velocity=np.zeros(3) if angular_velocity is None else angular_velocity,
            mass=mass,
            inertia=inertia,
            time=0.0,
        )

    def to_array(self) -> NDArray[np.float64]:
        """Flatten the integrated part of the state."""
        return np.concatenate([
            self.position,
            self.velocity,
            self.quaternion,
            self.angular_velocity,
            [self.mass],
        ])

    @classmethod
    def from_array(
        cls,
        arr: NDArray[np.float64],
        inertia: NDArray[np.float64],
        time: float = 0.0,
    ) -> "SatelliteState":
        """Rebuild a state from its flat array form."""
        return cls(
            position=arr[0:3],
            velocity=arr[3:6],
            quaternion=arr[6:10],
            angular_velocity=arr[10:13],
            mass=float(arr[13]),
            inertia=inertia,
            time=time,
        )

    def copy(self) -> "SatelliteState":
        """Deep copy of this state."""
        return SatelliteState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            quaternion=self.quaternion.copy(),
            angular_velocity=self.angular_velocity.copy(),
            mass=self.mass,
            inertia=self.inertia.copy(),
            time=self.time,
        )

    def frozen(self) -> "SatelliteState":
        """Copy whose arrays are read-only (used for ephemeris snapshots)."""
        snapshot = self.copy()
        for arr in (
            snapshot.position,
            snapshot.velocity,
            snapshot.quaternion,
            snapshot.angular_velocity,
            snapshot.inertia,
        ):
            arr.setflags(write=False)
        return snapshot

    def is_finite(self) -> bool:
        """True when every integrated component is finite."""
        return bool(np.all(np.isfinite(self.to_array())))

    @property
    def dcm_inertial_to_body(self) -> NDArray[np.float64]:
        """DCM mapping inertial components to body components."""
        return quaternion_to_dcm(self.quaternion)

    @property
    def dcm_body_to_inertial(self) -> NDArray[np.float64]:
        """DCM mapping body components to inertial components."""
        return self.dcm_inertial_to_body.T

    @property
    def radius(self) -> float:
        """Distance from the Earth centre [m]."""
        return float(np.linalg.norm(self.position))

    @property
    def altitude(self) -> float:
        """Altitude above the equatorial radius [m]."""
        return self.radius - R_EARTH_EQ

    @property
    def speed(self) -> float:
        """Inertial speed [m/s]."""
        return float(np.linalg.norm(self.velocity))

    @property
    def spin_rate(self) -> float:
        """Magnitude of the body angular velocity [rad/s]."""
        return float(np.linalg.norm(self.angular_velocity))

    @property
    def angular_momentum(self) -> NDArray[np.float64]:
        """Rotational angular momentum I*w in the body frame [kg*m^2/s]."""
        return self.inertia @ self.angular_velocity

    @property
    def rotational_kinetic_energy(self) -> float:
        """Rotational kinetic energy 0.5 * w^T I w [J]."""
        return float(0.5 * self.angular_velocity @ self.inertia @ self.angular_velocity)

    @property
    def orbital_angular_momentum(self) -> NDArray[np.float64]:
        """Specific orbital angular momentum r x v [m^2/s]."""
        return np.cross(self.position, self.velocity)

    def specific_orbital_energy(self, mu: float = MU_EARTH) -> float:
        """Two-body specific orbital energy v^2/2 - mu/r [J/kg]."""
        return 0.5 * self.speed**2 - mu / self.radius

    def vector_to_body(self, vector_inertial: NDArray[np.float64]) -> NDArray[np.float64]:
        """Express an inertial vector in the body frame."""
        return self.dcm_inertial_to_body @ vector_inertial

    def vector_to_inertial(self, vector_body: NDArray[np.float64]) -> NDArray[np.float64]:
        """Express a body vector in the inertial frame."""
        return self.dcm_body_to_inertial @ vector_body


@beartype
@dataclass
class StateDerivative:
    """Time derivative of the satellite state.

    Attributes:
        position_dot: d(position)/dt = velocity [m/s]
        velocity_dot: d(velocity)/dt = acceleration [m/s^2]
        quaternion_dot: d(quaternion)/dt [1/s]
        angular_velocity_dot: d(omega)/dt = angular acceleration [rad/s^2]
        mass_dot: d(mass)/dt [kg/s], zero without a depletion model
    """
    position_dot: NDArray[np.float64]
    velocity_dot: NDArray[np.float64]
    quaternion_dot: NDArray[np.float64]
    angular_velocity_dot: NDArray[np.float64]
    mass_dot: float = 0.0

    def to_array(self) -> NDArray[np.float64]:
        """Flatten to the integration layout."""
        return np.concatenate([
            self.position_dot,
            self.velocity_dot,
            self.quaternion_dot,
            self.angular_velocity_dot,
            [self.mass_dot],
        ])
