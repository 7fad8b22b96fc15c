"""Unit tests for the satellite state, quaternion utilities and rigid-body equations."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from satsim.dynamics.rigid_body import (
    TorqueToSpinEquation,
    euler_rotational_dynamics,
    quaternion_derivative,
    rot_acceleration_diagonal,
)
from satsim.dynamics.state import (
    STATE_SIZE,
    SatelliteState,
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
from satsim.environment.gravity import MU_EARTH, R_EARTH_EQ
from satsim.errors import ConfigurationError
from satsim.satellite.body import SatelliteBody

# =============================================================================
# Quaternion Tests
# =============================================================================


class TestQuaternionOperations:
    """Test quaternion math operations."""

    def test_normalize_unit_length(self):
        """Normalized quaternion should have unit length."""
        q = normalize_quaternion(np.array([1.0, 2.0, 3.0, 4.0]))
        assert_allclose(np.linalg.norm(q), 1.0, atol=1e-12)

    def test_normalize_zero_raises(self):
        with pytest.raises(ValueError):
            normalize_quaternion(np.zeros(4))

    def test_multiply_by_conjugate_is_identity(self):
        q = normalize_quaternion(np.array([0.3, -0.5, 0.7, 0.1]))
        result = quaternion_multiply(q, quaternion_conjugate(q))
        assert_allclose(result, [1.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_dcm_roundtrip(self):
        """dcm_to_quaternion inverts quaternion_to_dcm."""
        q = normalize_quaternion(np.array([0.6, 0.2, -0.4, 0.66]))
        assert_allclose(dcm_to_quaternion(quaternion_to_dcm(q)), q, atol=1e-12)

    def test_dcm_is_orthonormal(self):
        q = normalize_quaternion(np.array([0.1, 0.9, -0.3, 0.2]))
        dcm = quaternion_to_dcm(q)
        assert_allclose(dcm @ dcm.T, np.eye(3), atol=1e-12)
        assert_allclose(np.linalg.det(dcm), 1.0, atol=1e-12)

    def test_frame_rotation_about_z(self):
        """A frame rotated +90 deg about z sees inertial x along body -y."""
        q = quaternion_from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)
        dcm = quaternion_to_dcm(q)
        assert_allclose(dcm @ np.array([1.0, 0.0, 0.0]), [0.0, -1.0, 0.0], atol=1e-12)

    def test_error_of_equal_attitudes_is_identity(self):
        q = normalize_quaternion(np.array([0.5, 0.5, -0.5, 0.5]))
        assert_allclose(quaternion_error(q, q), [1.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_error_angle(self):
        target = np.array([1.0, 0.0, 0.0, 0.0])
        current = quaternion_from_axis_angle(np.array([0.0, 1.0, 0.0]), 0.3)
        assert_allclose(quaternion_angle(quaternion_error(current, target)), 0.3, atol=1e-12)

    def test_error_takes_shortest_rotation(self):
        """Sign of the error quaternion is fixed to a non-negative scalar part."""
        q = normalize_quaternion(np.array([0.2, 0.4, 0.1, -0.8]))
        assert quaternion_error(-q, np.array([1.0, 0.0, 0.0, 0.0]))[0] >= 0.0

    def test_euler_of_roll(self):
        q = quaternion_from_axis_angle(np.array([1.0, 0.0, 0.0]), 0.25)
        roll, pitch, yaw = quaternion_to_euler(q)
        assert_allclose([roll, pitch, yaw], [0.25, 0.0, 0.0], atol=1e-12)


# =============================================================================
# State Tests
# =============================================================================


class TestSatelliteState:
    """Test the state container."""

    def test_array_roundtrip(self, tumbling_state):
        arr = tumbling_state.to_array()
        assert arr.shape == (STATE_SIZE,)

        rebuilt = SatelliteState.from_array(arr, tumbling_state.inertia, time=3.0)
        assert_allclose(rebuilt.to_array(), arr, atol=0.0)
        assert rebuilt.time == 3.0

    def test_quaternion_normalized_on_construction(self, body):
        state = SatelliteState(
            position=np.array([7.0e6, 0.0, 0.0]),
            velocity=np.zeros(3),
            quaternion=np.array([2.0, 0.0, 0.0, 0.0]),
            angular_velocity=np.zeros(3),
            mass=body.mass,
            inertia=body.inertia.copy(),
        )
        assert_allclose(state.quaternion, [1.0, 0.0, 0.0, 0.0])

    def test_bad_shape_raises(self, body):
        with pytest.raises(ValueError):
            SatelliteState(
                position=np.zeros(2),
                velocity=np.zeros(3),
                quaternion=np.array([1.0, 0.0, 0.0, 0.0]),
                angular_velocity=np.zeros(3),
                mass=body.mass,
                inertia=body.inertia.copy(),
            )

    def test_frozen_snapshot_is_readonly(self, leo_state):
        snapshot = leo_state.frozen()
        with pytest.raises(ValueError):
            snapshot.position[0] = 0.0
        # The original stays writable
        leo_state.position[0] = leo_state.position[0]

    def test_copy_is_independent(self, leo_state):
        duplicate = leo_state.copy()
        duplicate.velocity[0] += 1.0
        assert duplicate.velocity[0] != leo_state.velocity[0]

    def test_circular_orbit(self, leo_state):
        assert_allclose(leo_state.radius, R_EARTH_EQ + 500e3, rtol=1e-12)
        assert_allclose(leo_state.speed, np.sqrt(MU_EARTH / leo_state.radius), rtol=1e-12)
        assert_allclose(np.dot(leo_state.position, leo_state.velocity), 0.0, atol=1e-3)
        assert_allclose(leo_state.altitude, 500e3, rtol=1e-12)

    def test_inclination(self, leo_state):
        h = leo_state.orbital_angular_momentum
        inclination = np.degrees(np.arccos(h[2] / np.linalg.norm(h)))
        assert_allclose(inclination, 51.6, atol=1e-9)

    def test_specific_energy(self, leo_state):
        expected = -MU_EARTH / (2.0 * leo_state.radius)
        assert_allclose(leo_state.specific_orbital_energy(), expected, rtol=1e-12)

    def test_circular_elements_match_circular_orbit(self, body):
        circular = SatelliteState.from_circular_orbit(
            altitude=600e3, mass=body.mass, inertia=body.inertia.copy(),
            inclination_deg=98.0, raan_deg=30.0, arg_latitude_deg=70.0,
        )
        elements = SatelliteState.from_orbital_elements(
            R_EARTH_EQ + 600e3, 0.0, mass=body.mass, inertia=body.inertia.copy(),
            inclination_deg=98.0, raan_deg=30.0, arg_perigee_deg=40.0, true_anomaly_deg=30.0,
        )
        assert_allclose(elements.position, circular.position, atol=1e-6)
        assert_allclose(elements.velocity, circular.velocity, atol=1e-9)

    def test_elliptical_elements(self, body):
        a, e = 7.2e6, 0.05
        state = SatelliteState.from_orbital_elements(
            a, e, mass=body.mass, inertia=body.inertia.copy(),
            inclination_deg=63.4, raan_deg=120.0, arg_perigee_deg=270.0,
        )
        assert_allclose(state.radius, a * (1.0 - e), rtol=1e-12)
        assert_allclose(np.dot(state.position, state.velocity), 0.0, atol=1e-3)
        assert_allclose(state.specific_orbital_energy(), -MU_EARTH / (2.0 * a), rtol=1e-12)

        h = state.orbital_angular_momentum
        assert_allclose(np.linalg.norm(h), np.sqrt(MU_EARTH * a * (1.0 - e**2)), rtol=1e-12)
        assert_allclose(np.degrees(np.arccos(h[2] / np.linalg.norm(h))), 63.4, atol=1e-9)

    @pytest.mark.parametrize("eccentricity", [1.0, 1.5, -0.1])
    def test_open_orbit_rejected(self, body, eccentricity):
        with pytest.raises(ValueError):
            SatelliteState.from_orbital_elements(
                7.0e6, eccentricity, mass=body.mass, inertia=body.inertia.copy(),
            )

    def test_non_finite_detected(self, leo_state):
        broken = leo_state.copy()
        broken.velocity[1] = np.nan
        assert not broken.is_finite()
        assert leo_state.is_finite()

    def test_body_and_inertial_vectors(self, leo_state):
        state = leo_state.copy()
        state.quaternion = quaternion_from_axis_angle(np.array([1.0, 1.0, 0.0]), 0.8)
        v = np.array([1.0, 2.0, 3.0])
        assert_allclose(state.vector_to_inertial(state.vector_to_body(v)), v, atol=1e-12)


# =============================================================================
# Satellite Body Tests
# =============================================================================


class TestSatelliteBody:
    """Test body validation and constructors."""

    def test_cubesat_defaults(self, body):
        assert body.mass == 1.04
        assert_allclose(np.diag(body.inertia), [1.9002e-3, 1.9156e-3, 1.9496e-3])
        assert not body.inertia.flags.writeable

    def test_uniform_box_inertia(self):
        box = SatelliteBody.uniform_box(12.0, [1.0, 2.0, 3.0])
        assert_allclose(np.diag(box.inertia), [13.0, 10.0, 5.0])
        assert_allclose(box.drag_area, 6.0)

    def test_negative_mass_rejected(self):
        with pytest.raises(ConfigurationError):
            SatelliteBody(mass=-1.0, inertia=np.eye(3))

    def test_asymmetric_inertia_rejected(self):
        inertia = np.eye(3)
        inertia[0, 1] = 0.1
        with pytest.raises(ConfigurationError):
            SatelliteBody(mass=1.0, inertia=inertia)

    def test_indefinite_inertia_rejected(self):
        with pytest.raises(ConfigurationError):
            SatelliteBody(mass=1.0, inertia=np.diag([1.0, 1.0, -1.0]))

    def test_negative_area_rejected(self):
        with pytest.raises(ConfigurationError):
            SatelliteBody(mass=1.0, inertia=np.eye(3), drag_area=-0.1)

    def test_axisymmetric(self, symmetric_body, body):
        assert symmetric_body.is_axisymmetric
        assert not body.is_axisymmetric


# =============================================================================
# Rigid Body Tests
# =============================================================================


class TestRigidBody:
    """Test Euler's equations and quaternion kinematics."""

    def test_quaternion_derivative_matches_product(self):
        q = normalize_quaternion(np.array([0.9, 0.1, -0.2, 0.3]))
        w = np.array([0.1, -0.2, 0.05])
        expected = 0.5 * quaternion_multiply(q, np.concatenate([[0.0], w]))
        assert_allclose(quaternion_derivative(q, w), expected, atol=1e-15)

    def test_zero_spin_keeps_attitude(self):
        q = normalize_quaternion(np.array([0.9, 0.1, -0.2, 0.3]))
        assert_allclose(quaternion_derivative(q, np.zeros(3)), np.zeros(4), atol=0.0)

    def test_diagonal_kernel_matches_general_solve(self):
        inertia = np.diag([1.0, 2.0, 3.0])
        w = np.array([0.3, -0.1, 0.2])
        m = np.array([0.01, 0.02, -0.03])
        assert_allclose(
            rot_acceleration_diagonal(w, m, np.diag(inertia).copy()),
            euler_rotational_dynamics(w, m, inertia),
            atol=1e-15,
        )

    def test_spin_about_principal_axis_is_steady(self):
        equation = TorqueToSpinEquation(np.diag([1.0, 2.0, 3.0]))
        alpha = equation.angular_acceleration(np.array([0.0, 0.0, 1.0]), np.zeros(3))
        assert_allclose(alpha, np.zeros(3), atol=1e-15)

    def test_non_diagonal_inertia_uses_solve(self):
        inertia = np.array([[2.0, 0.1, 0.0], [0.1, 3.0, 0.0], [0.0, 0.0, 4.0]])
        equation = TorqueToSpinEquation(inertia)
        assert not equation.is_diagonal

        torque = np.array([0.1, 0.0, 0.0])
        alpha = equation.angular_acceleration(np.zeros(3), torque)
        assert_allclose(inertia @ alpha, torque, atol=1e-15)

    def test_gyroscopic_torque_orthogonal_to_spin(self):
        equation = TorqueToSpinEquation(np.diag([1.0, 2.0, 3.0]))
        w = np.array([0.3, -0.1, 0.2])
        assert_allclose(np.dot(equation.gyroscopic_torque(w), w), 0.0, atol=1e-15)
