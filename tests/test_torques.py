"""Unit tests for torque contributors and control policies."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from satsim.dynamics.state import (
    SatelliteState,
    quaternion_from_axis_angle,
)
from satsim.environment import Environment
from satsim.environment.magnetic import DipoleMagneticField
from satsim.errors import ConfigurationError
from satsim.guidance.base import GuidanceCommand
from satsim.satellite.body import SatelliteBody
from satsim.satellite.sensors import Magnetometer
from satsim.torques import (
    BDotDetumble,
    ConstantTorque,
    GravityGradientTorque,
    PDAttitudeControl,
    RandomTorqueDisturbance,
    ResidualMagneticTorque,
    ScenarioStep,
    SensedBDotDetumble,
    TorqueModel,
    TorqueScenario,
    ZeroTorque,
)

# =============================================================================
# Scenario Tests
# =============================================================================


class TestTorqueScenario:
    """Test time-scheduled torques."""

    def test_active_window_is_half_open(self, leo_state, body):
        scenario = TorqueScenario.from_tuples([(1.0, 2.0, [1.0, 0.0, 0.0])], intensity=0.5)
        assert_allclose(scenario.torque(0.999, leo_state, body), np.zeros(3))
        assert_allclose(scenario.torque(1.0, leo_state, body), [0.5, 0.0, 0.0])
        assert_allclose(scenario.torque(2.999, leo_state, body), [0.5, 0.0, 0.0])
        assert_allclose(scenario.torque(3.0, leo_state, body), np.zeros(3))

    def test_first_step_wins_on_overlap(self, leo_state, body):
        scenario = TorqueScenario.from_tuples(
            [(0.0, 10.0, [0.0, 1.0, 0.0]), (5.0, 10.0, [0.0, 0.0, 1.0])],
            intensity=1.0,
        )
        assert_allclose(scenario.torque(7.0, leo_state, body), [0.0, 1.0, 0.0])
        assert_allclose(scenario.torque(12.0, leo_state, body), [0.0, 0.0, 1.0])

    def test_manoeuvre_boundaries(self):
        scenario = TorqueScenario.manoeuvre()
        assert scenario.step_boundaries() == [1.0, 21.0, 25.0, 45.0, 50.0, 60.0, 65.0, 75.0]
        assert scenario.intensity == 1e-4

    def test_invalid_step(self):
        with pytest.raises(ConfigurationError):
            ScenarioStep(0.0, -1.0, np.array([1.0, 0.0, 0.0]))
        with pytest.raises(ConfigurationError):
            ScenarioStep(0.0, 1.0, np.array([1.0, 0.0]))

    def test_satisfies_protocol(self):
        assert isinstance(TorqueScenario.manoeuvre(), TorqueModel)


# =============================================================================
# Disturbance Tests
# =============================================================================


class TestDisturbances:
    """Test environmental and random torques."""

    def test_gravity_gradient_zero_on_principal_axis(self, leo_state, body):
        """Radial direction along a principal axis gives no torque."""
        state = leo_state.copy()
        state.position = np.array([7.0e6, 0.0, 0.0])
        state.quaternion = np.array([1.0, 0.0, 0.0, 0.0])
        assert_allclose(GravityGradientTorque().torque(0.0, state, body), np.zeros(3), atol=1e-20)

    def test_gravity_gradient_magnitude(self, leo_state):
        """45 deg pitch offset gives 3 mu / (2 r^3) * (Iz - Ix)."""
        inertia = np.diag([1.0, 2.0, 3.0])
        body = SatelliteBody(mass=1.0, inertia=inertia)
        state = SatelliteState(
            position=np.array([7.0e6, 0.0, 0.0]),
            velocity=np.zeros(3),
            quaternion=quaternion_from_axis_angle(np.array([0.0, 1.0, 0.0]), np.pi / 4),
            angular_velocity=np.zeros(3),
            mass=1.0,
            inertia=inertia,
        )
        tau = GravityGradientTorque().torque(0.0, state, body)
        expected = 1.5 * GravityGradientTorque().mu / 7.0e6**3 * (3.0 - 1.0)
        assert_allclose(np.linalg.norm(tau), expected, rtol=1e-12)
        assert_allclose(tau[[0, 2]], [0.0, 0.0], atol=1e-20)

    def test_residual_dipole(self, leo_state):
        magnetic = DipoleMagneticField()
        body = SatelliteBody(
            mass=1.0, inertia=np.eye(3) * 1e-3, residual_dipole=np.array([0.0, 0.0, 0.01]),
        )
        tau = ResidualMagneticTorque(magnetic).torque(0.0, leo_state, body)
        b_body = leo_state.vector_to_body(magnetic.field(0.0, leo_state.position))
        assert_allclose(tau, np.cross(body.residual_dipole, b_body))
        assert tau[2] == 0.0

    def test_random_disturbance_is_seeded(self, leo_state, body):
        first = RandomTorqueDisturbance(intensity=1e-3, seed=42)
        second = RandomTorqueDisturbance(intensity=1e-3, seed=42)
        for _ in range(5):
            assert np.array_equal(
                first.torque(0.0, leo_state, body), second.torque(0.0, leo_state, body),
            )
            first.advance(0.0, leo_state)
            second.advance(0.0, leo_state)

    def test_random_disturbance_constant_within_step(self, leo_state, body):
        disturbance = RandomTorqueDisturbance(intensity=1e-3, seed=1)
        a = disturbance.torque(0.0, leo_state, body)
        b = disturbance.torque(0.05, leo_state, body)
        assert np.array_equal(a, b)
        assert np.all(np.abs(a) <= 1e-3)

        disturbance.advance(0.1, leo_state)
        assert not np.array_equal(a, disturbance.torque(0.1, leo_state, body))

    def test_random_disturbance_reset(self, leo_state, body):
        disturbance = RandomTorqueDisturbance(intensity=1e-3, seed=3)
        initial = disturbance.torque(0.0, leo_state, body)
        disturbance.advance(0.1, leo_state)
        disturbance.reset()
        assert np.array_equal(initial, disturbance.torque(0.0, leo_state, body))


# =============================================================================
# Control Policy Tests
# =============================================================================


class TestControlPolicies:
    """Test the torque-law phase policies."""

    def test_zero_and_constant(self, leo_state, body):
        integral = np.zeros(3)
        assert_allclose(ZeroTorque().torque(0.0, leo_state, body, None, integral), np.zeros(3))
        constant = ConstantTorque(np.array([1e-4, 0.0, -1e-4]))
        assert_allclose(constant.torque(0.0, leo_state, body, None, integral), [1e-4, 0.0, -1e-4])

    def test_pd_zero_at_target(self, leo_state, body):
        command = GuidanceCommand.hold(leo_state.quaternion)
        tau = PDAttitudeControl().torque(0.0, leo_state, body, command, np.zeros(3))
        assert_allclose(tau, np.zeros(3), atol=1e-18)

    def test_pd_restores_attitude(self, leo_state, body):
        """A small positive rotation about x produces a negative x torque."""
        state = leo_state.copy()
        state.quaternion = quaternion_from_axis_angle(np.array([1.0, 0.0, 0.0]), 0.1)
        command = GuidanceCommand.hold(np.array([1.0, 0.0, 0.0, 0.0]))
        tau = PDAttitudeControl(kp=1.0, kd=0.0).torque(0.0, state, body, command, np.zeros(3))
        assert tau[0] < 0.0
        assert_allclose(tau[1:], [0.0, 0.0], atol=1e-15)
        assert_allclose(tau[0], -np.sin(0.05), rtol=1e-12)

    def test_pd_damps_rate(self, leo_state, body):
        state = leo_state.copy()
        state.angular_velocity = np.array([0.0, 0.2, 0.0])
        tau = PDAttitudeControl(kp=0.0, kd=2.0).torque(0.0, state, body, None, np.zeros(3))
        assert_allclose(tau, [0.0, -0.4, 0.0])

    def test_pd_saturation(self, leo_state, body):
        state = leo_state.copy()
        state.angular_velocity = np.array([10.0, -10.0, 0.0])
        tau = PDAttitudeControl(max_torque=1e-4).torque(0.0, state, body, None, np.zeros(3))
        assert_allclose(tau, [-1e-4, 1e-4, 0.0])

    def test_integral_update_and_clamp(self, leo_state):
        state = leo_state.copy()
        state.quaternion = quaternion_from_axis_angle(np.array([0.0, 0.0, 1.0]), 0.2)
        pid = PDAttitudeControl(ki=1e-6, integral_limit=0.05)

        integral = pid.update_integral(0.1, state, None, np.zeros(3))
        assert_allclose(integral, [0.0, 0.0, 0.1 * np.sin(0.1)], atol=1e-15)

        saturated = pid.update_integral(100.0, state, None, integral)
        assert_allclose(saturated[2], 0.05)

    def test_integral_unchanged_without_gain(self, leo_state):
        integral = np.array([0.1, 0.2, 0.3])
        assert np.array_equal(
            PDAttitudeControl().update_integral(1.0, leo_state, None, integral), integral,
        )

    def test_bdot_dissipates_energy(self, tumbling_state, body):
        """The B-dot torque never adds rotational energy: tau . w <= 0."""
        bdot = BDotDetumble(DipoleMagneticField())
        for t in (0.0, 100.0, 1000.0):
            tau = bdot.torque(t, tumbling_state, body, None, np.zeros(3))
            assert np.dot(tau, tumbling_state.angular_velocity) <= 0.0
            assert np.linalg.norm(tau) > 0.0

    def test_bdot_dipole_saturates(self, tumbling_state, body):
        m, _ = BDotDetumble(DipoleMagneticField(), gain=1e9).dipole(0.0, tumbling_state, body)
        assert np.all(np.abs(m) <= body.max_dipole)
        assert np.any(np.isclose(np.abs(m), body.max_dipole))

    def test_bdot_zero_without_spin(self, leo_state, body):
        tau = BDotDetumble(DipoleMagneticField()).torque(0.0, leo_state, body, None, np.zeros(3))
        assert_allclose(tau, np.zeros(3), atol=0.0)


class TestSensedBDotDetumble:
    """Test B-dot driven by filtered magnetometer differences."""

    @pytest.fixture
    def environment(self):
        return Environment.earth()

    def test_first_sample_commands_nothing(self, tumbling_state, body, environment):
        bdot = SensedBDotDetumble(Magnetometer(noise_intensity=0.0), environment)
        estimate = bdot.initial_estimate(0.0, tumbling_state)

        expected = tumbling_state.vector_to_body(environment.magnetic.field(0.0, tumbling_state.position))
        assert_allclose(estimate.field, expected)
        assert_allclose(estimate.dipole, np.zeros(3), atol=0.0)
        assert_allclose(bdot.held_torque(0.0, tumbling_state, body, estimate), np.zeros(3), atol=0.0)
        assert_allclose(bdot.torque(0.0, tumbling_state, body, None, np.zeros(3)), np.zeros(3), atol=0.0)

    def test_filtered_difference(self, leo_state, body, environment):
        bdot = SensedBDotDetumble(Magnetometer(noise_intensity=0.0), environment, time_constant=5.0)
        estimate = bdot.initial_estimate(0.0, leo_state)
        updated = bdot.update_estimate(1.0, leo_state, body, estimate)

        b0 = leo_state.vector_to_body(environment.magnetic.field(0.0, leo_state.position))
        b1 = leo_state.vector_to_body(environment.magnetic.field(1.0, leo_state.position))
        alpha = np.exp(-1.0 / 5.0)
        assert updated.time == 1.0
        assert_allclose(updated.rate, (1.0 - alpha) * (b1 - b0), rtol=1e-12)
        assert_allclose(updated.dipole, np.clip(-bdot.gain * updated.rate, -0.1, 0.1), rtol=1e-12)

    def test_holds_between_samples(self, tumbling_state, body, environment):
        bdot = SensedBDotDetumble(Magnetometer(seed=3), environment, sample_period=0.5)
        estimate = bdot.initial_estimate(0.0, tumbling_state)
        assert bdot.update_estimate(0.2, tumbling_state, body, estimate) is estimate
        assert bdot.update_estimate(0.5, tumbling_state, body, estimate) is not estimate

    def test_dipole_saturates(self, tumbling_state, body, environment):
        bdot = SensedBDotDetumble(Magnetometer(noise_intensity=0.0), environment, gain=1e12)
        estimate = bdot.initial_estimate(0.0, tumbling_state)
        moved = tumbling_state.copy()
        moved.quaternion = quaternion_from_axis_angle(np.array([0.0, 0.0, 1.0]), 0.3)
        updated = bdot.update_estimate(0.1, moved, body, estimate)
        assert np.all(np.abs(updated.dipole) <= body.max_dipole)
        assert np.any(np.isclose(np.abs(updated.dipole), body.max_dipole))

    def test_estimate_is_readonly(self, leo_state, environment):
        estimate = SensedBDotDetumble(Magnetometer(), environment).initial_estimate(0.0, leo_state)
        with pytest.raises(ValueError):
            estimate.dipole[0] = 1.0

    def test_reset_repeats_noise(self, leo_state, environment):
        bdot = SensedBDotDetumble(Magnetometer(seed=11), environment)
        first = bdot.initial_estimate(0.0, leo_state).field
        bdot.reset()
        assert np.array_equal(bdot.initial_estimate(0.0, leo_state).field, first)

    def test_invalid_filter(self, environment):
        with pytest.raises(ValueError):
            SensedBDotDetumble(Magnetometer(), environment, time_constant=0.0)
        with pytest.raises(ValueError):
            SensedBDotDetumble(Magnetometer(), environment, sample_period=-1.0)
