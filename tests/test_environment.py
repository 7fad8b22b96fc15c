"""Unit tests for the environment providers."""

from datetime import datetime, timezone

import numpy as np
import pytest
from numpy.testing import assert_allclose

from satsim.environment import (
    Environment,
    ExponentialAtmosphere,
    GravityField,
    GravityModel,
    ShadowModel,
    SunEphemeris,
)
from satsim.environment.celestial import AU, JD_J2000, julian_date, moon_position, sun_position
from satsim.environment.gravity import MU_EARTH, R_EARTH_EQ, circular_velocity, orbital_period
from satsim.environment.magnetic import DipoleMagneticField
from satsim.environment.shadow import (
    conical_shadow_fraction,
    cylindrical_shadow,
    illumination,
)
from satsim.errors import DomainError

# =============================================================================
# Gravity Tests
# =============================================================================


class TestGravity:
    """Test central-body gravity."""

    def test_point_mass_magnitude(self):
        grav = GravityField(GravityModel.POINT_MASS)
        r = 7.0e6
        g = grav.field(0.0, np.array([r, 0.0, 0.0]))
        assert_allclose(g, [-MU_EARTH / r**2, 0.0, 0.0], rtol=1e-12)

    @pytest.mark.parametrize("model", list(GravityModel))
    def test_acceleration_is_potential_gradient(self, model):
        """a = -grad(U) for every zonal degree."""
        grav = GravityField(model)
        position = np.array([4.1e6, -3.2e6, 4.5e6])
        step = 10.0

        gradient = np.zeros(3)
        for axis in range(3):
            offset = np.zeros(3)
            offset[axis] = step
            gradient[axis] = (
                grav.potential(position + offset) - grav.potential(position - offset)
            ) / (2.0 * step)

        assert_allclose(grav.acceleration(position), -gradient, atol=1e-7)

    def test_j2_pulls_toward_equator(self):
        """Above the equator the J2 term has a southward component."""
        position = np.array([5.0e6, 0.0, 5.0e6])
        point = GravityField(GravityModel.POINT_MASS).acceleration(position)
        oblate = GravityField(GravityModel.J2).acceleration(position)
        assert (oblate - point)[2] < 0.0

    def test_below_minimum_radius_raises(self):
        grav = GravityField()
        with pytest.raises(DomainError) as excinfo:
            grav.field(12.5, np.array([1.0e5, 0.0, 0.0]))
        assert excinfo.value.time == 12.5
        assert_allclose(excinfo.value.position, [1.0e5, 0.0, 0.0])

    def test_circular_helpers(self):
        v = circular_velocity(500e3)
        period = orbital_period(500e3)
        assert_allclose(v * period, 2 * np.pi * (R_EARTH_EQ + 500e3), rtol=1e-12)


# =============================================================================
# Atmosphere Tests
# =============================================================================


class TestAtmosphere:
    """Test the exponential density table."""

    def test_sea_level(self):
        assert_allclose(ExponentialAtmosphere().density(0.0), 1.225)

    def test_band_base(self):
        assert_allclose(ExponentialAtmosphere().density(500e3), 6.967e-13, rtol=1e-12)

    def test_monotonic_decrease(self):
        profile = ExponentialAtmosphere().profile(np.linspace(0.0, 1000e3, 201))
        assert np.all(np.diff(profile["density"]) < 0)

    def test_vacuum_above_ceiling(self):
        result = ExponentialAtmosphere().at_altitude(1500e3)
        assert result.is_vacuum
        assert result.density == 0.0

    def test_below_floor_raises(self):
        atmosphere = ExponentialAtmosphere()
        with pytest.raises(DomainError):
            atmosphere.field(3.0, np.array([R_EARTH_EQ - 1000.0, 0.0, 0.0]))

    def test_field_uses_altitude(self):
        atmosphere = ExponentialAtmosphere()
        rho = atmosphere.field(0.0, np.array([0.0, R_EARTH_EQ + 400e3, 0.0]))
        assert_allclose(rho, atmosphere.density(400e3))


# =============================================================================
# Sun, Moon and Shadow Tests
# =============================================================================


class TestCelestial:
    """Test the analytic ephemerides."""

    def test_julian_date_at_j2000(self):
        epoch = datetime(2000, 1, 1, 12, tzinfo=timezone.utc)
        assert_allclose(julian_date(epoch), JD_J2000)

    def test_naive_epoch_is_utc(self):
        aware = datetime(2010, 6, 1, tzinfo=timezone.utc)
        naive = datetime(2010, 6, 1)
        assert julian_date(aware, 30.0) == julian_date(naive, 30.0)

    def test_sun_distance(self):
        epoch = datetime(2024, 3, 20, tzinfo=timezone.utc)
        distance = np.linalg.norm(sun_position(epoch))
        assert 0.98 * AU < distance < 1.02 * AU

    def test_sun_at_march_equinox(self):
        """Near the equinox the Sun lies close to the equatorial plane toward +x."""
        epoch = datetime(2024, 3, 20, 3, tzinfo=timezone.utc)
        direction = sun_position(epoch) / np.linalg.norm(sun_position(epoch))
        assert direction[0] > 0.99
        assert abs(direction[2]) < 0.01

    def test_moon_distance(self):
        epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)
        distance = np.linalg.norm(moon_position(epoch))
        assert 3.5e8 < distance < 4.1e8

    def test_ephemeris_uses_elapsed_time(self):
        epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)
        later = datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert_allclose(SunEphemeris(epoch).position(86400.0), sun_position(later), rtol=1e-9)


class TestShadow:
    """Test eclipse geometry."""

    sun = np.array([AU, 0.0, 0.0])

    def test_cylindrical_sunlit_side(self):
        assert not cylindrical_shadow(np.array([7.0e6, 0.0, 0.0]), self.sun)

    def test_cylindrical_behind_earth(self):
        assert cylindrical_shadow(np.array([-7.0e6, 0.0, 0.0]), self.sun)

    def test_cylindrical_beside_umbra(self):
        assert not cylindrical_shadow(np.array([-7.0e6, 7.0e6, 0.0]), self.sun)

    def test_conical_limits(self):
        assert conical_shadow_fraction(np.array([7.0e6, 0.0, 0.0]), self.sun) == 1.0
        assert conical_shadow_fraction(np.array([-7.0e6, 0.0, 0.0]), self.sun) == 0.0

    def test_conical_penumbra_is_partial(self):
        """Crossing the shadow edge gives a graded fraction between 0 and 1."""
        fractions = [
            conical_shadow_fraction(np.array([-7.0e6, y, 0.0]), self.sun)
            for y in np.linspace(6.30e6, 6.45e6, 61)
        ]
        assert np.all(np.diff(fractions) >= 0.0)
        assert any(0.0 < f < 1.0 for f in fractions)

    def test_illumination_models(self):
        behind = np.array([-7.0e6, 0.0, 0.0])
        assert illumination(behind, self.sun, ShadowModel.CYLINDRICAL) == 0.0
        assert illumination(behind, self.sun, ShadowModel.CONICAL) == 0.0


# =============================================================================
# Magnetic Field Tests
# =============================================================================


class TestMagneticField:
    """Test the tilted dipole."""

    def test_surface_strength(self):
        strength = DipoleMagneticField().surface_strength()
        assert 2.5e-5 < strength < 3.5e-5

    def test_inverse_cube_falloff(self):
        field = DipoleMagneticField()
        near = np.linalg.norm(field.field(0.0, np.array([7.0e6, 0.0, 0.0])))
        far = np.linalg.norm(field.field(0.0, np.array([14.0e6, 0.0, 0.0])))
        assert_allclose(near / far, 8.0, rtol=1e-12)

    def test_field_points_north_at_equator(self):
        """The geomagnetic field at the equator points roughly toward +z."""
        b = DipoleMagneticField().field(0.0, np.array([7.0e6, 0.0, 0.0]))
        assert b[2] > 0.8 * np.linalg.norm(b)

    def test_earth_rotation_is_orthonormal(self):
        rotation = DipoleMagneticField().earth_rotation(1234.5)
        assert_allclose(rotation @ rotation.T, np.eye(3), atol=1e-12)


# =============================================================================
# Environment Bundle Tests
# =============================================================================


class TestEnvironment:
    """Test the combined sample."""

    def test_sample(self):
        env = Environment.earth(gravity_model=GravityModel.J2, shadow_model=ShadowModel.CONICAL)
        position = np.array([R_EARTH_EQ + 500e3, 0.0, 0.0])
        sample = env.sample(10.0, position)

        assert sample.time == 10.0
        assert_allclose(sample.gravity, env.gravity.field(10.0, position))
        assert_allclose(sample.density, env.atmosphere.density(500e3))
        assert sample.magnetic_field.shape == (3,)
        assert 0.0 <= sample.illumination <= 1.0
        assert sample.in_shadow == (sample.illumination == 0.0)
