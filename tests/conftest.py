"""Shared fixtures for the satsim test suite."""

import numpy as np
import pytest

from satsim.dynamics.state import SatelliteState
from satsim.satellite.body import SatelliteBody

LEO_ALTITUDE = 500e3  # [m]


@pytest.fixture
def body() -> SatelliteBody:
    """Reference 1U CubeSat."""
    return SatelliteBody.cubesat_1u()


@pytest.fixture
def symmetric_body() -> SatelliteBody:
    """Axisymmetric body (I1 == I2) about body z."""
    return SatelliteBody(mass=2.0, inertia=np.diag([2.0e-3, 2.0e-3, 3.0e-3]))


@pytest.fixture
def leo_state(body) -> SatelliteState:
    """Circular 500 km orbit, identity attitude, no spin."""
    return SatelliteState.from_circular_orbit(
        altitude=LEO_ALTITUDE,
        mass=body.mass,
        inertia=body.inertia.copy(),
        inclination_deg=51.6,
    )


@pytest.fixture
def tumbling_state(body) -> SatelliteState:
    """Circular 500 km orbit with a slow tumble."""
    return SatelliteState.from_circular_orbit(
        altitude=LEO_ALTITUDE,
        mass=body.mass,
        inertia=body.inertia.copy(),
        inclination_deg=51.6,
        angular_velocity=np.array([0.05, -0.03, 0.04]),
    )
