"""Environment models for satellite simulation.

Provides gravity, atmospheric density, geomagnetic field, Sun/Moon
ephemerides and eclipse geometry.

Example:
    >>> from satsim.environment import Environment
    >>>
    >>> env = Environment.earth()
    >>> sample = env.sample(0.0, position)
    >>> sample.density, sample.in_shadow
"""

from satsim.environment.atmosphere import (
    DensityResult,
    ExponentialAtmosphere,
)
from satsim.environment.celestial import (
    MoonEphemeris,
    SunEphemeris,
    moon_position,
    sun_position,
)
from satsim.environment.gravity import (
    GravityField,
    GravityModel,
)
from satsim.environment.magnetic import DipoleMagneticField
from satsim.environment.model import (
    Environment,
    EnvironmentSample,
)
from satsim.environment.shadow import (
    ShadowModel,
    conical_shadow_fraction,
    cylindrical_shadow,
    illumination,
)

__all__ = [
    # Providers
    "GravityField",
    "GravityModel",
    "ExponentialAtmosphere",
    "DensityResult",
    "DipoleMagneticField",
    "SunEphemeris",
    "MoonEphemeris",
    "sun_position",
    "moon_position",
    # Shadow
    "ShadowModel",
    "cylindrical_shadow",
    "conical_shadow_fraction",
    "illumination",
    # Bundle
    "Environment",
    "EnvironmentSample",
]
