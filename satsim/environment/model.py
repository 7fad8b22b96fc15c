"""Bundle of the environment providers seen by one satellite run."""

import logging
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.environment.atmosphere import ExponentialAtmosphere
from satsim.environment.celestial import DEFAULT_EPOCH, MoonEphemeris, SunEphemeris
from satsim.environment.gravity import GravityField, GravityModel
from satsim.environment.magnetic import DipoleMagneticField
from satsim.environment.shadow import ShadowModel, illumination

logger = logging.getLogger(__name__)


@beartype
@dataclass(frozen=True, eq=False)
class EnvironmentSample:
    """Environment conditions at one time and position.

    Attributes:
        time: Simulation time [s]
        position: Inertial position the sample was taken at [m]
        gravity: Gravitational acceleration [m/s^2]
        density: Atmospheric density [kg/m^3]
        magnetic_field: Geomagnetic field, inertial frame [T]
        sun_position: Geocentric Sun position [m]
        moon_position: Geocentric Moon position [m]
        illumination: Visible fraction of the solar disk, 0 to 1
    """
    time: float
    position: NDArray[np.float64]
    gravity: NDArray[np.float64]
    density: float
    magnetic_field: NDArray[np.float64]
    sun_position: NDArray[np.float64]
    moon_position: NDArray[np.float64]
    illumination: float

    @property
    def in_shadow(self) -> bool:
        """True when the Sun is fully hidden by the Earth."""
        return self.illumination == 0.0


@beartype
class Environment:
    """Earth environment providers for a run starting at ``epoch``.

    Providers are deterministic functions of (t, position) and may raise
    :class:`~satsim.errors.DomainError` outside their validity range.

    Example:
        >>> env = Environment.earth(epoch=datetime(2024, 1, 1))
        >>> sample = env.sample(0.0, np.array([6.9e6, 0.0, 0.0]))
    """

    def __init__(
        self,
        gravity: GravityField,
        atmosphere: ExponentialAtmosphere,
        magnetic: DipoleMagneticField,
        sun: SunEphemeris,
        moon: MoonEphemeris,
        shadow_model: ShadowModel = ShadowModel.CYLINDRICAL,
    ) -> None:
        self.gravity = gravity
        self.atmosphere = atmosphere
        self.magnetic = magnetic
        self.sun = sun
        self.moon = moon
        self.shadow_model = shadow_model

    @classmethod
    def earth(
        cls,
        epoch: datetime = DEFAULT_EPOCH,
        gravity_model: GravityModel = GravityModel.POINT_MASS,
        shadow_model: ShadowModel = ShadowModel.CYLINDRICAL,
    ) -> "Environment":
        """Default Earth environment anchored at ``epoch``."""
        logger.info(
            "Building Earth environment (epoch=%s, gravity=%s, shadow=%s)",
            epoch.isoformat(), gravity_model.name, shadow_model.value,
        )
        return cls(
            gravity=GravityField(model=gravity_model),
            atmosphere=ExponentialAtmosphere(),
            magnetic=DipoleMagneticField(epoch=epoch),
            sun=SunEphemeris(epoch=epoch),
            moon=MoonEphemeris(epoch=epoch),
            shadow_model=shadow_model,
        )

    def illumination(self, t: float, position: NDArray[np.float64]) -> float:
        """Visible fraction of the solar disk at (t, position)."""
        return illumination(position, self.sun.position(t), self.shadow_model)

    def sample(self, t: float, position: NDArray[np.float64]) -> EnvironmentSample:
        """Evaluate every provider at (t, position)."""
        sun_position = self.sun.position(t)
        return EnvironmentSample(
            time=t,
            position=np.array(position, dtype=np.float64),
            gravity=self.gravity.field(t, position),
            density=self.atmosphere.field(t, position),
            magnetic_field=self.magnetic.field(t, position),
            sun_position=sun_position,
            moon_position=self.moon.position(t),
            illumination=illumination(position, sun_position, self.shadow_model),
        )
