"""Physical description of the satellite.

A single frozen :class:`SatelliteBody` is shared by every force and torque
contributor. Values are validated at construction; nothing may change them
during a run.

Example:
    >>> from satsim.satellite import SatelliteBody
    >>>
    >>> body = SatelliteBody.cubesat_1u()
    >>> body.mass, body.principal_moments
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.errors import ConfigurationError

# =============================================================================
# Constants
# =============================================================================

# 1U CubeSat reference values
CUBESAT_1U_MASS = 1.04  # [kg]
CUBESAT_1U_INERTIA = (1.9002e-3, 1.9156e-3, 1.9496e-3)  # Principal moments [kg*m^2]
CUBESAT_1U_SIDE = 0.1  # [m]

DEFAULT_DRAG_COEFFICIENT = 2.2
DEFAULT_RADIATION_COEFFICIENT = 1.8
DEFAULT_MAX_DIPOLE = 0.1  # Magnetorquer saturation per axis [A*m^2]


def _readonly(values: NDArray[np.float64]) -> NDArray[np.float64]:
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


# =============================================================================
# Satellite Body
# =============================================================================


@beartype
@dataclass(frozen=True, eq=False)
class SatelliteBody:
    """Rigid satellite body.

    Attributes:
        mass: Total mass [kg]
        inertia: 3x3 inertia tensor in the body frame [kg*m^2]
        dimensions: Box edge lengths along body x, y, z [m]
        drag_coefficient: Ballistic drag coefficient Cd
        drag_area: Drag reference area [m^2]
        radiation_coefficient: Radiation pressure coefficient Cr (1 to 2)
        radiation_area: Sun-facing reference area [m^2]
        residual_dipole: Residual magnetic dipole in the body frame [A*m^2]
        max_dipole: Magnetorquer saturation per axis [A*m^2]
        name: Label used in logs and exports
    """
    mass: float
    inertia: NDArray[np.float64]
    dimensions: NDArray[np.float64] = field(
        default_factory=lambda: np.full(3, CUBESAT_1U_SIDE)
    )
    drag_coefficient: float = DEFAULT_DRAG_COEFFICIENT
    drag_area: float = CUBESAT_1U_SIDE ** 2
    radiation_coefficient: float = DEFAULT_RADIATION_COEFFICIENT
    radiation_area: float = CUBESAT_1U_SIDE ** 2
    residual_dipole: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    max_dipole: float = DEFAULT_MAX_DIPOLE
    name: str = "satellite"

    def __post_init__(self) -> None:
        """Freeze the arrays and validate the physical parameters."""
        object.__setattr__(self, "inertia", _readonly(self.inertia))
        object.__setattr__(self, "dimensions", _readonly(self.dimensions))
        object.__setattr__(self, "residual_dipole", _readonly(self.residual_dipole))
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if the body is not physical."""
        if not np.isfinite(self.mass) or self.mass <= 0:
            raise ConfigurationError(f"Mass must be positive, got {self.mass}")
        if self.inertia.shape != (3, 3):
            raise ConfigurationError(f"Inertia must be shape (3, 3), got {self.inertia.shape}")
        if not np.allclose(self.inertia, self.inertia.T, rtol=1e-9, atol=0.0):
            raise ConfigurationError("Inertia tensor must be symmetric")
        if np.any(np.linalg.eigvalsh(self.inertia) <= 0):
            raise ConfigurationError("Inertia tensor must be positive definite")
        if self.dimensions.shape != (3,) or np.any(self.dimensions <= 0):
            raise ConfigurationError(f"Dimensions must be 3 positive lengths, got {self.dimensions}")
        if self.residual_dipole.shape != (3,):
            raise ConfigurationError(
                f"Residual dipole must be shape (3,), got {self.residual_dipole.shape}"
            )
        for label, value in (
            ("drag_coefficient", self.drag_coefficient),
            ("drag_area", self.drag_area),
            ("radiation_coefficient", self.radiation_coefficient),
            ("radiation_area", self.radiation_area),
            ("max_dipole", self.max_dipole),
        ):
            if value < 0:
                raise ConfigurationError(f"{label} must be non-negative, got {value}")

    @classmethod
    def cubesat_1u(cls, name: str = "cubesat-1u") -> "SatelliteBody":
        """Reference 1U CubeSat (10 cm cube, 1.04 kg)."""
        return cls(
            mass=CUBESAT_1U_MASS,
            inertia=np.diag(CUBESAT_1U_INERTIA),
            name=name,
        )

    @classmethod
    def uniform_box(
        cls,
        mass: float,
        dimensions: NDArray[np.float64] | list[float],
        **kwargs,
    ) -> "SatelliteBody":
        """Body of uniform density with the given box edge lengths [m]."""
        a, b, c = (float(d) for d in dimensions)
        inertia = mass / 12.0 * np.diag([b*b + c*c, a*a + c*c, a*a + b*b])
        kwargs.setdefault("drag_area", b * c)
        kwargs.setdefault("radiation_area", b * c)
        return cls(
            mass=mass,
            inertia=inertia,
            dimensions=np.array([a, b, c]),
            **kwargs,
        )

    @property
    def principal_moments(self) -> NDArray[np.float64]:
        """Eigenvalues of the inertia tensor, ascending [kg*m^2]."""
        return np.linalg.eigvalsh(self.inertia)

    @property
    def is_axisymmetric(self) -> bool:
        """True when at least two principal moments coincide."""
        moments = self.principal_moments
        return bool(np.isclose(moments[0], moments[1]) or np.isclose(moments[1], moments[2]))

    @property
    def ballistic_coefficient(self) -> float:
        """m / (Cd * A) [kg/m^2]; infinite without a drag area."""
        denominator = self.drag_coefficient * self.drag_area
        return float("inf") if denominator == 0 else self.mass / denominator
