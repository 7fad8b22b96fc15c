"""Earth shadow models.

Two eclipse models are available:
- Cylindrical: the umbra is a cylinder of radius R_earth extending from the
  Earth away from the Sun. Either fully lit or fully shadowed.
- Conical: apparent solar and Earth disks seen from the satellite; returns
  the visible fraction of the solar disk, so penumbra is graded.

Reference: Montenbruck & Gill, Satellite Orbits, section 3.4.2
"""

from enum import Enum

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.environment.celestial import R_SUN
from satsim.environment.gravity import R_EARTH_EQ


class ShadowModel(Enum):
    """Eclipse geometry used for solar radiation pressure."""

    CYLINDRICAL = "cylindrical"
    CONICAL = "conical"


@beartype
def cylindrical_shadow(
    position: NDArray[np.float64],
    sun_position: NDArray[np.float64],
    body_radius: float = R_EARTH_EQ,
) -> bool:
    """True when the satellite is inside the cylindrical umbra.

    Args:
        position: Satellite position relative to the Earth [m]
        sun_position: Sun position relative to the Earth [m]
        body_radius: Radius of the shadowing body [m]
    """
    sun_dir = sun_position / np.linalg.norm(sun_position)

    # Distance along the Sun line, positive toward the Sun
    along = float(np.dot(position, sun_dir))
    if along >= 0.0:
        return False

    perpendicular = float(np.linalg.norm(position - along * sun_dir))
    return perpendicular < body_radius


@beartype
def conical_shadow_fraction(
    position: NDArray[np.float64],
    sun_position: NDArray[np.float64],
    body_radius: float = R_EARTH_EQ,
    sun_radius: float = R_SUN,
) -> float:
    """Visible fraction of the solar disk, 0 in umbra and 1 in full sunlight.

    Args:
        position: Satellite position relative to the Earth [m]
        sun_position: Sun position relative to the Earth [m]
        body_radius: Radius of the shadowing body [m]
        sun_radius: Radius of the Sun [m]
    """
    to_sun = sun_position - position
    r = float(np.linalg.norm(position))
    d = float(np.linalg.norm(to_sun))

    # Apparent radii and separation of the two disks
    a = float(np.arcsin(min(sun_radius / d, 1.0)))
    b = float(np.arcsin(min(body_radius / r, 1.0)))
    cos_c = float(np.dot(-position, to_sun)) / (r * d)
    c = float(np.arccos(np.clip(cos_c, -1.0, 1.0)))

    if c >= a + b:
        return 1.0
    if c <= b - a:
        return 0.0
    if c <= a - b:
        # Earth disk entirely inside the solar disk
        return 1.0 - (b * b) / (a * a)

    x = (c * c + a * a - b * b) / (2.0 * c)
    y = np.sqrt(max(a * a - x * x, 0.0))
    overlap = a * a * np.arccos(np.clip(x / a, -1.0, 1.0)) \
        + b * b * np.arccos(np.clip((c - x) / b, -1.0, 1.0)) - c * y
    return float(np.clip(1.0 - overlap / (np.pi * a * a), 0.0, 1.0))


@beartype
def illumination(
    position: NDArray[np.float64],
    sun_position: NDArray[np.float64],
    model: ShadowModel = ShadowModel.CYLINDRICAL,
    body_radius: float = R_EARTH_EQ,
) -> float:
    """Illumination factor in [0, 1] under the chosen shadow model."""
    if model is ShadowModel.CYLINDRICAL:
        return 0.0 if cylindrical_shadow(position, sun_position, body_radius) else 1.0
    return conical_shadow_fraction(position, sun_position, body_radius)
