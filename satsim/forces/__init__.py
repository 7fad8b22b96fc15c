"""Force contributors acting on the satellite centre of mass.

Every contributor exposes ``name`` and ``force(t, state, body)`` returning
the inertial-frame force [N].

Example:
    >>> from satsim.forces import CentralGravity, AtmosphericDrag
    >>>
    >>> forces = (CentralGravity.with_degree(2), AtmosphericDrag())
"""

from satsim.forces.base import ForceContribution, ForceModel
from satsim.forces.drag import AtmosphericDrag
from satsim.forces.gravity import CentralGravity
from satsim.forces.radiation import SOLAR_PRESSURE_1AU, SolarRadiationPressure
from satsim.forces.third_body import (
    MU_MOON,
    MU_SUN,
    ThirdBodyAttraction,
    third_body_acceleration,
)

__all__ = [
    "ForceModel",
    "ForceContribution",
    "CentralGravity",
    "AtmosphericDrag",
    "SolarRadiationPressure",
    "SOLAR_PRESSURE_1AU",
    "ThirdBodyAttraction",
    "third_body_acceleration",
    "MU_SUN",
    "MU_MOON",
]
