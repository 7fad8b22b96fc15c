"""Torque contributor interface.

A torque contributor is any object with a ``name`` and a pure
``torque(t, state, body)`` method returning the torque about the centre of
mass in the body frame [N*m].

Contributors that carry per-step memory (for example a disturbance held
constant over a step) may also define ``advance(t, state)``; the
propagator calls it once after every accepted step and never during
derivative evaluation.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.satellite.body import SatelliteBody


@runtime_checkable
class TorqueModel(Protocol):
    """Anything that produces a body-frame torque on the satellite."""

    name: str

    def torque(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
    ) -> NDArray[np.float64]:
        ...


@beartype
@dataclass(frozen=True, eq=False)
class TorqueContribution:
    """Torque produced by one contributor during one evaluation.

    Attributes:
        source: Contributor name
        vector: Torque in the body frame [N*m]
    """
    source: str
    vector: NDArray[np.float64]
