"""Force contributor interface.

A force contributor is any object with a ``name`` and a pure
``force(t, state, body)`` method returning the force on the satellite in
the inertial frame [N]. Contributors must not mutate the state, the body or
any shared object.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState
from satsim.satellite.body import SatelliteBody


@runtime_checkable
class ForceModel(Protocol):
    """Anything that produces an inertial-frame force on the satellite."""

    name: str

    def force(
        self,
        t: float,
        state: SatelliteState,
        body: SatelliteBody,
    ) -> NDArray[np.float64]:
        ...


@beartype
@dataclass(frozen=True, eq=False)
class ForceContribution:
    """Force produced by one contributor during one evaluation.

    Attributes:
        source: Contributor name
        vector: Force in the inertial frame [N]
    """
    source: str
    vector: NDArray[np.float64]
