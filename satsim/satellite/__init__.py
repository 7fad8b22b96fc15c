"""Satellite body and on-board sensors.

Example:
    >>> from satsim.satellite import SatelliteBody, Magnetometer
    >>>
    >>> body = SatelliteBody.cubesat_1u()
    >>> mag = Magnetometer(seed=42)
"""

from satsim.satellite.body import SatelliteBody
from satsim.satellite.sensors import Gyrometer, Magnetometer

__all__ = [
    "SatelliteBody",
    "Magnetometer",
    "Gyrometer",
]
