"""Attitude guidance policies.

Example:
    >>> from satsim.guidance import AutomaticGuidance, PointingMode
    >>>
    >>> guidance = AutomaticGuidance(PointingMode.SUN)
"""

from satsim.guidance.automatic import AutomaticGuidance, PointingMode, orbit_frame
from satsim.guidance.base import Guidance, GuidanceCommand, GuidanceState
from satsim.guidance.dynamic import DynamicGuidance

__all__ = [
    "Guidance",
    "GuidanceCommand",
    "GuidanceState",
    "AutomaticGuidance",
    "PointingMode",
    "orbit_frame",
    "DynamicGuidance",
]
