"""Append-only record of accepted satellite states.

Entries are frozen snapshots with read-only arrays, appended in strictly
increasing time order. Export goes through a Polars DataFrame (CSV or
Parquet).

Example:
    >>> ephemeris = Ephemeris()
    >>> ephemeris.append(state)
    >>> df = ephemeris.to_dataframe()
    >>> ephemeris.write_parquet("run.parquet")
"""

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import polars as pl
from beartype import beartype
from numpy.typing import NDArray

from satsim.dynamics.state import SatelliteState, quaternion_to_euler

logger = logging.getLogger(__name__)


@beartype
@dataclass(frozen=True, eq=False)
class EphemerisEntry:
    """One accepted state.

    Attributes:
        time: Simulation time [s]
        state: Read-only snapshot of the state
    """
    time: float
    state: SatelliteState


@beartype
class Ephemeris:
    """Time-ordered, append-only sequence of satellite states."""

    def __init__(self) -> None:
        self._entries: list[EphemerisEntry] = []
        self._lock = threading.Lock()

    def append(self, state: SatelliteState) -> EphemerisEntry:
        """Record a state; its time must be later than the last entry's.

        Raises:
            ValueError: If time does not strictly increase
        """
        entry = EphemerisEntry(time=state.time, state=state.frozen())
        with self._lock:
            if self._entries and not state.time > self._entries[-1].time:
                raise ValueError(
                    f"Ephemeris time must increase: {state.time} after {self._entries[-1].time}"
                )
            self._entries.append(entry)
        return entry

    @property
    def entries(self) -> tuple[EphemerisEntry, ...]:
        """Snapshot of all entries."""
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[EphemerisEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> EphemerisEntry:
        with self._lock:
            return self._entries[index]

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def first(self) -> EphemerisEntry:
        return self[0]

    @property
    def last(self) -> EphemerisEntry:
        return self[-1]

    @property
    def states(self) -> list[SatelliteState]:
        return [entry.state for entry in self.entries]

    # -------------------------------------------------------------------------
    # Array views
    # -------------------------------------------------------------------------

    def _stack(self, attribute: str, width: int) -> NDArray[np.float64]:
        entries = self.entries
        if not entries:
            return np.empty((0, width))
        return np.array([getattr(entry.state, attribute) for entry in entries])

    @property
    def times(self) -> NDArray[np.float64]:
        return np.array([entry.time for entry in self.entries], dtype=np.float64)

    @property
    def positions(self) -> NDArray[np.float64]:
        return self._stack("position", 3)

    @property
    def velocities(self) -> NDArray[np.float64]:
        return self._stack("velocity", 3)

    @property
    def quaternions(self) -> NDArray[np.float64]:
        return self._stack("quaternion", 4)

    @property
    def angular_velocities(self) -> NDArray[np.float64]:
        return self._stack("angular_velocity", 3)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def to_dataframe(self) -> pl.DataFrame:
        """Convert to Polars DataFrame (one row per entry)."""
        entries = self.entries
        positions = self.positions
        velocities = self.velocities
        quaternions = self.quaternions
        rates = self.angular_velocities
        euler = np.array(
            [quaternion_to_euler(e.state.quaternion) for e in entries]
        ).reshape(-1, 3)

        return pl.DataFrame({
            "time": self.times,
            "x": positions[:, 0],
            "y": positions[:, 1],
            "z": positions[:, 2],
            "vx": velocities[:, 0],
            "vy": velocities[:, 1],
            "vz": velocities[:, 2],
            "q0": quaternions[:, 0],
            "q1": quaternions[:, 1],
            "q2": quaternions[:, 2],
            "q3": quaternions[:, 3],
            "wx": rates[:, 0],
            "wy": rates[:, 1],
            "wz": rates[:, 2],
            "roll": euler[:, 0],
            "pitch": euler[:, 1],
            "yaw": euler[:, 2],
            "altitude": np.array([e.state.altitude for e in entries], dtype=np.float64),
            "mass": np.array([e.state.mass for e in entries], dtype=np.float64),
        })

    def write_csv(self, path: str | Path) -> Path:
        """Write the ephemeris to a CSV file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().write_csv(path)
        logger.info("Wrote %d ephemeris entries to %s", len(self), path)
        return path

    def write_parquet(self, path: str | Path) -> Path:
        """Write the ephemeris to a Parquet file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().write_parquet(path)
        logger.info("Wrote %d ephemeris entries to %s", len(self), path)
        return path
