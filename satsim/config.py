"""Run configuration.

Plain dataclasses describing one simulation run, loadable from and
serializable to JSON. Each section validates itself and raises
:class:`ConfigurationError` before any model is built.

Example:
    >>> from satsim.config import SimulationConfig
    >>>
    >>> config = SimulationConfig.from_json("configs/detumble.json")
    >>> config.duration
    5400.0

JSON layout (every section optional)::

    {
      "epoch": "2024-03-20T00:00:00+00:00",
      "duration": 5400,
      "integrator": {"method": "dopri45", "atol": 1e-6},
      "forces": {"gravity_degree": 2, "drag": true},
      "torques": {"law": "detumble_then_point", "seed": 7},
      "guidance": {"mode": "nadir"},
      "body": {"mass": 1.04},
      "initial_state": {"altitude": 500000, "inclination": 51.6}
    }

The initial state is Cartesian when it has a ``position``, Keplerian when it
has a ``semi_major_axis`` and a circular orbit otherwise.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
from beartype import beartype
from beartype.roar import BeartypeCallHintViolation

from satsim.environment.celestial import DEFAULT_EPOCH
from satsim.environment.gravity import R_EARTH_EQ
from satsim.errors import ConfigurationError
from satsim.satellite.body import (
    CUBESAT_1U_INERTIA,
    CUBESAT_1U_MASS,
    CUBESAT_1U_SIDE,
    DEFAULT_DRAG_COEFFICIENT,
    DEFAULT_MAX_DIPOLE,
    DEFAULT_RADIATION_COEFFICIENT,
    SatelliteBody,
)
from satsim.satellite.sensors import DEFAULT_MAGNETOMETER_NOISE
from satsim.torques.control import (
    DEFAULT_BDOT_GAIN,
    DEFAULT_BDOT_SAMPLE_PERIOD,
    DEFAULT_BDOT_TIME_CONSTANT,
)

logger = logging.getLogger(__name__)

INTEGRATOR_METHODS = ("rk4", "dopri45")
GRAVITY_DEGREES = (0, 2, 3, 4)
SHADOW_MODELS = ("cylindrical", "conical")
TORQUE_LAWS = (None, "detumble_then_point", "point")
GUIDANCE_MODES = ("nadir", "sun", "inertial", "velocity", "dynamic")
DETUMBLE_SENSING = ("ideal", "magnetometer")


def _build(cls: type, data: dict[str, Any] | None, section: str) -> Any:
    """Instantiate a config dataclass from a dict, coercing JSON ints to floats."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{section}' must be an object, got {type(data).__name__}")

    known = {f.name: f for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{section}': {', '.join(unknown)}")

    kwargs = {}
    for key, value in data.items():
        expected = known[key].type
        if expected in (float, float | None) and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        kwargs[key] = value

    try:
        return cls(**kwargs)
    except (TypeError, BeartypeCallHintViolation) as exc:
        raise ConfigurationError(f"Invalid value in '{section}': {exc}") from exc


def _float(value: Any, label: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be a number, got {value!r}") from exc


def _floats(values: Any, length: int, label: str) -> list[float]:
    if not isinstance(values, (list, tuple)) or len(values) != length:
        raise ConfigurationError(f"{label} must be a list of {length} numbers, got {values!r}")
    return [_float(v, label) for v in values]


# =============================================================================
# Sections
# =============================================================================


@beartype
@dataclass
class IntegratorConfig:
    """Integration method and its limits.

    Attributes:
        method: "rk4" (fixed step) or "dopri45" (adaptive)
        step_size: RK4 step [s]
        atol: Adaptive absolute tolerance
        rtol: Adaptive relative tolerance
        min_step: Adaptive minimum step [s]
        max_step: Adaptive maximum step [s]
        max_rejections: Consecutive rejections before divergence
        max_steps: Accepted-step limit
        max_position_norm: Divergence radius [m]
    """
    method: str = "rk4"
    step_size: float = 0.1
    atol: float = 1e-9
    rtol: float = 1e-9
    min_step: float = 1e-6
    max_step: float = 60.0
    max_rejections: int = 20
    max_steps: int = 10_000_000
    max_position_norm: float = 1e10

    def validate(self) -> None:
        if self.method not in INTEGRATOR_METHODS:
            raise ConfigurationError(f"Unknown integrator '{self.method}', expected one of {INTEGRATOR_METHODS}")
        if self.step_size <= 0:
            raise ConfigurationError(f"step_size must be positive, got {self.step_size}")
        if self.atol <= 0 or self.rtol < 0:
            raise ConfigurationError("Tolerances must be positive")
        if not 0 < self.min_step <= self.max_step:
            raise ConfigurationError("Need 0 < min_step <= max_step")
        if self.max_rejections < 1 or self.max_steps < 1:
            raise ConfigurationError("max_rejections and max_steps must be at least 1")
        if self.max_position_norm <= 0:
            raise ConfigurationError("max_position_norm must be positive")


@beartype
@dataclass
class ForceConfig:
    """Which force contributors are active."""
    gravity: bool = True
    gravity_degree: int = 0
    drag: bool = False
    solar_radiation: bool = False
    shadow_model: str = "cylindrical"
    sun_third_body: bool = False
    moon_third_body: bool = False

    def validate(self) -> None:
        if self.gravity_degree not in GRAVITY_DEGREES:
            raise ConfigurationError(f"gravity_degree must be one of {GRAVITY_DEGREES}, got {self.gravity_degree}")
        if self.shadow_model not in SHADOW_MODELS:
            raise ConfigurationError(f"shadow_model must be one of {SHADOW_MODELS}, got '{self.shadow_model}'")


@beartype
@dataclass
class TorqueConfig:
    """Torque contributors and the closed-loop law.

    Attributes:
        law: None, "point" (PD only) or "detumble_then_point"
        scenario: Open-loop steps as [start, duration, [x, y, z]]
        scenario_intensity: Scale of the scenario directions [N*m]
        gravity_gradient: Enable gravity-gradient torque
        residual_magnetic: Enable residual-dipole torque
        random_disturbance: Half-width of the random torque, 0 disables [N*m]
        seed: Seed for random disturbances
        detumble_threshold: Spin rate ending detumbling [rad/s]
        kp: PD proportional gain [N*m]
        kd: PD derivative gain [N*m*s]
        ki: Integral gain [N*m/s]
        max_torque: Controller saturation per axis [N*m]
        detumble_sensing: "ideal" (true spin) or "magnetometer" (filtered
            differences of noisy field readings)
        bdot_gain: B-dot gain [A*m^2*s/T]
        bdot_time_constant: Low-pass filter time constant of the sensed B-dot [s]
        bdot_sample_period: Minimum time between magnetometer samples [s]
        magnetometer_noise: Magnetometer noise half-width [T]
        gyrometer_noise: Gyrometer noise half-width for the end-of-detumbling
            check, 0 uses the true spin [rad/s]
    """
    law: str | None = None
    scenario: list = field(default_factory=list)
    scenario_intensity: float = 0.1
    gravity_gradient: bool = False
    residual_magnetic: bool = False
    random_disturbance: float = 0.0
    seed: int = 0
    detumble_threshold: float = 0.01
    kp: float = 2.0e-4
    kd: float = 8.0e-4
    ki: float = 0.0
    max_torque: float | None = None
    detumble_sensing: str = "ideal"
    bdot_gain: float = DEFAULT_BDOT_GAIN
    bdot_time_constant: float = DEFAULT_BDOT_TIME_CONSTANT
    bdot_sample_period: float = DEFAULT_BDOT_SAMPLE_PERIOD
    magnetometer_noise: float = DEFAULT_MAGNETOMETER_NOISE
    gyrometer_noise: float = 0.0

    def validate(self) -> None:
        if self.law not in TORQUE_LAWS:
            raise ConfigurationError(f"Unknown torque law '{self.law}', expected one of {TORQUE_LAWS}")
        for step in self.scenario:
            if not isinstance(step, (list, tuple)) or len(step) != 3:
                raise ConfigurationError(f"Scenario steps must be [start, duration, [x, y, z]], got {step}")
            _floats(list(step[:2]), 2, "Scenario start and duration")
            _floats(step[2], 3, "Scenario direction")
        if self.random_disturbance < 0:
            raise ConfigurationError("random_disturbance must be non-negative")
        if self.detumble_threshold <= 0:
            raise ConfigurationError("detumble_threshold must be positive")
        if self.detumble_sensing not in DETUMBLE_SENSING:
            raise ConfigurationError(
                f"Unknown detumble_sensing '{self.detumble_sensing}', expected one of {DETUMBLE_SENSING}"
            )
        if self.bdot_gain <= 0 or self.bdot_time_constant <= 0:
            raise ConfigurationError("bdot_gain and bdot_time_constant must be positive")
        if self.bdot_sample_period < 0:
            raise ConfigurationError("bdot_sample_period must be non-negative")
        if self.magnetometer_noise < 0 or self.gyrometer_noise < 0:
            raise ConfigurationError("Sensor noise must be non-negative")


@beartype
@dataclass
class GuidanceConfig:
    """Attitude reference for the torque law."""
    mode: str = "nadir"
    inertial_quaternion: list = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])

    def validate(self) -> None:
        if self.mode not in GUIDANCE_MODES:
            raise ConfigurationError(f"Unknown guidance mode '{self.mode}', expected one of {GUIDANCE_MODES}")
        q = _floats(self.inertial_quaternion, 4, "inertial_quaternion")
        if np.linalg.norm(q) < 1e-12:
            raise ConfigurationError("inertial_quaternion must be non-zero")


@beartype
@dataclass
class BodyConfig:
    """Satellite body parameters (1U CubeSat defaults)."""
    mass: float = CUBESAT_1U_MASS
    inertia: list = field(default_factory=lambda: np.diag(CUBESAT_1U_INERTIA).tolist())
    dimensions: list = field(default_factory=lambda: [CUBESAT_1U_SIDE] * 3)
    drag_coefficient: float = DEFAULT_DRAG_COEFFICIENT
    drag_area: float = CUBESAT_1U_SIDE ** 2
    radiation_coefficient: float = DEFAULT_RADIATION_COEFFICIENT
    radiation_area: float = CUBESAT_1U_SIDE ** 2
    residual_dipole: list = field(default_factory=lambda: [0.0, 0.0, 0.0])
    max_dipole: float = DEFAULT_MAX_DIPOLE
    name: str = "cubesat-1u"

    def validate(self) -> None:
        self.create_body()

    def create_body(self) -> SatelliteBody:
        """Build the frozen body (validates it)."""
        if len(self.inertia) != 3:
            raise ConfigurationError(f"inertia must be 3x3, got {self.inertia!r}")
        inertia = np.array([_floats(row, 3, "inertia row") for row in self.inertia])
        return SatelliteBody(
            mass=float(self.mass),
            inertia=inertia,
            dimensions=np.array(_floats(self.dimensions, 3, "dimensions")),
            drag_coefficient=float(self.drag_coefficient),
            drag_area=float(self.drag_area),
            radiation_coefficient=float(self.radiation_coefficient),
            radiation_area=float(self.radiation_area),
            residual_dipole=np.array(_floats(self.residual_dipole, 3, "residual_dipole")),
            max_dipole=float(self.max_dipole),
            name=self.name,
        )


@beartype
@dataclass
class InitialStateConfig:
    """Cartesian initial state."""
    position: list = field(default_factory=lambda: [6878137.0, 0.0, 0.0])
    velocity: list = field(default_factory=lambda: [0.0, 7612.608, 0.0])
    quaternion: list = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    angular_velocity: list = field(default_factory=lambda: [0.0, 0.0, 0.0])

    def validate(self) -> None:
        _floats(self.position, 3, "position")
        _floats(self.velocity, 3, "velocity")
        q = _floats(self.quaternion, 4, "quaternion")
        if np.linalg.norm(q) < 1e-12:
            raise ConfigurationError("quaternion must be non-zero")
        _floats(self.angular_velocity, 3, "angular_velocity")


@beartype
@dataclass
class CircularOrbitConfig:
    """Circular-orbit shortcut for the initial state (angles in degrees)."""
    altitude: float = 500e3
    inclination: float = 0.0
    raan: float = 0.0
    arg_latitude: float = 0.0
    quaternion: list = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    angular_velocity: list = field(default_factory=lambda: [0.0, 0.0, 0.0])

    def validate(self) -> None:
        if self.altitude <= 0:
            raise ConfigurationError(f"altitude must be positive, got {self.altitude}")
        q = _floats(self.quaternion, 4, "quaternion")
        if np.linalg.norm(q) < 1e-12:
            raise ConfigurationError("quaternion must be non-zero")
        _floats(self.angular_velocity, 3, "angular_velocity")


@beartype
@dataclass
class OrbitalElementsConfig:
    """Keplerian initial state (angles in degrees)."""
    semi_major_axis: float = R_EARTH_EQ + 575e3
    eccentricity: float = 0.0
    inclination: float = 98.0
    raan: float = 0.0
    arg_perigee: float = 0.0
    true_anomaly: float = 0.0
    quaternion: list = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    angular_velocity: list = field(default_factory=lambda: [0.0, 0.0, 0.0])

    def validate(self) -> None:
        if not 0.0 <= self.eccentricity < 1.0:
            raise ConfigurationError(f"eccentricity must be in [0, 1), got {self.eccentricity}")
        perigee = self.semi_major_axis * (1.0 - self.eccentricity)
        if perigee <= R_EARTH_EQ:
            raise ConfigurationError(f"Perigee radius {perigee:.1f} m is below the Earth's surface")
        q = _floats(self.quaternion, 4, "quaternion")
        if np.linalg.norm(q) < 1e-12:
            raise ConfigurationError("quaternion must be non-zero")
        _floats(self.angular_velocity, 3, "angular_velocity")


# =============================================================================
# Simulation Config
# =============================================================================


@beartype
@dataclass
class SimulationConfig:
    """Complete description of one run.

    Attributes:
        epoch: Calendar time of t = 0 (UTC)
        duration: Length of the run [s]
        integrator: Integration settings
        forces: Active forces
        torques: Active torques and control law
        guidance: Attitude reference
        body: Satellite body
        initial_state: Cartesian state, Keplerian elements or circular-orbit shortcut
        parallel_contributors: Evaluate contributors on a thread pool
        name: Run label
    """
    epoch: datetime = DEFAULT_EPOCH
    duration: float = 600.0
    integrator: IntegratorConfig = field(default_factory=IntegratorConfig)
    forces: ForceConfig = field(default_factory=ForceConfig)
    torques: TorqueConfig = field(default_factory=TorqueConfig)
    guidance: GuidanceConfig = field(default_factory=GuidanceConfig)
    body: BodyConfig = field(default_factory=BodyConfig)
    initial_state: InitialStateConfig | OrbitalElementsConfig | CircularOrbitConfig = field(default_factory=CircularOrbitConfig)
    parallel_contributors: bool = False
    name: str = "satsim"

    def validate(self) -> None:
        """Validate every section.

        Raises:
            ConfigurationError: On the first invalid value found
        """
        if self.duration <= 0:
            raise ConfigurationError(f"duration must be positive, got {self.duration}")
        for section in (
            self.integrator, self.forces, self.torques,
            self.guidance, self.body, self.initial_state,
        ):
            section.validate()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationConfig":
        """Build and validate a config from a plain dict."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        epoch = data.get("epoch")
        try:
            epoch = DEFAULT_EPOCH if epoch is None else datetime.fromisoformat(epoch)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid epoch {epoch!r}") from exc

        initial = data.get("initial_state")
        if isinstance(initial, dict) and "position" in initial:
            initial_state = _build(InitialStateConfig, initial, "initial_state")
        elif isinstance(initial, dict) and "semi_major_axis" in initial:
            initial_state = _build(OrbitalElementsConfig, initial, "initial_state")
        else:
            initial_state = _build(CircularOrbitConfig, initial, "initial_state")

        config = cls(
            epoch=epoch,
            duration=_float(data.get("duration", 600.0), "duration"),
            integrator=_build(IntegratorConfig, data.get("integrator"), "integrator"),
            forces=_build(ForceConfig, data.get("forces"), "forces"),
            torques=_build(TorqueConfig, data.get("torques"), "torques"),
            guidance=_build(GuidanceConfig, data.get("guidance"), "guidance"),
            body=_build(BodyConfig, data.get("body"), "body"),
            initial_state=initial_state,
            parallel_contributors=bool(data.get("parallel_contributors", False)),
            name=str(data.get("name", "satsim")),
        )
        config.validate()
        return config

    @classmethod
    def from_json(cls, path: str | Path) -> "SimulationConfig":
        """Load and validate a JSON configuration file."""
        path = Path(path)
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form, accepted back by :meth:`from_dict`."""
        data = dataclasses.asdict(self)
        data["epoch"] = self.epoch.isoformat()
        return data

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps(self.to_dict(), indent=2)
