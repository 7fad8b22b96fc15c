"""Assembly of a complete run from a :class:`SimulationConfig`.

Builds the environment, satellite body, force and torque contributors,
guidance, torque law, integrator and propagator, then runs the propagation
and collects the ephemeris.

Example:
    >>> from satsim import Simulation, SimulationConfig
    >>>
    >>> sim = Simulation.from_config(SimulationConfig.from_json("detumble.json"))
    >>> result = sim.run()
    >>> result.summary.reason
    <TerminationReason.COMPLETED: 'completed'>
    >>> result.ephemeris.write_csv("output/detumble.csv")
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
import polars as pl
from beartype import beartype

from satsim.config import (
    CircularOrbitConfig,
    ForceConfig,
    GuidanceConfig,
    IntegratorConfig,
    OrbitalElementsConfig,
    SimulationConfig,
    TorqueConfig,
)
from satsim.dynamics.aggregator import DynamicsAggregator
from satsim.dynamics.state import SatelliteState
from satsim.environment import Environment, GravityModel, ShadowModel
from satsim.forces import (
    AtmosphericDrag,
    CentralGravity,
    ForceModel,
    SolarRadiationPressure,
    ThirdBodyAttraction,
)
from satsim.guidance import AutomaticGuidance, DynamicGuidance, Guidance, PointingMode
from satsim.propagation import (
    CancellationToken,
    DormandPrince45,
    Ephemeris,
    EphemerisRecorder,
    Integrator,
    Propagator,
    RunSummary,
    RungeKutta4,
    StepHandler,
)
from satsim.satellite.body import SatelliteBody
from satsim.satellite.sensors import Gyrometer, Magnetometer
from satsim.torques import (
    AutomaticTorqueLaw,
    GravityGradientTorque,
    PDAttitudeControl,
    Phase,
    RandomTorqueDisturbance,
    ResidualMagneticTorque,
    SensedBDotDetumble,
    TorqueModel,
    TorqueScenario,
    detumble_then_point,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Builders
# =============================================================================


def build_integrator(config: IntegratorConfig) -> Integrator:
    """Integrator described by ``config``."""
    if config.method == "dopri45":
        return DormandPrince45(
            atol=config.atol,
            rtol=config.rtol,
            min_step=config.min_step,
            max_step=config.max_step,
        )
    return RungeKutta4(step_size=config.step_size)


def build_forces(config: ForceConfig, environment: Environment) -> list[ForceModel]:
    """Force contributors in summation order."""
    forces: list[ForceModel] = []
    if config.gravity:
        forces.append(CentralGravity(environment.gravity))
    if config.drag:
        forces.append(AtmosphericDrag(environment.atmosphere))
    if config.solar_radiation:
        forces.append(SolarRadiationPressure(
            sun=environment.sun, shadow_model=ShadowModel(config.shadow_model),
        ))
    if config.sun_third_body:
        forces.append(ThirdBodyAttraction.sun(environment.sun))
    if config.moon_third_body:
        forces.append(ThirdBodyAttraction.moon(environment.moon))
    return forces


def build_torques(config: TorqueConfig, environment: Environment) -> list[TorqueModel]:
    """Open-loop torque contributors in summation order."""
    torques: list[TorqueModel] = []
    if config.scenario:
        torques.append(TorqueScenario.from_tuples(config.scenario, config.scenario_intensity))
    if config.gravity_gradient:
        torques.append(GravityGradientTorque())
    if config.residual_magnetic:
        torques.append(ResidualMagneticTorque(environment.magnetic))
    if config.random_disturbance > 0:
        torques.append(RandomTorqueDisturbance(config.random_disturbance, seed=config.seed))
    return torques


def build_guidance(config: GuidanceConfig, environment: Environment) -> Guidance:
    if config.mode == "dynamic":
        return DynamicGuidance()
    return AutomaticGuidance(
        PointingMode(config.mode),
        sun=environment.sun,
        inertial_quaternion=np.array(config.inertial_quaternion, dtype=np.float64),
    )


def build_torque_law(
    config: TorqueConfig,
    environment: Environment,
    guidance: Guidance,
) -> AutomaticTorqueLaw | None:
    """Closed-loop law, or None for an uncontrolled run."""
    if config.law is None:
        return None
    controller = PDAttitudeControl(
        kp=config.kp, kd=config.kd, ki=config.ki, max_torque=config.max_torque,
    )
    if config.law == "point":
        return AutomaticTorqueLaw(
            phases=[Phase("point", controller)], guidance=guidance, name="point",
        )
    detumbler = None
    if config.detumble_sensing == "magnetometer":
        detumbler = SensedBDotDetumble(
            Magnetometer(config.magnetometer_noise, seed=config.seed),
            environment,
            gain=config.bdot_gain,
            time_constant=config.bdot_time_constant,
            sample_period=config.bdot_sample_period,
        )
    gyrometer = None
    if config.gyrometer_noise > 0:
        gyrometer = Gyrometer(config.gyrometer_noise, seed=config.seed + 1)
    return detumble_then_point(
        environment.magnetic,
        guidance=guidance,
        spin_threshold=config.detumble_threshold,
        controller=controller,
        bdot_gain=config.bdot_gain,
        detumbler=detumbler,
        gyrometer=gyrometer,
    )


def build_initial_state(config: SimulationConfig, body: SatelliteBody) -> SatelliteState:
    initial = config.initial_state
    quaternion = np.array(initial.quaternion, dtype=np.float64)
    angular_velocity = np.array(initial.angular_velocity, dtype=np.float64)

    if isinstance(initial, CircularOrbitConfig):
        return SatelliteState.from_circular_orbit(
            altitude=initial.altitude,
            mass=body.mass,
            inertia=body.inertia.copy(),
            inclination_deg=initial.inclination,
            raan_deg=initial.raan,
            arg_latitude_deg=initial.arg_latitude,
            quaternion=quaternion,
            angular_velocity=angular_velocity,
        )
    if isinstance(initial, OrbitalElementsConfig):
        return SatelliteState.from_orbital_elements(
            semi_major_axis=initial.semi_major_axis,
            eccentricity=initial.eccentricity,
            mass=body.mass,
            inertia=body.inertia.copy(),
            inclination_deg=initial.inclination,
            raan_deg=initial.raan,
            arg_perigee_deg=initial.arg_perigee,
            true_anomaly_deg=initial.true_anomaly,
            quaternion=quaternion,
            angular_velocity=angular_velocity,
        )
    return SatelliteState(
        position=np.array(initial.position, dtype=np.float64),
        velocity=np.array(initial.velocity, dtype=np.float64),
        quaternion=quaternion,
        angular_velocity=angular_velocity,
        mass=body.mass,
        inertia=body.inertia.copy(),
    )


# =============================================================================
# Simulation
# =============================================================================


@beartype
@dataclass(frozen=True)
class SimulationResult:
    """Outcome of :meth:`Simulation.run`.

    Attributes:
        summary: Termination reason and step counts
        ephemeris: Every accepted state, initial state included
    """
    summary: RunSummary
    ephemeris: Ephemeris

    @property
    def success(self) -> bool:
        return self.summary.success

    def to_dataframe(self) -> pl.DataFrame:
        return self.ephemeris.to_dataframe()


@beartype
class Simulation:
    """A configured, runnable simulation."""

    def __init__(
        self,
        config: SimulationConfig,
        environment: Environment,
        body: SatelliteBody,
        aggregator: DynamicsAggregator,
        guidance: Guidance | None,
        integrator: Integrator,
        initial_state: SatelliteState,
    ) -> None:
        self.config = config
        self.environment = environment
        self.body = body
        self.aggregator = aggregator
        self.guidance = guidance
        self.initial_state = initial_state
        self.ephemeris = Ephemeris()
        self.propagator = Propagator(
            aggregator,
            integrator,
            max_steps=config.integrator.max_steps,
            max_rejections=config.integrator.max_rejections,
            max_position_norm=config.integrator.max_position_norm,
        )

    @classmethod
    def from_config(cls, config: SimulationConfig) -> "Simulation":
        """Build every model described by ``config``.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate()
        logger.info("Building simulation '%s' (duration=%.1f s)", config.name, config.duration)

        environment = Environment.earth(
            epoch=config.epoch,
            gravity_model=GravityModel(config.forces.gravity_degree),
            shadow_model=ShadowModel(config.forces.shadow_model),
        )
        body = config.body.create_body()
        guidance = None
        if config.torques.law is not None:
            guidance = build_guidance(config.guidance, environment)

        aggregator = DynamicsAggregator(
            body=body,
            forces=build_forces(config.forces, environment),
            torques=build_torques(config.torques, environment),
            torque_law=build_torque_law(config.torques, environment, guidance),
        )
        return cls(
            config=config,
            environment=environment,
            body=body,
            aggregator=aggregator,
            guidance=guidance,
            integrator=build_integrator(config.integrator),
            initial_state=build_initial_state(config, body),
        )

    def run(
        self,
        handlers: list[StepHandler] | tuple[StepHandler, ...] = (),
        cancel: CancellationToken | None = None,
    ) -> SimulationResult:
        """Propagate from the initial state over the configured duration.

        Divergence and domain errors end the run early; the result then
        holds every state accepted before the failure. Any other error is
        re-raised, and the states recorded up to it stay available as
        ``simulation.ephemeris``.

        Args:
            handlers: Extra step handlers, called after the ephemeris recorder
            cancel: Token to stop the run from another thread
        """
        recorder = EphemerisRecorder()
        self.ephemeris = recorder.ephemeris
        all_handlers = [recorder, *handlers]
        t_end = self.initial_state.time + self.config.duration

        if self.config.parallel_contributors:
            with ThreadPoolExecutor(thread_name_prefix="satsim-contrib") as executor:
                self.aggregator.executor = executor
                try:
                    summary = self.propagator.run(
                        self.initial_state, t_end, handlers=all_handlers, cancel=cancel,
                    )
                finally:
                    self.aggregator.executor = None
        else:
            summary = self.propagator.run(
                self.initial_state, t_end, handlers=all_handlers, cancel=cancel,
            )

        return SimulationResult(summary=summary, ephemeris=recorder.ephemeris)
