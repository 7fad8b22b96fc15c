"""End-to-end tests: configuration to ephemeris, and the command line."""

import json

import numpy as np
import polars as pl
import pytest
from numpy.testing import assert_allclose

from satsim import Simulation, SimulationConfig, TerminationReason
from satsim.cli import build_parser, main
from satsim.environment import Environment
from satsim.guidance import AutomaticGuidance, DynamicGuidance
from satsim.propagation import CallbackStepHandler, CancellationToken
from satsim.simulation import build_forces, build_torques


def _config(**overrides) -> SimulationConfig:
    data = {"duration": 10.0, "integrator": {"step_size": 0.5}}
    data.update(overrides)
    return SimulationConfig.from_dict(data)


# =============================================================================
# Assembly Tests
# =============================================================================


class TestAssembly:
    """Test building models from a configuration."""

    def test_default_build(self):
        sim = Simulation.from_config(_config())
        assert [f.name for f in sim.aggregator.forces] == ["central_gravity"]
        assert sim.aggregator.torques == ()
        assert sim.aggregator.torque_law is None
        assert sim.guidance is None
        assert_allclose(sim.initial_state.altitude, 500e3, rtol=1e-12)

    def test_all_contributors(self):
        config = _config(
            forces={
                "gravity_degree": 4, "drag": True, "solar_radiation": True,
                "sun_third_body": True, "moon_third_body": True,
            },
            torques={
                "scenario": [[1.0, 2.0, [0.0, 0.0, 1.0]]], "gravity_gradient": True,
                "residual_magnetic": True, "random_disturbance": 1e-7,
            },
        )
        environment = Environment.earth(epoch=config.epoch)
        forces = build_forces(config.forces, environment)
        torques = build_torques(config.torques, environment)
        assert [f.name for f in forces] == [
            "central_gravity", "atmospheric_drag", "solar_radiation_pressure",
            "sun_third_body", "moon_third_body",
        ]
        assert [t.name for t in torques] == [
            "torque_scenario", "gravity_gradient", "residual_magnetic", "random_disturbance",
        ]

    def test_torque_law_and_guidance(self):
        sim = Simulation.from_config(_config(torques={"law": "detumble_then_point"}))
        assert sim.aggregator.torque_law.name == "detumble_then_point"
        assert isinstance(sim.guidance, AutomaticGuidance)

        sim = Simulation.from_config(_config(torques={"law": "point"}, guidance={"mode": "dynamic"}))
        assert [phase.name for phase in sim.aggregator.torque_law.phases] == ["point"]
        assert isinstance(sim.guidance, DynamicGuidance)

    def test_cartesian_initial_state(self):
        sim = Simulation.from_config(_config(initial_state={
            "position": [7.0e6, 0.0, 0.0],
            "velocity": [0.0, 7546.0, 0.0],
            "angular_velocity": [0.0, 0.0, 0.1],
        }))
        assert_allclose(sim.initial_state.position, [7.0e6, 0.0, 0.0])
        assert_allclose(sim.initial_state.angular_velocity, [0.0, 0.0, 0.1])
        assert sim.initial_state.mass == sim.body.mass

    def test_orbital_elements_initial_state(self):
        sim = Simulation.from_config(_config(initial_state={
            "semi_major_axis": 7000000, "eccentricity": 0.01,
            "inclination": 98, "true_anomaly": 0,
        }))
        assert_allclose(sim.initial_state.radius, 7.0e6 * 0.99, rtol=1e-12)
        assert_allclose(sim.initial_state.angular_velocity, [0.0, 0.0, 0.0])


# =============================================================================
# Run Tests
# =============================================================================


class TestRun:
    """Test complete runs."""

    def test_run_records_every_step(self):
        result = Simulation.from_config(_config()).run()
        assert result.success
        assert result.summary.end_time == 10.0
        assert len(result.ephemeris) == result.summary.steps + 1 == 21

        df = result.to_dataframe()
        assert isinstance(df, pl.DataFrame)
        assert df.height == 21

    def test_parallel_matches_serial(self):
        overrides = dict(
            forces={"gravity_degree": 2, "drag": True, "solar_radiation": True, "moon_third_body": True},
            torques={"gravity_gradient": True, "random_disturbance": 1e-7, "seed": 5},
            initial_state={"altitude": 450e3, "inclination": 60.0, "angular_velocity": [0.01, 0.02, -0.01]},
        )
        serial = Simulation.from_config(_config(**overrides)).run()
        parallel = Simulation.from_config(_config(parallel_contributors=True, **overrides)).run()

        assert np.array_equal(serial.ephemeris.positions, parallel.ephemeris.positions)
        assert np.array_equal(serial.ephemeris.angular_velocities, parallel.ephemeris.angular_velocities)

    def test_detumbling_removes_energy(self):
        config = _config(
            torques={"law": "detumble_then_point", "detumble_threshold": 0.01},
            initial_state={"inclination": 80.0, "angular_velocity": [0.05, -0.03, 0.04]},
        )
        sim = Simulation.from_config(config)
        phases = []
        handler = CallbackStepHandler(
            lambda state, is_last: phases.append(sim.propagator.control.phase_index),
        )
        result = sim.run(handlers=[handler])

        assert result.success
        assert set(phases) == {0}
        energies = [e.state.rotational_kinetic_energy for e in result.ephemeris]
        assert energies[-1] < energies[0]
        assert all(b <= a * (1.0 + 1e-6) for a, b in zip(energies, energies[1:]))

    def test_cancelled_run_keeps_ephemeris(self):
        token = CancellationToken()
        handler = CallbackStepHandler(lambda state, is_last: token.cancel() if state.time >= 2.0 else None)
        result = Simulation.from_config(_config()).run(handlers=[handler], cancel=token)

        assert result.summary.reason is TerminationReason.CANCELLED
        assert not result.success
        assert result.ephemeris.last.time == 2.0

    def test_sensed_detumbling_removes_energy(self):
        config = _config(
            torques={
                "law": "detumble_then_point", "detumble_threshold": 0.01,
                "detumble_sensing": "magnetometer", "magnetometer_noise": 0.0,
            },
            initial_state={"inclination": 80.0, "angular_velocity": [0.05, -0.03, 0.04]},
        )
        sim = Simulation.from_config(config)
        result = sim.run()

        assert result.success
        control = sim.propagator.control
        assert control.phase_index == 0
        assert control.estimate.time == 10.0
        energies = [e.state.rotational_kinetic_energy for e in result.ephemeris]
        assert energies[-1] < energies[0]

    def test_handler_error_keeps_recorded_states(self):
        def fail_late(state, is_last):
            if state.time > 2.0:
                raise RuntimeError("disk full")

        sim = Simulation.from_config(_config())
        with pytest.raises(RuntimeError, match="disk full"):
            sim.run(handlers=[CallbackStepHandler(fail_late)])

        assert sim.propagator.last_summary.reason is TerminationReason.FAILED
        assert sim.ephemeris.last.time == 2.5
        assert len(sim.ephemeris) == 6


# =============================================================================
# Command Line Tests
# =============================================================================


class TestCommandLine:
    """Test ``python -m satsim``."""

    def test_parser(self):
        args = build_parser().parse_args(["run", "config.json", "--progress"])
        assert args.command == "run"
        assert args.progress
        assert args.log_level == "INFO"

    def test_run_writes_csv(self, tmp_path):
        config_path = tmp_path / "run.json"
        config_path.write_text(json.dumps({"duration": 5, "integrator": {"step_size": 1}}))
        output = tmp_path / "out" / "ephemeris.csv"

        status = main(["run", str(config_path), "--output", str(output), "--log-level", "WARNING"])

        assert status == 0
        df = pl.read_csv(output)
        assert df.height == 6
        assert df["time"][-1] == 5.0

    def test_run_writes_parquet_and_log(self, tmp_path):
        config_path = tmp_path / "run.json"
        config_path.write_text(json.dumps({"duration": 2.0}))
        output = tmp_path / "ephemeris.parquet"
        log_file = tmp_path / "run.log"

        status = main([
            "run", str(config_path), "--output", str(output), "--log-file", str(log_file),
        ])

        assert status == 0
        assert pl.read_parquet(output).height == 21
        assert "Propagation finished" in log_file.read_text()

    def test_invalid_config_exit_code(self, tmp_path):
        config_path = tmp_path / "bad.json"
        config_path.write_text(json.dumps({"integrator": {"method": "euler"}}))
        assert main(["run", str(config_path), "--log-level", "ERROR"]) == 2

    def test_non_numeric_duration_exit_code(self, tmp_path):
        config_path = tmp_path / "bad.json"
        config_path.write_text(json.dumps({"duration": "long"}))
        assert main(["run", str(config_path), "--log-level", "ERROR"]) == 2

    def test_missing_command(self):
        with pytest.raises(SystemExit):
            main([])
