"""Unit tests for run configuration."""

import json
from datetime import datetime, timezone

import pytest

from satsim.config import (
    CircularOrbitConfig,
    InitialStateConfig,
    OrbitalElementsConfig,
    SimulationConfig,
)
from satsim.environment.celestial import DEFAULT_EPOCH
from satsim.errors import ConfigurationError

# =============================================================================
# Parsing Tests
# =============================================================================


class TestFromDict:
    """Test building configs from plain dicts."""

    def test_defaults(self):
        config = SimulationConfig.from_dict({})
        assert config.epoch == DEFAULT_EPOCH
        assert config.duration == 600.0
        assert config.integrator.method == "rk4"
        assert config.torques.law is None
        assert isinstance(config.initial_state, CircularOrbitConfig)

    def test_json_integers_become_floats(self):
        config = SimulationConfig.from_dict({
            "duration": 60,
            "integrator": {"method": "dopri45", "atol": 1, "max_step": 30},
            "body": {"mass": 2},
            "initial_state": {"altitude": 400000, "inclination": 98},
            "torques": {"law": "point", "kp": 1, "max_torque": 1},
        })
        assert config.duration == 60.0
        assert isinstance(config.integrator.atol, float)
        assert isinstance(config.body.mass, float)
        assert config.initial_state.altitude == 400000.0
        assert isinstance(config.torques.max_torque, float)
        assert config.body.create_body().mass == 2.0

    def test_cartesian_initial_state(self):
        config = SimulationConfig.from_dict({
            "initial_state": {"position": [7.0e6, 0, 0], "velocity": [0, 7500, 0]},
        })
        assert isinstance(config.initial_state, InitialStateConfig)
        assert config.initial_state.quaternion == [1.0, 0.0, 0.0, 0.0]

    def test_orbital_elements_initial_state(self):
        config = SimulationConfig.from_dict({
            "initial_state": {"semi_major_axis": 7000000, "eccentricity": 0, "raan": 45},
            "torques": {"detumble_sensing": "magnetometer", "bdot_sample_period": 1},
        })
        assert isinstance(config.initial_state, OrbitalElementsConfig)
        assert config.initial_state.semi_major_axis == 7.0e6
        assert isinstance(config.initial_state.eccentricity, float)
        assert config.initial_state.inclination == 98.0
        assert config.torques.bdot_sample_period == 1.0

        again = SimulationConfig.from_dict(json.loads(config.to_json()))
        assert isinstance(again.initial_state, OrbitalElementsConfig)
        assert again.to_dict() == config.to_dict()

    def test_epoch(self):
        config = SimulationConfig.from_dict({"epoch": "2024-03-20T00:00:00+00:00"})
        assert config.epoch == datetime(2024, 3, 20, tzinfo=timezone.utc)

    def test_round_trip(self):
        config = SimulationConfig.from_dict({
            "duration": 120.0,
            "torques": {"law": "detumble_then_point", "scenario": [[1.0, 2.0, [1.0, 0.0, 0.0]]]},
            "guidance": {"mode": "sun"},
        })
        again = SimulationConfig.from_dict(json.loads(config.to_json()))
        assert again.to_dict() == config.to_dict()


class TestValidation:
    """Test rejection of bad configurations."""

    @pytest.mark.parametrize("data", [
        {"unknown": 1},
        {"integrator": {"stepsize": 0.1}},
        {"integrator": {"method": "euler"}},
        {"integrator": {"step_size": -1.0}},
        {"integrator": {"min_step": 10.0, "max_step": 1.0}},
        {"forces": {"gravity_degree": 5}},
        {"forces": {"shadow_model": "none"}},
        {"torques": {"law": "spin"}},
        {"torques": {"scenario": [[1.0, 2.0]]}},
        {"torques": {"random_disturbance": -1.0}},
        {"guidance": {"mode": "moon"}},
        {"guidance": {"inertial_quaternion": [0.0, 0.0, 0.0, 0.0]}},
        {"body": {"mass": -1.0}},
        {"body": {"inertia": [[1.0, 0.0], [0.0, 1.0]]}},
        {"initial_state": {"altitude": -5.0}},
        {"initial_state": {"position": [1.0, 2.0], "velocity": [0.0, 0.0, 0.0]}},
        {"duration": 0.0},
        {"epoch": "yesterday"},
        {"forces": "all"},
        {"body": {"mass": "heavy"}},
        {"duration": "long"},
        {"duration": None},
        {"torques": {"scenario": [["soon", 2.0, [0.0, 0.0, 1.0]]]}},
        {"torques": {"scenario": [[1.0, 2.0, 5]]}},
        {"body": {"inertia": [["a", 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]}},
        {"torques": {"detumble_sensing": "gps"}},
        {"torques": {"bdot_time_constant": 0.0}},
        {"torques": {"magnetometer_noise": -1.0}},
        {"initial_state": {"semi_major_axis": 7.0e6, "eccentricity": 1.2}},
        {"initial_state": {"semi_major_axis": 6.5e6, "eccentricity": 0.1}},
    ])
    def test_invalid(self, data):
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_dict(data)


class TestFromJson:
    """Test loading from files."""

    def test_load(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text(json.dumps({"duration": 30, "forces": {"drag": True}}))
        config = SimulationConfig.from_json(path)
        assert config.duration == 30.0
        assert config.forces.drag

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_json(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_json(path)
