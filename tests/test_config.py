import json

import pytest

from fraccore import NewtonOptions, SimulationConfig, SimulationDisplay, load_config
from fraccore.errors import ConfigurationError
from fracfvm import OilModel, Skeleton


def test_defaults():
    cfg = SimulationConfig()
    assert cfg.newton.tolerance == 1e-4
    assert cfg.newton.preconditioners == ("ilu", "direct")
    assert cfg.timestep.ht == 0.01
    assert cfg.workers == 1


def test_from_dict_builds_nested_options():
    cfg = SimulationConfig.from_dict({
        "newton": {"criterion": "increment", "preconditioners": ["jacobi", "direct"]},
        "timestep": {"ht": 0.05, "ht_max": 0.5},
        "workers": 3,
    })
    assert cfg.newton.criterion == "increment"
    assert cfg.newton.preconditioners == ("jacobi", "direct")
    assert cfg.timestep.ht_max == 0.5
    assert cfg.workers == 3


@pytest.mark.parametrize("data", [
    {"newton": {"criterion": "energy"}},
    {"newton": {"preconditioners": ["amg"]}},
    {"newton": {"preconditioners": []}},
    {"newton": {"relaxation": 0.5}},
    {"unknown": 1},
])
def test_invalid_options_raise(data):
    with pytest.raises((ConfigurationError, ValueError)):
        SimulationConfig.from_dict(data)


def test_unknown_keys_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        SimulationConfig.from_dict({"newton": {"relaxation": 0.5}})
    with pytest.raises(ConfigurationError):
        NewtonOptions(preconditioners=("amg",))


def test_load_config(tmp_path):
    path = tmp_path / "run.json"
    path.write_text(json.dumps({"newton": {"tolerance": 1e-8}, "workers": 2}))
    cfg = load_config(path)
    assert cfg.newton.tolerance == 1e-8
    assert cfg.workers == 2


def test_display_rows_match_columns(capsys):
    disp = SimulationDisplay("Test", "Oil | 4 cells")
    disp.setup_stats_columns(["Step", "Time"], [6, 12])
    disp.log_stats(1, 0.5)
    with pytest.raises(ValueError):
        disp.log_stats(1)
    out = capsys.readouterr().out
    assert "Step" in out and "0.50000" in out


def test_disabled_display_is_silent(capsys):
    disp = SimulationDisplay("Test", "Oil", enabled=False)
    disp.header()
    disp.setup_stats_columns(["Step"])
    disp.log_stats(1)
    disp.success()
    assert capsys.readouterr().out == ""


def test_set_properties():
    model = OilModel()
    model.set_properties(skeleton=Skeleton(perm=2.0), border_pressure=False)
    assert model.skeleton.perm == 2.0
    assert not model.border_pressure
    with pytest.raises(ConfigurationError):
        model.set_properties(viscosity=2.0)
    with pytest.raises(ConfigurationError):
        model.set_properties(mesh=None)
