from __future__ import annotations

from pathlib import Path

import pytest

import project_config
from contracts.errors import ConfigurationError
from orchestrator.settings import apply_overrides, resolve_settings

REPO_ROOT = Path(__file__).resolve().parents[1]


def _config(**batch) -> dict:
    section = {"project_dir": "proj", "case_dirs": ["A", "B"], "slots_per_job": 2}
    section.update(batch)
    return {"batch": section, "solver": {"family": "fluent"}}


def test_defaults_outside_pbs(tmp_path: Path):
    settings = resolve_settings(_config(), {}, cwd=tmp_path)
    assert settings.workdir == tmp_path
    assert settings.job_id.startswith("local-")
    assert settings.log_dir == tmp_path / f"logs_{settings.job_id}"
    assert settings.case_root == tmp_path / "proj"
    assert settings.solver.simulation_mode == "unspecified"
    assert settings.solver.dimension == "3ddp"
    assert settings.solver.launcher == "mpirun"
    assert settings.solver.invocation_args is None
    assert settings.nodefile is None
    assert settings.notify_email is None
    assert settings.decision_source == {}


def test_pbs_environment_sets_workdir_and_job_id(tmp_path: Path):
    env = {"PBS_O_WORKDIR": str(tmp_path), "PBS_JOBID": "4711.pbs01"}
    settings = resolve_settings(_config(), env)
    assert settings.workdir == tmp_path
    assert settings.job_id == "4711.pbs01"
    assert settings.log_dir == tmp_path / "logs_4711.pbs01"


def test_configured_workdir_wins_over_pbs(tmp_path: Path):
    settings = resolve_settings(_config(workdir=str(tmp_path / "w")), {"PBS_O_WORKDIR": "/elsewhere"})
    assert settings.workdir == tmp_path / "w"


def test_environment_overrides_toml(tmp_path: Path):
    settings = resolve_settings(_config(), {"BATCH_SLOTS_PER_JOB": "4", "BATCH_SOLVER": "cfx"}, cwd=tmp_path)
    assert settings.slots_per_job == 4
    assert settings.solver.family == "cfx"
    assert settings.decision_source == {"slots_per_job": "env", "solver": "env"}


def test_cli_overrides_environment(tmp_path: Path):
    env = {"BATCH_SLOTS_PER_JOB": "4", "CLI_BATCH_SLOTS_PER_JOB": "8", "BATCH_EMAIL": ""}
    settings = resolve_settings(_config(), env, cwd=tmp_path)
    assert settings.slots_per_job == 8
    assert settings.decision_source["slots_per_job"] == "cli"
    assert "email" not in settings.decision_source


def test_overrides_do_not_touch_the_source_document():
    config = _config()
    document, _ = apply_overrides(config, {"CLI_BATCH_STEP_COUNT": "50"})
    assert document["solver"]["step_count"] == 50
    assert "step_count" not in config["solver"]


def test_unparsable_override_is_rejected(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="BATCH_SLOTS_PER_JOB='two'"):
        resolve_settings(_config(), {"BATCH_SLOTS_PER_JOB": "two"}, cwd=tmp_path)


@pytest.mark.parametrize(
    ("config", "where"),
    [
        ({"batch": {"case_dirs": ["A"]}, "solver": {"family": "fluent"}}, "batch"),
        (_config(slots_per_job=0), "batch.slots_per_job"),
        (_config(case_dirs=[]), "batch.case_dirs"),
        (_config(case_dirs=["A", "A"]), "batch.case_dirs"),
        (_config(threads=4), "batch"),
        ({**_config(), "solver": {"family": "abaqus"}}, "solver.family"),
        ({**_config(), "solver": {"family": "fluent", "simulation_mode": "fast"}}, "solver.simulation_mode"),
        ({**_config(), "pbs": {"walltime": "ten hours"}}, "pbs.walltime"),
    ],
)
def test_schema_errors_name_the_location(tmp_path: Path, config, where):
    with pytest.raises(ConfigurationError, match=f"Invalid configuration at '{where}'"):
        resolve_settings(config, {}, cwd=tmp_path)


def test_solver_options_are_resolved(tmp_path: Path):
    config = _config()
    config["solver"] = {
        "family": "fluent",
        "invocation_args": "-ssh -g",
        "simulation_mode": "transient",
        "step_count": 0,
        "dimension": "2ddp",
    }
    config["allocation"] = {"nodefile": "nodes.txt"}
    settings = resolve_settings(config, {}, cwd=tmp_path)
    assert settings.solver.invocation_args == ("-ssh", "-g")
    assert settings.solver.step_count is None
    assert settings.solver.dimension == "2ddp"
    assert settings.nodefile == tmp_path / "nodes.txt"


def test_work_items_follow_configured_order(tmp_path: Path):
    settings = resolve_settings(_config(case_dirs=["B", "A", "C"]), {}, cwd=tmp_path)
    items = settings.work_items()
    assert [(item.index, item.name) for item in items] == [(0, "B"), (1, "A"), (2, "C")]
    assert items[1].path == tmp_path / "proj" / "A"


def test_load_config_reads_toml(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text('[batch]\ncase_dirs = ["A"]\nslots_per_job = 1\n\n[solver]\nfamily = "su2"\n')
    config = project_config.load_config(path)
    assert config["solver"]["family"] == "su2"
    assert project_config.get_section(config, "batch.slots_per_job") == 1
    assert project_config.get_section(config, "notify.email", "none") == "none"
    with pytest.raises(KeyError):
        project_config.get_section(config, "notify.email")


def test_load_config_errors(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="was not found"):
        project_config.load_config(tmp_path / "missing.toml")
    broken = tmp_path / "broken.toml"
    broken.write_text("[batch\n")
    with pytest.raises(ConfigurationError, match="not valid TOML"):
        project_config.load_config(broken)


def test_default_config_path(tmp_path: Path):
    assert project_config.default_config_path({"BATCH_CONFIG": "/etc/batch.toml"}) == Path("/etc/batch.toml")
    assert project_config.default_config_path({}).name == "config.toml"


def test_example_config_is_valid(tmp_path: Path):
    project_config.reload()
    config = project_config.load_config(REPO_ROOT / "config.toml")
    settings = resolve_settings(config, {}, cwd=tmp_path)
    assert settings.case_dirs == ("AoA0", "AoA1", "AoA2", "AoA3", "AoA4", "AoA5")
    assert settings.solver.simulation_mode == "transient"
    assert settings.solver.step_count == 1200000
    assert settings.notify_email is None
