from __future__ import annotations

from pathlib import Path

import pytest

from contracts.errors import ConfigurationError, InputNotFoundError
from orchestrator.slots import ExecutionHandle
from solvers import FAMILIES, get_family
from solvers.base import SolverSettings
from solvers.openfoam import DECOMPOSE_LOG, RECONSTRUCT_LOG

HANDLE = ExecutionHandle(slot_ids=(0, 1, 2, 3), targets=("n1",) * 4)


def _resolve(family_name: str, job_dir: Path, **settings):
    family = get_family(SolverSettings(family=family_name, **settings))
    return family, family.resolve_artifact(job_dir)


def test_registry_lists_every_family():
    assert set(FAMILIES) == {"fluent", "openfoam", "cfx", "starccm", "su2", "custom"}


def test_unknown_family_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="Unknown solver type: abaqus"):
        get_family(SolverSettings(family="abaqus"))


def test_cfx_command(tmp_path: Path):
    (tmp_path / "wing.def").write_text("def")
    family, artifact = _resolve("cfx", tmp_path)
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv == ("cfx5solve", "-def", "wing.def", "-par-dist", "4", "-batch")


def test_starccm_command(tmp_path: Path):
    (tmp_path / "b.sim").write_text("sim")
    (tmp_path / "a.sim").write_text("sim")
    family, artifact = _resolve("starccm", tmp_path)
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv == ("starccm+", "-np", "4", "-batch", "-power", "a.sim")


def test_su2_command(tmp_path: Path):
    (tmp_path / "nozzle.cfg").write_text("cfg")
    family, artifact = _resolve("su2", tmp_path)
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv == ("mpirun", "-np", "4", "SU2_CFD", "nozzle.cfg")


def test_custom_runs_without_input_and_without_launcher(tmp_path: Path):
    family, artifact = _resolve(
        "custom", tmp_path, executable="./solve.sh", invocation_args=("--fast",), launcher=""
    )
    assert artifact is None
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv == ("./solve.sh", "--fast")


def test_custom_appends_discovered_input(tmp_path: Path):
    (tmp_path / "case.in").write_text("in")
    family, artifact = _resolve("custom", tmp_path, executable="mysolver", script_pattern="*.in")
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv == ("mpirun", "-np", "4", "mysolver", "case.in")


def test_invocation_args_override_defaults(tmp_path: Path):
    (tmp_path / "wing.def").write_text("def")
    family, artifact = _resolve("cfx", tmp_path, invocation_args=SolverSettings.split_args("-double -batch"))
    argv = family.build_invocation(artifact, HANDLE, tmp_path).main.argv
    assert argv[-2:] == ("-double", "-batch")


def test_split_args():
    assert SolverSettings.split_args("-ssh -g 'a b'") == ("-ssh", "-g", "a b")
    assert SolverSettings.split_args(None) is None
    assert SolverSettings.split_args("") == ()


def test_missing_input_raises_for_file_based_family(tmp_path: Path):
    with pytest.raises(InputNotFoundError, match=r"\*\.def"):
        _resolve("cfx", tmp_path)


def test_openfoam_decomposes_then_reconstructs(tmp_path: Path):
    (tmp_path / "system").mkdir()
    (tmp_path / "system" / "controlDict").write_text("FoamFile {}")
    family, artifact = _resolve("openfoam", tmp_path)
    assert artifact.path == tmp_path / "system" / "controlDict"

    invocation = family.build_invocation(artifact, HANDLE, tmp_path)
    assert [cmd.argv for cmd in invocation.pre] == [("decomposePar", "-force")]
    assert invocation.pre[0].log_name == DECOMPOSE_LOG
    assert invocation.main.argv == ("mpirun", "-np", "4", "simpleFoam", "-parallel")
    assert invocation.main.log_name is None
    assert [cmd.argv for cmd in invocation.post] == [("reconstructPar", "-latestTime")]
    assert invocation.post[0].log_name == RECONSTRUCT_LOG


def test_openfoam_skips_decompose_when_already_split(tmp_path: Path):
    (tmp_path / "system").mkdir()
    (tmp_path / "system" / "controlDict").write_text("FoamFile {}")
    (tmp_path / "processor0").mkdir()
    family, artifact = _resolve("openfoam", tmp_path)
    invocation = family.build_invocation(artifact, HANDLE, tmp_path)
    assert invocation.pre == ()
    assert [cmd.argv[0] for cmd in invocation.commands()] == ["mpirun", "reconstructPar"]


def test_file_families_need_an_artifact(tmp_path: Path):
    family = get_family(SolverSettings(family="su2"))
    with pytest.raises(ValueError):
        family.build_invocation(None, HANDLE, tmp_path)


def test_has_inputs_for_custom_is_always_true(tmp_path: Path):
    assert get_family(SolverSettings(family="custom")).has_inputs(tmp_path) is True
    assert get_family(SolverSettings(family="cfx")).has_inputs(tmp_path) is False
