from __future__ import annotations

from pathlib import Path

from orchestrator.pbs import render_pbs_script
from orchestrator.settings import resolve_settings


def _settings(tmp_path: Path, *, pbs=None, notify=None, family="fluent"):
    config = {
        "batch": {"case_dirs": ["AoA0", "AoA1", "AoA2"], "slots_per_job": 4},
        "solver": {"family": family},
        "pbs": pbs or {},
        "notify": notify or {},
    }
    return resolve_settings(config, {}, cwd=tmp_path)


def test_full_script(tmp_path: Path):
    settings = _settings(
        tmp_path,
        pbs={
            "job_name": "fluent_batch_job",
            "queue": "workq",
            "walltime": "500:00:00",
            "ncpus": 12,
            "module_path": "/apps/Modules/modulefiles",
            "modules": ["ansys/2024r1"],
            "extra_directives": ["-P cfd01"],
        },
        notify={"email": "me@example.org"},
    )
    script = render_pbs_script(settings, config_path=Path("/work/config.toml"))
    assert script == "\n".join(
        [
            "#!/bin/bash",
            "#PBS -N fluent_batch_job",
            "#PBS -l select=1:ncpus=12:mpiprocs=12",
            "#PBS -q workq",
            "#PBS -l walltime=500:00:00",
            "#PBS -m abe",
            "#PBS -M me@example.org",
            "#PBS -l application=fluent",
            "#PBS -j oe",
            "#PBS -W sandbox=PRIVATE",
            "#PBS -k n",
            "#PBS -P cfd01",
            "",
            'cd "$PBS_O_WORKDIR"',
            "",
            "module use /apps/Modules/modulefiles",
            "module load ansys/2024r1",
            "",
            "cfd-batch run --config /work/config.toml",
            "",
        ]
    )


def test_defaults_size_for_one_wave(tmp_path: Path):
    script = render_pbs_script(_settings(tmp_path, family="su2"), config_path=Path("c.toml"), command="batch")
    assert "#PBS -N cfd_batch_job\n" in script
    assert "#PBS -l select=1:ncpus=12:mpiprocs=12\n" in script
    assert "-l application" not in script
    assert "#PBS -M" not in script
    assert "module" not in script
    assert script.endswith("batch run --config c.toml\n")
