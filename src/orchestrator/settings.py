"""Batch settings after config, environment and CLI precedence."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from contracts.errors import ConfigurationError
from contracts.schema_validator import validate_config
from solvers.base import MODE_UNSPECIFIED, SolverSettings

from .task import WorkItem

# (override name, config location, parser); env key BATCH_<NAME>, CLI key CLI_BATCH_<NAME>.
_OVERRIDES: Tuple[Tuple[str, Tuple[str, str], Callable[[str], Any]], ...] = (
    ("workdir", ("batch", "workdir"), str),
    ("project_dir", ("batch", "project_dir"), str),
    ("slots_per_job", ("batch", "slots_per_job"), int),
    ("log_dir", ("batch", "log_dir"), str),
    ("solver", ("solver", "family"), str),
    ("simulation_mode", ("solver", "simulation_mode"), str),
    ("step_count", ("solver", "step_count"), int),
    ("total_slots", ("allocation", "total_slots"), int),
    ("nodefile", ("allocation", "nodefile"), str),
    ("email", ("notify", "email"), str),
)


@dataclass(frozen=True)
class BatchSettings:
    """Everything a batch run needs, resolved and validated."""

    job_id: str
    workdir: Path
    project_dir: Path
    case_dirs: Tuple[str, ...]
    slots_per_job: int
    log_dir: Path
    solver: SolverSettings
    require_inputs: bool = False
    nodefile: Optional[Path] = None
    total_slots: Optional[int] = None
    notify_email: Optional[str] = None
    mailer: str = "mail"
    pbs: Mapping[str, Any] = field(default_factory=dict)
    decision_source: Mapping[str, str] = field(default_factory=dict)

    @property
    def case_root(self) -> Path:
        return self.workdir / self.project_dir

    def work_items(self) -> List[WorkItem]:
        return [
            WorkItem(index=index, name=name, path=self.case_root / name)
            for index, name in enumerate(self.case_dirs)
        ]


def _apply(document: Dict[str, Any], location: Tuple[str, str], value: Any) -> None:
    section, key = location
    block = document.setdefault(section, {})
    if not isinstance(block, dict):
        raise ConfigurationError(f"Configuration section '{section}' must be a table")
    block[key] = value


def apply_overrides(
    config: Mapping[str, Any], env: Mapping[str, str]
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Layer ``BATCH_*`` then ``CLI_BATCH_*`` values over *config*.

    Returns the merged document and, for every overridden name, where the
    winning value came from.
    """

    document: Dict[str, Any] = copy.deepcopy(dict(config))
    sources: Dict[str, str] = {}
    for name, location, parser in _OVERRIDES:
        for key, source in ((f"BATCH_{name.upper()}", "env"), (f"CLI_BATCH_{name.upper()}", "cli")):
            raw = env.get(key)
            if raw is None or raw == "":
                continue
            try:
                value = parser(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{key}={raw!r} is not a valid {parser.__name__}") from exc
            _apply(document, location, value)
            sources[name] = source
    return document, sources


def _default_job_id() -> str:
    return "local-" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")


def resolve_settings(
    config: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
    *,
    cwd: Optional[Path] = None,
) -> BatchSettings:
    """Merge overrides, validate the result and build :class:`BatchSettings`."""

    source = dict(os.environ if env is None else env)
    document, sources = apply_overrides(config, source)
    validate_config(document)

    batch = document["batch"]
    solver_cfg = document["solver"]
    allocation = document.get("allocation", {})
    notify = document.get("notify", {})

    if "workdir" in batch:
        workdir = Path(batch["workdir"])
    elif source.get("PBS_O_WORKDIR"):
        workdir = Path(source["PBS_O_WORKDIR"])
    else:
        workdir = cwd or Path.cwd()
    workdir = workdir.expanduser()

    job_id = source.get("PBS_JOBID") or _default_job_id()
    log_dir = Path(batch["log_dir"]) if "log_dir" in batch else Path(f"logs_{job_id}")
    if not log_dir.is_absolute():
        log_dir = workdir / log_dir

    nodefile = allocation.get("nodefile")
    nodefile_path = Path(nodefile) if nodefile else None
    if nodefile_path is not None and not nodefile_path.is_absolute():
        nodefile_path = workdir / nodefile_path

    step_count = solver_cfg.get("step_count")
    solver = SolverSettings(
        family=solver_cfg["family"],
        executable=solver_cfg.get("executable"),
        invocation_args=SolverSettings.split_args(solver_cfg.get("invocation_args")),
        simulation_mode=solver_cfg.get("simulation_mode", MODE_UNSPECIFIED),
        step_count=step_count or None,
        dimension=solver_cfg.get("dimension", "3ddp"),
        script_name=solver_cfg.get("script_name"),
        script_pattern=solver_cfg.get("script_pattern"),
        launcher=solver_cfg.get("launcher", "mpirun"),
    )

    return BatchSettings(
        job_id=job_id,
        workdir=workdir,
        project_dir=Path(batch.get("project_dir", ".")),
        case_dirs=tuple(batch["case_dirs"]),
        slots_per_job=int(batch["slots_per_job"]),
        log_dir=log_dir,
        solver=solver,
        require_inputs=bool(batch.get("require_inputs", False)),
        nodefile=nodefile_path,
        total_slots=allocation.get("total_slots"),
        notify_email=notify.get("email") or None,
        mailer=notify.get("mailer", "mail"),
        pbs=dict(document.get("pbs", {})),
        decision_source=sources,
    )


__all__ = ["BatchSettings", "apply_overrides", "resolve_settings"]
