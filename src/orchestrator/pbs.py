"""PBS submission script rendering."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import List, Optional

from .settings import BatchSettings

_FIXED_DIRECTIVES = ("-j oe", "-W sandbox=PRIVATE", "-k n")


def render_pbs_script(
    settings: BatchSettings,
    *,
    config_path: Path,
    command: str = "cfd-batch",
) -> str:
    """Return a ``qsub``-ready script that runs this batch on one node.

    ``ncpus`` defaults to enough slots to run every case in a single wave.
    """

    pbs = settings.pbs
    ncpus = int(pbs.get("ncpus") or settings.slots_per_job * len(settings.case_dirs))
    directives: List[str] = [
        f"-N {pbs.get('job_name', 'cfd_batch_job')}",
        f"-l select=1:ncpus={ncpus}:mpiprocs={ncpus}",
    ]
    if pbs.get("queue"):
        directives.append(f"-q {pbs['queue']}")
    if pbs.get("walltime"):
        directives.append(f"-l walltime={pbs['walltime']}")
    if settings.notify_email:
        directives.append(f"-m {pbs.get('mail_events', 'abe')}")
        directives.append(f"-M {settings.notify_email}")
    application: Optional[str] = pbs.get("application") or (
        settings.solver.family if settings.solver.family == "fluent" else None
    )
    if application:
        directives.append(f"-l application={application}")
    directives.extend(_FIXED_DIRECTIVES)
    directives.extend(pbs.get("extra_directives", []))

    lines = ["#!/bin/bash", *(f"#PBS {directive}" for directive in directives), "", 'cd "$PBS_O_WORKDIR"']
    module_path = pbs.get("module_path")
    modules = pbs.get("modules", [])
    if module_path or modules:
        lines.append("")
    if module_path:
        lines.append(f"module use {shlex.quote(module_path)}")
    for module in modules:
        lines.append(f"module load {shlex.quote(module)}")
    lines += ["", f"{command} run --config {shlex.quote(str(config_path))}", ""]
    return "\n".join(lines)


__all__ = ["render_pbs_script"]
