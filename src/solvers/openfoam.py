"""OpenFOAM family: decompose, run in parallel, reconstruct."""

from __future__ import annotations

from pathlib import Path

from .base import Invocation, SolverFamily, command

DECOMPOSE_LOG = "decompose.log"
RECONSTRUCT_LOG = "reconstruct.log"


class OpenFoamFamily(SolverFamily):
    name = "openfoam"
    default_executable = "simpleFoam"
    default_args = ("-parallel",)
    script_name = "system/controlDict"

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        pre = ()
        if not (Path(job_dir) / "processor0").is_dir():
            pre = (command(["decomposePar", "-force"], log_name=DECOMPOSE_LOG),)
        main = command([*self.launcher_prefix(handle), self.executable, *self.args])
        post = (command(["reconstructPar", "-latestTime"], log_name=RECONSTRUCT_LOG),)
        return Invocation(main=main, pre=pre, post=post)


__all__ = ["DECOMPOSE_LOG", "OpenFoamFamily", "RECONSTRUCT_LOG"]
