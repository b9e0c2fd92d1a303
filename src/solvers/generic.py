"""Solver families that run a single discovered input file."""

from __future__ import annotations

from .base import Invocation, SolverFamily, command, require_artifact


class CfxFamily(SolverFamily):
    name = "cfx"
    default_executable = "cfx5solve"
    default_args = ("-batch",)
    script_pattern = "*.def"

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        artifact = require_artifact(artifact, self.name)
        argv = [self.executable, "-def", artifact.path.name, "-par-dist", str(handle.size), *self.args]
        return Invocation(main=command(argv))


class StarCcmFamily(SolverFamily):
    name = "starccm"
    default_executable = "starccm+"
    default_args = ("-batch", "-power")
    script_pattern = "*.sim"

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        artifact = require_artifact(artifact, self.name)
        argv = [self.executable, "-np", str(handle.size), *self.args, artifact.path.name]
        return Invocation(main=command(argv))


class Su2Family(SolverFamily):
    name = "su2"
    default_executable = "SU2_CFD"
    script_pattern = "*.cfg"

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        artifact = require_artifact(artifact, self.name)
        argv = [*self.launcher_prefix(handle), self.executable, *self.args, artifact.path.name]
        return Invocation(main=command(argv))


class CustomFamily(SolverFamily):
    """User-defined solver; the input file is optional and appended last."""

    name = "custom"
    default_executable = "your_solver"
    requires_input = False

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        argv = [*self.launcher_prefix(handle), self.executable, *self.args]
        if artifact is not None:
            argv.append(artifact.path.name)
        return Invocation(main=command(argv))


__all__ = ["CfxFamily", "CustomFamily", "StarCcmFamily", "Su2Family"]
