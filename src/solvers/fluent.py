"""ANSYS Fluent family: journal discovery and synthesis."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from contracts.errors import InputNotFoundError

from .base import (
    ARTIFACT_SYNTHESIZED,
    AUTO_SCRIPT_PREFIX,
    InputArtifact,
    Invocation,
    SolverFamily,
    command,
    require_artifact,
)
from .journal import render_journal

# Compressed format first, then legacy; maps each case extension to its data extension.
CASE_EXTENSIONS = ((".cas.h5", ".dat.h5"), (".cas", ".dat"))

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContinuationState:
    """Case artifact of a job directory and its paired prior-solution data."""

    case_file: Path
    data_file: Path

    @property
    def continuation(self) -> bool:
        return self.data_file.is_file()


def find_case_file(job_dir: Path) -> Optional[Path]:
    """Return the lexically first case file, preferring the compressed format."""

    for case_ext, _ in CASE_EXTENSIONS:
        matches = sorted(path for path in Path(job_dir).glob(f"*{case_ext}") if path.is_file())
        if matches:
            return matches[0]
    return None


def paired_data_file(case_file: Path) -> Path:
    """Derive the data file name: same stem, data extension.

    ``airfoil.cas.h5`` pairs with ``airfoil.dat.h5`` and ``airfoil.cas`` with
    ``airfoil.dat``.
    """

    name = case_file.name
    for case_ext, data_ext in CASE_EXTENSIONS:
        if name.endswith(case_ext):
            return case_file.with_name(name[: -len(case_ext)] + data_ext)
    raise ValueError(f"'{name}' is not a Fluent case file")


def continuation_state(job_dir: Path) -> ContinuationState:
    case_file = find_case_file(job_dir)
    if case_file is None:
        raise InputNotFoundError(job_dir, ["*.jou", "*.cas.h5", "*.cas"])
    return ContinuationState(case_file=case_file, data_file=paired_data_file(case_file))


class FluentFamily(SolverFamily):
    name = "fluent"
    default_executable = "fluent"
    default_args = ("-ssh", "-g", "-cflush", "-pib", "-pib.ofed")
    script_name = "input.jou"
    script_pattern = "*.jou"
    needs_nodefile = True

    def expected_inputs(self) -> list[str]:
        return [*super().expected_inputs(), "*.cas.h5", "*.cas"]

    def render(self, job_dir: Path) -> tuple[ContinuationState, str]:
        state = continuation_state(job_dir)
        text = render_journal(
            state.case_file.name,
            continuation=state.continuation,
            mode=self.settings.simulation_mode,
            steps=self.settings.step_count,
        )
        return state, text

    def synthesize(self, job_dir: Path) -> InputArtifact:
        job_dir = Path(job_dir)
        if find_case_file(job_dir) is None:
            raise InputNotFoundError(job_dir, self.expected_inputs())
        state, text = self.render(job_dir)
        path = job_dir / f"{AUTO_SCRIPT_PREFIX}{os.getpid()}_{uuid.uuid4().hex[:8]}.jou"
        path.write_text(text, encoding="utf-8")
        _LOGGER.debug("Wrote %s (continuation=%s)", path, state.continuation)
        return InputArtifact(
            ARTIFACT_SYNTHESIZED,
            path,
            case_file=state.case_file,
            continuation=state.continuation,
        )

    def has_inputs(self, job_dir: Path) -> bool:
        return super().has_inputs(job_dir) or find_case_file(job_dir) is not None

    def build_invocation(self, artifact, handle, job_dir, nodefile=None) -> Invocation:
        artifact = require_artifact(artifact, self.name)
        if nodefile is None:
            raise ValueError("Fluent needs a node file for its execution handle")
        argv = [
            self.executable,
            self.settings.dimension,
            *self.args,
            f"-t{handle.size}",
            f"-cnf={nodefile}",
            "-i",
            artifact.path.name,
        ]
        return Invocation(main=command(argv))


__all__ = [
    "CASE_EXTENSIONS",
    "ContinuationState",
    "FluentFamily",
    "continuation_state",
    "find_case_file",
    "paired_data_file",
]
