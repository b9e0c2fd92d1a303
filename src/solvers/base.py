"""Common solver-family behaviour: artifact resolution and invocation."""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from contracts.errors import InputNotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from orchestrator.slots import ExecutionHandle

ARTIFACT_EXPLICIT_SINGLE = "explicit-single"
ARTIFACT_EXPLICIT_DISCOVERED = "explicit-discovered"
ARTIFACT_SYNTHESIZED = "synthesized"

MODE_STEADY = "steady"
MODE_TRANSIENT = "transient"
MODE_UNSPECIFIED = "unspecified"

# Generated scripts carry this prefix and are never picked up as user scripts.
AUTO_SCRIPT_PREFIX = "run_auto_"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverSettings:
    """Solver section of the batch configuration after precedence resolution."""

    family: str
    executable: Optional[str] = None
    invocation_args: Optional[Tuple[str, ...]] = None
    simulation_mode: str = MODE_UNSPECIFIED
    step_count: Optional[int] = None
    dimension: str = "3ddp"
    script_name: Optional[str] = None
    script_pattern: Optional[str] = None
    launcher: str = "mpirun"

    @staticmethod
    def split_args(raw: Optional[str]) -> Optional[Tuple[str, ...]]:
        if raw is None:
            return None
        return tuple(shlex.split(raw))


@dataclass(frozen=True)
class InputArtifact:
    """Command script handed to the solver for one job.

    Only synthesized artifacts are owned by the engine; ``discard`` leaves
    explicit and discovered scripts untouched.
    """

    kind: str
    path: Path
    case_file: Optional[Path] = None
    continuation: Optional[bool] = None

    @property
    def synthesized(self) -> bool:
        return self.kind == ARTIFACT_SYNTHESIZED

    def describe(self) -> str:
        if self.kind == ARTIFACT_EXPLICIT_SINGLE:
            return f"Using existing input file: {self.path.name}"
        if self.kind == ARTIFACT_EXPLICIT_DISCOVERED:
            return f"Using discovered input file: {self.path.name}"
        if self.case_file is None:
            return f"Created {self.path.name}"
        if self.continuation:
            return f"Created {self.path.name} to continue from: {self.case_file.name} + data"
        return f"Created {self.path.name} to initialize and run: {self.case_file.name}"

    def discard(self) -> None:
        if self.synthesized:
            self.path.unlink(missing_ok=True)

    def __enter__(self) -> "InputArtifact":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.discard()


@dataclass(frozen=True)
class Command:
    """One external process; ``log_name`` redirects it to a file in the job dir."""

    argv: Tuple[str, ...]
    log_name: Optional[str] = None


@dataclass(frozen=True)
class Invocation:
    main: Command
    pre: Tuple[Command, ...] = field(default_factory=tuple)
    post: Tuple[Command, ...] = field(default_factory=tuple)

    def commands(self) -> List[Command]:
        return [*self.pre, self.main, *self.post]


class SolverFamily:
    """Base class for one solver family.

    Subclasses set the class attributes describing their inputs and
    implement :meth:`build_invocation`.  Families able to generate a command
    script override :meth:`synthesize`.
    """

    name: str = ""
    default_executable: str = ""
    default_args: Tuple[str, ...] = ()
    script_name: Optional[str] = None
    script_pattern: Optional[str] = None
    needs_nodefile: bool = False
    requires_input: bool = True

    def __init__(self, settings: SolverSettings) -> None:
        self.settings = settings
        self.executable = settings.executable or self.default_executable
        self.args: Tuple[str, ...] = (
            settings.invocation_args if settings.invocation_args is not None else self.default_args
        )

    @property
    def explicit_name(self) -> Optional[str]:
        return self.settings.script_name or self.script_name

    @property
    def pattern(self) -> Optional[str]:
        return self.settings.script_pattern or self.script_pattern

    def expected_inputs(self) -> List[str]:
        return [entry for entry in (self.explicit_name, self.pattern) if entry]

    def discover(self, job_dir: Path) -> Optional[Path]:
        """Return the lexically first script matching the family pattern."""

        if not self.pattern:
            return None
        matches = sorted(
            path
            for path in Path(job_dir).glob(self.pattern)
            if path.is_file() and not path.name.startswith(AUTO_SCRIPT_PREFIX)
        )
        if len(matches) > 1:
            _LOGGER.info(
                "%d scripts match %s in %s; using %s",
                len(matches),
                self.pattern,
                job_dir,
                matches[0].name,
            )
        return matches[0] if matches else None

    def resolve_artifact(self, job_dir: Path) -> Optional[InputArtifact]:
        job_dir = Path(job_dir)
        explicit = self.explicit_name
        if explicit and (job_dir / explicit).is_file():
            return InputArtifact(ARTIFACT_EXPLICIT_SINGLE, job_dir / explicit)

        discovered = self.discover(job_dir)
        if discovered is not None:
            return InputArtifact(ARTIFACT_EXPLICIT_DISCOVERED, discovered)

        return self.synthesize(job_dir)

    def synthesize(self, job_dir: Path) -> Optional[InputArtifact]:
        if not self.requires_input:
            return None
        raise InputNotFoundError(job_dir, self.expected_inputs())

    def has_inputs(self, job_dir: Path) -> bool:
        """Report whether :meth:`resolve_artifact` would find something to run."""

        job_dir = Path(job_dir)
        if not self.requires_input:
            return True
        explicit = self.explicit_name
        if explicit and (job_dir / explicit).is_file():
            return True
        return self.discover(job_dir) is not None

    def launcher_prefix(self, handle: "ExecutionHandle") -> List[str]:
        if not self.settings.launcher:
            return []
        return [self.settings.launcher, "-np", str(handle.size)]

    def build_invocation(
        self,
        artifact: Optional[InputArtifact],
        handle: "ExecutionHandle",
        job_dir: Path,
        nodefile: Optional[Path] = None,
    ) -> Invocation:
        raise NotImplementedError


def require_artifact(artifact: Optional[InputArtifact], family: str) -> InputArtifact:
    if artifact is None:
        raise ValueError(f"Solver family '{family}' needs an input artifact")
    return artifact


def command(argv: Sequence[str], log_name: Optional[str] = None) -> Command:
    return Command(argv=tuple(str(part) for part in argv), log_name=log_name)


__all__ = [
    "ARTIFACT_EXPLICIT_DISCOVERED",
    "ARTIFACT_EXPLICIT_SINGLE",
    "ARTIFACT_SYNTHESIZED",
    "AUTO_SCRIPT_PREFIX",
    "Command",
    "InputArtifact",
    "Invocation",
    "MODE_STEADY",
    "MODE_TRANSIENT",
    "MODE_UNSPECIFIED",
    "SolverFamily",
    "SolverSettings",
    "command",
    "require_artifact",
]
