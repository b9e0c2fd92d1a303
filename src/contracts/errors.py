"""Shared error types for the batch engine."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence


class BatchError(RuntimeError):
    """Base class for every error raised by the batch engine."""


class ConfigurationError(BatchError):
    """Fatal error detected before the first wave starts.

    Raised for impossible slot arithmetic, missing case directories, an
    invalid configuration document or an unknown solver family.  The engine
    exits with a nonzero status and no job is launched.
    """


class JobError(BatchError):
    """Per-job failure that is converted into a failed outcome."""


class DirectoryMissingError(JobError):
    """The working directory of a work item does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"Directory {self.path} does not exist!")


class InputNotFoundError(JobError):
    """No usable solver input could be found in a job directory."""

    def __init__(self, path: Path, expected: Sequence[str]) -> None:
        self.path = Path(path)
        self.expected = tuple(expected)
        listing = ", ".join(self.expected) if self.expected else "solver input"
        super().__init__(f"No input files found in {self.path} ({listing})")


class ExternalProcessError(JobError):
    """The external solver exited with a nonzero status."""

    def __init__(self, argv: Iterable[str], exit_code: int) -> None:
        self.argv = tuple(argv)
        self.exit_code = exit_code
        super().__init__(f"{self.argv[0] if self.argv else 'solver'} exited with code {exit_code}")


class SlotExhaustedError(BatchError):
    """The slot pool cannot satisfy an acquisition or release request."""


__all__ = [
    "BatchError",
    "ConfigurationError",
    "DirectoryMissingError",
    "ExternalProcessError",
    "InputNotFoundError",
    "JobError",
    "SlotExhaustedError",
]
