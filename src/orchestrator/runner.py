"""Single-job execution: slots, artifact, solver process, per-case log."""

from __future__ import annotations

import logging
import os
import subprocess
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO

from contracts.errors import DirectoryMissingError, ExternalProcessError, JobError, SlotExhaustedError
from solvers.base import Command, SolverFamily

from . import log
from .slots import SlotPool
from .task import JobOutcome, WorkItem, utc_now

Spawn = Callable[[Sequence[str], Path, TextIO], int]

_RULE = "=" * 39
_LOGGER = logging.getLogger(__name__)


def spawn_process(argv: Sequence[str], cwd: Path, stream: TextIO) -> int:
    """Run *argv* in *cwd* with stdout and stderr appended to *stream*."""

    completed = subprocess.run(
        list(argv),
        cwd=str(cwd),
        stdout=stream,
        stderr=subprocess.STDOUT,
        check=False,
    )
    return completed.returncode


def _banner(lines: List[str]) -> str:
    return "\n".join([_RULE, *lines, _RULE]) + "\n"


def _timestamp() -> str:
    return utc_now().strftime("%a %d %b %Y %H:%M:%S UTC")


def flat_name(name: str) -> str:
    """Turn a case entry such as ``grp/AoA0`` into a single file name component."""

    parts = [part for part in name.replace("\\", "/").split("/") if part not in ("", ".", "..")]
    return "_".join(parts) or "case"


class JobRunner:
    """Run one work item from directory check to outcome.

    Every failure of a single job ends up in the returned outcome and in the
    job's log file; nothing is raised to the caller.
    """

    def __init__(
        self,
        family: SolverFamily,
        pool: SlotPool,
        slots_per_job: int,
        log_dir: Path,
        *,
        spawn: Optional[Spawn] = None,
    ) -> None:
        self.family = family
        self.pool = pool
        self.slots_per_job = slots_per_job
        self.log_dir = Path(log_dir)
        self._spawn: Spawn = spawn or spawn_process

    def log_path(self, item: WorkItem) -> Path:
        return self.log_dir / f"{flat_name(item.name)}.log"

    def run(self, item: WorkItem, wave: int = 0) -> JobOutcome:
        log_path = self.log_path(item)
        started_at = utc_now()
        header = _banner([f"Job: {item.name}", f"Started: {_timestamp()}", f"Directory: {item.path}"])
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_path.write_text(header, encoding="utf-8")
            stream = log_path.open("a", encoding="utf-8")
        except OSError as exc:
            outcome = JobOutcome.internal_error(
                item, f"cannot write job log: {exc}", started_at=started_at, finished_at=utc_now(), wave=wave
            )
            return self._finish(item, outcome, wave, None)

        with stream:
            try:
                exit_code = self._execute(item, stream)
            except (JobError, SlotExhaustedError) as exc:
                stream.write(f"ERROR: {exc}\n")
                outcome = JobOutcome.internal_error(
                    item, str(exc), log_path=log_path, started_at=started_at, finished_at=utc_now(), wave=wave
                )
            except OSError as exc:
                stream.write(f"ERROR: failed to launch solver: {exc}\n")
                outcome = JobOutcome.internal_error(
                    item,
                    f"failed to launch solver: {exc}",
                    log_path=log_path,
                    started_at=started_at,
                    finished_at=utc_now(),
                    wave=wave,
                )
            else:
                outcome = JobOutcome.from_exit_code(
                    item,
                    exit_code,
                    log_path=log_path,
                    started_at=started_at,
                    finished_at=utc_now(),
                    wave=wave,
                )
            code = outcome.exit_code if outcome.exit_code is not None else outcome.status
            stream.write(_banner([f"Finished: {_timestamp()}", f"Exit code: {code}"]))

        return self._finish(item, outcome, wave, log_path)

    def _finish(self, item: WorkItem, outcome: JobOutcome, wave: int, log_path: Optional[Path]) -> JobOutcome:
        if not outcome.ok:
            reason = outcome.error or f"exit code {outcome.exit_code}"
            _LOGGER.warning("Case %s failed (%s): see %s", item.name, reason, log_path or "console")
        log.append_event(
            {
                "event": "job.completed",
                "case": item.name,
                "wave": wave,
                "status": outcome.status,
                "exit_code": outcome.exit_code,
                "duration_s": round(outcome.duration_s, 3),
            }
        )
        return outcome

    def _execute(self, item: WorkItem, stream: TextIO) -> int:
        if not item.path.is_dir():
            raise DirectoryMissingError(item.path)

        with self.pool.lease(self.slots_per_job) as handle:
            stream.write(f"Slots: {', '.join(str(i) for i in handle.slot_ids)} on {', '.join(handle.hosts())}\n")
            artifact = self.family.resolve_artifact(item.path)
            with artifact if artifact is not None else nullcontext():
                if artifact is not None:
                    stream.write(artifact.describe() + "\n")
                nodefile_name = f"{self.family.name}_nodes_{flat_name(item.name)}.{os.getpid()}"
                nodefile_cm = (
                    handle.nodefile(item.path / nodefile_name)
                    if self.family.needs_nodefile
                    else nullcontext(None)
                )
                with nodefile_cm as nodefile:
                    invocation = self.family.build_invocation(artifact, handle, item.path, nodefile)
                    for cmd in invocation.pre:
                        code = self._run_command(cmd, item.path, stream)
                        if code != 0:
                            raise ExternalProcessError(cmd.argv, code)
                    exit_code = self._run_command(invocation.main, item.path, stream)
                    for cmd in invocation.post:
                        self._run_command(cmd, item.path, stream)
        return exit_code

    def _run_command(self, cmd: Command, cwd: Path, stream: TextIO) -> int:
        stream.write(f"Launching: {' '.join(cmd.argv)}\n")
        stream.flush()
        if cmd.log_name is None:
            return self._spawn(cmd.argv, cwd, stream)

        with (cwd / cmd.log_name).open("w", encoding="utf-8") as side_stream:
            code = self._spawn(cmd.argv, cwd, side_stream)
        stream.write(f"{cmd.argv[0]} exited with code {code} (output in {cmd.log_name})\n")
        return code


__all__ = ["JobRunner", "Spawn", "flat_name", "spawn_process"]
