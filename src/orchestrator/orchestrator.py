"""Batch entry point (verify → partition → waves → report → notify)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from artifacts.report_store import save_report
from contracts.errors import ConfigurationError
from solvers import SolverFamily, get_family

from . import log
from .executor import Executor
from .notify import completion_subject, failure_subject, send_summary
from .report import FinalReport, render_summary
from .runner import JobRunner, Spawn
from .scheduler import WaveScheduler
from .settings import BatchSettings
from .slots import SlotPool, load_pool
from .task import ResourceAllocation, WorkItem

_LOGGER = logging.getLogger(__name__)

Notifier = Callable[..., bool]


@dataclass(frozen=True)
class BatchResult:
    report: FinalReport
    summary: str
    report_path: Path
    log_dir: Path
    width: int


def verify_case_directories(
    items: Sequence[WorkItem],
    family: SolverFamily,
    *,
    require_inputs: bool = False,
) -> None:
    """Fail before any wave starts if a case directory (or its inputs) is missing."""

    problems = []
    for item in items:
        if not item.path.is_dir():
            _LOGGER.error("  Not found: %s", item.name)
            problems.append(f"{item.name}: directory {item.path} not found")
            continue
        if require_inputs and not family.has_inputs(item.path):
            _LOGGER.error("  No input files: %s", item.name)
            problems.append(f"{item.name}: no input files ({', '.join(family.expected_inputs())})")
            continue
        _LOGGER.info("  Found: %s", item.name)
    if problems:
        raise ConfigurationError("Not all case directories or files exist: " + "; ".join(problems))


def _log_banner(settings: BatchSettings, pool: SlotPool, width: int) -> None:
    _LOGGER.info("Job ID: %s", settings.job_id)
    _LOGGER.info("Solver: %s", settings.solver.family)
    _LOGGER.info("Working directory: %s", settings.workdir)
    _LOGGER.info("Project directory: %s", settings.project_dir)
    _LOGGER.info("Nodes: %s", " ".join(sorted(set(pool.targets))))
    _LOGGER.info("Total cores: %d", pool.capacity)
    if settings.solver.family == "fluent":
        _LOGGER.info("Simulation type: %s", settings.solver.simulation_mode)
        _LOGGER.info("Steps: %s", settings.solver.step_count or "case file settings")
    _LOGGER.info("Cores per job: %d", settings.slots_per_job)
    _LOGGER.info("Jobs per wave: %d", width)
    _LOGGER.info("Total jobs: %d", len(settings.case_dirs))


def _report_payload(settings: BatchSettings, report: FinalReport, width: int, capacity: int) -> Dict[str, Any]:
    payload = report.to_dict()
    payload.update(
        {
            "job_id": settings.job_id,
            "solver": settings.solver.family,
            "log_dir": str(settings.log_dir),
            "wave_width": width,
            "total_slots": capacity,
            "slots_per_job": settings.slots_per_job,
        }
    )
    return payload


def run_batch(
    settings: BatchSettings,
    *,
    env: Mapping[str, str] | None = None,
    spawn: Optional[Spawn] = None,
    executor: Optional[Executor] = None,
    notify: bool = True,
    notifier: Notifier = send_summary,
) -> BatchResult:
    """Run every configured case and return the final report.

    Raises :class:`ConfigurationError` before launching anything when the
    batch cannot run at all; individual job failures only show up in the
    report.
    """

    family = get_family(settings.solver)
    items = settings.work_items()
    log.configure(settings.log_dir)
    try:
        try:
            _LOGGER.info("Verifying case directories...")
            verify_case_directories(items, family, require_inputs=settings.require_inputs)
            pool = load_pool(settings.nodefile, settings.total_slots, env)
            width = ResourceAllocation(pool.capacity, settings.slots_per_job).width
        except ConfigurationError as exc:
            log.append_event({"event": "batch.aborted", "job_id": settings.job_id, "reason": str(exc)})
            if notify:
                notifier(
                    f"Batch job {settings.job_id} failed: {exc}\n",
                    subject=failure_subject(settings.job_id),
                    address=settings.notify_email,
                    mailer=settings.mailer,
                )
            raise

        _log_banner(settings, pool, width)
        log.append_event(
            {
                "event": "batch.started",
                "job_id": settings.job_id,
                "solver": settings.solver.family,
                "cases": list(settings.case_dirs),
                "wave_width": width,
                "total_slots": pool.capacity,
            }
        )

        runner = JobRunner(family, pool, settings.slots_per_job, settings.log_dir, spawn=spawn)
        report = WaveScheduler(runner.run, width, executor=executor).run(items)

        report_path = save_report(_report_payload(settings, report, width, pool.capacity), settings.log_dir)
        summary = render_summary(
            report,
            job_id=settings.job_id,
            solver=settings.solver.family,
            log_dir=settings.log_dir,
        )
        log.append_event(
            {
                "event": "batch.completed",
                "job_id": settings.job_id,
                "total": report.total,
                "completed": report.completed,
                "failed": report.failed,
                "failed_cases": list(report.failed_cases),
            }
        )
        _LOGGER.info(
            "All jobs complete. Total: %d, completed: %d, failed: %d, logs: %s",
            report.total,
            report.completed,
            report.failed,
            settings.log_dir,
        )
        if notify:
            notifier(
                summary,
                subject=completion_subject(settings.job_id),
                address=settings.notify_email,
                mailer=settings.mailer,
            )
    finally:
        log.reset()

    return BatchResult(
        report=report,
        summary=summary,
        report_path=report_path,
        log_dir=settings.log_dir,
        width=width,
    )


__all__ = ["BatchResult", "run_batch", "verify_case_directories"]
