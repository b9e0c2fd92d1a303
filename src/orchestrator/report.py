"""Outcome tallies and the final batch report."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .task import JobOutcome, WorkItem, utc_now


@dataclass(frozen=True)
class WaveReport:
    number: int
    cases: Tuple[str, ...]
    completed: int
    failed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "cases": list(self.cases),
            "completed": self.completed,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class FinalReport:
    """Summary of a whole batch.

    ``failed_cases`` and ``outcomes`` follow the configured case order, not
    the order in which jobs finished.
    """

    total: int
    completed: int
    failed: int
    failed_cases: Tuple[str, ...]
    outcomes: Tuple[JobOutcome, ...]
    waves: Tuple[WaveReport, ...]
    finished_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "failed_cases": list(self.failed_cases),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "waves": [wave.to_dict() for wave in self.waves],
            "finished_at": self.finished_at.isoformat(timespec="milliseconds"),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FinalReport":
        return cls(
            total=int(payload["total"]),
            completed=int(payload["completed"]),
            failed=int(payload["failed"]),
            failed_cases=tuple(payload["failed_cases"]),
            outcomes=tuple(JobOutcome.from_dict(entry) for entry in payload["outcomes"]),
            waves=tuple(
                WaveReport(
                    number=int(entry["number"]),
                    cases=tuple(entry["cases"]),
                    completed=int(entry["completed"]),
                    failed=int(entry["failed"]),
                )
                for entry in payload["waves"]
            ),
            finished_at=datetime.fromisoformat(payload["finished_at"]),
        )


class ReportAggregator:
    """Accumulate outcomes as waves drain.

    Only the orchestrating thread calls into the aggregator.
    """

    def __init__(self, items: Sequence[WorkItem]) -> None:
        self._items: Dict[int, WorkItem] = {item.index: item for item in items}
        if len(self._items) != len(items):
            raise ValueError("Work item indices must be unique")
        self._outcomes: Dict[int, JobOutcome] = {}
        self._waves: List[WaveReport] = []
        self.completed = 0
        self.failed = 0

    @property
    def recorded(self) -> int:
        return len(self._outcomes)

    def record(self, outcome: JobOutcome) -> None:
        index = outcome.item.index
        if index not in self._items:
            raise ValueError(f"Outcome for unknown case '{outcome.item.name}'")
        if index in self._outcomes:
            raise ValueError(f"Outcome for case '{outcome.item.name}' recorded twice")
        self._outcomes[index] = outcome
        if outcome.ok:
            self.completed += 1
        else:
            self.failed += 1

    def close_wave(self, number: int, outcomes: Sequence[JobOutcome]) -> WaveReport:
        wave = WaveReport(
            number=number,
            cases=tuple(outcome.item.name for outcome in outcomes),
            completed=sum(1 for outcome in outcomes if outcome.ok),
            failed=sum(1 for outcome in outcomes if not outcome.ok),
        )
        self._waves.append(wave)
        return wave

    def finalize(self) -> FinalReport:
        missing = sorted(set(self._items) - set(self._outcomes))
        if missing:
            names = ", ".join(self._items[index].name for index in missing)
            raise RuntimeError(f"No outcome recorded for: {names}")

        ordered = tuple(self._outcomes[index] for index in sorted(self._outcomes))
        return FinalReport(
            total=len(self._items),
            completed=self.completed,
            failed=self.failed,
            failed_cases=tuple(outcome.item.name for outcome in ordered if not outcome.ok),
            outcomes=ordered,
            waves=tuple(self._waves),
            finished_at=utc_now(),
        )


def render_summary(
    report: FinalReport,
    *,
    job_id: str,
    solver: str,
    log_dir: Optional[Path] = None,
) -> str:
    """Render the plain-text summary handed to the notification step."""

    lines = [
        "CFD Batch Job Summary",
        "=====================",
        "",
        f"Job ID: {job_id}",
        f"Solver: {solver}",
        f"Completed: {report.finished_at.strftime('%a %d %b %Y %H:%M:%S UTC')}",
        "",
        "Statistics:",
        "-----------",
        f"Total jobs: {report.total}",
        f"Completed: {report.completed}",
        f"Failed: {report.failed}",
        "",
    ]
    if log_dir is not None:
        lines += [f"Logs: {log_dir}/", ""]
    if report.failed_cases:
        lines.append("Failed cases:")
        for outcome in report.outcomes:
            if outcome.ok:
                continue
            detail = f"exit code {outcome.exit_code}" if outcome.exit_code is not None else outcome.error
            lines.append(f"  - {outcome.item.name} ({detail})")
    return "\n".join(lines).rstrip("\n") + "\n"


__all__ = ["FinalReport", "ReportAggregator", "WaveReport", "render_summary"]
