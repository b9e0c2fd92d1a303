"""Work item and outcome definitions for the wave scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .partition import wave_width

STATUS_SUCCESS = "success"
STATUS_NONZERO = "nonzero"
STATUS_ERROR = "internal-error"

_STATUSES = {STATUS_SUCCESS, STATUS_NONZERO, STATUS_ERROR}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WorkItem:
    """One case directory to run.

    ``index`` is the position in the configured case list and is what the
    final report sorts by, so completion order never leaks into it.
    """

    index: int
    name: str
    path: Path


@dataclass(frozen=True)
class ResourceAllocation:
    """Total slot count of the allocation and the slots each job needs."""

    total_slots: int
    slots_per_job: int

    @property
    def width(self) -> int:
        return wave_width(self.total_slots, self.slots_per_job)


@dataclass(frozen=True)
class JobOutcome:
    """Result of a single job runner invocation."""

    item: WorkItem
    status: str
    exit_code: Optional[int]
    log_path: Optional[Path]
    started_at: datetime
    finished_at: datetime
    wave: int = 0
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status not in _STATUSES:
            raise ValueError(f"Unknown job status '{self.status}'")

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @classmethod
    def from_exit_code(
        cls,
        item: WorkItem,
        exit_code: int,
        *,
        log_path: Optional[Path],
        started_at: datetime,
        finished_at: datetime,
        wave: int = 0,
    ) -> "JobOutcome":
        """Record the OS exit code verbatim; zero is the only success."""

        status = STATUS_SUCCESS if exit_code == 0 else STATUS_NONZERO
        return cls(
            item=item,
            status=status,
            exit_code=exit_code,
            log_path=log_path,
            started_at=started_at,
            finished_at=finished_at,
            wave=wave,
        )

    @classmethod
    def internal_error(
        cls,
        item: WorkItem,
        error: str,
        *,
        log_path: Optional[Path] = None,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
        wave: int = 0,
    ) -> "JobOutcome":
        now = utc_now()
        return cls(
            item=item,
            status=STATUS_ERROR,
            exit_code=None,
            log_path=log_path,
            started_at=started_at or now,
            finished_at=finished_at or now,
            wave=wave,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.item.index,
            "case": self.item.name,
            "path": str(self.item.path),
            "status": self.status,
            "exit_code": self.exit_code,
            "log_path": str(self.log_path) if self.log_path is not None else None,
            "started_at": self.started_at.isoformat(timespec="milliseconds"),
            "finished_at": self.finished_at.isoformat(timespec="milliseconds"),
            "wave": self.wave,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "JobOutcome":
        item = WorkItem(
            index=int(payload["index"]),
            name=str(payload["case"]),
            path=Path(payload["path"]),
        )
        log_path = payload.get("log_path")
        return cls(
            item=item,
            status=str(payload["status"]),
            exit_code=payload.get("exit_code"),
            log_path=Path(log_path) if log_path else None,
            started_at=datetime.fromisoformat(payload["started_at"]),
            finished_at=datetime.fromisoformat(payload["finished_at"]),
            wave=int(payload.get("wave", 0)),
            error=payload.get("error"),
        )


__all__ = [
    "JobOutcome",
    "ResourceAllocation",
    "STATUS_ERROR",
    "STATUS_NONZERO",
    "STATUS_SUCCESS",
    "WorkItem",
    "utc_now",
]
