"""Executor backends that run one wave of jobs."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Protocol, Sequence

from .task import JobOutcome, WorkItem

JobFn = Callable[[WorkItem], JobOutcome]


class Executor(Protocol):
    """Abstract execution backend."""

    def submit(self, fn: JobFn, work_items: Sequence[WorkItem]) -> List[JobOutcome]:
        """Launch one call per work item and return outcomes in launch order."""

    def barrier(self) -> None:
        """Wait until all launched work is finished."""

    def shutdown(self) -> None:
        """Tear down resources allocated by the executor."""


class SequentialExecutor:
    """Deterministic executor running the jobs of a wave one after another."""

    def submit(self, fn: JobFn, work_items: Sequence[WorkItem]) -> List[JobOutcome]:
        return [fn(item) for item in work_items]

    def barrier(self) -> None:
        return None

    def shutdown(self) -> None:
        return None


class ThreadedExecutor:
    """Run each job of a wave on its own worker thread.

    The pool never has more than ``max_workers`` threads, so a wave larger
    than that is rejected rather than queued.
    """

    def __init__(self, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cfd-job")
        self._pending: List[Future] = []

    def submit(self, fn: JobFn, work_items: Sequence[WorkItem]) -> List[JobOutcome]:
        if len(work_items) > self.max_workers:
            raise ValueError(
                f"Wave of {len(work_items)} jobs exceeds the executor width of {self.max_workers}"
            )
        futures = [self._pool.submit(fn, item) for item in work_items]
        self._pending.extend(futures)
        self.barrier()
        return [future.result() for future in futures]

    def barrier(self) -> None:
        if self._pending:
            wait(self._pending)
        self._pending = []

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self) -> "ThreadedExecutor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["Executor", "JobFn", "SequentialExecutor", "ThreadedExecutor"]
