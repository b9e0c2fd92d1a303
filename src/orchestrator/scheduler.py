"""Wave scheduler: run work items in barrier-separated, width-bounded waves."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from . import log
from .executor import Executor, ThreadedExecutor
from .partition import plan_waves
from .report import FinalReport, ReportAggregator
from .task import JobOutcome, WorkItem

STATE_PENDING = "pending"
STATE_WAVE_RUNNING = "wave-running"
STATE_DRAINING = "draining"
STATE_DONE = "done"

RunJob = Callable[[WorkItem, int], JobOutcome]

_LOGGER = logging.getLogger(__name__)


class WaveScheduler:
    """Launch the next ``width`` items, wait for all of them, then advance.

    A slow job holds back the next wave; there is no work stealing across
    waves and no timeout.
    """

    def __init__(self, run_job: RunJob, width: int, executor: Optional[Executor] = None) -> None:
        if width < 1:
            raise ValueError("Wave width must be at least 1")
        self.run_job = run_job
        self.width = width
        self._executor = executor
        self.state = STATE_PENDING

    def plan(self, items: Sequence[WorkItem]) -> List[Tuple[WorkItem, ...]]:
        return plan_waves(list(items), self.width)

    def _guarded(self, item: WorkItem, wave: int) -> JobOutcome:
        try:
            return self.run_job(item, wave)
        except Exception as exc:  # noqa: BLE001 - outcomes never cross the wave boundary as exceptions
            _LOGGER.exception("Unexpected error while running case %s", item.name)
            return JobOutcome.internal_error(item, f"{type(exc).__name__}: {exc}", wave=wave)

    def run(self, items: Sequence[WorkItem]) -> FinalReport:
        items = list(items)
        waves = self.plan(items)
        aggregator = ReportAggregator(items)
        executor = self._executor or ThreadedExecutor(self.width)
        self.state = STATE_PENDING

        try:
            for number, wave in enumerate(waves, start=1):
                self.state = STATE_WAVE_RUNNING
                first, last = wave[0].index + 1, wave[-1].index + 1
                _LOGGER.info("Starting wave %d: jobs %d to %d (%d jobs)", number, first, last, len(wave))
                log.append_event(
                    {"event": "wave.started", "wave": number, "cases": [item.name for item in wave]}
                )

                outcomes = executor.submit(partial(self._guarded, wave=number), wave)

                self.state = STATE_DRAINING
                for outcome in outcomes:
                    aggregator.record(outcome)
                summary = aggregator.close_wave(number, outcomes)
                _LOGGER.info(
                    "Wave %d complete. Progress: %d/%d completed, %d failed",
                    number,
                    aggregator.completed,
                    len(items),
                    aggregator.failed,
                )
                log.append_event(
                    {
                        "event": "wave.completed",
                        "wave": number,
                        "completed": summary.completed,
                        "failed": summary.failed,
                    }
                )
                self.state = STATE_PENDING
        finally:
            if self._executor is None:
                executor.shutdown()

        self.state = STATE_DONE
        return aggregator.finalize()


__all__ = [
    "RunJob",
    "STATE_DONE",
    "STATE_DRAINING",
    "STATE_PENDING",
    "STATE_WAVE_RUNNING",
    "WaveScheduler",
]
