"""Wave-based batch orchestration of independent solver jobs."""

from .executor import Executor, SequentialExecutor, ThreadedExecutor
from .partition import plan_waves, wave_width
from .report import FinalReport, ReportAggregator, WaveReport, render_summary
from .scheduler import WaveScheduler
from .slots import ExecutionHandle, SlotPool
from .task import JobOutcome, ResourceAllocation, WorkItem

__all__ = [
    "ExecutionHandle",
    "Executor",
    "FinalReport",
    "JobOutcome",
    "ReportAggregator",
    "ResourceAllocation",
    "SequentialExecutor",
    "SlotPool",
    "ThreadedExecutor",
    "WaveReport",
    "WaveScheduler",
    "WorkItem",
    "plan_waves",
    "render_summary",
    "wave_width",
]
