from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from orchestrator.report import ReportAggregator
from orchestrator.task import JobOutcome, WorkItem
from tools.reports.timeline import render_timeline

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def _report():
    items = [WorkItem(index, f"AoA{index}", Path(f"/proj/AoA{index}")) for index in range(3)]
    aggregator = ReportAggregator(items)
    aggregator.record(
        JobOutcome.from_exit_code(
            items[0], 0, log_path=None, started_at=T0, finished_at=T0 + timedelta(minutes=40), wave=1
        )
    )
    aggregator.record(
        JobOutcome.from_exit_code(
            items[1], 1, log_path=None, started_at=T0, finished_at=T0 + timedelta(minutes=25), wave=1
        )
    )
    aggregator.record(
        JobOutcome.internal_error(
            items[2], "no inputs", started_at=T0 + timedelta(minutes=40), finished_at=T0 + timedelta(minutes=41), wave=2
        )
    )
    return aggregator.finalize()


def test_timeline_png_is_written(tmp_path: Path):
    target = render_timeline(_report(), tmp_path / "charts" / "timeline.png", title="job 1")
    assert target.exists()
    assert target.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_empty_report_cannot_be_plotted(tmp_path: Path):
    with pytest.raises(ValueError):
        render_timeline(ReportAggregator([]).finalize(), tmp_path / "empty.png")
