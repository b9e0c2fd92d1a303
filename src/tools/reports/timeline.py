"""Wave timeline chart for a finished batch."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Patch  # noqa: E402

from orchestrator.report import FinalReport  # noqa: E402
from orchestrator.task import STATUS_ERROR, STATUS_NONZERO, STATUS_SUCCESS  # noqa: E402

__all__ = ["render_timeline"]

_COLOURS: Dict[str, str] = {
    STATUS_SUCCESS: "tab:green",
    STATUS_NONZERO: "tab:red",
    STATUS_ERROR: "tab:orange",
}


def render_timeline(report: FinalReport, path: Path, *, title: str | None = None) -> Path:
    """Draw one bar per case from start to finish, coloured by status.

    Dashed vertical lines mark the start of each wave, which makes the idle
    time caused by the wave barrier visible.
    """

    path = Path(path)
    if not report.outcomes:
        raise ValueError("Report has no outcomes to plot")

    origin = min(outcome.started_at for outcome in report.outcomes)
    height = max(2.0, 0.4 * len(report.outcomes) + 1.0)
    fig, ax = plt.subplots(figsize=(10, height))

    wave_starts: Dict[int, float] = {}
    for row, outcome in enumerate(report.outcomes):
        left = (outcome.started_at - origin).total_seconds()
        ax.barh(
            row,
            max(outcome.duration_s, 0.0),
            left=left,
            color=_COLOURS.get(outcome.status, "tab:gray"),
            edgecolor="black",
            linewidth=0.5,
        )
        if outcome.wave:
            wave_starts[outcome.wave] = min(wave_starts.get(outcome.wave, left), left)

    for wave, start in sorted(wave_starts.items()):
        ax.axvline(start, color="k", linestyle="--", linewidth=0.8)
        ax.text(start, -0.8, f"wave {wave}", fontsize=8, ha="left", va="bottom")

    ax.set_yticks(range(len(report.outcomes)))
    ax.set_yticklabels([outcome.item.name for outcome in report.outcomes])
    ax.invert_yaxis()
    ax.set_xlabel("seconds since batch start")
    ax.set_title(title or f"{report.completed}/{report.total} completed, {report.failed} failed")
    ax.legend(
        handles=[Patch(color=colour, label=status) for status, colour in _COLOURS.items()],
        loc="lower right",
        fontsize=8,
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
