"""Fluent journal rendering.

A generated journal always follows the same skeleton::

    read case (continue: case + data)
    initialize                       (initialize template only)
    solve, optionally bounded by a step count
    write case + data back to the case name
    exit

The solve step is bounded only when both a simulation mode (steady or
transient) and a positive step count are configured: transient runs use
``/solve/dual-time-iterate N`` and steady runs ``/solve/iterate N``.
Otherwise the journal issues a bare ``/solve/iterate`` and the solver uses
the settings stored in the case file.
"""

from __future__ import annotations

from typing import List, Optional

from .base import MODE_STEADY, MODE_TRANSIENT, MODE_UNSPECIFIED

CONFIRM = "yes"

_MODE_LABELS = {
    MODE_TRANSIENT: "transient simulation",
    MODE_STEADY: "steady-state simulation",
    MODE_UNSPECIFIED: "using case file settings",
}
_STEP_UNITS = {
    MODE_TRANSIENT: "time steps",
    MODE_STEADY: "iterations",
    MODE_UNSPECIFIED: "iterations",
}


def _bounded(mode: str, steps: Optional[int]) -> bool:
    return mode in (MODE_STEADY, MODE_TRANSIENT) and bool(steps)


def solve_directive(mode: str, steps: Optional[int]) -> str:
    if not _bounded(mode, steps):
        return "/solve/iterate"
    directive = "/solve/dual-time-iterate" if mode == MODE_TRANSIENT else "/solve/iterate"
    return f"{directive} {steps}"


def _solve_comment(mode: str, steps: Optional[int], continuation: bool) -> str:
    if not _bounded(mode, steps):
        return "; Solve using settings from case file"
    verb = "Continue" if continuation else "Start"
    kind = "transient" if mode == MODE_TRANSIENT else "steady-state"
    return f"; {verb} {kind} calculation for {steps} {_STEP_UNITS.get(mode, 'iterations')}"


def render_journal(
    case_name: str,
    *,
    continuation: bool,
    mode: str = MODE_UNSPECIFIED,
    steps: Optional[int] = None,
) -> str:
    """Return the journal text for *case_name*.

    The case name is used for both the read and the write so results land
    back in the artifact the run started from.
    """

    if mode not in _MODE_LABELS:
        raise ValueError(f"Unknown simulation mode '{mode}'")

    label = _MODE_LABELS[mode if _bounded(mode, steps) else MODE_UNSPECIFIED]
    lines: List[str] = []
    if continuation:
        lines += [f"; Auto-generated journal - continue {label}", "/file/read-case-data", case_name, ""]
    else:
        lines += [
            f"; Auto-generated journal - initialize and run {label}",
            "/file/read-case",
            case_name,
            "",
            "; Initialize",
            "/solve/initialize/initialize-flow",
            "",
        ]
    lines += [_solve_comment(mode, steps, continuation), solve_directive(mode, steps), ""]
    lines += ["; Save results", "/file/write-case-data", case_name, CONFIRM, ""]
    lines += ["; Exit", "/exit", CONFIRM]
    return "\n".join(lines) + "\n"


__all__ = ["CONFIRM", "render_journal", "solve_directive"]
