"""Command line entry point for CFD batch runs."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from artifacts.report_store import load_report
from contracts.errors import BatchError, ConfigurationError
from orchestrator.orchestrator import run_batch
from orchestrator.partition import plan_waves
from orchestrator.pbs import render_pbs_script
from orchestrator.report import FinalReport, render_summary
from orchestrator.settings import BatchSettings, resolve_settings
from orchestrator.slots import load_pool
from orchestrator.task import ResourceAllocation
from project_config import default_config_path, load_config
from solvers import get_family

# argparse dest → override name understood by orchestrator.settings
_CLI_OVERRIDES = (
    "workdir",
    "project_dir",
    "slots_per_job",
    "log_dir",
    "solver",
    "simulation_mode",
    "step_count",
    "total_slots",
    "nodefile",
    "email",
)


def _cli_overrides(args: argparse.Namespace) -> Dict[str, str]:
    payload: Dict[str, str] = {}
    for name in _CLI_OVERRIDES:
        value = getattr(args, name, None)
        if value is not None:
            payload[f"CLI_BATCH_{name.upper()}"] = str(value)
    return payload


def _merge_env(overrides: Dict[str, str]) -> Dict[str, str]:
    env: Dict[str, str] = {str(k): str(v) for k, v in os.environ.items()}
    env.update(overrides)
    return env


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config) if args.config else default_config_path()


def _settings(args: argparse.Namespace) -> tuple[BatchSettings, Dict[str, str]]:
    env = _merge_env(_cli_overrides(args))
    config = load_config(_config_path(args))
    return resolve_settings(config, env), env


def cmd_run(args: argparse.Namespace) -> int:
    settings, env = _settings(args)
    result = run_batch(settings, env=env, notify=not args.no_notify)
    print(result.summary, end="")
    if args.timeline:
        from tools.reports.timeline import render_timeline

        title = f"{settings.job_id} ({settings.solver.family})"
        print(f"Timeline: {render_timeline(result.report, Path(args.timeline), title=title)}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    settings, env = _settings(args)
    pool = load_pool(settings.nodefile, settings.total_slots, env)
    width = ResourceAllocation(pool.capacity, settings.slots_per_job).width
    waves = plan_waves(settings.work_items(), width)
    payload: Dict[str, Any] = {
        "total_slots": pool.capacity,
        "slots_per_job": settings.slots_per_job,
        "wave_width": width,
        "waves": [[item.name for item in wave] for wave in waves],
    }
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    settings, _ = _settings(args)
    family = get_family(settings.solver)
    job_dir = Path(args.case_dir)
    if not job_dir.is_dir():
        job_dir = settings.case_root / args.case_dir
    artifact = family.resolve_artifact(job_dir)
    if artifact is None:
        print(json.dumps({"kind": None, "path": None}, indent=2))
        return 0
    with artifact:
        payload = {
            "kind": artifact.kind,
            "path": str(artifact.path),
            "case_file": str(artifact.case_file) if artifact.case_file else None,
            "continuation": artifact.continuation,
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        if artifact.synthesized:
            print(artifact.path.read_text(encoding="utf-8"), end="")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    try:
        payload = load_report(Path(args.path))
        report = FinalReport.from_dict(payload)
    except (OSError, ValueError, KeyError) as exc:
        print(f"ERROR: cannot read report {args.path}: {exc}", file=sys.stderr)
        return 2
    log_dir = payload.get("log_dir")
    print(
        render_summary(
            report,
            job_id=str(payload.get("job_id", "unknown")),
            solver=str(payload.get("solver", "unknown")),
            log_dir=Path(log_dir) if log_dir else None,
        ),
        end="",
    )
    if args.timeline:
        from tools.reports.timeline import render_timeline

        print(f"Timeline: {render_timeline(report, Path(args.timeline))}")
    return 0


def cmd_pbs_script(args: argparse.Namespace) -> int:
    settings, _ = _settings(args)
    script = render_pbs_script(settings, config_path=_config_path(args), command=args.command_name)
    if args.output:
        Path(args.output).write_text(script, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(script, end="")
    return 0


def _add_override_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workdir", default=None, help="Base directory (defaults to $PBS_O_WORKDIR)")
    parser.add_argument("--project-dir", dest="project_dir", default=None)
    parser.add_argument("--slots-per-job", dest="slots_per_job", type=int, default=None)
    parser.add_argument("--log-dir", dest="log_dir", default=None)
    parser.add_argument("--solver", default=None, help="Solver family (fluent, openfoam, cfx, ...)")
    parser.add_argument(
        "--simulation-mode",
        dest="simulation_mode",
        choices=["steady", "transient", "unspecified"],
        default=None,
    )
    parser.add_argument("--step-count", dest="step_count", type=int, default=None)
    parser.add_argument("--total-slots", dest="total_slots", type=int, default=None)
    parser.add_argument("--nodefile", default=None, help="Node file listing one host per slot")
    parser.add_argument("--email", default=None, help="Address for the summary mail")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run independent CFD cases in waves on one allocation")
    parser.add_argument("--config", default=None, help="Path to the TOML configuration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run every configured case")
    _add_override_flags(run)
    run.add_argument("--no-notify", action="store_true", help="Do not mail the summary")
    run.add_argument("--timeline", default=None, help="Write a wave timeline chart to this path")
    run.set_defaults(func=cmd_run)

    plan = sub.add_parser("plan", help="Print the wave plan without running anything")
    _add_override_flags(plan)
    plan.set_defaults(func=cmd_plan)

    resolve = sub.add_parser("resolve", help="Show which input a case directory resolves to")
    resolve.add_argument("case_dir", help="Case directory, absolute or relative to the project")
    _add_override_flags(resolve)
    resolve.set_defaults(func=cmd_resolve)

    report = sub.add_parser("report", help="Render the summary of a saved report.json")
    report.add_argument("path", help="report.json or the log directory holding it")
    report.add_argument("--timeline", default=None)
    report.set_defaults(func=cmd_report)

    pbs = sub.add_parser("pbs-script", help="Render a PBS submission script for this batch")
    _add_override_flags(pbs)
    pbs.add_argument("--output", default=None)
    pbs.add_argument("--command-name", dest="command_name", default="cfd-batch")
    pbs.set_defaults(func=cmd_pbs_script)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except BatchError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
