"""Run command - execute a release plan."""

from __future__ import annotations

from pathlib import Path

import typer

from pubseq.builders import default_build_tools
from pubseq.cli.commands._helpers import exit_on_error, exit_with_code
from pubseq.cli.context import build_context
from pubseq.orchestrator import (
    CancelToken,
    Orchestrator,
    RunOptions,
    RunReport,
    UnitStatus,
    sigint_cancels,
)
from pubseq.output.console import ConsoleProtocol, Style
from pubseq.plan.plan_file import start_from
from pubseq.registries import default_registry_clients

_STATUS_STYLES: dict[UnitStatus, Style] = {
    UnitStatus.PUBLISHED: Style.SUCCESS,
    UnitStatus.FAILED: Style.ERROR,
    UnitStatus.SKIPPED: Style.DIM,
}


def run(
    plan_file: Path | None = typer.Argument(
        None,
        help="Plan file (default: $PUBSEQ_PLAN or ./release.toml)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Build, then run publishers in their dry-run mode"
    ),
    continue_on_failure: bool = typer.Option(
        False, "--continue-on-failure", help="Attempt every unit even after a failure"
    ),
    start_at: str | None = typer.Option(
        None,
        "--start-at",
        help="Resume from this package (units before it are not run)",
        show_default=False,
    ),
    report_file: Path | None = typer.Option(
        None, "--report", help="Write the run report as JSON", show_default=False
    ),
) -> None:
    """Publish every unit of a release plan, in order."""
    ctx = build_context()
    plan = ctx.load_plan(plan_file)

    if start_at is not None:
        plan = exit_on_error(start_from(plan, start_at), ctx)
    if continue_on_failure:
        plan = plan.continue_on_failure()

    if plan.source is not None:
        ctx.console.print(f"plan: {plan.source}", Style.DIM)
    if dry_run:
        ctx.console.info("dry run: nothing will be uploaded")

    token = CancelToken()
    orchestrator = Orchestrator(
        plan=plan,
        console=ctx.console,
        options=RunOptions(dry_run=dry_run),
        registry_clients=default_registry_clients(),
        build_tools=default_build_tools(),
        environ=ctx.environ,
        cancel=token,
    )
    ctx.console.print("Ctrl-C stops after the current unit; press it twice to kill", Style.DIM)
    with sigint_cancels(token):
        report = orchestrator.run()

    print_report(report, ctx.console)

    if report_file is not None:
        try:
            report.write_json(report_file)
        except OSError as e:
            ctx.console.error(f"failed to write report: {e}")
        else:
            ctx.console.print(f"report: {report_file}", Style.DIM)

    exit_with_code(int(report.exit_code()))


def print_report(report: RunReport, console: ConsoleProtocol) -> None:
    rows: list[list[str]] = []
    styles: list[Style] = []
    for o in report.outcomes:
        rows.append(
            [
                str(o.index + 1),
                o.package,
                o.version,
                o.registry,
                str(o.status),
                o.reason or "",
            ]
        )
        styles.append(_STATUS_STYLES[o.status])

    console.newline()
    console.table(
        "Release summary",
        ["#", "package", "version", "registry", "status", "detail"],
        rows,
        styles,
    )
    for note in report.notes:
        console.warning(f"{report.outcome(note.index).label}: {note.message}")

    status_line = report.summary_lines()[-1]
    if report.is_success():
        console.success(status_line)
    else:
        console.error(status_line)
