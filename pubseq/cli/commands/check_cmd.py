from __future__ import annotations

from pathlib import Path

import typer

from pubseq.cli.context import CLIContext, build_context
from pubseq.core.errors import ErrorCode
from pubseq.output.console import Style
from pubseq.services.preflight import CheckResult, CheckStatus, PreflightService


def check(
    plan_file: Path | None = typer.Argument(
        None,
        help="Plan file (default: $PUBSEQ_PLAN or ./release.toml)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Skip token checks (a dry run needs none)"
    ),
) -> None:
    """Check tools, tokens and package paths before a release."""
    ctx = build_context()
    release = ctx.load_plan(plan_file)

    report = PreflightService(plan=release, environ=ctx.environ).run(dry_run=dry_run)

    _print_group(ctx, "Tools", report.tools)
    if not dry_run:
        _print_group(ctx, "Credentials", report.credentials)
    _print_group(ctx, "Packages", report.packages)

    if report.has_errors():
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    ctx.console.newline()
    ctx.console.success("ready to release")


def _print_group(ctx: CLIContext, title: str, results: list[CheckResult]) -> None:
    console = ctx.console
    console.header(title)
    for r in results:
        style = _style_for_status(r.status)
        console.print(f"{r.name}: {r.message}", style)
        if r.hint and r.status != CheckStatus.OK:
            console.print(f"hint: {r.hint}", Style.DIM)


def _style_for_status(status: CheckStatus) -> Style:
    if status == CheckStatus.OK:
        return Style.SUCCESS
    if status == CheckStatus.WARNING:
        return Style.WARNING
    return Style.ERROR
