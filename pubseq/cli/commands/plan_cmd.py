"""Plan command - validate a plan and show what a run would do."""

from __future__ import annotations

from pathlib import Path

import typer

from pubseq.cli.context import build_context
from pubseq.output.console import Style
from pubseq.plan.model import PublishUnit, ReleasePlan


def plan(
    plan_file: Path | None = typer.Argument(
        None,
        help="Plan file (default: $PUBSEQ_PLAN or ./release.toml)",
        show_default=False,
    ),
) -> None:
    """Validate a release plan and print it in execution order."""
    ctx = build_context()
    release = ctx.load_plan(plan_file)

    if release.source is not None:
        ctx.console.print(f"plan: {release.source}", Style.DIM)

    ctx.console.table(
        "Units",
        ["#", "package", "version", "registry", "build", "settle", "on failure"],
        [_unit_row(release, i, u) for i, u in enumerate(release.units)],
    )

    p = release.policy
    ctx.console.print(
        f"retry: {p.retry_attempts} attempts, backoff {p.retry_backoff_seconds:g}s",
        Style.DIM,
    )
    if p.confirm:
        ctx.console.print(
            f"confirm: poll registries up to {p.confirm_timeout_seconds:g}s", Style.DIM
        )
    ctx.console.success(f"{len(release)} unit(s) valid")


def _unit_row(release: ReleasePlan, index: int, unit: PublishUnit) -> list[str]:
    build = "-"
    if unit.build is not None:
        build = " ".join([unit.build.tool, *unit.build.args])
    failure = release.publish_policy_for(unit)
    build_failure = release.build_policy_for(unit)
    if build_failure != failure:
        failure = f"{failure} (build: {build_failure})"
    return [
        str(index + 1),
        unit.package.name,
        unit.package.version,
        f"{unit.registry.id} ({unit.registry.kind})",
        build,
        f"{unit.settle_seconds:g}s",
        failure,
    ]
