from __future__ import annotations

import typer

from pubseq import __version__
from pubseq.cli.commands.check_cmd import check
from pubseq.cli.commands.plan_cmd import plan
from pubseq.cli.commands.run_cmd import run

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command()(plan)
app.command()(check)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Publish packages to registries in dependency order."""


def main() -> None:
    app()
