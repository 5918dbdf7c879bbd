"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="perfwatch",
    help="perfwatch - Lighthouse regression tracking for CI",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]perfwatch[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Analyze Lighthouse audit artifacts and track performance regressions."""


# Import subcommands to register them
from .report import report as _report  # noqa: F401, E402
from .history import history as _history  # noqa: F401, E402
from .cleanup import cleanup as _cleanup  # noqa: F401, E402


def main() -> None:
    app()
