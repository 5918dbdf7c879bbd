"""History CLI command -- list tracked pages and their recorded runs."""

import json
from typing import Optional

import typer

from ..exceptions import PerfwatchError
from ..history import load_history
from ..models import History
from ..pipeline import resolve_history_path
from . import app
from ._common import console, resolve_config


@app.command()
def history(
    history_path: Optional[str] = typer.Option(
        None,
        "--history-path",
        help="History JSON file (relative to the workspace)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List history entries: key, recorded runs, failure streak, last seen.

    [bold cyan]Examples:[/bold cyan]

      perfwatch history

      perfwatch history --json
    """
    try:
        settings = resolve_config(history_path=history_path)
        path = resolve_history_path(settings)
    except PerfwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not path.exists():
        console.print(
            "[yellow]No history found.[/yellow] "
            "Run [bold]perfwatch report[/bold] first to record runs."
        )
        raise typer.Exit(0)

    data = load_history(path)

    if json_output:
        print(json.dumps(data.to_dict(), indent=2))
        return

    if not data.paths:
        console.print("[yellow]No history entries recorded yet.[/yellow]")
        return

    _output_rich(data)


def _output_rich(data: History) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    table = Table(
        title="Performance History",
        caption=f"Last updated {data.last_updated or '-'}",
        show_lines=False,
        pad_edge=True,
    )
    table.add_column("Key", style="bold cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Failures", justify="right", style="yellow")
    table.add_column("Last seen", style="green")

    for key in sorted(data.paths):
        entry = data.paths[key]
        # Trim to date + time
        seen = entry.last_seen.replace("T", " ").split(".")[0].rstrip("Z") or "-"
        table.add_row(key, str(len(entry.runs)), str(entry.consecutive_failures), seen)

    console.print()
    console.print(table)
    console.print()
