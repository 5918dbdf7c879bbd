"""Cleanup CLI command -- drop history entries for pages no longer audited."""

from typing import Optional

import typer

from ..exceptions import PerfwatchError
from ..history import HistoryStore, cleanup_stale_paths
from ..pipeline import resolve_history_path
from . import app
from ._common import console, resolve_config


@app.command()
def cleanup(
    history_path: Optional[str] = typer.Option(
        None,
        "--history-path",
        help="History JSON file (relative to the workspace)",
    ),
    days: Optional[int] = typer.Option(
        None,
        "--days",
        "-d",
        help="Remove entries not seen for this many days (default: stale_path_days)",
        min=1,
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List what would be removed without writing",
    ),
):
    """
    Remove stale entries from the history file.

    Without a report cycle no page counts as active, so every entry whose
    last run is older than --days is removed.

    [bold cyan]Examples:[/bold cyan]

      perfwatch cleanup --days 14

      perfwatch cleanup --dry-run
    """
    try:
        settings = resolve_config(history_path=history_path, stale_path_days=days)
        path = resolve_history_path(settings)
    except PerfwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not path.exists():
        console.print("[yellow]No history found.[/yellow]")
        raise typer.Exit(0)

    store = HistoryStore(
        path,
        max_runs_per_key=settings.max_history_runs,
        lock_retries=settings.lock_retries,
        lock_backoff_seconds=settings.lock_backoff_seconds,
        lock_stale_seconds=settings.lock_stale_seconds,
    )

    try:
        with store.transaction() as txn:
            updated, removed = cleanup_stale_paths(txn.history, (), settings.stale_path_days)
            if removed and not dry_run:
                txn.commit(updated)
    except PerfwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not removed:
        console.print(f"[green]No entries older than {settings.stale_path_days} day(s).[/green]")
        return

    for key in removed:
        console.print(f"  [red]-[/red] {key}")

    noun = "entry" if len(removed) == 1 else "entries"
    if dry_run:
        console.print(f"[yellow]Dry run:[/yellow] {len(removed)} {noun} would be removed")
    else:
        console.print(f"[green]Removed {len(removed)} stale {noun}.[/green]")
