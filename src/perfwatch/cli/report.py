"""Report command: run one full analysis cycle over downloaded audit artifacts."""

import json
from pathlib import Path
from typing import Optional

import click
import typer

from ..config import FAIL_ON_CHOICES
from ..exceptions import PerfwatchError
from ..formatters import build_summary_document, get_formatter
from ..logging_config import setup_logging
from ..models import AnalysisResult
from ..pipeline import ReportOutcome, run_report
from . import app
from ._common import console, resolve_config


@app.command()
def report(
    results_path: Optional[str] = typer.Option(
        None,
        "--results-path",
        "-r",
        help="Directory holding the downloaded audit artifacts (relative to the workspace)",
    ),
    history_path: Optional[str] = typer.Option(
        None,
        "--history-path",
        help="History JSON file (relative to the workspace); empty string disables history",
    ),
    regression_threshold: Optional[int] = typer.Option(
        None,
        "--regression-threshold",
        "-t",
        help="Percent over the rolling average that counts as a regression",
        min=1,
    ),
    fail_on: Optional[str] = typer.Option(
        None,
        "--fail-on",
        help="Exit 1 on failed assertions of this level: error | warn | never",
        click_type=click.Choice(list(FAIL_ON_CHOICES), case_sensitive=False),
    ),
    no_issues: bool = typer.Option(
        False,
        "--no-issues",
        help="Do not create, update or close the tracking issue",
    ),
    cleanup_stale_paths: bool = typer.Option(
        False,
        "--cleanup-stale-paths",
        help="Drop history entries for pages no longer audited",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the analysis result as JSON",
    ),
    markdown_output: bool = typer.Option(
        False,
        "--markdown",
        help="Print the step-summary markdown instead of the table",
    ),
):
    """
    Analyze audit artifacts, update history, and sync the tracking issue.

    [bold cyan]Examples:[/bold cyan]

      perfwatch report

      perfwatch report --results-path .autolighthouse-results --fail-on warn

      perfwatch report --no-issues --json

      perfwatch report --no-issues --markdown > summary.md
    """
    logger = setup_logging(verbose=verbose, quiet=json_output or markdown_output)

    try:
        settings = resolve_config(
            config=config,
            results_path=results_path,
            history_path=history_path,
            regression_threshold=regression_threshold,
            fail_on=fail_on.lower() if fail_on else None,
            no_issues=no_issues,
            cleanup_stale_paths=cleanup_stale_paths,
        )
        outcome = run_report(settings)

    except PerfwatchError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Report interrupted[/yellow]")
        raise typer.Exit(130)

    if json_output:
        _output_json(outcome)
    elif markdown_output:
        _output_markdown(outcome)
    else:
        _output_rich(outcome)

    raise typer.Exit(outcome.exit_code)


def _output_json(outcome: ReportOutcome) -> None:
    """Machine-readable JSON output."""
    analysis = outcome.analysis or AnalysisResult()
    print(json.dumps(analysis.to_dict(), indent=2))


def _output_markdown(outcome: ReportOutcome) -> None:
    """The same markdown the step summary receives."""
    if outcome.analysis is None:
        return
    get_formatter("markdown").render(build_summary_document(outcome.analysis))


def _output_rich(outcome: ReportOutcome) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    analysis = outcome.analysis
    if analysis is None:
        if outcome.failure:
            console.print(f"[red]{outcome.failure}[/red]")
        else:
            console.print("[yellow]Nothing to analyze.[/yellow]")
        return

    table = Table(title="Lighthouse Report", show_lines=False, pad_edge=True)
    table.add_column("Page", style="cyan")
    table.add_column("Profile")
    table.add_column("Status", justify="center")
    table.add_column("Assertions", justify="right", style="yellow")
    table.add_column("Regressions", justify="right", style="magenta")
    table.add_column("Streak", justify="right", style="dim")

    for url in analysis.urls:
        for pr in url.profiles:
            table.add_row(
                url.pathname,
                pr.profile.value,
                "[green]pass[/green]" if pr.passed else "[red]fail[/red]",
                str(len(pr.assertions)),
                ", ".join(r.metric for r in pr.regressions) or "-",
                str(pr.consecutive_failures),
            )

    console.print()
    console.print(table)
    console.print()

    if outcome.issue_action is not None:
        console.print(f"Tracking issue: [bold]{outcome.issue_action.value}[/bold]")
    if outcome.removed_keys:
        console.print(f"[dim]Removed stale history entries: {', '.join(outcome.removed_keys)}[/dim]")
    if outcome.failure:
        console.print(f"[red]{outcome.failure}[/red]")
    elif analysis.passed:
        console.print("[green]All checks passed.[/green]")
