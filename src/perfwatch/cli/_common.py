"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import ReportConfig, load_config

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    results_path: Optional[str] = None,
    history_path: Optional[str] = None,
    regression_threshold: Optional[int] = None,
    fail_on: Optional[str] = None,
    no_issues: bool = False,
    cleanup_stale_paths: bool = False,
    stale_path_days: Optional[int] = None,
) -> ReportConfig:
    """Build configuration from CLI options."""
    overrides = {
        "results_path": results_path,
        "history_path": history_path,
        "regression_threshold": regression_threshold,
        "fail_on": fail_on,
        "stale_path_days": stale_path_days,
    }
    if no_issues:
        overrides["create_issues"] = False
    if cleanup_stale_paths:
        overrides["cleanup_stale_paths"] = True
    return load_config(config_file=config, **overrides)
