"""Configuration loading for perfwatch.

Sources are merged in priority order (lowest to highest):
    1. Defaults (defined in ReportConfig)
    2. Project config (./perfwatch.toml)
    3. Explicit config file (--config)
    4. GitHub Actions inputs and runner context (INPUT_*, GITHUB_*)
    5. Environment variables (PERFWATCH_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(regression_threshold=15)
    >>> config.regression_threshold
    15
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, get_type_hints

from .exceptions import InvalidConfigError, PerfwatchError

FailOn = Literal["error", "warn", "never"]

FAIL_ON_CHOICES = ("error", "warn", "never")

PROJECT_CONFIG_NAME = "perfwatch.toml"

DEFAULT_REGRESSION_THRESHOLD = 10
MAX_REGRESSION_THRESHOLD = 100
DEFAULT_CONSECUTIVE_FAIL_LIMIT = 3
DEFAULT_STALE_PATH_DAYS = 30
DEFAULT_MAX_HISTORY_RUNS = 100


@dataclass(frozen=True)
class ReportConfig:
    """Configuration for one report cycle.

    Attributes:
        Inputs:
            results_path: Audit artifact root, relative to the workspace
            history_path: History file, relative to the workspace ("" disables history)
            workspace: Root directory user paths must stay inside

        Regression detection:
            regression_threshold: Allowed increase over the rolling average (percent)
            window_size: Number of recent runs forming the baseline
            consecutive_fail_limit: Failures in a row before an entry is marked persistent

        Job outcome:
            fail_on: Assertion level that fails the job (error, warn, never)

        History retention:
            max_history_runs: Runs kept per profile/pathname
            cleanup_stale_paths: Remove entries not audited for stale_path_days
            stale_path_days: Age after which inactive entries are removed
            lock_retries: Attempts to acquire the history lock
            lock_backoff_seconds: Sleep between lock attempts
            lock_stale_seconds: Age after which a leftover lock is reclaimed

        Issue tracking:
            create_issues: Manage the tracking issue
            github_token: Token for the GitHub API
            repository: owner/repo
            api_url: GitHub REST API base URL
            ref: Git ref of the audited build
            sha: Commit SHA of the audited build
    """

    results_path: str = ".autolighthouse-results"
    history_path: str = ".lighthouse/history.json"
    workspace: str = "."

    regression_threshold: int = DEFAULT_REGRESSION_THRESHOLD
    window_size: int = 5
    consecutive_fail_limit: int = DEFAULT_CONSECUTIVE_FAIL_LIMIT

    fail_on: FailOn = "error"

    max_history_runs: int = DEFAULT_MAX_HISTORY_RUNS
    cleanup_stale_paths: bool = False
    stale_path_days: int = DEFAULT_STALE_PATH_DAYS
    lock_retries: int = 5
    lock_backoff_seconds: float = 0.1
    lock_stale_seconds: float = 600.0

    create_issues: bool = True
    github_token: str = ""
    repository: str = ""
    api_url: str = "https://api.github.com"
    ref: str = ""
    sha: str = ""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not 0 < self.regression_threshold <= MAX_REGRESSION_THRESHOLD:
            raise ValueError(
                f"regression_threshold must be between 1 and {MAX_REGRESSION_THRESHOLD}"
            )
        if self.window_size < 2:
            raise ValueError("window_size must be at least 2")
        if self.consecutive_fail_limit < 1:
            raise ValueError("consecutive_fail_limit must be at least 1")
        if self.fail_on not in FAIL_ON_CHOICES:
            raise ValueError(f"fail_on must be one of {', '.join(FAIL_ON_CHOICES)}")
        if self.max_history_runs < 1:
            raise ValueError("max_history_runs must be at least 1")
        if self.stale_path_days < 1:
            raise ValueError("stale_path_days must be at least 1")
        if self.lock_retries < 1:
            raise ValueError("lock_retries must be at least 1")
        if self.lock_backoff_seconds < 0:
            raise ValueError("lock_backoff_seconds must be non-negative")
        if self.lock_stale_seconds <= 0:
            raise ValueError("lock_stale_seconds must be positive")
        if self.repository and self.repository.count("/") != 1:
            raise ValueError("repository must look like owner/repo")

    @property
    def history_enabled(self) -> bool:
        return bool(self.history_path)

    @property
    def branch(self) -> str:
        return self.ref[len("refs/heads/"):] if self.ref.startswith("refs/heads/") else self.ref

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> ReportConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); None values are ignored

    Returns:
        Validated ReportConfig instance

    Raises:
        PerfwatchError: If a config file is invalid or missing
        InvalidConfigError: If a merged value fails validation
    """
    merged: Dict[str, Any] = {}

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise PerfwatchError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise PerfwatchError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise PerfwatchError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_action_inputs(os.environ))
    merged.update(_load_env_vars(os.environ))
    merged.update({k: v for k, v in overrides.items() if v is not None})

    threshold = merged.get("regression_threshold")
    if isinstance(threshold, int) and threshold > MAX_REGRESSION_THRESHOLD:
        merged["regression_threshold"] = MAX_REGRESSION_THRESHOLD

    try:
        return ReportConfig(**merged)
    except TypeError as e:
        raise PerfwatchError(f"Invalid configuration: {e}")
    except ValueError as e:
        # Never echo the merged dict: it may hold the token.
        raise InvalidConfigError("config", "(merged sources)", str(e))


def _load_action_inputs(env: Mapping[str, str]) -> Dict[str, Any]:
    """Read GitHub Actions inputs and runner context.

    Inputs are parsed leniently the way the action always has: a missing,
    non-numeric or non-positive number falls back to the default, an unknown
    fail-on level means ``error``.
    """
    result: Dict[str, Any] = {}

    def text(name: str, key: str) -> None:
        value = env.get(name)
        if value:
            result[key] = value

    def positive_int(name: str, key: str) -> None:
        parsed = _lenient_positive_int(env.get(name))
        if parsed is not None:
            result[key] = parsed

    text("INPUT_RESULTS_PATH", "results_path")
    text("INPUT_HISTORY_PATH", "history_path")
    text("INPUT_GITHUB_TOKEN", "github_token")
    positive_int("INPUT_REGRESSION_THRESHOLD", "regression_threshold")
    positive_int("INPUT_CONSECUTIVE_FAIL_LIMIT", "consecutive_fail_limit")
    positive_int("INPUT_STALE_PATH_DAYS", "stale_path_days")
    positive_int("INPUT_MAX_HISTORY_RUNS", "max_history_runs")

    if "INPUT_FAIL_ON" in env:
        value = env["INPUT_FAIL_ON"]
        result["fail_on"] = value if value in ("warn", "never") else "error"
    if "INPUT_CREATE_ISSUES" in env:
        result["create_issues"] = env["INPUT_CREATE_ISSUES"] != "false"
    if "INPUT_CLEANUP_STALE_PATHS" in env:
        result["cleanup_stale_paths"] = env["INPUT_CLEANUP_STALE_PATHS"] == "true"

    text("GITHUB_WORKSPACE", "workspace")
    text("GITHUB_REPOSITORY", "repository")
    text("GITHUB_API_URL", "api_url")
    text("GITHUB_REF", "ref")
    text("GITHUB_SHA", "sha")
    return result


def _lenient_positive_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _load_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Load configuration from PERFWATCH_* environment variables.

    Every ReportConfig field can be set, e.g. PERFWATCH_FAIL_ON=warn or
    PERFWATCH_LOCK_RETRIES=10.

    Returns:
        Dict of field_name -> parsed_value for any PERFWATCH_* vars found.
    """
    type_hints = get_type_hints(ReportConfig)
    result: Dict[str, Any] = {}

    for config_field in fields(ReportConfig):
        env_key = f"PERFWATCH_{config_field.name.upper()}"
        env_value = env.get(env_key)
        if env_value is None:
            continue

        try:
            result[config_field.name] = _parse_env_value(env_value, type_hints[config_field.name])
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    # str and Literal (fail_on) pass through; validation happens in ReportConfig
    return value


def _load_toml_file(path: Path) -> Dict[str, Any]:
    """Load a TOML file; settings may sit at top level or under [perfwatch].

    Raises:
        PerfwatchError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise PerfwatchError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        data = tomllib.load(f)

    section = data.get("perfwatch")
    if isinstance(section, dict):
        return dict(section)
    return data
