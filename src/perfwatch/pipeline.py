"""One report cycle: read artifacts, analyze, persist history, manage the issue.

Only the fail-on policy and an unsafe results path fail the run. Everything
else (unreadable files, history lock contention, GitHub API errors) is
reported as a warning and the cycle still produces its outputs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from . import actions
from .aggregation import collect_results
from .analysis import AnalysisOutcome, analyze, evaluate_fail_on
from .artifacts import discover_artifacts
from .config import ReportConfig
from .exceptions import HistoryError, InvalidPathError, IssueTrackerError, SecurityError
from .formatters import MarkdownRenderer, build_summary_document
from .github import GitHubClient
from .history import HistoryStore, cleanup_stale_paths
from .issues import IssueAction, IssueClient, manage_issue
from .logging_config import get_logger
from .models import AnalysisResult, History, iso_timestamp
from .security import validate_history_path, validate_results_path

logger = get_logger(__name__)

ClientFactory = Callable[[ReportConfig], IssueClient]


@dataclass
class ReportOutcome:
    """What a report cycle produced."""

    exit_code: int = 0
    analysis: Optional[AnalysisResult] = None
    failure: Optional[str] = None
    issue_action: Optional[IssueAction] = None
    removed_keys: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.exit_code != 0

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        actions.warning(message)

    def fail(self, message: str) -> None:
        self.exit_code = 1
        self.failure = message
        actions.error(message)


def default_client_factory(config: ReportConfig) -> GitHubClient:
    return GitHubClient(config.github_token, config.repository, api_url=config.api_url)


def run_report(
    config: ReportConfig,
    client_factory: Optional[ClientFactory] = None,
    now: Optional[datetime] = None,
) -> ReportOutcome:
    """
    Run one report cycle.

    Args:
        config: Validated configuration
        client_factory: Builds the issue tracker client (GitHub by default)
        now: Clock for recorded runs and stale cleanup (defaults to utcnow)
    """
    now = now or datetime.now(timezone.utc)
    outcome = ReportOutcome()

    # 1. Results directory
    try:
        results_root = validate_results_path(config.results_path, config.workspace)
    except SecurityError as e:
        logger.debug(f"Rejected results path: {e}")
        outcome.fail("Invalid results path: path traversal detected.")
        return outcome
    except InvalidPathError:
        outcome.warn("Results directory does not exist. No audit artifacts were downloaded.")
        return outcome

    artifacts = discover_artifacts(results_root)
    if not artifacts:
        outcome.warn("No audit artifacts found. Nothing to analyze.")
        return outcome
    logger.info(f"Found {len(artifacts)} artifact(s) in {results_root}")

    # 2. History
    store: Optional[HistoryStore] = None
    if config.history_enabled:
        try:
            history_path = validate_history_path(config.history_path, config.workspace)
        except SecurityError as e:
            logger.debug(f"Rejected history path: {e}")
            outcome.warn("Invalid history path: path traversal detected. History disabled.")
        else:
            store = HistoryStore(
                history_path,
                max_runs_per_key=config.max_history_runs,
                lock_retries=config.lock_retries,
                lock_backoff_seconds=config.lock_backoff_seconds,
                lock_stale_seconds=config.lock_stale_seconds,
            )

    raw_results = collect_results(artifacts)
    timestamp = iso_timestamp(now)

    def run_analysis(history: Optional[History]) -> AnalysisOutcome:
        return analyze(
            raw_results,
            history,
            threshold_percent=config.regression_threshold,
            window_size=config.window_size,
            timestamp=timestamp,
        )

    # 3. Analysis, with the history read and written under one lock
    result: Optional[AnalysisOutcome] = None
    if store is None:
        result = run_analysis(None)
    else:
        try:
            with store.transaction() as txn:
                result = run_analysis(txn.history)
                updated, removed = result.history, []
                if config.cleanup_stale_paths:
                    updated, removed = cleanup_stale_paths(
                        updated, result.active_keys, config.stale_path_days, now=now
                    )
                txn.commit(updated)
            outcome.removed_keys = removed
            if removed:
                logger.info(f"Cleaned up {len(removed)} stale history path(s): {', '.join(removed)}")
        except HistoryError as e:
            outcome.warn(f"Failed to save history: {e}")
            if result is None:
                # Lock not acquired: analyze against a read-only snapshot and skip the write.
                result = run_analysis(store.load())

    analysis = result.result
    outcome.analysis = analysis

    # 4. Tracking issue
    if config.create_issues:
        if not config.github_token:
            outcome.warn("Issue management skipped: no github-token provided.")
        else:
            outcome.issue_action = _sync_issue(config, analysis, client_factory, now, outcome)

    # 5. Summary and step outputs
    actions.append_summary(MarkdownRenderer().format(build_summary_document(analysis)))
    actions.set_output("results", json.dumps([u.to_dict() for u in analysis.urls]))
    actions.set_output("regressions", json.dumps([r.to_dict() for r in analysis.all_regressions]))
    actions.set_output("has-regressions", str(analysis.has_regressions).lower())

    # 6. Fail-on policy
    failure = evaluate_fail_on(analysis, config.fail_on)
    if failure:
        outcome.fail(failure)
    return outcome


def _sync_issue(
    config: ReportConfig,
    analysis: AnalysisResult,
    client_factory: Optional[ClientFactory],
    now: datetime,
    outcome: ReportOutcome,
) -> Optional[IssueAction]:
    factory = client_factory or default_client_factory
    try:
        client = factory(config)
    except ValueError as e:
        outcome.warn(f"Issue management skipped: {e}")
        return None

    try:
        return manage_issue(
            client,
            analysis,
            config.consecutive_fail_limit,
            branch=config.branch,
            commit=config.short_sha,
            now=now,
        )
    except IssueTrackerError as e:
        outcome.warn(f"Issue management failed: {e}")
        return None
    finally:
        close = getattr(client, "close", None)
        if callable(close):
            close()


def resolve_history_path(config: ReportConfig) -> Path:
    """History file location for the maintenance commands.

    Raises:
        SecurityError: If the configured path is unsafe
    """
    return validate_history_path(config.history_path, config.workspace)
