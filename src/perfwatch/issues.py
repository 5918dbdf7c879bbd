"""Tracking issue lifecycle.

One repo-wide issue surfaces ongoing failures. Each report cycle reconciles
it with the analysis outcome:

    no issue   + failing -> ensure labels, create issue
    open issue + failing -> comment with the updated failure report
    open issue + passing -> comment "all clear", close
    no issue   + passing -> nothing
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from .exceptions import GitHubAPIError, IssueTrackerError
from .formatters import MarkdownRenderer, build_issue_document
from .github import Issue
from .logging_config import get_logger
from .models import AnalysisResult

logger = get_logger(__name__)

ISSUE_TITLE = "Lighthouse Performance Alert"
LABELS = ("lighthouse", "performance")
LABEL_COLOR = "D93F0B"
ALL_CLEAR_COMMENT = (
    "✅ **All clear**: every audited URL and profile passes again. Closing this issue."
)


class IssueClient(Protocol):
    """Capabilities the lifecycle needs from an issue tracker."""

    def list_open_issues(self, label: str, per_page: int = 50) -> List[Issue]: ...

    def create_issue(self, title: str, body: str, labels: Sequence[str]) -> Issue: ...

    def comment_on_issue(self, number: int, body: str) -> None: ...

    def close_issue(self, number: int) -> None: ...

    def create_label(self, name: str, color: str, description: str = "") -> None: ...


class IssueAction(str, Enum):
    """What the lifecycle did this cycle."""

    CREATED = "created"
    COMMENTED = "commented"
    CLOSED = "closed"
    NONE = "none"


def ensure_labels(client: IssueClient) -> List[str]:
    """Create the tracking labels; an existing label counts as ensured."""
    ensured: List[str] = []
    for label in LABELS:
        try:
            client.create_label(label, LABEL_COLOR)
            ensured.append(label)
        except GitHubAPIError as e:
            if e.already_exists:
                ensured.append(label)
            else:
                logger.warning(f"Could not create label '{label}': {e}")
        except IssueTrackerError as e:
            logger.warning(f"Could not create label '{label}': {e}")
    return ensured


def find_open_issue(client: IssueClient) -> Optional[int]:
    """Number of the open tracking issue, or None.

    Lookup failures are treated as "no issue": a duplicate issue is a better
    outcome than a crashed report step.
    """
    try:
        issues = client.list_open_issues(LABELS[0], per_page=50)
    except IssueTrackerError as e:
        logger.warning(f"Could not look up the tracking issue: {e}")
        return None

    for issue in issues:
        if issue.title == ISSUE_TITLE or ISSUE_TITLE in issue.title:
            return issue.number
    return None


def build_issue_body(
    analysis: AnalysisResult,
    consecutive_fail_limit: int,
    branch: str = "",
    commit: str = "",
    now: Optional[datetime] = None,
) -> str:
    document = build_issue_document(
        analysis,
        consecutive_fail_limit,
        branch=branch,
        commit=commit,
        now=now,
    )
    return MarkdownRenderer().format(document)


def manage_issue(
    client: IssueClient,
    analysis: AnalysisResult,
    consecutive_fail_limit: int,
    branch: str = "",
    commit: str = "",
    now: Optional[datetime] = None,
) -> IssueAction:
    """Reconcile the tracking issue with ``analysis``.

    Raises:
        IssueTrackerError: If creating, commenting or closing fails
    """
    existing = find_open_issue(client)

    if analysis.passed:
        if existing is None:
            return IssueAction.NONE
        client.comment_on_issue(existing, ALL_CLEAR_COMMENT)
        client.close_issue(existing)
        logger.info(f"Closed tracking issue #{existing}")
        return IssueAction.CLOSED

    body = build_issue_body(analysis, consecutive_fail_limit, branch=branch, commit=commit, now=now)

    if existing is not None:
        client.comment_on_issue(existing, body)
        logger.info(f"Updated tracking issue #{existing}")
        return IssueAction.COMMENTED

    labels = ensure_labels(client)
    issue = client.create_issue(ISSUE_TITLE, body, labels)
    logger.info(f"Opened tracking issue #{issue.number}")
    return IssueAction.CREATED
