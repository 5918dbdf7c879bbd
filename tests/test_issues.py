"""Tests for the tracking issue lifecycle using an in-memory tracker."""

from datetime import datetime, timezone

import pytest
from conftest import FakeTracker

from perfwatch.exceptions import GitHubAPIError
from perfwatch.github import Issue
from perfwatch.issues import (
    ALL_CLEAR_COMMENT,
    ISSUE_TITLE,
    LABELS,
    IssueAction,
    build_issue_body,
    ensure_labels,
    find_open_issue,
    manage_issue,
)
from perfwatch.models import (
    AnalysisResult,
    AssertionResult,
    Profile,
    ProfileResult,
    UrlResult,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def analysis(passed):
    assertions = [] if passed else [
        AssertionResult(audit_id="largest-contentful-paint", level="error", passed=False, actual=4000, expected=2500, operator="<=")
    ]
    profile = ProfileResult(
        profile=Profile.MOBILE,
        metrics={"first-contentful-paint": 1200.0},
        assertions=assertions,
        consecutive_failures=0 if passed else 1,
        passed=passed,
    )
    return AnalysisResult(urls=[UrlResult(url="https://a.test/", pathname="/", profiles=[profile])])


class TestManageIssue:
    """Each (issue state, outcome) transition."""

    def test_no_issue_and_passing_does_nothing(self):
        tracker = FakeTracker()
        assert manage_issue(tracker, analysis(True), 3, now=NOW) == IssueAction.NONE
        assert tracker.created == []
        assert tracker.comments == []
        assert tracker.closed == []
        assert tracker.labels == {}

    def test_no_issue_and_failing_creates(self):
        tracker = FakeTracker()

        action = manage_issue(tracker, analysis(False), 3, branch="main", commit="abc1234", now=NOW)

        assert action == IssueAction.CREATED
        [(title, body, labels)] = tracker.created
        assert title == ISSUE_TITLE
        assert labels == list(LABELS)
        assert "`main`" in body and "`abc1234`" in body
        assert set(tracker.labels) == set(LABELS)

    def test_existing_labels_are_not_an_error(self):
        tracker = FakeTracker(existing_labels=LABELS)
        manage_issue(tracker, analysis(False), 3, now=NOW)
        assert tracker.created[0][2] == list(LABELS)

    def test_open_issue_and_failing_comments(self):
        tracker = FakeTracker(issues=[Issue(5, ISSUE_TITLE)])

        action = manage_issue(tracker, analysis(False), 3, now=NOW)

        assert action == IssueAction.COMMENTED
        [(number, body)] = tracker.comments
        assert number == 5
        assert "largest-contentful-paint" in body
        assert tracker.created == []

    def test_open_issue_and_passing_closes(self):
        tracker = FakeTracker(issues=[Issue(5, ISSUE_TITLE)])

        action = manage_issue(tracker, analysis(True), 3, now=NOW)

        assert action == IssueAction.CLOSED
        assert tracker.comments == [(5, ALL_CLEAR_COMMENT)]
        assert tracker.closed == [5]

    def test_lookup_failure_treated_as_no_issue(self):
        tracker = FakeTracker(issues=[Issue(5, ISSUE_TITLE)], fail_listing=True)
        assert manage_issue(tracker, analysis(False), 3, now=NOW) == IssueAction.CREATED

    def test_create_failure_propagates(self):
        tracker = FakeTracker()

        def broken(*args):
            raise GitHubAPIError(403, "Resource not accessible by integration")

        tracker.create_issue = broken

        with pytest.raises(GitHubAPIError):
            manage_issue(tracker, analysis(False), 3, now=NOW)


class TestHelpers:
    """Test find_open_issue, ensure_labels and build_issue_body."""

    def test_find_matches_title_substring(self):
        tracker = FakeTracker(issues=[Issue(1, "Unrelated"), Issue(2, f"[site] {ISSUE_TITLE}")])
        assert find_open_issue(tracker) == 2

    def test_find_none(self):
        assert find_open_issue(FakeTracker(issues=[Issue(1, "Unrelated")])) is None

    def test_label_failure_other_than_conflict_is_skipped(self):
        tracker = FakeTracker()

        def forbidden(name, color, description=""):
            raise GitHubAPIError(403, "forbidden")

        tracker.create_label = forbidden
        assert ensure_labels(tracker) == []

    def test_issue_body_persistent_marker(self):
        failing = analysis(False)
        assert "Persistent failure" not in build_issue_body(failing, 3, now=NOW)
        assert "Persistent failure" in build_issue_body(failing, 1, now=NOW)
