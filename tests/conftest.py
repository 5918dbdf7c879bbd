"""Shared test fixtures: audit result builders, artifact directories, a fake issue tracker."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from perfwatch.exceptions import GitHubAPIError
from perfwatch.github import Issue
from perfwatch.issues import LABEL_COLOR
from perfwatch.models import METRIC_KEYS, HistoryEntry, HistoryRun

RUNNER_ENV_PREFIXES = ("INPUT_", "GITHUB_", "PERFWATCH_")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Strip CI variables and run from an empty directory."""
    for name in list(os.environ):
        if name.startswith(RUNNER_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def make_lhr(url: Optional[str], final_url: Optional[str] = None, **metrics: float) -> Dict[str, Any]:
    """Raw audit result with the given metrics.

    Keyword names use underscores: ``first_contentful_paint=1200``.
    """
    audits = {}
    for name, value in metrics.items():
        key = name.replace("_", "-")
        assert key in METRIC_KEYS, key
        audits[key] = {"numericValue": value}
    lhr: Dict[str, Any] = {"audits": audits}
    if url is not None:
        lhr["requestedUrl"] = url
    if final_url is not None:
        lhr["finalUrl"] = final_url
    return lhr


def make_entry(*fcp_values: float, consecutive_failures: int = 0, last_seen: str = "") -> HistoryEntry:
    """History entry whose runs carry only first-contentful-paint."""
    runs = tuple(
        HistoryRun(metrics={"first-contentful-paint": v}, timestamp=f"2026-01-{i + 1:02d}T00:00:00.000Z")
        for i, v in enumerate(fcp_values)
    )
    return HistoryEntry(consecutive_failures=consecutive_failures, last_seen=last_seen, runs=runs)


def write_artifact(
    root: Path,
    name: str,
    profile: Optional[str],
    results: List[Any],
    assertions: Optional[List[Dict[str, Any]]] = None,
    links: Optional[Dict[str, str]] = None,
) -> Path:
    """Create one artifact directory. A str in ``results`` is written verbatim."""
    directory = root / name
    directory.mkdir(parents=True)
    if profile is not None:
        (directory / "profile.txt").write_text(profile)
    for i, result in enumerate(results):
        content = result if isinstance(result, str) else json.dumps(result)
        (directory / f"lhr-{i}.json").write_text(content)
    if assertions is not None:
        (directory / "assertion-results.json").write_text(json.dumps(assertions))
    if links is not None:
        (directory / "links.json").write_text(json.dumps(links))
    return directory


@pytest.fixture
def workspace(tmp_path):
    return tmp_path


@pytest.fixture
def results_root(workspace):
    root = workspace / ".autolighthouse-results"
    root.mkdir()
    return root


class FakeTracker:
    """In-memory issue tracker."""

    def __init__(self, issues=None, existing_labels=(), fail_listing=False):
        self.issues = {i.number: i for i in (issues or [])}
        self.labels = {name: LABEL_COLOR for name in existing_labels}
        self.comments = []
        self.closed = []
        self.created = []
        self.fail_listing = fail_listing

    def list_open_issues(self, label, per_page=50):
        if self.fail_listing:
            raise GitHubAPIError(500, "boom")
        return [i for n, i in self.issues.items() if n not in self.closed]

    def create_issue(self, title, body, labels):
        number = max(self.issues, default=0) + 1
        issue = Issue(number=number, title=title)
        self.issues[number] = issue
        self.created.append((title, body, list(labels)))
        return issue

    def comment_on_issue(self, number, body):
        self.comments.append((number, body))

    def close_issue(self, number):
        self.closed.append(number)

    def create_label(self, name, color, description=""):
        if name in self.labels:
            raise GitHubAPIError(422, "already_exists")
        self.labels[name] = color
