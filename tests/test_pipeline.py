"""End-to-end tests for one report cycle."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from conftest import FakeTracker, make_entry, make_lhr, write_artifact

from perfwatch.config import ReportConfig
from perfwatch.exceptions import GitHubAPIError
from perfwatch.history import load_history, lock_path_for, save_history
from perfwatch.issues import IssueAction
from perfwatch.models import History, HistoryEntry
from perfwatch.pipeline import run_report

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
HISTORY = ".lighthouse/history.json"


@pytest.fixture
def ci_files(tmp_path, monkeypatch):
    """Point the step output and summary files at temp files."""
    output = tmp_path / "github_output"
    summary = tmp_path / "step_summary.md"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output))
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary))
    return output, summary


def read_outputs(path):
    outputs = {}
    for line in path.read_text().splitlines():
        name, _, value = line.partition("=")
        outputs[name] = value
    return outputs


def make_config(workspace, **overrides):
    settings = {"workspace": str(workspace), "create_issues": False, "lock_backoff_seconds": 0}
    settings.update(overrides)
    return ReportConfig(**settings)


def home_artifact(results_root, fcp=1000.0, assertions=None):
    write_artifact(
        results_root,
        "autolighthouse-mobile",
        "mobile",
        [make_lhr("https://a.test/", first_contentful_paint=fcp)],
        assertions=assertions,
    )


class TestEarlyExits:
    """Cycles that stop before analysis."""

    def test_missing_results_directory_is_soft(self, workspace):
        outcome = run_report(make_config(workspace), now=NOW)

        assert outcome.exit_code == 0
        assert outcome.analysis is None
        assert "does not exist" in outcome.warnings[0]

    def test_unsafe_results_path_fails(self, workspace):
        outcome = run_report(make_config(workspace, results_path="../elsewhere"), now=NOW)

        assert outcome.exit_code == 1
        assert outcome.failure == "Invalid results path: path traversal detected."

    def test_zero_artifacts_is_soft(self, workspace, results_root, ci_files):
        outcome = run_report(make_config(workspace), now=NOW)

        assert outcome.exit_code == 0
        assert "No audit artifacts" in outcome.warnings[0]
        assert not ci_files[0].exists()


class TestReportCycle:
    """Full cycles over artifacts on disk."""

    def test_first_run_records_history_and_outputs(self, workspace, results_root, ci_files):
        home_artifact(results_root)

        outcome = run_report(make_config(workspace), now=NOW)

        assert outcome.exit_code == 0
        assert outcome.analysis.passed
        entry = load_history(workspace / HISTORY).paths["mobile:/"]
        assert entry.last_seen == "2026-03-01T12:00:00.000Z"
        assert len(entry.runs) == 1

        outputs = read_outputs(ci_files[0])
        assert outputs["has-regressions"] == "false"
        assert json.loads(outputs["results"])[0]["pathname"] == "/"
        assert json.loads(outputs["regressions"]) == []
        assert "✅ Lighthouse Report" in ci_files[1].read_text()

    def test_regression_against_history(self, workspace, results_root, ci_files):
        save_history(workspace / HISTORY, History(paths={"mobile:/": make_entry(1000.0, 1000.0)}))
        home_artifact(results_root, fcp=1200.0)

        outcome = run_report(make_config(workspace), now=NOW)

        # Regressions are reported but do not fail the job.
        assert outcome.exit_code == 0
        assert outcome.analysis.has_regressions
        outputs = read_outputs(ci_files[0])
        assert outputs["has-regressions"] == "true"
        [flat] = json.loads(outputs["regressions"])
        assert flat["regressions"][0]["percentChange"] == "20.0%"
        entry = load_history(workspace / HISTORY).paths["mobile:/"]
        assert entry.consecutive_failures == 1
        assert len(entry.runs) == 3

    def test_fail_on_error_assertion(self, workspace, results_root, ci_files):
        home_artifact(results_root, assertions=[{"auditId": "lcp", "level": "error", "passed": False}])

        outcome = run_report(make_config(workspace), now=NOW)

        assert outcome.exit_code == 1
        assert outcome.failure == "Lighthouse assertion errors detected."
        # Outputs are still produced.
        assert "results" in read_outputs(ci_files[0])

    def test_fail_on_never(self, workspace, results_root):
        home_artifact(results_root, assertions=[{"auditId": "lcp", "level": "error", "passed": False}])
        assert run_report(make_config(workspace, fail_on="never"), now=NOW).exit_code == 0

    def test_history_disabled(self, workspace, results_root):
        home_artifact(results_root)

        outcome = run_report(make_config(workspace, history_path=""), now=NOW)

        assert outcome.exit_code == 0
        assert not (workspace / HISTORY).exists()

    def test_unsafe_history_path_disables_history(self, workspace, results_root):
        home_artifact(results_root)

        outcome = run_report(make_config(workspace, history_path="../history.json"), now=NOW)

        assert outcome.exit_code == 0
        assert "History disabled" in outcome.warnings[0]
        assert not (workspace.parent / "history.json").exists()

    def test_lock_contention_is_a_warning(self, workspace, results_root, ci_files):
        home_artifact(results_root)
        history_file = workspace / HISTORY
        history_file.parent.mkdir(parents=True)
        lock_path_for(history_file).write_text("4242")

        outcome = run_report(make_config(workspace, lock_retries=2), now=NOW)

        assert outcome.exit_code == 0
        assert any("Failed to save history" in w for w in outcome.warnings)
        assert not history_file.exists()
        assert "has-regressions" in read_outputs(ci_files[0])

    def test_lock_contention_still_compares_against_history(self, workspace, results_root):
        save_history(workspace / HISTORY, History(paths={"mobile:/": make_entry(1000.0, 1000.0)}))
        before = (workspace / HISTORY).read_text()
        home_artifact(results_root, fcp=1200.0)
        lock_path_for(workspace / HISTORY).write_text("4242")

        outcome = run_report(make_config(workspace, lock_retries=1), now=NOW)

        assert outcome.analysis.has_regressions
        assert (workspace / HISTORY).read_text() == before

    def test_matrix_shards_share_one_history(self, workspace):
        for profile in ("mobile", "desktop"):
            shard = workspace / f"shard-{profile}"
            write_artifact(
                shard / ".autolighthouse-results",
                f"autolighthouse-{profile}",
                profile,
                [make_lhr("https://a.test/", first_contentful_paint=1000.0)],
            )
            config = make_config(workspace, results_path=f"shard-{profile}/.autolighthouse-results")
            assert run_report(config, now=NOW).exit_code == 0

        assert set(load_history(workspace / HISTORY).paths) == {"mobile:/", "desktop:/"}

    def test_stale_cleanup(self, workspace, results_root):
        stale = (NOW - timedelta(days=60)).isoformat()
        save_history(
            workspace / HISTORY,
            History(paths={"mobile:/gone": HistoryEntry(last_seen=stale), "mobile:/": make_entry(1.0, last_seen=stale)}),
        )
        home_artifact(results_root)

        outcome = run_report(make_config(workspace, cleanup_stale_paths=True), now=NOW)

        assert outcome.removed_keys == ["mobile:/gone"]
        assert set(load_history(workspace / HISTORY).paths) == {"mobile:/"}

    def test_stale_entries_kept_without_cleanup(self, workspace, results_root):
        stale = (NOW - timedelta(days=60)).isoformat()
        save_history(workspace / HISTORY, History(paths={"mobile:/gone": HistoryEntry(last_seen=stale)}))
        home_artifact(results_root)

        run_report(make_config(workspace), now=NOW)

        assert "mobile:/gone" in load_history(workspace / HISTORY).paths


class TestIssueSync:
    """Issue management inside the cycle."""

    def _config(self, workspace, **overrides):
        return make_config(workspace, create_issues=True, github_token="t", repository="acme/site", **overrides)

    def test_failing_cycle_opens_issue(self, workspace, results_root):
        home_artifact(results_root, assertions=[{"auditId": "lcp", "level": "warn", "passed": False}])
        tracker = FakeTracker()

        outcome = run_report(self._config(workspace), client_factory=lambda c: tracker, now=NOW)

        assert outcome.issue_action == IssueAction.CREATED
        assert len(tracker.created) == 1

    def test_missing_token_skips_with_warning(self, workspace, results_root):
        home_artifact(results_root)

        outcome = run_report(make_config(workspace, create_issues=True), now=NOW)

        assert outcome.issue_action is None
        assert any("no github-token" in w for w in outcome.warnings)

    def test_tracker_errors_do_not_block_outputs(self, workspace, results_root, ci_files):
        home_artifact(results_root, assertions=[{"auditId": "lcp", "level": "warn", "passed": False}])
        tracker = FakeTracker()

        def broken(*args):
            raise GitHubAPIError(403, "forbidden")

        tracker.create_issue = broken

        outcome = run_report(self._config(workspace), client_factory=lambda c: tracker, now=NOW)

        assert outcome.exit_code == 0
        assert any("Issue management failed" in w for w in outcome.warnings)
        assert "results" in read_outputs(ci_files[0])

    def test_missing_repository_skips(self, workspace, results_root):
        home_artifact(results_root)

        outcome = run_report(make_config(workspace, create_issues=True, github_token="t"), now=NOW)

        assert outcome.issue_action is None
        assert any("Issue management skipped" in w for w in outcome.warnings)
