"""Tests for the typer CLI."""

import json
from datetime import datetime, timedelta, timezone

from conftest import make_entry, make_lhr, write_artifact
from typer.testing import CliRunner

from perfwatch import __version__
from perfwatch.cli import app
from perfwatch.history import load_history, lock_path_for, save_history
from perfwatch.models import History, HistoryEntry

runner = CliRunner()

HISTORY = ".lighthouse/history.json"


def stale_timestamp(days):
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestReportCommand:
    """Test the report command."""

    def test_json_output(self, workspace, results_root):
        write_artifact(results_root, "autolighthouse-m", "mobile", [make_lhr("https://a.test/", speed_index=1000)])

        result = runner.invoke(app, ["report", "--no-issues", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["passed"] is True
        assert data["urls"][0]["pathname"] == "/"
        assert (workspace / HISTORY).exists()

    def test_markdown_output(self, workspace, results_root):
        write_artifact(results_root, "autolighthouse-m", "mobile", [make_lhr("https://a.test/")])

        result = runner.invoke(app, ["report", "--no-issues", "--markdown"])

        assert result.exit_code == 0, result.output
        assert result.stdout.startswith("## ✅ Lighthouse Report")

    def test_fail_on_exit_code(self, workspace, results_root):
        write_artifact(
            results_root,
            "autolighthouse-m",
            "mobile",
            [make_lhr("https://a.test/")],
            assertions=[{"auditId": "lcp", "level": "warn", "passed": False}],
        )

        assert runner.invoke(app, ["report", "--no-issues"]).exit_code == 0
        assert runner.invoke(app, ["report", "--no-issues", "--fail-on", "warn"]).exit_code == 1

    def test_unsafe_results_path(self, workspace):
        result = runner.invoke(app, ["report", "--no-issues", "--results-path", "../outside"])
        assert result.exit_code == 1

    def test_missing_results_is_not_an_error(self, workspace):
        result = runner.invoke(app, ["report", "--no-issues"])
        assert result.exit_code == 0

    def test_invalid_fail_on_rejected(self, workspace):
        result = runner.invoke(app, ["report", "--fail-on", "sometimes"])
        assert result.exit_code == 2

    def test_config_file(self, workspace, results_root):
        write_artifact(results_root, "autolighthouse-m", "mobile", [make_lhr("https://a.test/")])
        config = workspace / "ci.toml"
        config.write_text('history_path = "perf/history.json"\ncreate_issues = false\n')

        result = runner.invoke(app, ["report", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert (workspace / "perf" / "history.json").exists()

    def test_invalid_config_value(self, workspace):
        (workspace / "perfwatch.toml").write_text("window_size = 1\n")
        result = runner.invoke(app, ["report", "--no-issues"])
        assert result.exit_code == 1


class TestHistoryCommand:
    """Test the history command."""

    def test_no_history(self, workspace):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No history found" in result.output

    def test_lists_entries(self, workspace):
        save_history(workspace / HISTORY, History(paths={"mobile:/docs": make_entry(1.0, 2.0, consecutive_failures=2)}))

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "mobile:/docs" in result.output

    def test_json(self, workspace):
        save_history(workspace / HISTORY, History(paths={"mobile:/": make_entry(1.0)}))

        result = runner.invoke(app, ["history", "--json"])

        assert json.loads(result.stdout)["paths"]["mobile:/"]["runs"][0]["metrics"] == {"first-contentful-paint": 1.0}

    def test_unsafe_path(self, workspace):
        assert runner.invoke(app, ["history", "--history-path", "/etc/passwd"]).exit_code == 1


class TestCleanupCommand:
    """Test the cleanup command."""

    def _seed(self, workspace):
        save_history(
            workspace / HISTORY,
            History(
                paths={
                    "mobile:/old": HistoryEntry(last_seen=stale_timestamp(60)),
                    "mobile:/new": HistoryEntry(last_seen=stale_timestamp(1)),
                }
            ),
        )

    def test_removes_stale(self, workspace):
        self._seed(workspace)

        result = runner.invoke(app, ["cleanup", "--days", "30"])

        assert result.exit_code == 0, result.output
        assert set(load_history(workspace / HISTORY).paths) == {"mobile:/new"}

    def test_dry_run_keeps_file(self, workspace):
        self._seed(workspace)

        result = runner.invoke(app, ["cleanup", "--days", "30", "--dry-run"])

        assert result.exit_code == 0
        assert "mobile:/old" in result.output
        assert set(load_history(workspace / HISTORY).paths) == {"mobile:/old", "mobile:/new"}

    def test_nothing_to_remove(self, workspace):
        self._seed(workspace)
        result = runner.invoke(app, ["cleanup", "--days", "365"])
        assert "No entries older than" in result.output

    def test_lock_held_by_report(self, workspace, monkeypatch):
        self._seed(workspace)
        lock_path_for(workspace / HISTORY).write_text("4242")
        monkeypatch.setenv("PERFWATCH_LOCK_RETRIES", "1")

        result = runner.invoke(app, ["cleanup", "--days", "30"])

        assert result.exit_code == 1
        assert set(load_history(workspace / HISTORY).paths) == {"mobile:/old", "mobile:/new"}
