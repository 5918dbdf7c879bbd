"""Tests for median aggregation and per-(profile, URL) collection."""

from conftest import make_lhr, write_artifact

from perfwatch.aggregation import collect_results, group_by_url, median_metrics
from perfwatch.artifacts import discover_artifacts
from perfwatch.models import Profile


def fcp(value):
    return {"first-contentful-paint": value}


class TestMedianMetrics:
    """Test median_metrics function."""

    def test_single_run_returned_unchanged(self):
        run = {"first-contentful-paint": 1200.0, "speed-index": None}
        assert median_metrics([run]) is run

    def test_odd_count_middle_value(self):
        result = median_metrics([fcp(300.0), fcp(100.0), fcp(200.0)])
        assert result["first-contentful-paint"] == 200.0

    def test_three_runs_pick_middle(self):
        runs = [fcp(950.0), fcp(1050.0), fcp(1000.0)]
        assert median_metrics(runs)["first-contentful-paint"] == 1000.0

    def test_even_count_takes_upper_middle(self):
        result = median_metrics([fcp(100.0), fcp(400.0), fcp(200.0), fcp(300.0)])
        assert result["first-contentful-paint"] == 300.0

    def test_ignores_absent_values_per_metric(self):
        runs = [fcp(100.0), fcp(None), fcp(300.0)]
        # Present values [100, 300] -> upper middle
        assert median_metrics(runs)["first-contentful-paint"] == 300.0

    def test_metric_absent_everywhere_is_none(self):
        result = median_metrics([fcp(100.0), fcp(200.0)])
        assert result["largest-contentful-paint"] is None


class TestCollectResults:
    """Test collect_results function."""

    def test_deduplicates_runs_per_url(self, results_root):
        write_artifact(
            results_root,
            "autolighthouse-m",
            "mobile",
            [
                make_lhr("https://a.test/", first_contentful_paint=100),
                make_lhr("https://a.test/", first_contentful_paint=300),
                make_lhr("https://a.test/", first_contentful_paint=200),
                make_lhr("https://a.test/blog", first_contentful_paint=900),
            ],
        )

        results = collect_results(discover_artifacts(results_root))

        assert [(r.url, r.pathname) for r in results] == [
            ("https://a.test/", "/"),
            ("https://a.test/blog", "/blog"),
        ]
        home = results[0]
        assert home.profile == Profile.MOBILE
        assert home.metrics["first-contentful-paint"] == 200.0
        assert len(home.run_metrics) == 3

    def test_skips_unparseable_and_urlless_files(self, results_root):
        write_artifact(
            results_root,
            "autolighthouse-m",
            "mobile",
            ["{broken", make_lhr(None, first_contentful_paint=1), make_lhr("https://a.test/", first_contentful_paint=5)],
        )

        [result] = collect_results(discover_artifacts(results_root))

        assert result.metrics["first-contentful-paint"] == 5.0
        assert len(result.run_metrics) == 1

    def test_scopes_failed_assertions_by_url(self, results_root):
        write_artifact(
            results_root,
            "autolighthouse-m",
            "mobile",
            [make_lhr("https://a.test/"), make_lhr("https://a.test/blog")],
            assertions=[
                {"auditId": "global", "level": "warn", "passed": False},
                {"auditId": "blog-only", "level": "error", "passed": False, "url": "https://a.test/blog"},
                {"auditId": "passing", "level": "error", "passed": True},
            ],
        )

        by_url = {r.url: r for r in collect_results(discover_artifacts(results_root))}

        assert [a.audit_id for a in by_url["https://a.test/"].assertions] == ["global"]
        assert [a.audit_id for a in by_url["https://a.test/blog"].assertions] == ["global", "blog-only"]

    def test_attaches_report_link(self, results_root):
        write_artifact(
            results_root,
            "autolighthouse-m",
            "mobile",
            [make_lhr("https://a.test/"), make_lhr("https://a.test/blog")],
            links={"https://a.test/": "https://reports.test/1"},
        )

        by_url = {r.url: r for r in collect_results(discover_artifacts(results_root))}

        assert by_url["https://a.test/"].report_link == "https://reports.test/1"
        assert by_url["https://a.test/blog"].report_link is None

    def test_same_url_across_profiles_groups_together(self, results_root):
        write_artifact(results_root, "autolighthouse-a", "mobile", [make_lhr("https://a.test/")])
        write_artifact(results_root, "autolighthouse-b", "desktop", [make_lhr("https://a.test/")])

        grouped = group_by_url(collect_results(discover_artifacts(results_root)))

        assert list(grouped) == ["https://a.test/"]
        assert [r.profile for r in grouped["https://a.test/"]] == [Profile.MOBILE, Profile.DESKTOP]
