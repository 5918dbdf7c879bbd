"""Report documents built from an AnalysisResult.

Two documents exist: the step summary shown on every run and the body of
the tracking issue, which only covers failing URLs and profiles.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from ..models import (
    METRIC_KEYS,
    METRIC_LABELS,
    AnalysisResult,
    AssertionResult,
    MetricSnapshot,
    Profile,
    ProfileResult,
    Regression,
    iso_timestamp,
)
from .document import (
    Block,
    BulletList,
    Details,
    Document,
    Heading,
    Link,
    Paragraph,
    Rule,
    Table,
)

PASS_ICON = "✅"
FAIL_ICON = "❌"
MATRIX_PASS = "🟢"
MATRIX_FAIL = "🔴"
MISSING = "—"
LEVEL_ICONS = {"error": "🔴 error", "warn": "🟡 warn"}

ISSUE_HEADING = "Lighthouse Performance Alert"
ISSUE_FOOTER = "_Auto-managed by perfwatch. It closes itself once every check passes._"


def fmt(value: float) -> str:
    """Three decimals for small values (CLS), one decimal otherwise."""
    return f"{value:.3f}" if value < 10 else f"{value:.1f}"


def fmt_metric_value(key: str, value: Optional[float]) -> str:
    if value is None:
        return MISSING
    if key == "cumulative-layout-shift":
        return f"{value:.3f}"
    if key == "total-blocking-time":
        return f"{round(value)}ms"
    return f"{value / 1000:.2f}s"


def _fmt_number(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    return f"{value:g}"


def assertion_table(assertions: Sequence[AssertionResult], with_icons: bool = False) -> Table:
    rows = []
    for a in assertions:
        level = LEVEL_ICONS.get(a.level, a.level) if with_icons else a.level
        threshold = f"{a.operator} {_fmt_number(a.expected)}".strip()
        rows.append([a.audit_id, level, _fmt_number(a.actual), threshold])
    return Table(headers=["Audit", "Level", "Actual", "Threshold"], rows=rows)


def regression_list(regressions: Sequence[Regression]) -> List[Block]:
    if not regressions:
        return []
    items = [f"{r.metric}: {fmt(r.avg)} → {fmt(r.current)} ({r.percent_change})" for r in regressions]
    return [Paragraph("**Regressions:**"), BulletList(items)]


def count_levels(assertions: Sequence[AssertionResult]) -> tuple:
    errors = sum(1 for a in assertions if a.level == "error")
    warnings = sum(1 for a in assertions if a.level == "warn")
    return errors, warnings


# -- step summary --


def build_summary_document(analysis: AnalysisResult) -> Document:
    """Every URL and profile with pass/fail status, failures and regressions."""
    status = PASS_ICON if analysis.passed else FAIL_ICON
    failed_urls = sum(1 for u in analysis.urls if not u.passed)

    doc = Document()
    doc.add(
        Heading(2, f"{status} Lighthouse Report"),
        Paragraph(
            f"**URLs:** {len(analysis.urls)} audited, {failed_urls} with issues  \n"
            f"**Regressions:** {len(analysis.all_regressions)}"
        ),
    )

    for url in analysis.urls:
        doc.add(Heading(3, f"{PASS_ICON if url.passed else FAIL_ICON} {url.pathname}"))
        for pr in url.profiles:
            doc.add(Heading(4, f"{PASS_ICON if pr.passed else FAIL_ICON} {pr.profile.value}"))
            if pr.report_link:
                doc.add(Link("View report", pr.report_link))
            if pr.assertions:
                doc.add(assertion_table(pr.assertions))
            doc.add(*regression_list(pr.regressions))
            if pr.passed:
                doc.add(Paragraph("All checks passed."))

    return doc


# -- issue body --


def _status_matrix(analysis: AnalysisResult) -> Table:
    profiles = [p for p in Profile if any(pr.profile == p for u in analysis.urls for pr in u.profiles)]
    rows = []
    for url in analysis.urls:
        by_profile = {pr.profile: pr for pr in url.profiles}
        cells = [
            MISSING if p not in by_profile else (MATRIX_PASS if by_profile[p].passed else MATRIX_FAIL)
            for p in profiles
        ]
        rows.append([f"`{url.pathname}`", *cells])
    return Table(headers=["Page", *[p.value for p in profiles]], rows=rows)


def _vitals_blocks(pr: ProfileResult) -> List[Block]:
    runs = pr.run_metrics or [pr.metrics]
    n = len(runs)
    heading = f"**Core Web Vitals** (median of {n} runs)" if n > 1 else "**Core Web Vitals**"

    rows = []
    for key in METRIC_KEYS:
        row = [METRIC_LABELS[key], fmt_metric_value(key, pr.metrics.get(key))]
        if n > 1:
            row.append(_range(key, runs))
        rows.append(row)
    headers = ["Metric", "Median", "Range"] if n > 1 else ["Metric", "Value"]
    blocks: List[Block] = [Paragraph(heading), Table(headers=headers, rows=rows)]

    if n > 1:
        run_rows = [
            [str(i), *[fmt_metric_value(key, run.get(key)) for key in METRIC_KEYS]]
            for i, run in enumerate(runs, start=1)
        ]
        blocks.append(
            Details(
                summary=f"Individual runs ({n})",
                blocks=[Table(headers=["Run", *[METRIC_LABELS[k] for k in METRIC_KEYS]], rows=run_rows)],
            )
        )
    return blocks


def _range(key: str, runs: Sequence[MetricSnapshot]) -> str:
    values = [run.get(key) for run in runs]
    present = [v for v in values if v is not None]
    if not present:
        return MISSING
    return f"{fmt_metric_value(key, min(present))} – {fmt_metric_value(key, max(present))}"


def _profile_blocks(pr: ProfileResult, consecutive_fail_limit: int) -> List[Block]:
    blocks: List[Block] = []
    if pr.report_link:
        blocks.append(Link("View Report", pr.report_link))

    blocks.extend(_vitals_blocks(pr))

    if pr.assertions:
        errors, warnings = count_levels(pr.assertions)
        blocks.append(Paragraph(f"**Assertion Failures:** {errors} error(s), {warnings} warning(s)"))
        blocks.append(assertion_table(pr.assertions, with_icons=True))

    blocks.extend(regression_list(pr.regressions))

    if pr.consecutive_failures >= consecutive_fail_limit:
        blocks.append(
            Paragraph(f"⚠️ **Persistent failure**: {pr.consecutive_failures} consecutive runs")
        )
    return blocks


def build_issue_document(
    analysis: AnalysisResult,
    consecutive_fail_limit: int,
    branch: str = "",
    commit: str = "",
    now: Optional[datetime] = None,
) -> Document:
    """Tracking issue body: metadata, counts, status matrix, then each failure."""
    errors, warnings = count_levels(analysis.failed_assertions)
    failing = [u for u in analysis.urls if not u.passed]

    doc = Document()
    doc.add(
        Heading(2, f"🚨 {ISSUE_HEADING}"),
        Paragraph(
            f"**Timestamp:** {iso_timestamp(now)}  \n"
            f"**Branch:** `{branch or 'unknown'}`  \n"
            f"**Commit:** `{commit or 'unknown'}`"
        ),
        Paragraph(
            f"**Summary:** {len(failing)} failing of {len(analysis.urls)} URL(s) · "
            f"{errors} error(s) · {warnings} warning(s) · "
            f"{len(analysis.all_regressions)} regressed profile(s)"
        ),
    )

    if analysis.urls:
        doc.add(Heading(3, "Status"), _status_matrix(analysis))

    for url in failing:
        doc.add(Heading(3, url.pathname), Paragraph(url.url))
        for pr in url.profiles:
            if pr.passed:
                continue
            doc.add(
                Details(
                    summary=f"{MATRIX_FAIL} {pr.profile.value}",
                    blocks=_profile_blocks(pr, consecutive_fail_limit),
                    open=True,
                )
            )

    doc.add(Rule(), Paragraph(ISSUE_FOOTER))
    return doc
