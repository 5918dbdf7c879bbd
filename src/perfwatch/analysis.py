"""Analysis assembly: fold deduplicated results and history into one AnalysisResult.

The fold is pure. History is threaded through as an accumulator: each
(profile, URL) step returns an updated ``History`` with one run appended,
and the caller persists the final value once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

from .aggregation import RawResult, group_by_url
from .history import next_consecutive_failures, record_run
from .models import (
    AnalysisResult,
    History,
    ProfileRegressions,
    ProfileResult,
    UrlResult,
    history_key,
    iso_timestamp,
)
from .regression import DEFAULT_WINDOW_SIZE, detect_regressions


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one analysis cycle plus the history to persist."""

    result: AnalysisResult
    history: Optional[History] = None
    active_keys: FrozenSet[str] = field(default_factory=frozenset)


def assess(
    raw: RawResult,
    history: Optional[History],
    threshold_percent: float,
    window_size: int,
    timestamp: str,
) -> Tuple[ProfileResult, Optional[History]]:
    """Evaluate one (profile, URL) and append its run to ``history``.

    Without history, regressions cannot be computed and nothing is recorded.
    """
    key = history_key(raw.profile, raw.pathname)
    entry = history.paths.get(key) if history is not None else None

    regressions = (
        detect_regressions(raw.metrics, entry, threshold_percent, window_size)
        if history is not None
        else []
    )
    failed = bool(regressions) or bool(raw.assertions)
    consecutive = next_consecutive_failures(entry, failed)

    if history is not None:
        history = record_run(history, key, raw.metrics, consecutive, timestamp)

    result = ProfileResult(
        profile=raw.profile,
        metrics=raw.metrics,
        run_metrics=list(raw.run_metrics),
        regressions=regressions,
        assertions=list(raw.assertions),
        consecutive_failures=consecutive,
        passed=not failed,
        report_link=raw.report_link,
    )
    return result, history


def analyze(
    raw_results: Iterable[RawResult],
    history: Optional[History],
    threshold_percent: float,
    window_size: int = DEFAULT_WINDOW_SIZE,
    timestamp: Optional[str] = None,
) -> AnalysisOutcome:
    """Build the analysis result, grouping profiles under their URL.

    Args:
        raw_results: One entry per (profile, URL)
        history: Loaded history, or None when history is disabled
        threshold_percent: Regression threshold in percent
        window_size: Rolling window for the regression baseline
        timestamp: Timestamp recorded on new runs (defaults to now)
    """
    timestamp = timestamp or iso_timestamp()
    raw_results = list(raw_results)

    urls: List[UrlResult] = []
    all_regressions: List[ProfileRegressions] = []
    active_keys = set()

    for url, group in group_by_url(raw_results).items():
        profiles: List[ProfileResult] = []
        for raw in group:
            active_keys.add(history_key(raw.profile, raw.pathname))
            profile_result, history = assess(raw, history, threshold_percent, window_size, timestamp)
            if profile_result.regressions:
                all_regressions.append(
                    ProfileRegressions(
                        url=url,
                        profile=raw.profile,
                        regressions=profile_result.regressions,
                    )
                )
            profiles.append(profile_result)
        urls.append(UrlResult(url=url, pathname=group[0].pathname, profiles=profiles))

    return AnalysisOutcome(
        result=AnalysisResult(urls=urls, all_regressions=all_regressions),
        history=history,
        active_keys=frozenset(active_keys),
    )


def evaluate_fail_on(analysis: AnalysisResult, fail_on: str) -> Optional[str]:
    """Apply the fail-on policy to failed assertions.

    Regressions never fail the job through this policy.

    Returns:
        A failure message, or None when the job should pass
    """
    if fail_on == "never":
        return None

    levels = {a.level for a in analysis.failed_assertions}
    if fail_on == "warn" and levels:
        return "Lighthouse assertion failures detected."
    if fail_on == "error" and "error" in levels:
        return "Lighthouse assertion errors detected."
    return None
