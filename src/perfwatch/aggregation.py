"""Metric aggregation: dedupe repeated audit runs into one snapshot per URL.

Audit runners execute several trials per URL to reduce noise. Each metric is
reduced independently to its median, so one cold-cache outlier cannot drag
the snapshot the way a mean would.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .artifacts import (
    ProfileArtifact,
    extract_metrics,
    extract_pathname,
    extract_url,
    parse_result_file,
)
from .logging_config import get_logger
from .models import METRIC_KEYS, AssertionResult, MetricSnapshot, Profile

logger = get_logger(__name__)


def median_metrics(runs: Sequence[MetricSnapshot]) -> MetricSnapshot:
    """Per-metric median across runs, skipping runs where a metric is absent.

    A single run is returned unchanged. With an even number of values the
    upper of the two middle values is taken, so the result is always a
    measured value rather than an interpolation.
    """
    if not runs:
        return {key: None for key in METRIC_KEYS}
    if len(runs) == 1:
        return runs[0]

    result: MetricSnapshot = {}
    for key in METRIC_KEYS:
        values = [run[key] for run in runs if run.get(key) is not None]
        if not values:
            result[key] = None
            continue
        ordered = np.sort(np.asarray(values, dtype=float))
        result[key] = float(ordered[len(ordered) // 2])
    return result


@dataclass(frozen=True)
class RawResult:
    """One (profile, URL) after deduplication, before history is consulted."""

    profile: Profile
    url: str
    pathname: str
    metrics: MetricSnapshot
    run_metrics: List[MetricSnapshot] = field(default_factory=list)
    assertions: List[AssertionResult] = field(default_factory=list)
    report_link: Optional[str] = None


def collect_results(artifacts: Iterable[ProfileArtifact]) -> List[RawResult]:
    """Parse every result file and reduce each (profile, URL) to one snapshot.

    Files that fail to parse or carry no URL are dropped. Failed assertions
    without a ``url`` apply to every URL of the artifact; scoped ones only
    to the matching URL.
    """
    results: List[RawResult] = []

    for artifact in artifacts:
        failed = artifact.failed_assertions
        runs_by_url: Dict[str, List[MetricSnapshot]] = {}

        for path in artifact.result_paths:
            parsed = parse_result_file(path)
            if parsed is None:
                continue
            url = extract_url(parsed)
            if not url:
                logger.warning(f"Skipping result file {path}: no URL found")
                continue
            runs_by_url.setdefault(url, []).append(extract_metrics(parsed))

        for url, runs in runs_by_url.items():
            results.append(
                RawResult(
                    profile=artifact.profile,
                    url=url,
                    pathname=extract_pathname(url),
                    metrics=median_metrics(runs),
                    run_metrics=runs,
                    assertions=[a for a in failed if a.applies_to(url)],
                    report_link=artifact.report_links.get(url),
                )
            )

    return results


def group_by_url(items: Iterable[RawResult]) -> Dict[str, List[RawResult]]:
    """Bucket items by ``.url``, keeping first-seen URL order."""
    grouped: Dict[str, List[RawResult]] = {}
    for item in items:
        grouped.setdefault(item.url, []).append(item)
    return grouped
