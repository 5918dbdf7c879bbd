"""Regression detection against a rolling average of recent history.

Every tracked metric is lower-is-better, so only increases can regress.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .models import METRIC_KEYS, HistoryEntry, HistoryRun, MetricSnapshot, Regression

DEFAULT_WINDOW_SIZE = 5

# Below this many historical runs there is no baseline to compare against.
MIN_RUNS_FOR_REGRESSION = 2

# Reported instead of a ratio when the baseline average is zero.
UNDEFINED_PERCENT = "—"


def rolling_average(runs: Sequence[HistoryRun], metric: str) -> Optional[float]:
    """Mean of ``metric`` over ``runs``, ignoring runs where it is absent."""
    values = [run.metrics.get(metric) for run in runs]
    present = [v for v in values if v is not None]
    if not present:
        return None
    return float(np.mean(present))


def format_percent_change(current: float, avg: float) -> str:
    """``((current - avg) / avg) * 100`` to one decimal, or a sentinel when avg is 0."""
    if avg <= 0:
        return UNDEFINED_PERCENT
    return f"{((current - avg) / avg) * 100:.1f}%"


def detect_regressions(
    metrics: MetricSnapshot,
    entry: Optional[HistoryEntry],
    threshold_percent: float,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> List[Regression]:
    """Flag metrics whose current value exceeds the rolling average by more than the threshold.

    Args:
        metrics: Current snapshot
        entry: History for the same profile/pathname, if any
        threshold_percent: Allowed increase over the average, in percent
        window_size: Number of most recent runs forming the baseline

    Returns:
        Regressions in metric order; empty when fewer than two runs exist
    """
    runs = entry.runs if entry is not None else ()
    recent = runs[-window_size:] if window_size > 0 else ()

    if len(recent) < MIN_RUNS_FOR_REGRESSION:
        return []

    limit_factor = 1 + threshold_percent / 100
    regressions: List[Regression] = []

    for metric in METRIC_KEYS:
        current = metrics.get(metric)
        if current is None:
            continue

        avg = rolling_average(recent, metric)
        if avg is None:
            continue

        # Strict: a value exactly on the boundary is not a regression.
        if current > avg * limit_factor:
            regressions.append(
                Regression(
                    metric=metric,
                    current=current,
                    avg=avg,
                    percent_change=format_percent_change(current, avg),
                )
            )

    return regressions
