"""Data models for audit analysis: metric snapshots, history, and results.

JSON documents (history file, CI outputs) use camelCase keys so they stay
compatible with the files written by earlier versions of the action.
Absent metric values are omitted from JSON rather than written as null.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

METRIC_KEYS: Tuple[str, ...] = (
    "first-contentful-paint",
    "largest-contentful-paint",
    "cumulative-layout-shift",
    "total-blocking-time",
    "speed-index",
    "interactive",
)

METRIC_LABELS: Dict[str, str] = {
    "first-contentful-paint": "First Contentful Paint",
    "largest-contentful-paint": "Largest Contentful Paint",
    "cumulative-layout-shift": "Cumulative Layout Shift",
    "total-blocking-time": "Total Blocking Time",
    "speed-index": "Speed Index",
    "interactive": "Time to Interactive",
}

HISTORY_VERSION = 1

# Metric key -> value; None marks an absent measurement (never zero).
MetricSnapshot = Dict[str, Optional[float]]


class Profile(str, Enum):
    """Device profile an audit ran under."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"

    @classmethod
    def parse(cls, value: str) -> Optional["Profile"]:
        """Return the profile named by ``value`` or None if unrecognized."""
        try:
            return cls(value.strip())
        except ValueError:
            return None


def history_key(profile: Profile | str, pathname: str) -> str:
    """Key of a history entry: ``{profile}:{pathname}``."""
    name = profile.value if isinstance(profile, Profile) else profile
    return f"{name}:{pathname}"


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; None if unparseable. Naive values are UTC."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_metric(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None when absent/non-numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def empty_snapshot() -> MetricSnapshot:
    return {key: None for key in METRIC_KEYS}


def snapshot_from_dict(data: Any) -> MetricSnapshot:
    """Build a snapshot from a JSON mapping, dropping anything non-numeric."""
    snapshot = empty_snapshot()
    if isinstance(data, Mapping):
        for key in METRIC_KEYS:
            snapshot[key] = coerce_metric(data.get(key))
    return snapshot


def snapshot_to_dict(snapshot: Mapping[str, Optional[float]]) -> Dict[str, float]:
    return {key: snapshot[key] for key in METRIC_KEYS if snapshot.get(key) is not None}


# -- history --


@dataclass(frozen=True)
class HistoryRun:
    """One persisted measurement of a (profile, pathname)."""

    metrics: MetricSnapshot
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"metrics": snapshot_to_dict(self.metrics), "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HistoryRun"]:
        if not isinstance(data, Mapping):
            return None
        timestamp = data.get("timestamp")
        return cls(
            metrics=snapshot_from_dict(data.get("metrics")),
            timestamp=timestamp if isinstance(timestamp, str) else "",
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Rolling history of one ``profile:pathname`` key. Runs are oldest first."""

    consecutive_failures: int = 0
    last_seen: str = ""
    runs: Tuple[HistoryRun, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consecutiveFailures": self.consecutive_failures,
            "lastSeen": self.last_seen,
            "runs": [run.to_dict() for run in self.runs],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HistoryEntry"]:
        if not isinstance(data, Mapping):
            return None
        failures = data.get("consecutiveFailures")
        if isinstance(failures, bool) or not isinstance(failures, int) or failures < 0:
            failures = 0
        last_seen = data.get("lastSeen")
        raw_runs = data.get("runs")
        runs = []
        if isinstance(raw_runs, list):
            for item in raw_runs:
                run = HistoryRun.from_dict(item)
                if run is not None:
                    runs.append(run)
        return cls(
            consecutive_failures=failures,
            last_seen=last_seen if isinstance(last_seen, str) else "",
            runs=tuple(runs),
        )

    def trimmed(self, max_runs: int) -> "HistoryEntry":
        """Keep only the newest ``max_runs`` runs."""
        if len(self.runs) <= max_runs:
            return self
        return HistoryEntry(
            consecutive_failures=self.consecutive_failures,
            last_seen=self.last_seen,
            runs=self.runs[len(self.runs) - max_runs:],
        )


@dataclass(frozen=True)
class History:
    """The persisted history document. Saved and loaded as a whole."""

    version: int = HISTORY_VERSION
    last_updated: str = ""
    paths: Dict[str, HistoryEntry] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "lastUpdated": self.last_updated,
            "paths": {key: entry.to_dict() for key, entry in self.paths.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "History":
        if not isinstance(data, Mapping):
            return cls()
        paths: Dict[str, HistoryEntry] = {}
        raw_paths = data.get("paths")
        if isinstance(raw_paths, Mapping):
            for key, raw_entry in raw_paths.items():
                entry = HistoryEntry.from_dict(raw_entry)
                if entry is not None:
                    paths[str(key)] = entry
        last_updated = data.get("lastUpdated")
        return cls(
            version=HISTORY_VERSION,
            last_updated=last_updated if isinstance(last_updated, str) else "",
            paths=paths,
        )


# -- audit inputs --


@dataclass(frozen=True)
class AssertionResult:
    """Assertion outcome reported by the audit runner."""

    audit_id: str
    level: str
    passed: bool
    actual: Optional[float] = None
    expected: Optional[float] = None
    operator: str = ""
    url: Optional[str] = None

    def applies_to(self, url: str) -> bool:
        """Unscoped assertions apply to every URL of the artifact."""
        return not self.url or self.url == url

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "auditId": self.audit_id,
            "level": self.level,
            "actual": self.actual,
            "expected": self.expected,
            "operator": self.operator,
            "passed": self.passed,
        }
        if self.url:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AssertionResult"]:
        if not isinstance(data, Mapping):
            return None
        url = data.get("url")
        operator = data.get("operator")
        return cls(
            audit_id=str(data.get("auditId", "")),
            level=str(data.get("level", "error")),
            passed=bool(data.get("passed", False)),
            actual=coerce_metric(data.get("actual")),
            expected=coerce_metric(data.get("expected")),
            operator=operator if isinstance(operator, str) else "",
            url=url if isinstance(url, str) and url else None,
        )


@dataclass(frozen=True)
class Regression:
    """A metric that exceeded its rolling average by more than the threshold."""

    metric: str
    current: float
    avg: float
    percent_change: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "current": self.current,
            "avg": self.avg,
            "percentChange": self.percent_change,
        }


# -- results --


@dataclass(frozen=True)
class ProfileResult:
    """Outcome of one URL under one profile."""

    profile: Profile
    metrics: MetricSnapshot
    regressions: List[Regression] = field(default_factory=list)
    assertions: List[AssertionResult] = field(default_factory=list)
    consecutive_failures: int = 0
    passed: bool = True
    run_metrics: List[MetricSnapshot] = field(default_factory=list)
    report_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "profile": self.profile.value,
            "metrics": snapshot_to_dict(self.metrics),
            "runMetrics": [snapshot_to_dict(m) for m in self.run_metrics],
            "regressions": [r.to_dict() for r in self.regressions],
            "assertions": [a.to_dict() for a in self.assertions],
            "consecutiveFailures": self.consecutive_failures,
            "passed": self.passed,
        }
        if self.report_link:
            data["reportLink"] = self.report_link
        return data


@dataclass(frozen=True)
class UrlResult:
    """All profile results for one audited URL."""

    url: str
    pathname: str
    profiles: List[ProfileResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(p.passed for p in self.profiles)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "pathname": self.pathname,
            "profiles": [p.to_dict() for p in self.profiles],
            "passed": self.passed,
        }


@dataclass(frozen=True)
class ProfileRegressions:
    """Regressions of one (url, profile) pair, flattened into the global list."""

    url: str
    profile: Profile
    regressions: List[Regression]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "profile": self.profile.value,
            "regressions": [r.to_dict() for r in self.regressions],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Root result of one report cycle."""

    urls: List[UrlResult] = field(default_factory=list)
    all_regressions: List[ProfileRegressions] = field(default_factory=list)

    @property
    def has_regressions(self) -> bool:
        return len(self.all_regressions) > 0

    @property
    def passed(self) -> bool:
        return all(u.passed for u in self.urls)

    @property
    def failed_assertions(self) -> List[AssertionResult]:
        return [a for u in self.urls for p in u.profiles for a in p.assertions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "urls": [u.to_dict() for u in self.urls],
            "allRegressions": [r.to_dict() for r in self.all_regressions],
            "hasRegressions": self.has_regressions,
            "passed": self.passed,
        }
