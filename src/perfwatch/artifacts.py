"""Audit artifact discovery and result-file parsing.

Layout under the results root (one directory per profile shard)::

    autolighthouse-<anything>/
        profile.txt              # "mobile" | "tablet" | "desktop"
        lhr-*.json               # raw audit results, one per run
        assertion-results.json   # optional list of assertion outcomes
        links.json               # optional {url: report link}

Audit output is external input: unreadable or malformed files are skipped
with a warning so one bad shard never aborts the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from .exceptions import ArtifactError
from .file_ops import list_files, read_json_file, safe_read_file
from .logging_config import get_logger
from .models import (
    METRIC_KEYS,
    AssertionResult,
    MetricSnapshot,
    Profile,
    coerce_metric,
)

logger = get_logger(__name__)

ARTIFACT_PREFIX = "autolighthouse-"
PROFILE_MARKER = "profile.txt"
RESULT_PREFIX = "lhr-"
RESULT_SUFFIX = ".json"
ASSERTIONS_FILE = "assertion-results.json"
LINKS_FILE = "links.json"


@dataclass(frozen=True)
class ProfileArtifact:
    """Everything one profile shard produced."""

    profile: Profile
    result_paths: List[Path] = field(default_factory=list)
    assertions: List[AssertionResult] = field(default_factory=list)
    report_links: Dict[str, str] = field(default_factory=dict)

    @property
    def failed_assertions(self) -> List[AssertionResult]:
        return [a for a in self.assertions if not a.passed]


def discover_artifacts(results_root: Path) -> List[ProfileArtifact]:
    """Find every profile-tagged artifact directory under ``results_root``.

    Directories without the prefix, without a marker, or with an unknown
    profile name are skipped silently (partial or failed shards).
    """
    artifacts: List[ProfileArtifact] = []

    for entry in sorted(results_root.iterdir()):
        if not entry.is_dir() or not entry.name.startswith(ARTIFACT_PREFIX):
            continue

        profile = read_profile(entry)
        if profile is None:
            logger.debug(f"Skipping {entry.name}: no recognized profile marker")
            continue

        artifacts.append(
            ProfileArtifact(
                profile=profile,
                result_paths=list_files(entry, RESULT_PREFIX, RESULT_SUFFIX),
                assertions=read_assertions(entry),
                report_links=read_report_links(entry),
            )
        )

    logger.debug(f"Discovered {len(artifacts)} artifact(s) in {results_root}")
    return artifacts


def read_profile(directory: Path) -> Optional[Profile]:
    marker = directory / PROFILE_MARKER
    if not marker.is_file():
        return None
    try:
        return Profile.parse(safe_read_file(marker))
    except ArtifactError as e:
        logger.warning(f"Failed to read {PROFILE_MARKER} in {directory}: {e}")
        return None


def read_assertions(directory: Path) -> List[AssertionResult]:
    """Read assertion outcomes; missing or malformed file yields an empty list."""
    path = directory / ASSERTIONS_FILE
    if not path.exists():
        return []
    try:
        data = read_json_file(path, "assertion results")
    except ArtifactError as e:
        logger.warning(f"Failed to parse {ASSERTIONS_FILE} in {directory}: {e.details.get('reason', e)}")
        return []
    if not isinstance(data, list):
        return []

    results = []
    for item in data:
        assertion = AssertionResult.from_dict(item)
        if assertion is not None:
            results.append(assertion)
    return results


def read_report_links(directory: Path) -> Dict[str, str]:
    """Read the URL -> report link map; missing or malformed file yields {}."""
    path = directory / LINKS_FILE
    if not path.exists():
        return {}
    try:
        data = read_json_file(path, "report links")
    except ArtifactError as e:
        logger.warning(f"Failed to parse {LINKS_FILE} in {directory}: {e.details.get('reason', e)}")
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(url): link for url, link in data.items() if isinstance(link, str)}


def parse_result_file(path: Path) -> Optional[Dict[str, Any]]:
    """Parse one raw audit result. Returns None (with a warning) on failure."""
    try:
        data = read_json_file(path, "audit result")
    except ArtifactError as e:
        logger.warning(f"Failed to parse result file {path}: {e.details.get('reason', e)}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Failed to parse result file {path}: not a JSON object")
        return None
    return data


def extract_metrics(result: Dict[str, Any]) -> MetricSnapshot:
    """Read ``audits[<metric>].numericValue`` for each tracked metric."""
    audits = result.get("audits")
    if not isinstance(audits, dict):
        audits = {}

    metrics: MetricSnapshot = {}
    for key in METRIC_KEYS:
        audit = audits.get(key)
        metrics[key] = coerce_metric(audit.get("numericValue")) if isinstance(audit, dict) else None
    return metrics


def extract_url(result: Dict[str, Any]) -> str:
    """Requested URL, else final URL, else empty string."""
    for field_name in ("requestedUrl", "finalUrl"):
        value = result.get(field_name)
        if isinstance(value, str) and value:
            return value
    return ""


def extract_pathname(url: str) -> str:
    """Path component of ``url``; ``/`` when empty or not an absolute URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "/"
    if not parts.scheme or not parts.netloc:
        return "/"
    return parts.path or "/"
