"""
perfwatch - Lighthouse audit analysis for CI

Reads audit artifacts, reduces repeated runs to a median snapshot, detects
regressions against a rolling per-page history, and keeps a single
tracking issue in sync with the outcome.
"""

__version__ = "0.1.0"

from .analysis import analyze, evaluate_fail_on
from .config import ReportConfig, load_config
from .models import AnalysisResult, History, Profile
from .pipeline import ReportOutcome, run_report

__all__ = [
    "run_report",  # Main entry point
    "ReportOutcome",
    "ReportConfig",
    "load_config",
    "analyze",
    "evaluate_fail_on",
    "AnalysisResult",
    "History",
    "Profile",
]
