"""Exception hierarchy for perfwatch."""

from .artifacts import (
    ArtifactError,
    FileAccessError,
    ParsingError,
)
from .base import PerfwatchError
from .config import (
    HISTORY_ROLE,
    RESULTS_ROLE,
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
    SecurityError,
)
from .files import FileWriteError
from .history import (
    HistoryError,
    HistoryLockError,
    HistoryWriteError,
)
from .issues import (
    GitHubAPIError,
    IssueTrackerError,
)

__all__ = [
    "PerfwatchError",
    "ArtifactError",
    "FileAccessError",
    "ParsingError",
    "FileWriteError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "SecurityError",
    "RESULTS_ROLE",
    "HISTORY_ROLE",
    "HistoryError",
    "HistoryLockError",
    "HistoryWriteError",
    "IssueTrackerError",
    "GitHubAPIError",
]
