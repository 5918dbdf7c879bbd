"""Configuration errors: bad settings and unusable results/history paths."""

from pathlib import Path
from typing import Any, Optional

from .base import PerfwatchError

# Which user-supplied location a path error refers to.
RESULTS_ROLE = "results"
HISTORY_ROLE = "history"


class ConfigurationError(PerfwatchError):
    """Base class for configuration-related errors."""


class InvalidConfigError(ConfigurationError):
    """A setting from TOML, the environment or action inputs has a bad value."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for {key}: {value!r}",
            details={"reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class InvalidPathError(ConfigurationError):
    """A safe path that is not usable, e.g. a results directory nothing was downloaded to."""

    def __init__(self, path: Path, reason: str, role: str = RESULTS_ROLE):
        super().__init__(f"Unusable {role} path {path}: {reason}", details={"path": str(path)})
        self.path = path
        self.reason = reason
        self.role = role


class SecurityError(ConfigurationError):
    """A results or history path is absolute, traverses with ``..``, or leaves the workspace.

    Kept distinct from InvalidPathError: an unsafe results path fails the
    run, a missing one does not.
    """

    def __init__(self, reason: str, filepath: Optional[Path] = None, role: str = ""):
        label = f"{role} path" if role else "path"
        super().__init__(
            f"Rejected {label}: {reason}",
            details={"filepath": str(filepath)} if filepath is not None else None,
        )
        self.reason = reason
        self.filepath = filepath
        self.role = role
