"""History persistence exceptions: locking and writes."""

from pathlib import Path

from .base import PerfwatchError


class HistoryError(PerfwatchError):
    """Base class for history store errors."""
    pass


class HistoryLockError(HistoryError):
    """Raised when the history lock is held by another process.

    The history file is left untouched when this is raised.
    """

    def __init__(self, lock_path: Path, attempts: int):
        super().__init__(
            f"Failed to acquire lock on {lock_path}: lock held by another process",
            details={"lock_path": str(lock_path), "attempts": str(attempts)},
        )
        self.lock_path = lock_path
        self.attempts = attempts


class HistoryWriteError(HistoryError):
    """Raised when the history document cannot be written."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Failed to write history: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason
