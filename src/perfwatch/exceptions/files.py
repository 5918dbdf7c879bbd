"""Filesystem write failures, independent of what is being written."""

from pathlib import Path

from .base import PerfwatchError


class FileWriteError(PerfwatchError):
    """A file could not be written or renamed into place.

    The previous content of the target, if any, is left intact.
    """

    def __init__(self, filepath: Path, reason: str):
        super().__init__(f"Cannot write {filepath}", details={"reason": reason})
        self.filepath = filepath
        self.reason = reason
