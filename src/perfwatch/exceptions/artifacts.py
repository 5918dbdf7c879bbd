"""Artifact-related exceptions: file access and parsing of audit output."""

from pathlib import Path

from .base import PerfwatchError


class ArtifactError(PerfwatchError):
    """Base class for errors reading audit artifacts."""
    pass


class FileAccessError(ArtifactError):
    """An audit or history file exists but cannot be read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ParsingError(ArtifactError):
    """Raised when file content cannot be parsed."""

    def __init__(self, filepath: Path, kind: str, reason: str):
        super().__init__(
            f"Failed to parse {kind} file: {filepath}",
            details={"filepath": str(filepath), "kind": kind, "reason": reason},
        )
        self.filepath = filepath
        self.kind = kind
        self.reason = reason
