"""
Path safety for perfwatch.

User-supplied paths (results directory, history file) must be relative and
stay inside the workspace. Any ``..`` segment is rejected outright instead of
being resolved, which is stricter than needed but leaves no room for clever
traversal.
"""

import re
from pathlib import Path
from typing import Union

from .exceptions import HISTORY_ROLE, RESULTS_ROLE, InvalidPathError, SecurityError

_DRIVE_LETTER = re.compile(r"^[a-zA-Z]:")


def is_path_safe(input_path: str) -> bool:
    """
    Check a user-supplied relative path without touching the filesystem.

    Rejects absolute POSIX paths, Windows drive letters, and any ``..``
    segment. Dots inside file names (``history.v1.json``) are fine.
    """
    normalized = input_path.replace("\\", "/")
    if normalized.startswith("/"):
        return False
    if _DRIVE_LETTER.match(normalized):
        return False
    if ".." in normalized.split("/"):
        return False
    return True


class PathValidator:
    """
    Resolves user paths against a workspace root.

    Prevents:
    - Directory traversal (``..`` segments)
    - Absolute paths and drive letters
    - Symlink escapes out of the workspace
    """

    def __init__(self, workspace: Union[str, Path]):
        self.workspace = Path(workspace).resolve()

    def resolve(self, user_path: str, allow_root: bool = False, role: str = "") -> Path:
        """
        Resolve ``user_path`` inside the workspace.

        Args:
            user_path: Relative path supplied by the user
            allow_root: Accept a path that resolves to the workspace itself
            role: Which input is being checked ("results" or "history"), for error messages

        Returns:
            Resolved absolute path

        Raises:
            SecurityError: If the path is unsafe or escapes the workspace
        """
        if not is_path_safe(user_path):
            raise SecurityError(
                "Path traversal detected: absolute path or '..' segment",
                filepath=Path(user_path),
                role=role,
            )

        try:
            resolved = (self.workspace / user_path.replace("\\", "/")).resolve()
        except (OSError, RuntimeError) as e:
            raise SecurityError(f"Cannot resolve path: {e}", filepath=Path(user_path), role=role)

        try:
            relative = resolved.relative_to(self.workspace)
        except ValueError:
            raise SecurityError(
                "Path traversal detected: path is outside the workspace",
                filepath=resolved,
                role=role,
            )

        if not allow_root and relative == Path("."):
            raise SecurityError(
                "Path resolves to the workspace root",
                filepath=resolved,
                role=role,
            )

        return resolved


def validate_results_path(results_path: str, workspace: Union[str, Path]) -> Path:
    """
    Validate the audit results directory.

    Raises:
        SecurityError: If the path is unsafe (a configuration error)
        InvalidPathError: If the directory does not exist (nothing was downloaded)
    """
    resolved = PathValidator(workspace).resolve(results_path, role=RESULTS_ROLE)
    if not resolved.is_dir():
        raise InvalidPathError(resolved, "Results directory does not exist", role=RESULTS_ROLE)
    return resolved


def validate_history_path(history_path: str, workspace: Union[str, Path]) -> Path:
    """
    Validate the history file location. The file itself need not exist yet.

    Raises:
        SecurityError: If the path is unsafe or is the workspace root
    """
    return PathValidator(workspace).resolve(history_path, role=HISTORY_ROLE)
