"""
Safe file operations for perfwatch.

Readers raise FileAccessError/ParsingError so callers decide whether a bad
file is fatal. Writes go through a temp file and ``os.replace`` so a crash
never leaves a half-written document behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, List

from .exceptions import FileAccessError, FileWriteError, ParsingError


def safe_read_file(filepath: Path, encoding: str = "utf-8") -> str:
    """
    Read a text file.

    Raises:
        FileAccessError: If file cannot be read
    """
    try:
        with open(filepath, encoding=encoding) as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FileAccessError(filepath, f"Encoding error: {e}")
    except OSError as e:
        raise FileAccessError(filepath, f"OS error: {e}")


def read_json_file(filepath: Path, kind: str = "JSON") -> Any:
    """
    Read and decode a JSON file.

    Args:
        filepath: File to read
        kind: Human label used in error messages (e.g. "result", "history")

    Raises:
        FileAccessError: If file cannot be read
        ParsingError: If content is not valid JSON
    """
    content = safe_read_file(filepath)
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ParsingError(filepath, kind, str(e))


def atomic_write_file(filepath: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write ``content`` to a sibling temp file, then rename it over ``filepath``.

    Raises:
        FileWriteError: If the temp file cannot be written or renamed
    """
    tmp_name = None
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{filepath.name}.", suffix=".tmp", dir=str(filepath.parent)
        )
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, filepath)
        tmp_name = None
    except OSError as e:
        raise FileWriteError(filepath, str(e))
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass


def list_files(directory: Path, prefix: str = "", suffix: str = "") -> List[Path]:
    """
    List regular files directly under ``directory`` matching prefix/suffix.

    Returns paths sorted by name so processing order is stable.
    """
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and path.name.startswith(prefix) and path.name.endswith(suffix)
    )
