"""GitHub Actions runtime integration: step outputs, job summary, annotations.

Outside a workflow run the environment files are absent and every function
here is a no-op that returns False, so the pipeline can call them
unconditionally.
"""

import os
import uuid
from pathlib import Path
from typing import Mapping, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

OUTPUT_ENV = "GITHUB_OUTPUT"
SUMMARY_ENV = "GITHUB_STEP_SUMMARY"


def in_workflow(env: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if env is None else env
    return env.get("GITHUB_ACTIONS") == "true"


def _env_file(name: str, env: Optional[Mapping[str, str]]) -> Optional[Path]:
    env = os.environ if env is None else env
    value = env.get(name)
    return Path(value) if value else None


def _append(path: Path, text: str) -> bool:
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        logger.warning(f"Could not write to {path}: {e}")
        return False
    return True


def set_output(name: str, value: str, env: Optional[Mapping[str, str]] = None) -> bool:
    """
    Append a step output to ``$GITHUB_OUTPUT``.

    Multiline values use the heredoc form with a random delimiter.

    Returns:
        True if the output was written
    """
    path = _env_file(OUTPUT_ENV, env)
    if path is None:
        return False

    if "\n" in value:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        entry = f"{name}<<{delimiter}\n{value}\n{delimiter}\n"
    else:
        entry = f"{name}={value}\n"
    return _append(path, entry)


def append_summary(markdown: str, env: Optional[Mapping[str, str]] = None) -> bool:
    """Append markdown to the job summary (``$GITHUB_STEP_SUMMARY``)."""
    path = _env_file(SUMMARY_ENV, env)
    if path is None:
        return False
    if not markdown.endswith("\n"):
        markdown += "\n"
    return _append(path, markdown)


def _escape_annotation(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def annotate(level: str, message: str, env: Optional[Mapping[str, str]] = None) -> bool:
    """Print a workflow command annotation (``::warning::``, ``::error::``)."""
    if not in_workflow(env):
        return False
    print(f"::{level}::{_escape_annotation(message)}", flush=True)
    return True


def warning(message: str, env: Optional[Mapping[str, str]] = None) -> bool:
    logger.warning(message)
    return annotate("warning", message, env)


def error(message: str, env: Optional[Mapping[str, str]] = None) -> bool:
    logger.error(message)
    return annotate("error", message, env)
