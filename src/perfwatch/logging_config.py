"""
Logging configuration for perfwatch.

Everything goes to stderr through rich so stdout stays free for ``--json``
output. Inside a GitHub Actions job the runner already timestamps each
line, so the handler drops its own time column there.
"""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "perfwatch"

# Third-party loggers that log every HTTP request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore")

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _resolve_level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    return logging.DEBUG if verbose else logging.INFO


def _console_handler(verbose: bool) -> RichHandler:
    in_ci = os.environ.get("GITHUB_ACTIONS") == "true"
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=not in_ci,
        show_path=verbose,
    )


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the perfwatch logger tree.

    Args:
        verbose: DEBUG level, with source paths and locals in tracebacks
        quiet: Only errors (used with --json)
        log_file: Also append plain-text records to this file

    Returns:
        The root ``perfwatch`` logger
    """
    level = _resolve_level(verbose, quiet)

    handlers: list[logging.Handler] = [_console_handler(verbose)]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    # Request lines from the GitHub client are only interesting when debugging.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``perfwatch`` namespace (``__name__`` is the usual argument)."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
