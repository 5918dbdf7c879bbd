"""Root of the perfwatch exception tree."""

from typing import Dict, Optional


class PerfwatchError(Exception):
    """Base exception for all perfwatch errors.

    ``details`` carries the machine-readable context (paths, statuses) that
    is appended to the message when the error is logged or printed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in (details or {}).items() if v}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({context})"
