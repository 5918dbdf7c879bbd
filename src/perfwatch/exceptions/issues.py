"""Issue tracker exceptions."""

from typing import Optional

from .base import PerfwatchError

# Status returned by the GitHub API when a resource (e.g. a label) already exists.
ALREADY_EXISTS_STATUS = 422


class IssueTrackerError(PerfwatchError):
    """Base class for issue tracker failures."""
    pass


class GitHubAPIError(IssueTrackerError):
    """Raised when a GitHub REST call fails."""

    def __init__(self, status: Optional[int], message: str, endpoint: str = ""):
        details = {"endpoint": endpoint}
        if status is not None:
            details["status"] = str(status)
        super().__init__(f"GitHub API error: {message}", details=details)
        self.status = status
        self.endpoint = endpoint

    @property
    def already_exists(self) -> bool:
        return self.status == ALREADY_EXISTS_STATUS
