"""Minimal GitHub REST client for the tracking issue.

Only the calls the issue lifecycle needs: list open issues by label, create
an issue, comment, close, and create a label.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .exceptions import GitHubAPIError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class Issue:
    number: int
    title: str


class GitHubClient:
    """
    Issue operations on one repository.

    Usage::

        with GitHubClient(token, "owner/repo") as client:
            client.create_issue("Title", "Body", ["label"])
    """

    def __init__(
        self,
        token: str,
        repository: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise ValueError(f"repository must look like owner/repo, got {repository!r}")
        self.owner = owner
        self.repo = repo
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "perfwatch",
            },
        )

    @property
    def _issues_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/issues"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubAPIError(None, str(e), endpoint=f"{method} {path}") from e

        if resp.status_code >= 400:
            message = resp.reason_phrase
            try:
                payload = resp.json()
                if isinstance(payload, dict) and payload.get("message"):
                    message = str(payload["message"])
            except ValueError:
                pass
            raise GitHubAPIError(resp.status_code, message, endpoint=f"{method} {path}")

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def list_open_issues(self, label: str, per_page: int = 50) -> List[Issue]:
        data = self._request(
            "GET",
            self._issues_path,
            params={"state": "open", "labels": label, "per_page": per_page},
        )
        issues = []
        for item in data or []:
            # The issues endpoint also returns pull requests.
            if not isinstance(item, dict) or "pull_request" in item:
                continue
            issues.append(Issue(number=int(item["number"]), title=str(item.get("title", ""))))
        return issues

    def create_issue(self, title: str, body: str, labels: Sequence[str]) -> Issue:
        data = self._request(
            "POST",
            self._issues_path,
            json={"title": title, "body": body, "labels": list(labels)},
        )
        logger.info(f"Created issue #{data['number']}")
        return Issue(number=int(data["number"]), title=str(data.get("title", title)))

    def comment_on_issue(self, number: int, body: str) -> None:
        self._request("POST", f"{self._issues_path}/{number}/comments", json={"body": body})

    def close_issue(self, number: int) -> None:
        self._request("PATCH", f"{self._issues_path}/{number}", json={"state": "closed"})

    def create_label(self, name: str, color: str, description: str = "") -> None:
        payload: Dict[str, str] = {"name": name, "color": color}
        if description:
            payload["description"] = description
        self._request("POST", f"/repos/{self.owner}/{self.repo}/labels", json=payload)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
