"""
GitHub REST API client.

Thin synchronous wrapper over httpx used by repository import, analysis,
recap, report and todo generation.
"""

import base64
import logging
import re
from datetime import datetime
from typing import Any, Optional

import httpx

from github_agent.config import settings
from github_agent.exceptions import GitHubAPIError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

_GITHUB_URL_RE = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s#?]+)")


def parse_github_url(url: str) -> tuple[str, str]:
    """
    Extract (owner, repo) from a GitHub URL.

    Accepts https and ssh forms, with or without a trailing ".git".

    Raises:
        ValueError: If the URL does not point at a GitHub repository
    """
    match = _GITHUB_URL_RE.search(url or "")
    if not match:
        raise ValueError(f"Not a GitHub repository URL: {url}")
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp ("2024-05-01T12:00:00Z")."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def commit_date(commit: dict[str, Any]) -> Optional[datetime]:
    """Author date of a commit as returned by the commits API."""
    author = (commit.get("commit") or {}).get("author") or {}
    return parse_timestamp(author.get("date"))


class GitHubClient:
    """
    HTTP client for the GitHub REST API.

    Every non-2xx response raises GitHubAPIError; callers decide whether a
    failure is fatal or should fall back to defaults.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.token = token if token is not None else settings.github_token
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "github-agent",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.Client(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = self._client.get(path, params=clean)
        except httpx.HTTPError as e:
            raise GitHubAPIError(0, str(e), path) from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GitHubAPIError(response.status_code, message, path)
        return response.json()

    # Repositories

    def get_authenticated_user(self) -> dict[str, Any]:
        return self._get("/user")

    def list_user_repos(
        self,
        page: int = 1,
        per_page: int = 100,
        visibility: str = "all",
        sort: str = "updated",
    ) -> list[dict[str, Any]]:
        return self._get(
            "/user/repos",
            {"page": page, "per_page": per_page, "visibility": visibility, "sort": sort},
        )

    def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}")

    def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        return self._get(f"/repos/{owner}/{repo}/languages")

    def list_contributors(
        self, owner: str, repo: str, per_page: int = 100
    ) -> list[dict[str, Any]]:
        return self._get(f"/repos/{owner}/{repo}/contributors", {"per_page": per_page})

    # Contents

    def get_contents(self, owner: str, repo: str, path: str = "") -> Any:
        return self._get(f"/repos/{owner}/{repo}/contents/{path}")

    def get_file_text(self, owner: str, repo: str, path: str) -> Optional[str]:
        """
        Fetch and decode a file's contents.

        Returns:
            Decoded text, or None if the file does not exist
        """
        try:
            data = self.get_contents(owner, repo, path)
        except GitHubAPIError as e:
            if e.status_code == 404:
                return None
            raise
        if not isinstance(data, dict) or "content" not in data:
            return None
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    # Activity

    def list_commits(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        per_page: int = 100,
    ) -> list[dict[str, Any]]:
        return self._get(
            f"/repos/{owner}/{repo}/commits",
            {"since": _iso(since), "until": _iso(until), "per_page": per_page},
        )

    def get_commit(self, owner: str, repo: str, sha: str) -> dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}/commits/{sha}")

    def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        since: Optional[datetime] = None,
        per_page: int = 50,
    ) -> list[dict[str, Any]]:
        """List issues. GitHub includes pull requests here (entries with a
        "pull_request" key)."""
        return self._get(
            f"/repos/{owner}/{repo}/issues",
            {"state": state, "since": _iso(since), "per_page": per_page},
        )

    def list_pulls(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        per_page: int = 30,
    ) -> list[dict[str, Any]]:
        return self._get(
            f"/repos/{owner}/{repo}/pulls",
            {
                "state": state,
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
            },
        )

    def list_workflow_runs(
        self, owner: str, repo: str, per_page: int = 1
    ) -> list[dict[str, Any]]:
        data = self._get(
            f"/repos/{owner}/{repo}/actions/runs", {"per_page": per_page}
        )
        return data.get("workflow_runs", [])
