"""
GitHub REST client for check runs and commit comments.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.errors import ConfigurationError, RemoteAPIFailure

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Minimal client for the endpoints the pipelines use.

    Every failed request raises RemoteAPIFailure; nothing is retried.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[RebuildConfig] = None,
    ) -> None:
        """
        Initialize the GitHub client.

        Args:
            token: Installation or personal access token
            base_url: API root (default: config.github_api_url)
            timeout: Request timeout in seconds
        """
        config = config or get_config()

        self.token = token or config.github_token
        if not self.token:
            raise ConfigurationError("GitHub token is required (GITHUB_TOKEN)")

        self.base_url = (base_url or config.github_api_url).rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or config.http_timeout,
            headers={
                "Authorization": f"token {self.token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": "rebuild-ci",
            },
        )

    def close(self) -> None:
        """Close the underlying httpx client."""
        self.client.close()

    def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteAPIFailure(
                "github",
                operation,
                f"{e.response.status_code} {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteAPIFailure("github", operation, str(e)) from e

        if not response.content:
            return {}
        return response.json()

    def create_check_run(self, owner: str, repo: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a check run.

        Returns:
            Created check run, including its ``id``
        """
        return self._request(
            "create_check_run", "POST", f"/repos/{owner}/{repo}/check-runs", json=params
        )

    def update_check_run(
        self, owner: str, repo: str, check_run_id: int, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update an existing check run."""
        return self._request(
            "update_check_run",
            "PATCH",
            f"/repos/{owner}/{repo}/check-runs/{check_run_id}",
            json=params,
        )

    def create_commit_comment(self, owner: str, repo: str, sha: str, body: str) -> Dict[str, Any]:
        """Comment on a commit."""
        return self._request(
            "create_commit_comment",
            "POST",
            f"/repos/{owner}/{repo}/commits/{sha}/comments",
            json={"body": body},
        )
