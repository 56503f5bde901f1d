"""
Run context captured from the GitHub Actions environment.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from rebuild_ci.errors import ConfigurationError, IOFailure

logger = logging.getLogger(__name__)


def _load_event(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning(f"Event payload {path} not found, continuing without it")
        return {}
    except (OSError, ValueError) as e:
        raise IOFailure(f"Could not read event payload {path}: {e}", path=path) from e


@dataclass(frozen=True)
class RunContext:
    """
    Identifies what triggered the run: commit, repository, actor and ref.

    Immutable once captured at pipeline start.
    """

    sha: str
    owner: str
    repo: str
    full_name: str
    html_url: str
    actor: str = "unknown"
    ref: str = ""
    number: Optional[int] = None
    deleted: bool = False
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunContext":
        """
        Build the context from Actions variables and the event payload.

        Payload values win over the plain variables.

        Args:
            environ: Variable mapping (default: ``os.environ``)

        Returns:
            New RunContext instance
        """
        env = os.environ if environ is None else environ
        payload = _load_event(env.get("GITHUB_EVENT_PATH"))

        repository = payload.get("repository") or {}
        full_name = repository.get("full_name") or env.get("GITHUB_REPOSITORY", "")
        sha = env.get("GITHUB_SHA") or payload.get("after") or ""

        if not sha or "/" not in full_name:
            raise ConfigurationError(
                "GITHUB_SHA and GITHUB_REPOSITORY (owner/name) are required to identify the run"
            )

        owner, repo = full_name.split("/", 1)
        server_url = env.get("GITHUB_SERVER_URL", "https://github.com")
        html_url = repository.get("html_url") or f"{server_url}/{full_name}"

        pusher = payload.get("pusher") or {}
        sender = payload.get("sender") or {}
        actor = pusher.get("name") or sender.get("login") or env.get("GITHUB_ACTOR") or "unknown"

        # Same lookup order as the Actions toolkit's context.issue()
        issue = payload.get("issue") or payload.get("pull_request") or payload
        number = issue.get("number")

        return cls(
            sha=sha,
            owner=owner,
            repo=repository.get("name") or repo,
            full_name=full_name,
            html_url=html_url,
            actor=actor,
            ref=payload.get("ref") or env.get("GITHUB_REF", ""),
            number=int(number) if number is not None else None,
            deleted=bool(payload.get("deleted", False)),
            payload=payload,
        )

    @property
    def branch(self) -> str:
        """Last segment of the ref, e.g. ``main`` for ``refs/heads/main``."""
        return self.ref.split("/")[-1] if self.ref else ""

    @property
    def link(self) -> str:
        """Pull request URL when there is one, otherwise the commit URL."""
        if self.number:
            return f"{self.html_url}/pull/{self.number}"
        return f"{self.html_url}/commit/{self.sha}"
