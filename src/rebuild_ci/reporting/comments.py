"""
Commit comments with deployment links or failure details.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from rebuild_ci.clients.github import GitHubClient
from rebuild_ci.context import RunContext
from rebuild_ci.models import BuildEnvironment

logger = logging.getLogger(__name__)


def deployment_comment(
    environments: Sequence[BuildEnvironment], urls: Mapping[str, Optional[str]]
) -> str:
    """Markdown body listing one link per environment."""
    lines = ["## Deployments"]
    for environment in environments:
        url = urls.get(environment.name)
        if url:
            lines.append(f"[{environment.title}]({url})")
        else:
            lines.append(f"{environment.title}: not built")
    return "\n".join(lines)


class CommentPoster:
    """Posts one comment on the triggering commit. Comments are never edited."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def post(self, run: RunContext, body: str) -> None:
        logger.info(f"Commenting on {run.full_name}@{run.sha}")
        self.github.create_commit_comment(run.owner, run.repo, run.sha, body)
