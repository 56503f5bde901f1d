"""
Check-run status reporting.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rebuild_ci.clients.github import GitHubClient
from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.errors import CheckRunStateError, RemoteAPIFailure
from rebuild_ci.models import CheckConclusion, CheckRun, CheckStatus, isoformat, utcnow

logger = logging.getLogger(__name__)

SUMMARIES = {
    CheckConclusion.SUCCESS: "Success",
    CheckConclusion.FAILURE: "Failure",
}


class StatusReporter:
    """
    Drives one check run through ``in_progress`` and ``completed``.

    Each transition happens at most once: `start` creates the check run,
    `complete` updates the record returned by `start`.
    """

    def __init__(self, github: GitHubClient, config: Optional[RebuildConfig] = None) -> None:
        self.github = github
        self.config = config or get_config()

    def start(self, run: RunContext) -> CheckRun:
        """
        Create the check run in ``in_progress``.

        Returns:
            CheckRun carrying the id needed by `complete`
        """
        started_at = utcnow()
        params: Dict[str, Any] = {
            "name": self.config.check_name,
            "head_sha": run.sha,
            "status": CheckStatus.IN_PROGRESS.value,
            "started_at": isoformat(started_at),
        }

        logger.info(f"Creating check run '{self.config.check_name}' on {run.sha}")
        created = self.github.create_check_run(run.owner, run.repo, params)

        check_id = created.get("id")
        if check_id is None:
            raise RemoteAPIFailure("github", "create_check_run", "response has no check run id")

        return CheckRun(
            check_id=check_id,
            name=self.config.check_name,
            status=CheckStatus.IN_PROGRESS,
            started_at=started_at,
        )

    def complete(
        self,
        run: RunContext,
        check_run: CheckRun,
        conclusion: CheckConclusion,
        message: Optional[str] = None,
    ) -> CheckRun:
        """
        Complete the check run with ``conclusion``.

        The record is marked completed before the request goes out, so a
        failed update is never attempted a second time.

        Args:
            run: The run context
            check_run: Record returned by `start`
            conclusion: Outcome of the pipeline
            message: Optional body shown as the check run output

        Raises:
            CheckRunStateError: if the check run is not in progress
        """
        if check_run.status is not CheckStatus.IN_PROGRESS or check_run.check_id is None:
            raise CheckRunStateError(
                f"Cannot complete check run in state {check_run.status.value}"
            )

        check_run.status = CheckStatus.COMPLETED
        check_run.conclusion = conclusion
        check_run.completed_at = utcnow()

        params: Dict[str, Any] = {
            "name": check_run.name,
            "head_sha": run.sha,
            "status": CheckStatus.COMPLETED.value,
            "conclusion": conclusion.value,
            "completed_at": isoformat(check_run.completed_at),
        }
        if check_run.started_at:
            params["started_at"] = isoformat(check_run.started_at)

        if message:
            params["output"] = {
                "title": check_run.name,
                "summary": SUMMARIES[conclusion],
                "text": message,
            }

        logger.info(f"Completing check run {check_run.check_id} with {conclusion.value}")
        self.github.update_check_run(run.owner, run.repo, check_run.check_id, params)
        return check_run
