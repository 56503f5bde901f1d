"""
End-to-end CI workflows: the stage pipelines plus their reporting.

Primary work (check-run creation, install, test, build, upload, the
deployment comment) aborts on the first failure. Reporting that a run
failed is best effort: its own errors are logged and swallowed so the
process always gets to exit with a nonzero code.
"""

from __future__ import annotations

import logging
import traceback
from typing import Callable, Iterable, Optional

from rebuild_ci.clients.github import GitHubClient
from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.models import CheckConclusion, CheckRun, CheckStatus, NotificationEvent
from rebuild_ci.pipeline import Pipeline, PipelineResult
from rebuild_ci.reporting.chat import ATTACHMENT_STYLE, TEXT_STYLE, ChatNotifier
from rebuild_ci.reporting.comments import CommentPoster, deployment_comment
from rebuild_ci.reporting.status import StatusReporter
from rebuild_ci.stages import select_environments

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class PipelineFailed(Exception):
    """Raised inside a workflow when a stage fails."""

    def __init__(self, result: PipelineResult) -> None:
        self.result = result
        failed = result.failed_stage
        super().__init__(failed.error if failed else "Pipeline failed")

    @property
    def message(self) -> str:
        failed = self.result.failed_stage
        return failed.failure_message if failed else str(self)


def failure_message(error: BaseException) -> str:
    """Error text followed by its stack, as shown on GitHub."""
    if isinstance(error, PipelineFailed):
        return error.message
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return f"{error}\n{stack}"


def best_effort(description: str, action: Callable[[], object]) -> None:
    """Run a reporting side effect, logging instead of raising on failure."""
    try:
        action()
    except Exception:
        logger.exception(f"Could not {description}")


class TestWorkflow:
    """
    ``run-tests``: check run, ``.env``, install, ``ci:test``.

    Reports ``in_progress`` before anything runs and ``completed`` with the
    outcome afterwards, with a chat message at start, success and failure.
    """

    __test__ = False

    def __init__(
        self,
        run: RunContext,
        config: Optional[RebuildConfig] = None,
        github: Optional[GitHubClient] = None,
        notifier: Optional[ChatNotifier] = None,
        pipeline: Optional[Pipeline] = None,
    ) -> None:
        self.run_context = run
        self.config = config or get_config()
        self._owns_github = github is None
        self.github = github or GitHubClient(config=self.config)
        self.status = StatusReporter(self.github, config=self.config)
        self._owns_notifier = notifier is None
        self.notifier = notifier or ChatNotifier("run-tests", style=TEXT_STYLE, config=self.config)
        self.pipeline = pipeline or Pipeline.tests(config=self.config)
        self.check_run: Optional[CheckRun] = None
        self.result: Optional[PipelineResult] = None

    def run(self) -> int:
        """
        Run the workflow.

        Returns:
            Process exit code
        """
        run = self.run_context
        try:
            self.config.require("workspace")
            self.check_run = self.status.start(run)
            self.notifier.notify(run, NotificationEvent.started("Test suite started."))

            self.result = self.pipeline.run(run)
            if not self.result.successful:
                raise PipelineFailed(self.result)

            self.status.complete(run, self.check_run, CheckConclusion.SUCCESS)
            self.notifier.notify(run, NotificationEvent.succeeded("Test suite completed."))
        except Exception as e:
            logger.error(f"Test run failed: {e}")
            self.on_failure(e)
            return EXIT_FAILURE
        finally:
            self.close()

        return EXIT_SUCCESS

    def close(self) -> None:
        """Close the HTTP clients this workflow created."""
        if self._owns_github:
            self.github.close()
        if self._owns_notifier:
            self.notifier.close()

    def on_failure(self, error: BaseException) -> None:
        run = self.run_context
        message = failure_message(error)

        check_run = self.check_run
        if check_run is not None and check_run.status is CheckStatus.IN_PROGRESS:
            best_effort(
                "report failure status",
                lambda: self.status.complete(run, check_run, CheckConclusion.FAILURE, message),
            )
        else:
            logger.warning("No check run in progress, skipping failure status")

        best_effort(
            "send failure notification",
            lambda: self.notifier.notify(run, NotificationEvent.failed("Test suite failed.")),
        )


class DeployWorkflow:
    """
    ``ship-it``: install, then build and upload each environment.

    Deployment links go to a commit comment and the chat webhook. Pushes
    that delete a branch end immediately.
    """

    def __init__(
        self,
        run: RunContext,
        config: Optional[RebuildConfig] = None,
        github: Optional[GitHubClient] = None,
        notifier: Optional[ChatNotifier] = None,
        pipeline: Optional[Pipeline] = None,
        environments: Optional[Iterable[str]] = None,
    ) -> None:
        self.run_context = run
        self.config = config or get_config()
        self.environments = select_environments(environments)
        self._owns_github = github is None
        self.github = github or GitHubClient(config=self.config)
        self.comments = CommentPoster(self.github)
        self._owns_notifier = notifier is None
        self.notifier = notifier or ChatNotifier(
            "ship-it", style=ATTACHMENT_STYLE, config=self.config
        )
        self.pipeline = pipeline or Pipeline.deploy(
            config=self.config, environments=[e.name for e in self.environments]
        )
        self.result: Optional[PipelineResult] = None

    def run(self) -> int:
        """
        Run the workflow.

        Returns:
            Process exit code
        """
        run = self.run_context
        if run.deleted:
            logger.info("Branch delete, terminating early.")
            self.close()
            return EXIT_SUCCESS

        try:
            self.config.require("workspace", "storage_endpoint")
            self.notifier.notify(run, NotificationEvent.started("Starting build."))

            self.result = self.pipeline.run(run)
            if not self.result.successful:
                raise PipelineFailed(self.result)

            urls = self.result.outputs.get("urls", {})
            self.comments.post(run, deployment_comment(self.environments, urls))
            self.notifier.notify(run, NotificationEvent.succeeded(self.success_message(urls)))
        except Exception as e:
            logger.error(f"Deploy failed: {e}")
            self.on_failure(e)
            return EXIT_FAILURE
        finally:
            self.close()

        return EXIT_SUCCESS

    def success_message(self, urls) -> str:
        lines = ["Build completed."]
        for environment in self.environments:
            lines.append(f"*{environment.title}* {urls.get(environment.name) or 'not built'}")
        return "\n".join(lines)

    def close(self) -> None:
        """Close the HTTP clients this workflow created."""
        if self._owns_github:
            self.github.close()
        if self._owns_notifier:
            self.notifier.close()

    def on_failure(self, error: BaseException) -> None:
        run = self.run_context
        message = failure_message(error)

        best_effort("post failure comment", lambda: self.comments.post(run, message))
        best_effort(
            "send failure notification",
            lambda: self.notifier.notify(run, NotificationEvent.failed("Build failed.")),
        )
