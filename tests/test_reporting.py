"""
Check runs, commit comments and chat notifications against mocked HTTP.
"""
import json

import httpx
import pytest
import respx

from rebuild_ci.clients.github import GitHubClient
from rebuild_ci.errors import CheckRunStateError, ConfigurationError, RemoteAPIFailure
from rebuild_ci.models import (
    PRODUCTION,
    STAGING,
    CheckConclusion,
    CheckRun,
    CheckStatus,
    NotificationEvent,
)
from rebuild_ci.reporting import ChatNotifier, CommentPoster, StatusReporter, deployment_comment

CHAT_URL = "https://chat.example.com/hooks/ci"
GITHUB_API = "https://api.github.com"

CHECK_RUNS = f"{GITHUB_API}/repos/octo/site/check-runs"


@pytest.fixture
def github(config):
    client = GitHubClient(config=config)
    yield client
    client.close()


# ---------------------------------------------------------------------------
# 1. Check runs
# ---------------------------------------------------------------------------
class TestStatusReporter:

    @respx.mock
    def test_start_creates_in_progress_check(self, github, config, run_context):
        route = respx.post(CHECK_RUNS).mock(return_value=httpx.Response(201, json={"id": 42}))

        check_run = StatusReporter(github, config=config).start(run_context)

        assert check_run.check_id == 42
        assert check_run.status is CheckStatus.IN_PROGRESS
        body = json.loads(route.calls.last.request.content)
        assert body["status"] == "in_progress"
        assert body["head_sha"] == "abc123def456"
        assert body["name"] == "rebuild tests"
        assert body["started_at"].endswith("Z")
        assert route.calls.last.request.headers["Authorization"] == "token test-token"

    @respx.mock
    def test_complete_updates_same_check_with_output(self, github, config, run_context):
        respx.post(CHECK_RUNS).mock(return_value=httpx.Response(201, json={"id": 42}))
        update = respx.patch(f"{CHECK_RUNS}/42").mock(return_value=httpx.Response(200, json={}))

        reporter = StatusReporter(github, config=config)
        check_run = reporter.start(run_context)
        reporter.complete(run_context, check_run, CheckConclusion.FAILURE, "boom\nstack")

        body = json.loads(update.calls.last.request.content)
        assert body["status"] == "completed"
        assert body["conclusion"] == "failure"
        assert "started_at" in body and "completed_at" in body
        assert body["output"] == {"title": "rebuild tests", "summary": "Failure", "text": "boom\nstack"}
        assert check_run.status is CheckStatus.COMPLETED

    @respx.mock
    def test_complete_without_message_has_no_output(self, github, config, run_context):
        update = respx.patch(f"{CHECK_RUNS}/7").mock(return_value=httpx.Response(200, json={}))
        check_run = CheckRun(check_id=7, name="rebuild tests", status=CheckStatus.IN_PROGRESS)

        StatusReporter(github, config=config).complete(
            run_context, check_run, CheckConclusion.SUCCESS
        )

        body = json.loads(update.calls.last.request.content)
        assert body["conclusion"] == "success"
        assert "output" not in body

    def test_complete_before_start_is_rejected(self, github, config, run_context):
        with pytest.raises(CheckRunStateError):
            StatusReporter(github, config=config).complete(
                run_context, CheckRun(), CheckConclusion.SUCCESS
            )

    @respx.mock
    def test_failed_update_is_not_attempted_twice(self, github, config, run_context):
        update = respx.patch(f"{CHECK_RUNS}/7").mock(return_value=httpx.Response(500))
        check_run = CheckRun(check_id=7, name="rebuild tests", status=CheckStatus.IN_PROGRESS)
        reporter = StatusReporter(github, config=config)

        with pytest.raises(RemoteAPIFailure) as exc_info:
            reporter.complete(run_context, check_run, CheckConclusion.SUCCESS)
        assert exc_info.value.status_code == 500

        with pytest.raises(CheckRunStateError):
            reporter.complete(run_context, check_run, CheckConclusion.FAILURE, "again")
        assert update.call_count == 1


class TestGitHubClient:

    def test_requires_token(self, config):
        config.github_token = None
        with pytest.raises(ConfigurationError):
            GitHubClient(config=config)

    @respx.mock
    def test_transport_error_is_remote_failure(self, github):
        respx.post(CHECK_RUNS).mock(side_effect=httpx.ConnectError("down"))
        with pytest.raises(RemoteAPIFailure, match="github create_check_run failed"):
            github.create_check_run("octo", "site", {})


# ---------------------------------------------------------------------------
# 2. Commit comments
# ---------------------------------------------------------------------------
class TestCommentPoster:

    @respx.mock
    def test_posts_on_commit(self, github, run_context):
        route = respx.post(f"{GITHUB_API}/repos/octo/site/commits/abc123def456/comments").mock(
            return_value=httpx.Response(201, json={"id": 1})
        )

        CommentPoster(github).post(run_context, "hello")

        assert json.loads(route.calls.last.request.content) == {"body": "hello"}

    def test_deployment_comment_lists_links(self):
        body = deployment_comment(
            [STAGING, PRODUCTION],
            {"staging": "https://s.example", "production": "https://p.example"},
        )
        assert body == (
            "## Deployments\n[Staging](https://s.example)\n[Production](https://p.example)"
        )

    def test_deployment_comment_marks_unbuilt(self):
        body = deployment_comment([STAGING, PRODUCTION], {})
        assert "Staging: not built" in body
        assert "Production: not built" in body


# ---------------------------------------------------------------------------
# 3. Chat
# ---------------------------------------------------------------------------
class TestChatNotifier:

    @respx.mock
    def test_text_style_payload(self, config, run_context):
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200))
        notifier = ChatNotifier("run-tests", config=config)

        assert notifier.notify(run_context, NotificationEvent.started("Test suite started."))

        payload = json.loads(route.calls.last.request.content)
        assert payload["color"] == "#FFDC00"
        assert payload["text"] == (
            "*octo/site run-tests triggered by mona*\n"
            "Test suite started.\n"
            "https://github.com/octo/site/commit/abc123def456"
        )

    @respx.mock
    def test_attachment_style_payload(self, config, run_context):
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200))
        notifier = ChatNotifier("ship-it", style="attachments", config=config)

        notifier.notify(run_context, NotificationEvent.failed("Build failed."))

        payload = json.loads(route.calls.last.request.content)
        assert payload == {
            "attachments": [
                {
                    "title": "[ship-it] on octo/site:main by mona",
                    "text": "Build failed.",
                    "color": "#FF4136",
                }
            ]
        }

    @respx.mock
    def test_delivery_failure_is_logged_not_raised(self, config, run_context, caplog):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(500))
        notifier = ChatNotifier("run-tests", config=config)

        assert notifier.notify(run_context, NotificationEvent.succeeded("done")) is False
        assert "Chat notification (succeeded) failed" in caplog.text

    @respx.mock
    def test_connection_error_is_swallowed(self, config, run_context):
        respx.post(CHAT_URL).mock(side_effect=httpx.ConnectError("refused"))
        assert ChatNotifier("run-tests", config=config).notify(
            run_context, NotificationEvent.succeeded("done")
        ) is False

    def test_unconfigured_webhook_sends_nothing(self, config, run_context):
        config.chat_webhook_url = None
        notifier = ChatNotifier("run-tests", config=config)
        assert not notifier.enabled
        assert notifier.notify(run_context, NotificationEvent.started("x")) is False

    def test_success_color(self):
        assert NotificationEvent.succeeded("ok").color == "#01FF70"

    def test_malformed_webhook_url_is_swallowed(self, config, run_context, caplog):
        config.chat_webhook_url = "https://hooks.example.com:notaport/ci"
        notifier = ChatNotifier("run-tests", config=config)

        assert notifier.notify(run_context, NotificationEvent.started("x")) is False
        assert "Chat notification (started) failed" in caplog.text

    def test_close_leaves_injected_client_open(self, config):
        client = httpx.Client()
        ChatNotifier("run-tests", client=client, config=config).close()
        assert not client.is_closed
        client.close()

        owned = ChatNotifier("run-tests", config=config)
        owned.close()
        assert owned.client.is_closed
