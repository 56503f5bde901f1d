"""
Run context and configuration loading.
"""
import json
from pathlib import Path

import pytest

from rebuild_ci.config import RebuildConfig, configure, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.errors import ConfigurationError, IOFailure


@pytest.fixture
def event_file(tmp_path):
    def _write(payload):
        path = tmp_path / "event.json"
        path.write_text(json.dumps(payload))
        return str(path)

    return _write


# ---------------------------------------------------------------------------
# 1. RunContext
# ---------------------------------------------------------------------------
class TestRunContext:

    def test_push_event(self, event_file):
        environ = {
            "GITHUB_SHA": "deadbeef",
            "GITHUB_REPOSITORY": "octo/site",
            "GITHUB_EVENT_PATH": event_file({
                "ref": "refs/heads/feature/login",
                "repository": {
                    "name": "site",
                    "full_name": "octo/site",
                    "html_url": "https://github.example/octo/site",
                },
                "pusher": {"name": "mona"},
            }),
        }

        run = RunContext.from_env(environ)

        assert (run.owner, run.repo, run.sha) == ("octo", "site", "deadbeef")
        assert run.actor == "mona"
        assert run.branch == "login"
        assert run.number is None
        assert run.link == "https://github.example/octo/site/commit/deadbeef"
        assert run.deleted is False

    def test_pull_request_event_links_to_pull(self, event_file):
        environ = {
            "GITHUB_SHA": "deadbeef",
            "GITHUB_REPOSITORY": "octo/site",
            "GITHUB_ACTOR": "hubot",
            "GITHUB_EVENT_PATH": event_file({"pull_request": {"number": 12}}),
        }

        run = RunContext.from_env(environ)

        assert run.number == 12
        assert run.actor == "hubot"
        assert run.link == "https://github.com/octo/site/pull/12"

    def test_branch_delete_flag(self, event_file):
        environ = {
            "GITHUB_SHA": "0000000",
            "GITHUB_REPOSITORY": "octo/site",
            "GITHUB_EVENT_PATH": event_file({"deleted": True, "ref": "refs/heads/old"}),
        }
        assert RunContext.from_env(environ).deleted is True

    def test_missing_event_file_is_tolerated(self, tmp_path):
        environ = {
            "GITHUB_SHA": "deadbeef",
            "GITHUB_REPOSITORY": "octo/site",
            "GITHUB_EVENT_PATH": str(tmp_path / "absent.json"),
        }
        assert RunContext.from_env(environ).payload == {}

    def test_corrupt_event_file_raises(self, tmp_path):
        path = tmp_path / "event.json"
        path.write_text("{")
        environ = {
            "GITHUB_SHA": "deadbeef",
            "GITHUB_REPOSITORY": "octo/site",
            "GITHUB_EVENT_PATH": str(path),
        }
        with pytest.raises(IOFailure):
            RunContext.from_env(environ)

    def test_requires_sha_and_repository(self):
        with pytest.raises(ConfigurationError):
            RunContext.from_env({"GITHUB_REPOSITORY": "octo/site"})
        with pytest.raises(ConfigurationError):
            RunContext.from_env({"GITHUB_SHA": "deadbeef", "GITHUB_REPOSITORY": "site"})


# ---------------------------------------------------------------------------
# 2. Configuration
# ---------------------------------------------------------------------------
class TestConfig:

    def test_from_env(self):
        config = RebuildConfig.from_env({
            "GITHUB_WORKSPACE": "/work",
            "GITHUB_TOKEN": "t",
            "STORAGE_ENDPOINT": "nyc3.digitaloceanspaces.com",
            "INCOMING_SLACK": "https://hooks.example/x",
            "BUILD_DOMAIN": "example.dev",
            "CI_INSTALL_COMMAND": "yarn install --frozen-lockfile",
            "CI_COMMAND_TIMEOUT": "600",
            "CI_UPLOAD_WORKERS": "4",
        })

        assert config.workspace == Path("/work")
        assert config.env_file_path == Path("/work/.env")
        assert config.build_path == Path("/work/build")
        assert config.install_command == "yarn install --frozen-lockfile"
        assert config.command_timeout == 600.0
        assert config.upload_workers == 4
        assert config.chat_webhook_url == "https://hooks.example/x"
        assert config.build_domain == "example.dev"

    def test_defaults(self):
        config = RebuildConfig.from_env({})
        assert config.install_command == "npm install"
        assert config.command_timeout is None
        assert config.chat_webhook_url is None
        assert config.check_name == "rebuild tests"

    def test_bad_number_raises(self):
        with pytest.raises(ConfigurationError):
            RebuildConfig.from_env({"CI_UPLOAD_WORKERS": "many"})

    def test_require_lists_every_missing_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RebuildConfig().require("workspace", "github_token", "install_command")
        assert str(exc_info.value) == "Missing required configuration: workspace, github_token"

    def test_describe_masks_token(self):
        described = RebuildConfig(github_token="secret").describe()
        assert described["github_token"] == "********"
        assert described["storage_endpoint"] == "Not configured"

    def test_configure_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        config = configure(workspace=tmp_path, install_command="pnpm install")

        assert config.workspace == tmp_path
        assert config.github_token == "from-env"
        assert config.install_command == "pnpm install"
        assert get_config() is config
