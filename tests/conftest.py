import json

import pytest

from rebuild_ci.config import RebuildConfig, reset_config
from rebuild_ci.context import RunContext

CHAT_URL = "https://chat.example.com/hooks/ci"
GITHUB_API = "https://api.github.com"


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def write_manifest(workspace):
    def _write(scripts=None, **extra):
        data = dict(extra)
        if scripts is not None:
            data["scripts"] = scripts
        (workspace / "package.json").write_text(json.dumps(data))
        return workspace / "package.json"

    return _write


@pytest.fixture
def config(workspace):
    return RebuildConfig(
        workspace=workspace,
        github_token="test-token",
        chat_webhook_url=CHAT_URL,
        storage_endpoint="storage.example.com",
        install_command="true",
        upload_workers=2,
    )


@pytest.fixture
def run_context():
    return RunContext(
        sha="abc123def456",
        owner="octo",
        repo="site",
        full_name="octo/site",
        html_url="https://github.com/octo/site",
        actor="mona",
        ref="refs/heads/main",
    )
