"""
Stages that run a named manifest script (``ci:test`` and ``ci:build``).
"""

from __future__ import annotations

from typing import Optional

from rebuild_ci.config import RebuildConfig
from rebuild_ci.manifest import BUILD_SCRIPT, TEST_SCRIPT, load_manifest
from rebuild_ci.models import BuildEnvironment, StageResult
from rebuild_ci.pipeline.stage import Stage, StageContext
from rebuild_ci.process import run_command


class ScriptStage(Stage):
    """
    Runs ``script`` from the manifest.

    A manifest without the script skips the stage instead of failing it, so
    projects that have not set up a stage still pass.
    """

    script: str = ""

    def should_skip(self, ctx: StageContext) -> Optional[str]:
        manifest = load_manifest(ctx.config.manifest_path)
        if manifest.script(self.script) is None:
            return f"No {self.script} command defined"
        return None

    def execute(self, ctx: StageContext) -> StageResult:
        command = load_manifest(ctx.config.manifest_path).script(self.script)
        result = run_command(
            command,
            cwd=ctx.config.workspace_path,
            stage=self.name,
            timeout=ctx.config.command_timeout,
        )
        return self.completed(summary=f"{self.script} passed", command=result.command)


class TestRunner(ScriptStage):
    """Runs the project's test suite."""

    __test__ = False

    name = "test"
    description = "Run the ci:test script"
    script = TEST_SCRIPT


class Builder(ScriptStage):
    """Builds the project for one environment."""

    description = "Run the ci:build script"
    script = BUILD_SCRIPT

    def __init__(self, environment: BuildEnvironment, config: Optional[RebuildConfig] = None) -> None:
        super().__init__(config=config)
        self.environment = environment
        self.name = f"build:{environment.name}"
