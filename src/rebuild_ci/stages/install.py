"""
Dependency installation stage.
"""

from __future__ import annotations

from rebuild_ci.models import StageResult
from rebuild_ci.pipeline.stage import Stage, StageContext
from rebuild_ci.process import run_command


class DependencyInstaller(Stage):
    """Runs the install command (``npm install`` by default) in the workspace."""

    name = "install"
    description = "Install project dependencies"

    def execute(self, ctx: StageContext) -> StageResult:
        result = run_command(
            ctx.config.install_command,
            cwd=ctx.config.workspace_path,
            stage=self.name,
            timeout=ctx.config.command_timeout,
        )
        return self.completed(summary="Dependencies installed", command=result.command)
