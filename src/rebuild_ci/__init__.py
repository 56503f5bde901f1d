"""
rebuild-ci - CI pipelines for GitHub Actions.

Two workflows share one stage engine:
    run-tests: .env → install → ci:test, reported as a check run
    ship-it:   install → (.env → ci:build → upload) per environment → commit comment

Both post progress to a chat webhook.
"""

from rebuild_ci.config import configure, get_config, RebuildConfig
from rebuild_ci.context import RunContext
from rebuild_ci.pipeline import Pipeline, PipelineResult
from rebuild_ci.models import StageResult, StageStatus

__version__ = "0.1.0"

__all__ = [
    # Config
    "configure",
    "get_config",
    "RebuildConfig",
    # Pipeline
    "Pipeline",
    "PipelineResult",
    "RunContext",
    # Models
    "StageResult",
    "StageStatus",
    # Version
    "__version__",
]
