"""
Core pipeline orchestration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.models import StageResult, StageStatus, utcnow
from rebuild_ci.pipeline.stage import Stage, StageContext

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of a complete pipeline execution."""

    run: RunContext
    stage_results: List[StageResult] = field(default_factory=list)
    outputs: dict = field(default_factory=dict)
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    status: str = "running"

    @property
    def successful(self) -> bool:
        """Check if all stages completed successfully."""
        return all(
            r.status in (StageStatus.COMPLETED, StageStatus.SKIPPED) for r in self.stage_results
        )

    @property
    def failed_stage(self) -> Optional[StageResult]:
        """Get the first failed stage, if any."""
        for result in self.stage_results:
            if result.status == StageStatus.FAILED:
                return result
        return None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get total pipeline duration."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a summary of the pipeline execution."""
        lines = [
            f"Pipeline Result for {self.run.full_name}@{self.run.sha[:7]}",
            f"Status: {self.status}",
            f"Duration: {self.duration_seconds:.1f}s" if self.duration_seconds else "",
            "",
            "Stages:",
        ]

        for result in self.stage_results:
            status_icon = {
                StageStatus.COMPLETED: "✓",
                StageStatus.FAILED: "✗",
                StageStatus.SKIPPED: "○",
                StageStatus.PENDING: "·",
            }.get(result.status, "?")

            duration = f"({result.duration_seconds:.1f}s)" if result.duration_seconds else ""
            lines.append(f"  {status_icon} {result.stage_name} {duration}")
            if result.summary:
                lines.append(f"    {result.summary}")

        return "\n".join(lines)


class Pipeline:
    """
    Ordered sequence of stages.

    Stages run one at a time; the first failure stops the pipeline and no
    later stage executes.
    """

    def __init__(
        self,
        stages: Optional[List[Stage]] = None,
        config: Optional[RebuildConfig] = None,
        on_stage_complete: Optional[Callable[[StageResult], None]] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            stages: List of stages to execute
            config: Configuration shared with every stage
            on_stage_complete: Callback when a stage completes
        """
        self.config = config or get_config()
        self.stages = stages or []
        self.on_stage_complete = on_stage_complete

    @classmethod
    def tests(cls, config: Optional[RebuildConfig] = None) -> "Pipeline":
        """
        Create the test pipeline.

        Returns:
            Pipeline that writes ``.env``, installs and runs ``ci:test``
        """
        config = config or get_config()
        from rebuild_ci.stages import DependencyInstaller, EnvironmentWriter, TestRunner

        return cls(
            stages=[
                EnvironmentWriter(config=config),
                DependencyInstaller(config=config),
                TestRunner(config=config),
            ],
            config=config,
        )

    @classmethod
    def deploy(cls, config: Optional[RebuildConfig] = None, environments=None) -> "Pipeline":
        """
        Create the deploy pipeline.

        Environments are built one after another, in the order given.

        Returns:
            Pipeline that installs, then builds and uploads every environment
        """
        config = config or get_config()
        from rebuild_ci.stages import (
            ArtifactUploader,
            Builder,
            DependencyInstaller,
            EnvironmentWriter,
            select_environments,
        )

        stages: List[Stage] = [DependencyInstaller(config=config)]
        for environment in select_environments(environments):
            stages.extend([
                EnvironmentWriter(environment=environment, config=config),
                Builder(environment, config=config),
                ArtifactUploader(environment, config=config),
            ])

        return cls(stages=stages, config=config)

    def run(self, run: RunContext) -> PipelineResult:
        """
        Run the pipeline for a triggering commit.

        Args:
            run: The run context

        Returns:
            PipelineResult with all stage outcomes
        """
        result = PipelineResult(run=run)
        ctx = StageContext(run=run, config=self.config, outputs=result.outputs)

        logger.info(f"Starting pipeline for {run.full_name}@{run.sha}")

        for stage in self.stages:
            logger.info(f"Running stage: {stage.name}")

            stage_result = stage.run(ctx)
            result.stage_results.append(stage_result)
            ctx.previous_results.append(stage_result)

            # Notify completion
            if self.on_stage_complete:
                self.on_stage_complete(stage_result)

            if stage_result.status == StageStatus.FAILED:
                logger.error(f"Stage {stage.name} failed: {stage_result.error}")
                result.status = "failed"
                result.completed_at = utcnow()
                return result

        result.status = "completed"
        result.completed_at = utcnow()
        logger.info(f"Pipeline completed for {run.full_name}@{run.sha}")

        return result
