"""
Base stage definition for pipeline execution.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.models import StageResult, StageStatus, utcnow

logger = logging.getLogger(__name__)


@dataclass
class StageContext:
    """Context passed to stages during execution."""

    run: RunContext
    config: RebuildConfig
    previous_results: List[StageResult] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)

    def get_result(self, stage_name: str) -> Optional[StageResult]:
        """Get result from a previous stage."""
        for result in self.previous_results:
            if result.stage_name == stage_name:
                return result
        return None


class Stage(ABC):
    """
    Base class for pipeline stages.

    Subclasses implement `execute`. Raising from `execute` fails the stage;
    `run` turns the exception into a failed StageResult.
    """

    name: str = "base"
    description: str = "Base stage"

    def __init__(self, config: Optional[RebuildConfig] = None) -> None:
        self._config = config

    @property
    def config(self) -> RebuildConfig:
        return self._config if self._config is not None else get_config()

    @abstractmethod
    def execute(self, ctx: StageContext) -> StageResult:
        """
        Execute the stage.

        Args:
            ctx: Stage context with run details and previous results

        Returns:
            StageResult with execution outcome
        """
        ...

    def should_skip(self, ctx: StageContext) -> Optional[str]:
        """
        Check if this stage should be skipped.

        Override to implement skip logic based on context.

        Returns:
            Reason for skipping, or None to run the stage
        """
        return None

    def completed(self, summary: str = "", **output: Any) -> StageResult:
        return StageResult(
            stage_name=self.name,
            status=StageStatus.COMPLETED,
            started_at=utcnow(),
            summary=summary,
            output=output,
        )

    def run(self, ctx: StageContext) -> StageResult:
        """
        Run the stage with timing and error handling.

        Args:
            ctx: Stage context

        Returns:
            StageResult with execution outcome
        """
        started_at = utcnow()

        try:
            reason = self.should_skip(ctx)
            if reason:
                logger.info(f"Skipping {self.name}: {reason}")
                return StageResult(
                    stage_name=self.name,
                    status=StageStatus.SKIPPED,
                    started_at=started_at,
                    completed_at=utcnow(),
                    summary=reason,
                )

            result = self.execute(ctx)
            result.started_at = started_at
            result.completed_at = utcnow()
            return result

        except Exception as e:
            return StageResult.from_exception(self.name, started_at, e)
