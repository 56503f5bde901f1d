"""
Pipeline orchestration for sequential CI stages.
"""

from rebuild_ci.pipeline.core import Pipeline, PipelineResult
from rebuild_ci.pipeline.stage import Stage, StageContext

__all__ = [
    "Pipeline",
    "PipelineResult",
    "Stage",
    "StageContext",
]
