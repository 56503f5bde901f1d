"""
Core data models for rebuild-ci.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    """Format a timestamp the way the checks API expects (``...Z``)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class CheckStatus(str, Enum):
    """Lifecycle of a check run."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckConclusion(str, Enum):
    """Final outcome attached to a completed check run."""

    SUCCESS = "success"
    FAILURE = "failure"


class NotificationKind(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


NOTIFICATION_COLORS = {
    NotificationKind.STARTED: "#FFDC00",
    NotificationKind.SUCCEEDED: "#01FF70",
    NotificationKind.FAILED: "#FF4136",
}


@dataclass(frozen=True)
class BuildEnvironment:
    """A deployment target with its own secret prefix."""

    name: str
    short_name: str
    prefix: str

    @property
    def title(self) -> str:
        return self.name.capitalize()


STAGING = BuildEnvironment(name="staging", short_name="staging", prefix="REBUILD_STAGING_")
PRODUCTION = BuildEnvironment(name="production", short_name="prod", prefix="REBUILD_PRODUCTION_")

DEFAULT_ENVIRONMENTS = (STAGING, PRODUCTION)


@dataclass
class CheckRun:
    """
    A check run on the triggering commit.

    Created by ``StatusReporter.start`` and handed back to
    ``StatusReporter.complete``; the id never lives anywhere else.
    """

    check_id: Optional[int] = None
    name: str = ""
    status: CheckStatus = CheckStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    conclusion: Optional[CheckConclusion] = None


@dataclass(frozen=True)
class NotificationEvent:
    """One outbound chat message."""

    kind: NotificationKind
    message: str

    @property
    def color(self) -> str:
        return NOTIFICATION_COLORS[self.kind]

    @classmethod
    def started(cls, message: str) -> "NotificationEvent":
        return cls(kind=NotificationKind.STARTED, message=message)

    @classmethod
    def succeeded(cls, message: str) -> "NotificationEvent":
        return cls(kind=NotificationKind.SUCCEEDED, message=message)

    @classmethod
    def failed(cls, message: str) -> "NotificationEvent":
        return cls(kind=NotificationKind.FAILED, message=message)


@dataclass
class StageResult:
    """Result of a pipeline stage execution."""

    stage_name: str
    status: StageStatus
    started_at: datetime
    completed_at: Optional[datetime] = None

    # Output
    summary: str = ""
    output: Dict[str, Any] = field(default_factory=dict)

    # Error handling
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    traceback: Optional[str] = None

    @classmethod
    def from_exception(
        cls, stage_name: str, started_at: datetime, exc: BaseException
    ) -> "StageResult":
        return cls(
            stage_name=stage_name,
            status=StageStatus.FAILED,
            started_at=started_at,
            completed_at=utcnow(),
            summary=f"Stage {stage_name} failed",
            error=str(exc),
            exception=exc,
            traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get stage duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def failure_message(self) -> str:
        """Error text followed by the traceback, as posted to GitHub."""
        if self.traceback:
            return f"{self.error}\n{self.traceback}"
        return self.error or ""
