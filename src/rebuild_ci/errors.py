"""
Exception hierarchy for rebuild-ci.
"""

from __future__ import annotations

from typing import Optional


class RebuildError(Exception):
    """Base class for every failure raised by a pipeline."""


class ConfigurationError(RebuildError):
    """A required option, environment variable or manifest field is missing."""


class BuildStepFailure(RebuildError):
    """A subprocess stage exited nonzero, failed to spawn, or timed out."""

    def __init__(
        self,
        stage: str,
        exit_code: Optional[int],
        stderr: str = "",
        command: Optional[str] = None,
    ) -> None:
        self.stage = stage
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command

        if exit_code is None:
            detail = f"Stage '{stage}' could not run"
        else:
            detail = f"Stage '{stage}' exited with code {exit_code}"
        if command:
            detail += f" ({command})"
        if stderr:
            detail += f"\n{stderr.strip()}"

        super().__init__(detail)


SubprocessFailure = BuildStepFailure


class IOFailure(RebuildError):
    """A filesystem read or write failed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)


class RemoteAPIFailure(RebuildError):
    """A call to GitHub, object storage or the chat webhook was rejected."""

    def __init__(
        self,
        service: str,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.service = service
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{service} {operation} failed: {message}")


class CheckRunStateError(RebuildError):
    """Illegal check-run transition, such as completing before starting."""
