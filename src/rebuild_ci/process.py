"""
Synchronous shell command execution for install, test and build stages.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from rebuild_ci.errors import BuildStepFailure

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a finished command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str


def _command_env(cwd: Path, extra: Optional[Mapping[str, str]]) -> dict:
    env = dict(os.environ)
    if extra:
        env.update(extra)
    # Same binary lookup that `npm run` gives package scripts
    bin_dir = str(Path(cwd) / "node_modules" / ".bin")
    env["PATH"] = os.pathsep.join(filter(None, [bin_dir, env.get("PATH", "")]))
    return env


def run_command(
    command: str,
    cwd: Path,
    stage: str,
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """
    Run ``command`` through the shell in ``cwd`` and wait for it to exit.

    Args:
        command: Shell command line
        cwd: Working directory
        stage: Stage name used in the failure
        timeout: Seconds before the command is killed (None waits forever)
        env: Extra environment variables

    Returns:
        CommandResult for a zero exit

    Raises:
        BuildStepFailure: on nonzero exit, spawn failure or timeout
    """
    logger.info(f"[{stage}] $ {command}")

    try:
        completed = subprocess.run(
            command,
            shell=True,
            cwd=str(cwd),
            env=_command_env(cwd, env),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise BuildStepFailure(
            stage, None, f"Timed out after {timeout}s", command=command
        ) from e
    except OSError as e:
        raise BuildStepFailure(stage, None, str(e), command=command) from e

    if completed.stdout:
        logger.debug(f"[{stage}] stdout:\n{completed.stdout.rstrip()}")
    if completed.stderr:
        logger.debug(f"[{stage}] stderr:\n{completed.stderr.rstrip()}")

    if completed.returncode != 0:
        raise BuildStepFailure(
            stage, completed.returncode, completed.stderr, command=command
        )

    logger.info(f"[{stage}] exited 0")
    return CommandResult(
        command=command,
        exit_code=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
