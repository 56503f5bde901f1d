"""
Project manifest (``package.json``) access.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from rebuild_ci.errors import ConfigurationError

TEST_SCRIPT = "ci:test"
BUILD_SCRIPT = "ci:build"


@dataclass
class Manifest:
    """The parts of the project descriptor the pipelines care about."""

    path: Path
    scripts: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)

    def script(self, name: str) -> Optional[str]:
        """Return the command for ``name``, or None when it is not defined."""
        command = self.scripts.get(name)
        if isinstance(command, str) and command.strip():
            return command
        return None


def load_manifest(path: Path) -> Manifest:
    """
    Read the manifest at ``path``.

    A missing ``scripts`` mapping is not an error; a missing or unreadable
    file is.

    Raises:
        ConfigurationError: if the file is absent or is not a JSON object
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Manifest not found: {path}")
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not parse manifest {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest {path} must contain a JSON object")

    scripts = data.get("scripts")
    if not isinstance(scripts, dict):
        scripts = {}

    return Manifest(path=path, scripts=scripts, data=data)
