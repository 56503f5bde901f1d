"""
Application environment variables: prefix filtering and the ``.env`` file.

Secrets reach the runner as ``REBUILD_*`` variables. The build only sees
them with the prefix stripped, written to ``.env`` in the workspace.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Sequence

from rebuild_ci.errors import IOFailure

logger = logging.getLogger(__name__)


def resolve_variables(
    environ: Mapping[str, str],
    prefixes: Sequence[str],
    exclude: Iterable[str] = (),
) -> Dict[str, str]:
    """
    Filter variables by prefix and strip it from the keys.

    Prefixes are ordered most specific first. When two prefixes produce the
    same stripped key, the more specific one wins, but the key keeps the
    position where it first appeared.

    Args:
        environ: Ambient variables
        prefixes: Prefixes to match, most specific first
        exclude: Prefixes whose variables are ignored entirely

    Returns:
        Ordered mapping of stripped key to value
    """
    exclude = tuple(exclude)
    resolved: Dict[str, str] = {}
    ranks: Dict[str, int] = {}

    for key, value in environ.items():
        if exclude and key.startswith(exclude):
            continue

        for rank, prefix in enumerate(prefixes):
            if not key.startswith(prefix):
                continue

            name = key[len(prefix):]
            if name and rank <= ranks.get(name, rank):
                resolved[name] = value
                ranks[name] = rank
            break

    return resolved


def render_env_file(variables: Mapping[str, str]) -> str:
    return "\n".join(f"{key}={value}" for key, value in variables.items())


def write_env_file(path: Path, variables: Mapping[str, str]) -> Path:
    """
    Write ``KEY=VALUE`` lines to ``path``, replacing any previous content.

    Raises:
        IOFailure: if the file cannot be written
    """
    path = Path(path)
    try:
        path.write_text(render_env_file(variables), encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not write environment file {path}: {e}", path=str(path)) from e

    logger.info(f"Wrote {len(variables)} variable(s) to {path}")
    return path
