"""
Environment stage: selects secret prefixes and writes ``.env``.
"""

from __future__ import annotations

import os
from typing import Iterable, List, Mapping, Optional, Sequence

from rebuild_ci.config import ALL_ENVIRONMENTS_PREFIX, RebuildConfig
from rebuild_ci.environment import resolve_variables, write_env_file
from rebuild_ci.errors import ConfigurationError
from rebuild_ci.models import DEFAULT_ENVIRONMENTS, BuildEnvironment, StageResult
from rebuild_ci.pipeline.stage import Stage, StageContext


def select_environments(names: Optional[Iterable[str]] = None) -> List[BuildEnvironment]:
    """
    Pick deployment environments by name, keeping the default order.

    Args:
        names: Environment names or short names (default: all of them)

    Raises:
        ConfigurationError: for an unknown name
    """
    if names is None:
        return list(DEFAULT_ENVIRONMENTS)

    wanted = {name.lower() for name in names}
    known = {e.name for e in DEFAULT_ENVIRONMENTS} | {e.short_name for e in DEFAULT_ENVIRONMENTS}
    unknown = wanted - known
    if unknown:
        raise ConfigurationError(f"Unknown environment(s): {', '.join(sorted(unknown))}")

    return [e for e in DEFAULT_ENVIRONMENTS if e.name in wanted or e.short_name in wanted]


def prefix_rules(environment: Optional[BuildEnvironment]) -> Sequence[str]:
    """Prefixes for ``environment``, most specific first."""
    if environment is None:
        return (ALL_ENVIRONMENTS_PREFIX,)
    return (environment.prefix, ALL_ENVIRONMENTS_PREFIX)


def excluded_prefixes(environment: Optional[BuildEnvironment]) -> Sequence[str]:
    """Prefixes belonging to the other environments."""
    if environment is None:
        return ()
    return tuple(e.prefix for e in DEFAULT_ENVIRONMENTS if e != environment)


class EnvironmentWriter(Stage):
    """
    Writes the application's environment variables to disk.

    Without an environment every ``REBUILD_`` variable is written. With one,
    its own prefix overrides the shared ``REBUILD_`` values and the other
    environments' secrets are left out.
    """

    description = "Write application environment variables"

    def __init__(
        self,
        environment: Optional[BuildEnvironment] = None,
        environ: Optional[Mapping[str, str]] = None,
        config: Optional[RebuildConfig] = None,
    ) -> None:
        super().__init__(config=config)
        self.environment = environment
        self.environ = environ
        self.name = f"env:{environment.name}" if environment else "env"

    def execute(self, ctx: StageContext) -> StageResult:
        environ = os.environ if self.environ is None else self.environ

        variables = resolve_variables(
            environ,
            prefix_rules(self.environment),
            exclude=excluded_prefixes(self.environment),
        )
        path = write_env_file(ctx.config.env_file_path, variables)

        return self.completed(
            summary=f"Wrote {len(variables)} variable(s) to {path.name}",
            path=str(path),
            keys=list(variables),
        )
