"""
Command-line interface for rebuild-ci.
"""

from __future__ import annotations

import json
import logging
import sys

import click

from rebuild_ci import __version__, configure
from rebuild_ci.config import get_config
from rebuild_ci.errors import ConfigurationError, RebuildError

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


def setup_logging(debug: bool = False) -> None:
    level = "DEBUG" if debug else get_config().log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level: {level}")
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


@click.group()
@click.version_option(version=__version__)
def main():
    """rebuild-ci - test and ship projects from GitHub Actions."""
    pass


@main.command("run-tests")
@click.option("--workspace", "-w", type=click.Path(file_okay=False), help="Project directory")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def run_tests(workspace, debug):
    """Install dependencies and run ci:test, reporting a check run."""
    from rebuild_ci.context import RunContext
    from rebuild_ci.workflows import TestWorkflow

    try:
        config = configure(workspace=workspace)
        setup_logging(debug)
        workflow = TestWorkflow(RunContext.from_env(), config=config)
    except RebuildError as e:
        click.echo(f"Cannot start run-tests: {e}", err=True)
        sys.exit(1)

    code = workflow.run()
    if workflow.result is not None:
        click.echo(workflow.result.summary())
    sys.exit(code)


@main.command("ship-it")
@click.option("--workspace", "-w", type=click.Path(file_okay=False), help="Project directory")
@click.option(
    "--environment",
    "-e",
    "environments",
    multiple=True,
    help="Environment to build (repeatable, default: staging and production)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def ship_it(workspace, environments, debug):
    """Build every environment, upload it and comment the links."""
    from rebuild_ci.context import RunContext
    from rebuild_ci.workflows import DeployWorkflow

    try:
        config = configure(workspace=workspace)
        setup_logging(debug)
        workflow = DeployWorkflow(
            RunContext.from_env(), config=config, environments=environments or None
        )
    except RebuildError as e:
        click.echo(f"Cannot start ship-it: {e}", err=True)
        sys.exit(1)

    code = workflow.run()
    if workflow.result is not None:
        click.echo(workflow.result.summary())
    sys.exit(code)


@main.command()
@click.option("--output", "-o", default="text", type=click.Choice(["text", "json"]))
def config(output):
    """Show current configuration."""
    described = get_config().describe()

    if output == "json":
        click.echo(json.dumps(described, indent=2))
        return

    click.echo("rebuild-ci Configuration")
    click.echo("=" * 40)
    for name, value in described.items():
        click.echo(f"{name}: {value}")


if __name__ == "__main__":
    main()
