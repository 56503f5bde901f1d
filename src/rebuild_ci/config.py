"""
Configuration management for rebuild-ci.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

from rebuild_ci.errors import ConfigurationError

_config: Optional["RebuildConfig"] = None

ALL_ENVIRONMENTS_PREFIX = "REBUILD_"

SECRET_FIELDS = ("github_token",)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Expected a number, got {value!r}")


def _int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass
class RebuildConfig:
    """Configuration for a single pipeline run."""

    # Workspace
    workspace: Optional[Path] = None
    manifest_file: str = "package.json"
    env_file: str = ".env"
    build_directory: str = "build"

    # Commands
    install_command: str = "npm install"
    command_timeout: Optional[float] = None

    # GitHub
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    check_name: str = "rebuild tests"

    # Object storage
    storage_endpoint: Optional[str] = None
    upload_workers: int = 8

    # Chat
    chat_webhook_url: Optional[str] = None

    # Informational
    build_domain: Optional[str] = None

    http_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RebuildConfig":
        """Create configuration from environment variables."""
        env = os.environ if environ is None else environ
        workspace = env.get("GITHUB_WORKSPACE")

        return cls(
            workspace=Path(workspace) if workspace else None,
            manifest_file=env.get("CI_MANIFEST_FILE", "package.json"),
            env_file=env.get("CI_ENV_FILE", ".env"),
            build_directory=env.get("CI_BUILD_DIRECTORY", "build"),
            install_command=env.get("CI_INSTALL_COMMAND", "npm install"),
            command_timeout=_optional_float(env.get("CI_COMMAND_TIMEOUT")),
            github_token=env.get("GITHUB_TOKEN") or None,
            github_api_url=env.get("GITHUB_API_URL", "https://api.github.com"),
            check_name=env.get("CI_CHECK_NAME", "rebuild tests"),
            storage_endpoint=env.get("STORAGE_ENDPOINT") or None,
            upload_workers=_int(env.get("CI_UPLOAD_WORKERS", "8"), "CI_UPLOAD_WORKERS"),
            chat_webhook_url=env.get("INCOMING_SLACK") or None,
            build_domain=env.get("BUILD_DOMAIN") or None,
            http_timeout=_optional_float(env.get("CI_HTTP_TIMEOUT")) or 30.0,
            log_level=env.get("CI_LOG_LEVEL", "INFO"),
        )

    def require(self, *names: str) -> None:
        """
        Fail fast when required options are unset.

        Args:
            names: Field names that must have a value

        Raises:
            ConfigurationError: listing every missing field
        """
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    @property
    def workspace_path(self) -> Path:
        self.require("workspace")
        return Path(self.workspace)

    @property
    def env_file_path(self) -> Path:
        return self.workspace_path / self.env_file

    @property
    def manifest_path(self) -> Path:
        return self.workspace_path / self.manifest_file

    @property
    def build_path(self) -> Path:
        return self.workspace_path / self.build_directory

    def describe(self) -> Dict[str, str]:
        """Field values for display, with secrets masked."""
        described = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in SECRET_FIELDS and value:
                described[f.name] = "********"
            elif value is None:
                described[f.name] = "Not configured"
            else:
                described[f.name] = str(value)
        return described


def configure(
    workspace: Optional[Path] = None,
    github_token: Optional[str] = None,
    storage_endpoint: Optional[str] = None,
    chat_webhook_url: Optional[str] = None,
    log_level: Optional[str] = None,
    **kwargs,
) -> RebuildConfig:
    """
    Configure rebuild-ci.

    Args:
        workspace: Checked-out project directory
        github_token: Token for the checks and comments APIs
        storage_endpoint: Object storage host, e.g. ``nyc3.digitaloceanspaces.com``
        chat_webhook_url: Incoming chat webhook
        log_level: Logging level

    Returns:
        The configured RebuildConfig instance
    """
    global _config

    config = RebuildConfig.from_env()

    if workspace is not None:
        config.workspace = Path(workspace)
    if github_token is not None:
        config.github_token = github_token
    if storage_endpoint is not None:
        config.storage_endpoint = storage_endpoint
    if chat_webhook_url is not None:
        config.chat_webhook_url = chat_webhook_url
    if log_level is not None:
        config.log_level = log_level

    # Handle any additional kwargs
    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    _config = config
    return config


def get_config() -> RebuildConfig:
    """Get the current configuration."""
    global _config
    if _config is None:
        _config = RebuildConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget the cached configuration."""
    global _config
    _config = None
