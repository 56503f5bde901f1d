"""
Concrete pipeline stages.

- EnvironmentWriter: writes ``.env`` from ``REBUILD_*`` secrets
- DependencyInstaller: installs dependencies
- TestRunner: runs ``ci:test``
- Builder: runs ``ci:build`` for one environment
- ArtifactUploader: publishes the build directory
"""

from rebuild_ci.stages.env_file import EnvironmentWriter, select_environments
from rebuild_ci.stages.install import DependencyInstaller
from rebuild_ci.stages.scripts import Builder, ScriptStage, TestRunner
from rebuild_ci.stages.upload import ArtifactUploader, bucket_name, iter_artifact_files

__all__ = [
    "ArtifactUploader",
    "Builder",
    "DependencyInstaller",
    "EnvironmentWriter",
    "ScriptStage",
    "TestRunner",
    "bucket_name",
    "iter_artifact_files",
    "select_environments",
]
