"""
Artifact upload stage.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator, Optional, Tuple

from rebuild_ci.clients.storage import ObjectStorage
from rebuild_ci.config import RebuildConfig
from rebuild_ci.context import RunContext
from rebuild_ci.errors import IOFailure, RemoteAPIFailure
from rebuild_ci.models import BuildEnvironment, StageResult, StageStatus
from rebuild_ci.pipeline.stage import Stage, StageContext

logger = logging.getLogger(__name__)


def bucket_name(run: RunContext, environment: BuildEnvironment) -> str:
    """``{repo}-{sha}-{environment}``, lowercased as bucket names require."""
    return f"{run.repo}-{run.sha}-{environment.short_name}".lower()


def iter_artifact_files(root: Path) -> Iterator[Tuple[Path, str]]:
    """
    Walk ``root`` depth-first and yield every regular file.

    Yields:
        ``(path, key)`` where key is the POSIX path relative to ``root``
    """
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file():
                yield path, path.relative_to(root).as_posix()


class ArtifactUploader(Stage):
    """
    Uploads the build directory to a public bucket for one environment.

    Every upload is waited on before the stage returns, so the URL it
    reports always points at a complete artifact.
    """

    description = "Upload build artifacts to object storage"

    def __init__(
        self,
        environment: BuildEnvironment,
        storage: Optional[ObjectStorage] = None,
        config: Optional[RebuildConfig] = None,
    ) -> None:
        super().__init__(config=config)
        self.environment = environment
        self.name = f"upload:{environment.name}"
        self._storage = storage

    @property
    def storage(self) -> ObjectStorage:
        if self._storage is None:
            self._storage = ObjectStorage(config=self.config)
        return self._storage

    def should_skip(self, ctx: StageContext) -> Optional[str]:
        build = ctx.get_result(f"build:{self.environment.name}")
        if build is None or build.status != StageStatus.COMPLETED:
            return f"Nothing built for {self.environment.name}"
        return None

    def _upload(self, bucket: str, path: Path, key: str) -> str:
        content_type, _ = mimetypes.guess_type(path.name)
        try:
            body = path.read_bytes()
        except OSError as e:
            raise IOFailure(f"Could not read artifact {path}: {e}", path=str(path)) from e

        self.storage.put_object(bucket, key, body, content_type=content_type)
        logger.debug(f"Uploaded {key} to {bucket}")
        return key

    def execute(self, ctx: StageContext) -> StageResult:
        root = ctx.config.build_path
        if not root.is_dir():
            raise IOFailure(f"Build directory {root} does not exist", path=str(root))

        bucket = bucket_name(ctx.run, self.environment)
        self.storage.create_bucket(bucket)

        files = list(iter_artifact_files(root))
        logger.info(f"Uploading {len(files)} file(s) to {bucket}")

        failed = []
        with ThreadPoolExecutor(max_workers=max(1, ctx.config.upload_workers)) as pool:
            futures = {key: pool.submit(self._upload, bucket, path, key) for path, key in files}
            for key, future in futures.items():
                error = future.exception()
                if error is not None:
                    logger.error(f"Upload of {key} failed: {error}")
                    failed.append(key)

        if failed:
            raise RemoteAPIFailure(
                "storage",
                "put_object",
                f"{len(failed)} of {len(files)} upload(s) failed: {', '.join(failed)}",
            )

        url = self.storage.public_url(bucket)
        ctx.outputs.setdefault("urls", {})[self.environment.name] = url

        return self.completed(
            summary=f"Uploaded {len(files)} file(s) to {url}",
            bucket=bucket,
            url=url,
            keys=[key for _, key in files],
        )
