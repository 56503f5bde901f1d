"""
S3-compatible object storage client for build artifacts.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.errors import RemoteAPIFailure

logger = logging.getLogger(__name__)

PUBLIC_READ = "public-read"

# Creating a bucket we already own is fine on re-runs of the same commit
_OWNED_BUCKET_CODES = {"BucketAlreadyOwnedByYou"}


def _describe(error: Exception) -> str:
    if isinstance(error, ClientError):
        info = error.response.get("Error", {})
        return f"{info.get('Code', 'Unknown')}: {info.get('Message', '')}".strip()
    return str(error)


class ObjectStorage:
    """Wraps a boto3 S3 client pointed at the configured endpoint."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        client: Any = None,
        config: Optional[RebuildConfig] = None,
    ) -> None:
        """
        Initialize object storage.

        Args:
            endpoint: Storage host without scheme, e.g. ``nyc3.digitaloceanspaces.com``
            client: Pre-built S3 client (default: one created with boto3)
        """
        config = config or get_config()

        self.endpoint = endpoint or config.storage_endpoint
        if client is None:
            config.require("storage_endpoint")
            client = boto3.client("s3", endpoint_url=f"https://{self.endpoint}")
        self.client = client

    def public_url(self, bucket: str) -> str:
        return f"https://{bucket}.{self.endpoint}"

    def create_bucket(self, bucket: str) -> None:
        """
        Create ``bucket``.

        Raises:
            RemoteAPIFailure: on any error except the bucket already being ours
        """
        try:
            self.client.create_bucket(Bucket=bucket)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in _OWNED_BUCKET_CODES:
                logger.info(f"Bucket {bucket} already exists, reusing it")
                return
            raise RemoteAPIFailure("storage", "create_bucket", _describe(e)) from e
        except BotoCoreError as e:
            raise RemoteAPIFailure("storage", "create_bucket", _describe(e)) from e

        logger.info(f"Created bucket {bucket}")

    def put_object(
        self, bucket: str, key: str, body: bytes, content_type: Optional[str] = None
    ) -> None:
        """Upload ``body`` as a publicly readable object."""
        params = {"Bucket": bucket, "Key": key, "Body": body, "ACL": PUBLIC_READ}
        if content_type:
            params["ContentType"] = content_type

        try:
            self.client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            raise RemoteAPIFailure("storage", "put_object", f"{key}: {_describe(e)}") from e
