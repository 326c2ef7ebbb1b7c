"""Environment-backed configuration for S3 workspace sync."""

import os
from typing import Optional

from .utils import DEFAULT_DOWNLOAD_CONCURRENCY, DEFAULT_UPLOAD_CONCURRENCY

DEFAULT_REGION = "us-east-1"
DEFAULT_WORKSPACE_DIRECTORY = "/tmp/ws"


def _int_from_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    """Configuration resolved from environment variables.

    Values are read on every access so tests and long-running processes
    see changes to the environment.
    """

    @property
    def bucket(self) -> Optional[str]:
        """Bucket holding the workspaces."""
        return os.environ.get("S3_WORKSPACE_BUCKET") or os.environ.get(
            "USER_STORAGE_BUCKET_NAME"
        )

    @property
    def region(self) -> str:
        """AWS region used when no client is injected."""
        return (
            os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )

    @property
    def endpoint_url(self) -> Optional[str]:
        """Custom endpoint for S3-compatible services."""
        return os.environ.get("S3_WORKSPACE_ENDPOINT_URL") or None

    @property
    def workspace_directory(self) -> str:
        """Root directory under which workspaces are materialised."""
        return os.environ.get("WORKSPACE_DIRECTORY") or DEFAULT_WORKSPACE_DIRECTORY

    @property
    def download_concurrency(self) -> int:
        return _int_from_env(
            "S3_WORKSPACE_DOWNLOAD_CONCURRENCY", DEFAULT_DOWNLOAD_CONCURRENCY
        )

    @property
    def upload_concurrency(self) -> int:
        return _int_from_env(
            "S3_WORKSPACE_UPLOAD_CONCURRENCY", DEFAULT_UPLOAD_CONCURRENCY
        )

    def is_configured(self) -> bool:
        """Check whether a bucket is available.

        Returns:
            True if a bucket name is set in the environment
        """
        return bool(self.bucket)


config = Config()
