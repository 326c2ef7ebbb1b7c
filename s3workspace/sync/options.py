"""Configuration for a sync engine."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import SyncConfigError
from ..utils import (
    DEFAULT_DOWNLOAD_CONCURRENCY,
    DEFAULT_UPLOAD_CONCURRENCY,
    ContentTypeResolver,
)

# camelCase spellings accepted by from_dict()
_KEY_ALIASES = {
    "bucketName": "bucket",
    "localDir": "workspace_dir",
    "workspaceDir": "workspace_dir",
    "endpointUrl": "endpoint_url",
    "downloadConcurrency": "download_concurrency",
    "uploadConcurrency": "upload_concurrency",
    "ignorePatterns": "ignore_patterns",
    "contentTypeResolver": "content_type_resolver",
    "storageClient": "storage_client",
    "s3Client": "s3_client",
}


@dataclass
class SyncOptions:
    """Everything a :class:`SyncEngine` needs, with documented defaults.

    Each collaborator (logger, content-type resolver, storage client) can
    be overridden, which is how tests substitute an in-memory store.

    Examples:
        >>> opts = SyncOptions(bucket="b", prefix="u/1", workspace_dir="/tmp/ws")
        >>> opts.prefix
        'u/1/'
        >>> opts.download_concurrency, opts.upload_concurrency
        (50, 10)
    """

    bucket: str
    """Bucket holding the workspace"""

    prefix: str
    """Key prefix of the workspace, always ending with '/'"""

    workspace_dir: Union[str, Path]
    """Local directory mirrored from the prefix"""

    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    download_concurrency: int = DEFAULT_DOWNLOAD_CONCURRENCY
    """Maximum simultaneous downloads"""

    upload_concurrency: int = DEFAULT_UPLOAD_CONCURRENCY
    """Maximum simultaneous uploads"""

    ignore_patterns: list[str] = field(default_factory=list)
    """Gitignore-style patterns layered over the defaults"""

    logger: Optional[logging.Logger] = None
    content_type_resolver: Optional[ContentTypeResolver] = None

    storage_client: Any = None
    """Pre-built S3StorageClient (or compatible double)"""

    s3_client: Any = None
    """Raw boto3 S3 client to wrap instead of creating one"""

    def __post_init__(self) -> None:
        if not self.bucket:
            raise SyncConfigError("bucket is required")
        if not self.prefix:
            raise SyncConfigError("prefix is required")
        if not self.workspace_dir:
            raise SyncConfigError("workspace_dir is required")
        if self.download_concurrency < 1:
            raise SyncConfigError(
                f"download_concurrency must be at least 1, got {self.download_concurrency}"
            )
        if self.upload_concurrency < 1:
            raise SyncConfigError(
                f"upload_concurrency must be at least 1, got {self.upload_concurrency}"
            )

        if not self.prefix.endswith("/"):
            self.prefix = f"{self.prefix}/"
        self.workspace_dir = Path(self.workspace_dir)
        self.ignore_patterns = list(self.ignore_patterns or [])

    @classmethod
    def from_dict(cls, data: dict) -> "SyncOptions":
        """Create options from a dictionary with camelCase or snake_case keys.

        Raises:
            SyncConfigError: If required keys are missing or a key is unknown
        """
        known = set(cls.__dataclass_fields__)
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise SyncConfigError(f"Unknown sync option: {key}")
            kwargs[name] = value

        for required in ("bucket", "prefix", "workspace_dir"):
            kwargs.setdefault(required, "")
        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Serializable subset of the options (collaborators are omitted)."""
        return {
            "bucket": self.bucket,
            "prefix": self.prefix,
            "workspace_dir": str(self.workspace_dir),
            "region": self.region,
            "endpoint_url": self.endpoint_url,
            "download_concurrency": self.download_concurrency,
            "upload_concurrency": self.upload_concurrency,
            "ignore_patterns": list(self.ignore_patterns),
        }
