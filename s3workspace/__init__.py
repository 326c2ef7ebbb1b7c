"""S3 Workspace Sync - keep a local workspace directory in sync with an S3 prefix."""

from .api import S3StorageClient
from .exceptions import (
    InvalidStoragePathError,
    S3DownloadError,
    S3NetworkError,
    S3NotFoundError,
    S3OperationError,
    S3PermissionError,
    S3UploadError,
    S3WorkspaceError,
    SyncConfigError,
    SyncInProgressError,
)
from .models import FileInfo, RemoteObject, SyncResult
from .sync import SyncEngine, SyncOptions, SyncProgress
from .utils import calculate_file_hash, guess_content_type

__version__ = "0.1.0"

__all__ = [
    "S3StorageClient",
    "SyncEngine",
    "SyncOptions",
    "SyncProgress",
    "FileInfo",
    "RemoteObject",
    "SyncResult",
    "S3WorkspaceError",
    "S3OperationError",
    "S3NotFoundError",
    "S3PermissionError",
    "S3NetworkError",
    "S3DownloadError",
    "S3UploadError",
    "SyncConfigError",
    "SyncInProgressError",
    "InvalidStoragePathError",
    "calculate_file_hash",
    "guess_content_type",
]
