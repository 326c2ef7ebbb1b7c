"""Exception hierarchy for S3 workspace sync."""

from typing import Optional


class S3WorkspaceError(Exception):
    """Base exception for all s3workspace errors."""


class SyncConfigError(S3WorkspaceError):
    """Raised when required sync configuration is missing or invalid."""


class SyncInProgressError(S3WorkspaceError):
    """Raised when a pull or push is started while another one is running."""


class InvalidStoragePathError(S3WorkspaceError, ValueError):
    """Raised when a workspace storage path fails validation."""


class S3OperationError(S3WorkspaceError):
    """Raised when an operation against the object store fails.

    Args:
        message: Human-readable description
        cause: Underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class S3NotFoundError(S3OperationError):
    """Bucket or object does not exist."""


class S3PermissionError(S3OperationError):
    """Access to the bucket or object was denied."""


class S3NetworkError(S3OperationError):
    """Connection or transport failure talking to the object store."""


class S3DownloadError(S3OperationError):
    """Object could not be downloaded or written to disk."""


class S3UploadError(S3OperationError):
    """Local file could not be uploaded."""
