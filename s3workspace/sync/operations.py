"""Transfer primitives used by the sync engine."""

from pathlib import Path
from typing import Optional

from ..api import S3StorageClient
from ..models import FileInfo
from ..utils import ContentTypeResolver, guess_content_type


class SyncOperations:
    """Download, upload and delete single files for the engine.

    Every method runs on a limiter worker thread and touches only its own
    file, so none of them share state.
    """

    def __init__(
        self,
        storage_client: S3StorageClient,
        content_type_resolver: Optional[ContentTypeResolver] = None,
    ):
        """Initialize sync operations.

        Args:
            storage_client: Remote store client (or a compatible double)
            content_type_resolver: Maps a file name to a MIME type
        """
        self.storage_client = storage_client
        self.content_type_resolver = content_type_resolver or guess_content_type

    def download_file(self, key: str, local_path: Path, relative_path: str) -> FileInfo:
        """Download an object and describe the resulting local file.

        Args:
            key: Full object key
            local_path: Destination path
            relative_path: Path relative to the workspace root

        Returns:
            FileInfo of the written file (hashed after the write)
        """
        # Ensure parent directory exists
        local_path.parent.mkdir(parents=True, exist_ok=True)

        self.storage_client.download_object(key, local_path)
        return FileInfo.from_path(local_path, relative_path)

    def upload_file(self, local_path: Path, key: str) -> str:
        """Upload a local file.

        Args:
            local_path: File to upload
            key: Destination object key

        Returns:
            Content type the object was stored with
        """
        content_type = self.content_type_resolver(local_path.name)
        self.storage_client.upload_object(local_path, key, content_type=content_type)
        return content_type

    def delete_local(self, local_path: Path) -> None:
        """Delete a local file permanently."""
        local_path.unlink()
