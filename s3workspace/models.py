"""Data models for S3 workspace sync."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .utils import calculate_file_hash


@dataclass(frozen=True)
class FileInfo:
    """Last known state of one synchronized file."""

    path: str
    """Relative path (forward slashes) from the workspace root"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time in epoch milliseconds"""

    hash: str
    """Hex MD5 digest of the file content"""

    @classmethod
    def from_path(cls, file_path: Path, relative_path: str) -> "FileInfo":
        """Stat and hash a local file.

        Args:
            file_path: Absolute path to the file
            relative_path: Path relative to the workspace root

        Returns:
            FileInfo instance
        """
        stat = file_path.stat()
        return cls(
            path=relative_path,
            size=stat.st_size,
            mtime=stat.st_mtime_ns / 1_000_000,
            hash=calculate_file_hash(file_path),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RemoteObject:
    """An object listed under the workspace prefix."""

    key: str
    """Full object key including the prefix"""

    size: int = 0
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None

    @classmethod
    def from_list_entry(cls, item: dict[str, Any]) -> "RemoteObject":
        """Create from one entry of a ListObjectsV2 ``Contents`` array."""
        etag = item.get("ETag")
        return cls(
            key=item["Key"],
            size=int(item.get("Size", 0)),
            etag=etag.strip('"') if etag else None,
            last_modified=item.get("LastModified"),
        )

    def relative_to(self, prefix: str) -> str:
        """Key with the workspace prefix removed."""
        if self.key.startswith(prefix):
            return self.key[len(prefix) :]
        return self.key


@dataclass
class SyncResult:
    """Outcome of one pull or push."""

    success: bool
    downloaded_files: int = 0
    uploaded_files: int = 0
    deleted_files: int = 0
    errors: list[str] = field(default_factory=list)
    duration: int = 0
    """Wall-clock duration in milliseconds"""

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "downloaded_files": self.downloaded_files,
            "uploaded_files": self.uploaded_files,
            "deleted_files": self.deleted_files,
            "errors": list(self.errors),
            "duration": self.duration,
        }
