"""Utility functions for S3 workspace sync."""

import hashlib
import mimetypes
from pathlib import Path
from typing import Callable, Union

# =============================================================================
# Constants for sync operations
# =============================================================================

DEFAULT_DOWNLOAD_CONCURRENCY: int = 50
DEFAULT_UPLOAD_CONCURRENCY: int = 10

# ListObjectsV2 never returns more than 1000 keys per page
LIST_PAGE_SIZE: int = 1000

# Read/write buffer for hashing and streaming downloads (64 KB)
DEFAULT_CHUNK_SIZE: int = 64 * 1024

# Progress ticks are emitted only above these task counts
DOWNLOAD_PROGRESS_THRESHOLD: int = 100
UPLOAD_PROGRESS_THRESHOLD: int = 20

# At most this many ticks per operation
PROGRESS_TICKS: int = 20

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

ContentTypeResolver = Callable[[str], str]


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_file_hash(
    file_path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE
) -> str:
    """Calculate the MD5 digest of a file without loading it into memory.

    MD5 is used as a change-detection signal only, not for security.

    Args:
        file_path: Path to the file
        chunk_size: Number of bytes read per iteration

    Returns:
        Lowercase hexadecimal digest
    """
    digest = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Content-Type utilities
# =============================================================================

_CONTENT_TYPES: dict[str, str] = {
    # Text files
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "html": "text/html",
    "css": "text/css",
    "xml": "application/xml",
    # Programming languages
    "js": "application/javascript",
    "ts": "application/typescript",
    "json": "application/json",
    "py": "text/x-python",
    "java": "text/x-java",
    "cpp": "text/x-c++src",
    "c": "text/x-c",
    "go": "text/x-go",
    "rs": "text/x-rust",
    # Configuration files
    "yaml": "application/x-yaml",
    "yml": "application/x-yaml",
    "toml": "application/toml",
    "ini": "text/plain",
    "conf": "text/plain",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    ),
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    # Archives
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}


def guess_content_type(filename: str) -> str:
    """Guess the MIME type sent as Content-Type when uploading a file.

    Args:
        filename: File name (a path is accepted, only the name is used)

    Returns:
        MIME type string (defaults to 'application/octet-stream')

    Examples:
        >>> guess_content_type("notes.md")
        'text/markdown'
        >>> guess_content_type("photo.JPG")
        'image/jpeg'
        >>> guess_content_type("blob")
        'application/octet-stream'
    """
    name = Path(filename).name
    if "." in name:
        ext = name.rsplit(".", 1)[1].lower()
        if ext in _CONTENT_TYPES:
            return _CONTENT_TYPES[ext]

    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or DEFAULT_CONTENT_TYPE


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def progress_interval(total: int) -> int:
    """Number of completions between two progress ticks.

    Examples:
        >>> progress_interval(5)
        1
        >>> progress_interval(1000)
        50
    """
    return max(1, total // PROGRESS_TICKS)
