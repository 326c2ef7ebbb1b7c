"""Directory scanning utilities for sync operations."""

import logging
from pathlib import Path
from typing import Optional

from ..models import FileInfo
from .ignore import IgnoreFilter

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Scans a workspace and builds current file states.

    Paths matched by the shared :class:`IgnoreFilter` are skipped, as are
    symbolic links, so that nothing outside the workspace is synced.

    Examples:
        >>> scanner = DirectoryScanner(IgnoreFilter())
        >>> files = scanner.scan_local(Path("/tmp/ws"))
        >>> # Files matching *.log, node_modules/ etc. are excluded
    """

    def __init__(self, ignore_filter: IgnoreFilter, logger: Optional[logging.Logger] = None):
        """Initialize directory scanner.

        Args:
            ignore_filter: Filter shared with the sync engine
            logger: Logger for skipped entries
        """
        self.ignore_filter = ignore_filter
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def should_ignore(self, relative_path: str) -> bool:
        """Check if a relative path is excluded by the ignore rules."""
        if self.ignore_filter.is_ignored(relative_path):
            self.logger.debug("Ignoring (from rules): %s", relative_path)
            return True
        return False

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[FileInfo]:
        """Recursively scan a directory, hashing every non-ignored file.

        Args:
            directory: Directory to scan
            base_path: Base path for relative paths (defaults to directory)

        Returns:
            List of FileInfo objects with forward-slash relative paths
        """
        if base_path is None:
            base_path = directory
            if not directory.is_dir():
                return []

        files: list[FileInfo] = []

        try:
            entries = sorted(directory.iterdir())
        except PermissionError as e:
            self.logger.warning("Cannot read directory %s: %s", directory, e)
            return files

        for item in entries:
            if item.is_symlink():
                continue

            if item.is_dir():
                files.extend(self.scan_local(item, base_path))
            elif item.is_file():
                relative_path = item.relative_to(base_path).as_posix()
                if self.should_ignore(relative_path):
                    continue
                try:
                    files.append(FileInfo.from_path(item, relative_path))
                except OSError as e:
                    # Removed or unreadable since listing
                    self.logger.warning("Skipping unreadable file %s: %s", relative_path, e)

        return files
