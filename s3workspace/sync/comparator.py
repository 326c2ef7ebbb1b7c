"""File comparison logic for push operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import FileInfo
from .state import Snapshot


class SyncAction(str, Enum):
    """Actions that can be taken for a local file during push."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the file"""

    current: FileInfo
    """State of the file as just scanned"""

    previous: Optional[FileInfo] = None
    """Snapshot entry the file was compared against (if any)"""


class FileComparator:
    """Compares scanned files against the snapshot to find changes.

    Content hash is the only change signal. Size and mtime are recorded
    but never trusted on their own, since neither survives container
    restarts or bind mounts reliably.
    """

    def compare(
        self, current_files: dict[str, FileInfo], snapshot: Snapshot
    ) -> list[SyncDecision]:
        """Decide an action for every scanned file.

        Args:
            current_files: Dictionary mapping relative path to scanned FileInfo
            snapshot: Last synchronized states

        Returns:
            List of SyncDecision objects, sorted by path
        """
        return [
            self._compare_single_file(path, current_files[path], snapshot.get(path))
            for path in sorted(current_files)
        ]

    def changed(
        self, current_files: dict[str, FileInfo], snapshot: Snapshot
    ) -> list[FileInfo]:
        """Files that need uploading."""
        return [
            decision.current
            for decision in self.compare(current_files, snapshot)
            if decision.action == SyncAction.UPLOAD
        ]

    def _compare_single_file(
        self, path: str, current: FileInfo, previous: Optional[FileInfo]
    ) -> SyncDecision:
        if previous is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                relative_path=path,
                current=current,
            )

        if previous.hash != current.hash:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="Content changed",
                relative_path=path,
                current=current,
                previous=previous,
            )

        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Unchanged since last sync",
            relative_path=path,
            current=current,
            previous=previous,
        )
