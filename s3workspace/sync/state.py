"""In-memory snapshot of the last synchronized file states.

The snapshot records what the engine last observed for every path it
downloaded or uploaded. It is the baseline push() diffs against and
lives only as long as its engine.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import Optional

from ..models import FileInfo


class Snapshot:
    """Mapping of relative path to :class:`FileInfo`."""

    def __init__(self) -> None:
        self._files: dict[str, FileInfo] = {}
        self._lock = threading.Lock()

    def get(self, relative_path: str) -> Optional[FileInfo]:
        """Last known state of a path, or None if never synced."""
        with self._lock:
            return self._files.get(relative_path)

    def set(self, info: FileInfo) -> None:
        """Record the state of ``info.path``, replacing any previous entry."""
        with self._lock:
            self._files[info.path] = info

    def remove(self, relative_path: str) -> bool:
        """Forget a path.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            return self._files.pop(relative_path, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._files.clear()

    def __contains__(self, relative_path: object) -> bool:
        with self._lock:
            return relative_path in self._files

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __iter__(self) -> Iterator[FileInfo]:
        with self._lock:
            return iter(list(self._files.values()))
