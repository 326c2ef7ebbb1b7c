"""Progress reporting for pull and push operations.

Each engine owns a :class:`SyncProgressTracker`. Subscribers receive
immutable :class:`SyncProgress` ticks; the engine emits at most about
twenty ticks per operation regardless of the number of files.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Transfer direction a tick belongs to."""

    DOWNLOAD = "download"
    UPLOAD = "upload"


@dataclass(frozen=True)
class SyncProgress:
    """A single progress tick."""

    phase: SyncPhase
    current: int
    total: int
    percentage: int
    current_file: Optional[str] = None

    @classmethod
    def create(
        cls,
        phase: SyncPhase,
        current: int,
        total: int,
        current_file: Optional[str] = None,
    ) -> "SyncProgress":
        """Build a tick, deriving the rounded percentage.

        Examples:
            >>> SyncProgress.create(SyncPhase.UPLOAD, 1, 3).percentage
            33
            >>> SyncProgress.create(SyncPhase.UPLOAD, 0, 0).percentage
            0
        """
        percentage = round(current / total * 100) if total > 0 else 0
        return cls(
            phase=phase,
            current=current,
            total=total,
            percentage=percentage,
            current_file=current_file,
        )


ProgressCallback = Callable[[SyncProgress], None]


class SyncProgressTracker:
    """Publish/subscribe channel for progress ticks."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        """Initialize the tracker.

        Args:
            callback: Optional first subscriber
        """
        self._subscribers: list[ProgressCallback] = []
        self._lock = threading.Lock()
        if callback is not None:
            self.subscribe(callback)

    def subscribe(self, callback: ProgressCallback) -> None:
        """Register a subscriber. Registering twice has no effect."""
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        """Remove a subscriber. Unknown callbacks are ignored."""
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(
        self, progress: SyncProgress, extra: Optional[ProgressCallback] = None
    ) -> None:
        """Deliver a tick to every subscriber, then to ``extra``.

        A subscriber that raises is logged and skipped.

        Args:
            progress: The tick
            extra: Per-call callback passed to pull()/push()
        """
        with self._lock:
            targets = list(self._subscribers)
        if extra is not None and extra not in targets:
            targets.append(extra)

        for callback in targets:
            try:
                callback(progress)
            except Exception:
                logger.exception("Progress subscriber %r failed", callback)
