"""Sync engine for s3workspace - bidirectional workspace/S3 synchronization."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .concurrency import ConcurrencyLimiter
from .engine import SyncEngine
from .ignore import (
    DEFAULT_IGNORE_PATTERNS,
    IGNORE_FILE_NAME,
    IgnoreFilter,
    IgnoreRule,
    load_ignore_file,
)
from .operations import SyncOperations
from .options import SyncOptions
from .progress import ProgressCallback, SyncPhase, SyncProgress, SyncProgressTracker
from .scanner import DirectoryScanner
from .state import Snapshot

__all__ = [
    "SyncEngine",
    "SyncOptions",
    "SyncOperations",
    "ConcurrencyLimiter",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "Snapshot",
    "SyncPhase",
    "SyncProgress",
    "SyncProgressTracker",
    "ProgressCallback",
    "IgnoreFilter",
    "IgnoreRule",
    "IGNORE_FILE_NAME",
    "DEFAULT_IGNORE_PATTERNS",
    "load_ignore_file",
]
