"""Core sync engine keeping a local directory consistent with an S3 prefix."""

import logging
import os
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Union

from ..api import S3StorageClient
from ..exceptions import S3OperationError, SyncInProgressError
from ..models import FileInfo, RemoteObject, SyncResult
from ..utils import (
    DOWNLOAD_PROGRESS_THRESHOLD,
    UPLOAD_PROGRESS_THRESHOLD,
    format_size,
    progress_interval,
)
from .comparator import FileComparator
from .concurrency import ConcurrencyLimiter
from .ignore import IgnoreFilter
from .operations import SyncOperations
from .options import SyncOptions
from .progress import ProgressCallback, SyncPhase, SyncProgress, SyncProgressTracker
from .scanner import DirectoryScanner
from .state import Snapshot

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class SyncEngine:
    """Bidirectional sync between a workspace directory and an S3 prefix.

    ``pull()`` makes the local directory mirror the prefix: it downloads
    every object, deletes local files that no longer exist remotely and
    reloads the workspace ``.syncignore``. ``push()`` uploads files whose
    content hash differs from the last synchronized state.

    Transfers run on two bounded worker pools (downloads and uploads).
    Only the calling thread updates the snapshot, counters and progress.
    Operations on one engine must not overlap; starting a second
    ``pull()``/``push()`` while one runs raises :class:`SyncInProgressError`.

    Examples:
        >>> engine = SyncEngine(bucket="b", prefix="users/1/", workspace_dir="/tmp/ws")
        >>> engine.start_background_pull()
        >>> # ... do other work ...
        >>> engine.wait_for_pull()
        >>> result = engine.push()
        >>> print(f"Uploaded {result.uploaded_files} files")
    """

    def __init__(
        self,
        options: Optional[Union[SyncOptions, dict]] = None,
        **kwargs: Any,
    ):
        """Initialize sync engine.

        Args:
            options: SyncOptions (or a dict accepted by SyncOptions.from_dict)
            **kwargs: SyncOptions fields, when options is not given

        Raises:
            SyncConfigError: If bucket, prefix or directory is missing
        """
        if options is None:
            options = SyncOptions.from_dict(kwargs)
        elif kwargs:
            raise TypeError("Pass either options or keyword arguments, not both")
        elif isinstance(options, dict):
            options = SyncOptions.from_dict(options)

        self.options = options
        self.bucket = options.bucket
        self.prefix = options.prefix
        self.workspace_dir = Path(options.workspace_dir)
        self.logger = options.logger if options.logger is not None else logger

        self._owns_client = options.storage_client is None and options.s3_client is None
        if options.storage_client is not None:
            self.storage_client = options.storage_client
        else:
            self.storage_client = S3StorageClient(
                options.bucket,
                region=options.region,
                endpoint_url=options.endpoint_url,
                client=options.s3_client,
                max_pool_connections=max(
                    options.download_concurrency, options.upload_concurrency
                ),
            )

        self.operations = SyncOperations(
            self.storage_client, options.content_type_resolver
        )
        self.ignore_filter = IgnoreFilter(options.ignore_patterns, logger=self.logger)
        self.scanner = DirectoryScanner(self.ignore_filter, logger=self.logger)
        self.comparator = FileComparator()
        self.snapshot = Snapshot()
        self.progress = SyncProgressTracker()

        self._download_limiter = ConcurrencyLimiter(
            options.download_concurrency, name="download"
        )
        self._upload_limiter = ConcurrencyLimiter(
            options.upload_concurrency, name="upload"
        )

        self._operation_lock = threading.Lock()
        self._pull_complete = threading.Event()
        self._pull_future: Optional[Future] = None
        self._background_executor: Optional[ThreadPoolExecutor] = None

        self.logger.info(
            "Initialized: bucket=%s, prefix=%s, dir=%s",
            self.bucket,
            self.prefix,
            self.workspace_dir,
        )

    # =========================
    # Public API
    # =========================

    def get_workspace_path(self) -> str:
        """Local directory this engine synchronizes."""
        return str(self.workspace_dir)

    def subscribe(self, callback: ProgressCallback) -> None:
        """Receive progress ticks from every subsequent pull/push."""
        self.progress.subscribe(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        self.progress.unsubscribe(callback)

    def pull(self, progress_callback: Optional[ProgressCallback] = None) -> SyncResult:
        """Make the local directory mirror the remote prefix.

        Per-file download failures are collected in the result; the
        remaining files are still transferred.

        Args:
            progress_callback: Optional callback receiving this call's ticks

        Returns:
            SyncResult with downloaded and deleted counts

        Raises:
            S3OperationError: If the remote prefix cannot be listed
            SyncInProgressError: If another pull or push is running
        """
        with self._exclusive("pull"):
            result = self._pull(progress_callback)
        self._pull_complete.set()
        return result

    def push(self, progress_callback: Optional[ProgressCallback] = None) -> SyncResult:
        """Upload new and changed local files.

        Waits for an outstanding background pull first, so the diff is
        taken against the pulled baseline.

        Args:
            progress_callback: Optional callback receiving this call's ticks

        Returns:
            SyncResult with the uploaded count

        Raises:
            SyncInProgressError: If another pull or push is running
        """
        self.wait_for_pull()
        with self._exclusive("push"):
            return self._push(progress_callback)

    def start_background_pull(self) -> None:
        """Start ``pull()`` on a background thread and return immediately.

        A failure is logged, never raised to waiters, and still marks the
        pull as complete. Calling this while a background pull is running
        has no effect.
        """
        if self._pull_future is not None and not self._pull_future.done():
            self.logger.debug("Background pull already running")
            return

        if self._background_executor is None:
            self._background_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="background-pull"
            )
        self._pull_complete.clear()
        self.logger.info("Starting background pull")
        self._pull_future = self._background_executor.submit(self._background_pull)

    def wait_for_pull(self, timeout: Optional[float] = None) -> bool:
        """Block until the background pull has settled.

        Returns immediately when no background pull was started.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if no pull is outstanding, False if the timeout expired
        """
        if self._pull_complete.is_set() or self._pull_future is None:
            return True
        self.logger.debug("Waiting for background pull to complete...")
        return self._pull_complete.wait(timeout)

    def is_pull_complete(self) -> bool:
        """Non-blocking check whether a pull has finished."""
        return self._pull_complete.is_set()

    def close(self) -> None:
        """Wait for running work and release worker pools and connections."""
        if self._background_executor is not None:
            self._background_executor.shutdown(wait=True)
            self._background_executor = None
        self._download_limiter.shutdown()
        self._upload_limiter.shutdown()
        if self._owns_client:
            self.storage_client.close()

    def __enter__(self) -> "SyncEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # =========================
    # Internals
    # =========================

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if not self._operation_lock.acquire(blocking=False):
            raise SyncInProgressError(
                f"Cannot start {operation}: another sync operation is in progress"
            )
        try:
            yield
        finally:
            self._operation_lock.release()

    def _background_pull(self) -> None:
        try:
            result = self.pull()
            self.logger.info(
                "Background pull completed: %d files downloaded in %dms",
                result.downloaded_files,
                result.duration,
            )
        except Exception:
            self.logger.exception("Background pull failed")
        finally:
            self._pull_complete.set()

    def _emit(
        self,
        phase: SyncPhase,
        current: int,
        total: int,
        current_file: str,
        callback: Optional[ProgressCallback],
    ) -> None:
        progress = SyncProgress.create(phase, current, total, current_file)
        self.logger.info(
            "%s progress: %d/%d (%d%%)",
            phase.value.capitalize(),
            current,
            total,
            progress.percentage,
        )
        self.progress.emit(progress, extra=callback)

    def _local_path(self, relative_path: str) -> Path:
        return self.workspace_dir.joinpath(*relative_path.split("/"))

    # ----- pull -----

    def _pull(self, progress_callback: Optional[ProgressCallback]) -> SyncResult:
        start = time.monotonic()
        result = SyncResult(success=True)
        self.logger.info("Starting pull from s3://%s/%s", self.bucket, self.prefix)

        try:
            self.workspace_dir.mkdir(parents=True, exist_ok=True)
            tasks = self._list_remote()
        except Exception as e:
            self.logger.error("Pull failed: %s", e)
            raise S3OperationError(f"Pull failed: {e}", e) from e

        remote_paths = {relative for _, relative in tasks}
        self._download_all(tasks, result, progress_callback)

        result.deleted_files = self._cleanup_local_only(remote_paths)

        self.ignore_filter.load_from_workspace(self.workspace_dir)

        result.success = not result.errors
        result.duration = _elapsed_ms(start)
        self.logger.info(
            "Pull completed: %d downloaded, %d deleted in %dms",
            result.downloaded_files,
            result.deleted_files,
            result.duration,
        )
        if result.errors:
            self.logger.warning("Pull finished with %d errors", len(result.errors))
        return result

    def _list_remote(self) -> list[tuple[RemoteObject, str]]:
        """List downloadable objects as (object, relative path) pairs."""
        tasks: list[tuple[RemoteObject, str]] = []
        for obj in self.storage_client.list_objects(self.prefix):
            # Directory markers
            if obj.key == self.prefix or obj.key.endswith("/"):
                continue

            relative = obj.relative_to(self.prefix)
            parts = relative.split("/")
            if any(part in ("", ".", "..") for part in parts):
                self.logger.warning("Skipping key outside workspace: %s", obj.key)
                continue

            if self.ignore_filter.is_ignored(relative):
                self.logger.debug("Skipping ignored key: %s", relative)
                continue

            tasks.append((obj, relative))
        return tasks

    def _download_one(self, task: tuple[RemoteObject, str]) -> tuple[FileInfo, float]:
        obj, relative = task
        start = time.monotonic()
        info = self.operations.download_file(obj.key, self._local_path(relative), relative)
        return info, time.monotonic() - start

    def _download_all(
        self,
        tasks: list[tuple[RemoteObject, str]],
        result: SyncResult,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        total = len(tasks)
        self.logger.info(
            "Found %d files to download (concurrency: %d)",
            total,
            self._download_limiter.limit,
        )
        if not tasks:
            return

        report = total > DOWNLOAD_PROGRESS_THRESHOLD
        interval = progress_interval(total)
        completed = 0
        downloaded_bytes = 0

        for (obj, relative), future in self._download_limiter.run_all(
            self._download_one, tasks
        ):
            try:
                info, elapsed = future.result()
            except Exception as e:
                message = f"Failed to download {obj.key}: {e}"
                self.logger.error(message)
                result.errors.append(message)
            else:
                self.snapshot.set(info)
                result.downloaded_files += 1
                downloaded_bytes += info.size
                self.logger.debug("Downloaded %s in %.2fs", relative, elapsed)

            completed += 1
            if report and completed % interval == 0:
                self._emit(SyncPhase.DOWNLOAD, completed, total, relative, progress_callback)

        self.logger.info(
            "Downloaded %d of %d files (%s)",
            result.downloaded_files,
            total,
            format_size(downloaded_bytes),
        )

    def _cleanup_local_only(self, remote_paths: set[str]) -> int:
        """Delete local files absent from the remote listing.

        Returns:
            Number of files deleted
        """
        deleted = 0
        for dirpath, _dirnames, filenames in os.walk(self.workspace_dir, topdown=False):
            current = Path(dirpath)
            for name in filenames:
                path = current / name
                if path.is_symlink():
                    continue
                relative = path.relative_to(self.workspace_dir).as_posix()

                if self.ignore_filter.is_ignored(relative):
                    self.logger.debug("Skipping ignored file during cleanup: %s", relative)
                    continue
                if relative in remote_paths:
                    continue

                try:
                    self.operations.delete_local(path)
                except OSError as e:
                    self.logger.error("Failed to delete %s: %s", relative, e)
                    continue

                self.snapshot.remove(relative)
                deleted += 1
                self.logger.info("Deleted local-only file: %s", relative)

            if current != self.workspace_dir:
                try:
                    current.rmdir()
                    self.logger.debug("Removed empty directory: %s", current)
                except OSError:
                    # Not empty
                    pass

        return deleted

    # ----- push -----

    def _push(self, progress_callback: Optional[ProgressCallback]) -> SyncResult:
        start = time.monotonic()
        self.logger.info("Starting push to s3://%s/%s", self.bucket, self.prefix)

        try:
            scanned = self.scanner.scan_local(self.workspace_dir)
        except Exception as e:
            message = f"Push failed: {e}"
            self.logger.error(message)
            return SyncResult(success=False, errors=[message], duration=_elapsed_ms(start))

        current_files = {info.path: info for info in scanned}
        changed = self.comparator.changed(current_files, self.snapshot)

        if not changed:
            self.logger.info("No files to upload")
            return SyncResult(success=True, duration=_elapsed_ms(start))

        result = SyncResult(success=True)
        self._upload_all(changed, result, progress_callback)

        result.success = not result.errors
        result.duration = _elapsed_ms(start)
        self.logger.info(
            "Push completed: %d files uploaded in %dms",
            result.uploaded_files,
            result.duration,
        )
        if result.errors:
            self.logger.warning("Push finished with %d errors", len(result.errors))
        return result

    def _upload_one(self, info: FileInfo) -> float:
        start = time.monotonic()
        self.operations.upload_file(self._local_path(info.path), self.prefix + info.path)
        return time.monotonic() - start

    def _upload_all(
        self,
        files: list[FileInfo],
        result: SyncResult,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        total = len(files)
        self.logger.info(
            "Found %d files to upload (concurrency: %d)",
            total,
            self._upload_limiter.limit,
        )

        report = total > UPLOAD_PROGRESS_THRESHOLD
        interval = progress_interval(total)
        completed = 0

        for info, future in self._upload_limiter.run_all(self._upload_one, files):
            try:
                elapsed = future.result()
            except Exception as e:
                message = f"Failed to upload {info.path}: {e}"
                self.logger.error(message)
                result.errors.append(message)
            else:
                self.snapshot.set(info)
                result.uploaded_files += 1
                if not report:
                    self.logger.debug("Uploaded %s in %.2fs", info.path, elapsed)

            completed += 1
            if report and completed % interval == 0:
                self._emit(SyncPhase.UPLOAD, completed, total, info.path, progress_callback)
