"""Per-user workspace resolution on top of the sync engine."""

import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from .config import config
from .exceptions import InvalidStoragePathError
from .models import SyncResult
from .sync import SyncEngine, SyncOptions

logger = logging.getLogger(__name__)

MAX_STORAGE_PATH_DEPTH = 50

_SAFE_PATH_RE = re.compile(r"^[a-zA-Z0-9\-_/.]*$")


def validate_storage_path(storage_path: str) -> None:
    """Reject storage paths that could escape or confuse the user prefix.

    Args:
        storage_path: User-supplied path such as "/projects/demo"

    Raises:
        InvalidStoragePathError: If the path is unsafe
    """
    if ".." in storage_path:
        raise InvalidStoragePathError(
            "Invalid storage path: path traversal sequences ('..') are not allowed"
        )
    if "\0" in storage_path:
        raise InvalidStoragePathError("Invalid storage path: null bytes are not allowed")
    if not _SAFE_PATH_RE.match(storage_path):
        raise InvalidStoragePathError(
            "Invalid storage path: only alphanumeric characters, hyphens, "
            "underscores, dots, and forward slashes are allowed"
        )
    if storage_path.startswith("//"):
        raise InvalidStoragePathError(
            "Invalid storage path: protocol-relative paths are not allowed"
        )

    depth = len([part for part in storage_path.split("/") if part])
    if depth > MAX_STORAGE_PATH_DEPTH:
        raise InvalidStoragePathError(
            f"Invalid storage path: path depth exceeds maximum allowed ({MAX_STORAGE_PATH_DEPTH})"
        )


class WorkspaceSync:
    """Maps a (user, storage path) pair onto a :class:`SyncEngine`.

    Objects live under ``users/{user_id}/{storage_path}/`` and are synced
    into ``{workspace_root}/{storage_path}``, so stripping the workspace
    root from a local path yields the path the user sees in storage.
    """

    def __init__(
        self,
        user_id: str,
        storage_path: str,
        bucket: Optional[str] = None,
        workspace_root: Optional[Union[str, Path]] = None,
        region: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        **engine_options: Any,
    ):
        """Initialize the workspace.

        Args:
            user_id: Owner of the workspace
            storage_path: Path inside the user's storage ("/" for the root)
            bucket: Bucket name (uses config if not provided)
            workspace_root: Local root directory (uses config if not provided)
            region: AWS region (uses config if not provided)
            logger: Logger passed on to the engine
            **engine_options: Extra SyncOptions fields (e.g. storage_client)
        """
        normalized = storage_path.strip("/")
        prefix = f"users/{user_id}/{normalized}/" if normalized else f"users/{user_id}/"

        root = Path(workspace_root or config.workspace_directory)
        workspace_dir = root.joinpath(*normalized.split("/")) if normalized else root

        self.user_id = user_id
        self.storage_path = storage_path
        self._active_working_directory = workspace_dir

        self.engine = SyncEngine(
            SyncOptions(
                bucket=bucket or config.bucket or "",
                prefix=prefix,
                workspace_dir=workspace_dir,
                region=region or config.region,
                logger=logger,
                **engine_options,
            )
        )

    def start_initial_sync(self) -> None:
        """Start the initial pull in the background (non-blocking)."""
        self.engine.start_background_pull()

    def wait_for_initial_sync(self, timeout: Optional[float] = None) -> bool:
        """Block until the initial pull has settled."""
        return self.engine.wait_for_pull(timeout)

    def sync_to_s3(self) -> SyncResult:
        """Upload local changes (diff-based)."""
        return self.engine.push()

    def get_workspace_path(self) -> str:
        return self.engine.get_workspace_path()

    def get_active_working_directory(self) -> str:
        """Directory files are synced into, e.g. "/tmp/ws/dev2" for "/dev2"."""
        return str(self._active_working_directory)

    def close(self) -> None:
        self.engine.close()


def initialize_workspace_sync(
    user_id: str, storage_path: Optional[str], **kwargs: Any
) -> Optional[WorkspaceSync]:
    """Create a workspace and start its initial pull.

    Args:
        user_id: Owner of the workspace
        storage_path: Path inside the user's storage
        **kwargs: Passed on to WorkspaceSync

    Returns:
        WorkspaceSync, or None for anonymous users or without a storage path

    Raises:
        InvalidStoragePathError: If storage_path is unsafe
    """
    if not storage_path or user_id == "anonymous":
        return None

    validate_storage_path(storage_path)

    workspace = WorkspaceSync(user_id, storage_path, **kwargs)
    workspace.start_initial_sync()

    logger.info(
        "Initialized workspace sync: user_id=%s, storage_path=%s", user_id, storage_path
    )
    return workspace
