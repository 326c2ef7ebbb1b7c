"""Client for the S3-compatible object store holding the workspaces."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
import threading
from collections.abc import Generator
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .exceptions import (
    S3DownloadError,
    S3NetworkError,
    S3NotFoundError,
    S3OperationError,
    S3PermissionError,
    S3UploadError,
)
from .models import RemoteObject
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_CONTENT_TYPE, LIST_PAGE_SIZE

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchBucket", "NoSuchKey", "NotFound", "404"}
_PERMISSION_CODES = {"AccessDenied", "AllAccessDisabled", "Forbidden", "403"}


def _read_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# Process-wide, so read once at import rather than from worker threads
_UMASK = _read_umask()


def _target_mode(path: Path) -> int:
    """Permission bits for a downloaded file.

    An existing file keeps its mode, a new one gets the default
    ``0o666 & ~umask`` an ordinary ``open()`` would give it.
    """
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return 0o666 & ~_UMASK


class S3StorageClient:
    """Thin wrapper around a boto3 S3 client bound to one bucket."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        profile_name: str | None = None,
        client: Any = None,
        max_attempts: int = 3,
        max_pool_connections: int = 50,
    ):
        """Initialize the storage client.

        Args:
            bucket: Bucket name
            region: AWS region (uses config if not provided)
            endpoint_url: Optional endpoint for S3-compatible services
            profile_name: Optional AWS profile name
            client: Pre-built boto3 S3 client (or a test double)
            max_attempts: Total attempts per request in botocore's retry mode
            max_pool_connections: Size of the HTTP connection pool, should be
                at least the highest transfer concurrency
        """
        self.bucket = bucket
        self.region = region or config.region
        self.endpoint_url = endpoint_url or config.endpoint_url
        self.profile_name = profile_name
        self.max_attempts = max_attempts
        self.max_pool_connections = max_pool_connections

        self._client = client
        self._client_lock = threading.Lock()

    def _get_client(self) -> Any:
        """Get or create the boto3 client."""
        with self._client_lock:
            if self._client is None:
                session = boto3.session.Session(
                    profile_name=self.profile_name, region_name=self.region
                )
                self._client = session.client(
                    "s3",
                    endpoint_url=self.endpoint_url,
                    config=BotoConfig(
                        retries={"max_attempts": self.max_attempts, "mode": "standard"},
                        max_pool_connections=self.max_pool_connections,
                    ),
                )
                logger.debug(
                    "Created S3 client (region=%s, endpoint=%s)",
                    self.region,
                    self.endpoint_url,
                )
            return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        with self._client_lock:
            if self._client is not None and hasattr(self._client, "close"):
                self._client.close()
            self._client = None

    def _translate_error(self, e: Exception, message: str) -> S3OperationError:
        """Map a botocore exception to an s3workspace exception.

        Args:
            e: The botocore exception
            message: Context prepended to the error text

        Returns:
            Exception to raise (chained by the caller)
        """
        if isinstance(e, ClientError):
            error = e.response.get("Error", {})
            code = str(error.get("Code", ""))
            detail = error.get("Message") or code or str(e)
            if code in _NOT_FOUND_CODES:
                return S3NotFoundError(f"{message}: {detail}", e)
            if code in _PERMISSION_CODES:
                return S3PermissionError(f"{message}: {detail}", e)
            return S3OperationError(f"{message}: {detail}", e)
        if isinstance(e, BotoCoreError):
            return S3NetworkError(f"{message}: {e}", e)
        return S3OperationError(f"{message}: {e}", e)

    # =========================
    # Listing
    # =========================

    def iter_object_pages(
        self, prefix: str, page_size: int = LIST_PAGE_SIZE
    ) -> Generator[list[RemoteObject], None, None]:
        """Iterate over the objects under a prefix one page at a time.

        Args:
            prefix: Key prefix to list
            page_size: Maximum keys per page (capped at 1000 by the service)

        Yields:
            Lists of RemoteObject, one per ListObjectsV2 page

        Raises:
            S3OperationError: If a page cannot be fetched
        """
        client = self._get_client()
        continuation_token: str | None = None
        page_num = 0

        while True:
            kwargs: dict[str, Any] = {
                "Bucket": self.bucket,
                "Prefix": prefix,
                "MaxKeys": min(page_size, LIST_PAGE_SIZE),
            }
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token

            try:
                response = client.list_objects_v2(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise self._translate_error(
                    e, f"Failed to list s3://{self.bucket}/{prefix}"
                ) from e

            page_num += 1
            contents = response.get("Contents") or []
            logger.debug("List page %d: %d object(s)", page_num, len(contents))
            yield [RemoteObject.from_list_entry(item) for item in contents]

            continuation_token = response.get("NextContinuationToken")
            if not continuation_token:
                break

    def list_objects(self, prefix: str) -> list[RemoteObject]:
        """List every object under a prefix.

        Args:
            prefix: Key prefix to list

        Returns:
            All objects across all pages
        """
        objects: list[RemoteObject] = []
        for page in self.iter_object_pages(prefix):
            objects.extend(page)
        return objects

    # =========================
    # Transfers
    # =========================

    def download_object(
        self, key: str, local_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> int:
        """Stream an object body to a local file.

        The body is written to a temporary file next to the target and
        renamed into place once complete.

        Args:
            key: Object key
            local_path: Destination path (parent must exist)
            chunk_size: Bytes per streamed chunk

        Returns:
            Number of bytes written

        Raises:
            S3DownloadError: If the body is missing or cannot be written
            S3OperationError: If the request fails
        """
        client = self._get_client()
        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"Failed to get {key}") from e

        body = response.get("Body")
        if body is None:
            raise S3DownloadError(f"Empty response body for {key}")

        local_path = Path(local_path)
        fd, tmp_name = tempfile.mkstemp(
            dir=local_path.parent, prefix=f".{local_path.name}.", suffix=".part"
        )
        bytes_written = 0
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in body.iter_chunks(chunk_size=chunk_size):
                    if chunk:
                        f.write(chunk)
                        bytes_written += len(chunk)
            os.chmod(tmp_name, _target_mode(local_path))
            os.replace(tmp_name, local_path)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"Failed to read body of {key}") from e
        except OSError as e:
            raise S3DownloadError(f"Failed to write {local_path}: {e}", e) from e
        finally:
            # No-op once the file has been renamed into place
            Path(tmp_name).unlink(missing_ok=True)
            close = getattr(body, "close", None)
            if close is not None:
                close()

        return bytes_written

    def upload_object(
        self,
        local_path: Path,
        key: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Upload a local file as a single PutObject request.

        Args:
            local_path: File to upload
            key: Destination object key
            content_type: Value of the Content-Type header

        Raises:
            S3UploadError: If the file cannot be read
            S3OperationError: If the request fails
        """
        client = self._get_client()
        try:
            with open(local_path, "rb") as f:
                client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=f,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"Failed to put {key}") from e
        except OSError as e:
            raise S3UploadError(f"Failed to read {local_path}: {e}", e) from e
