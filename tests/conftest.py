"""Shared fixtures: an in-memory stand-in for the boto3 S3 client."""

import hashlib
import io
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from s3workspace.sync import SyncEngine


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": message or code}}, operation
    )


class FakeS3Client:
    """Minimal in-memory implementation of the S3 calls used by the engine.

    Objects are kept as bytes per key. Listing can be forced to fail and
    individual keys can be made to fail on get or put.
    """

    def __init__(self, objects=None, max_page_size=1000):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.max_page_size = max_page_size

        self.fail_list = False
        self.fail_get: set[str] = set()
        self.fail_put: set[str] = set()

        self.list_calls: list[dict] = []
        self.get_calls: list[str] = []
        self.put_calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

        for key, data in (objects or {}).items():
            self.add(key, data)

    def add(self, key: str, data) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            self.objects[key] = data

    def remove(self, key: str) -> None:
        with self._lock:
            del self.objects[key]

    def list_objects_v2(self, Bucket, Prefix="", MaxKeys=1000, ContinuationToken=None):
        with self._lock:
            self.list_calls.append(
                {
                    "Bucket": Bucket,
                    "Prefix": Prefix,
                    "MaxKeys": MaxKeys,
                    "ContinuationToken": ContinuationToken,
                }
            )
            if self.fail_list:
                raise client_error("AccessDenied", "ListObjectsV2", "Access Denied")

            keys = sorted(k for k in self.objects if k.startswith(Prefix))
            page_size = min(MaxKeys, self.max_page_size)
            start = int(ContinuationToken) if ContinuationToken else 0
            page = keys[start : start + page_size]

            response: dict = {"KeyCount": len(page), "IsTruncated": False}
            if page:
                response["Contents"] = [
                    {
                        "Key": key,
                        "Size": len(self.objects[key]),
                        "ETag": f'"{hashlib.md5(self.objects[key]).hexdigest()}"',
                        "LastModified": datetime(2024, 1, 1, tzinfo=timezone.utc),
                    }
                    for key in page
                ]
            if start + page_size < len(keys):
                response["IsTruncated"] = True
                response["NextContinuationToken"] = str(start + page_size)
            return response

    def get_object(self, Bucket, Key):
        with self._lock:
            self.get_calls.append(Key)
            if Key in self.fail_get:
                raise client_error("InternalError", "GetObject", "We encountered an internal error")
            if Key not in self.objects:
                raise client_error("NoSuchKey", "GetObject", "The specified key does not exist.")
            data = self.objects[Key]
        return {
            "Body": StreamingBody(io.BytesIO(data), len(data)),
            "ContentLength": len(data),
        }

    def put_object(self, Bucket, Key, Body, ContentType=None):
        data = Body.read() if hasattr(Body, "read") else Body
        with self._lock:
            self.put_calls.append(Key)
            if Key in self.fail_put:
                raise client_error("InternalError", "PutObject", "We encountered an internal error")
            self.objects[Key] = data
            self.content_types[Key] = ContentType
        return {"ETag": f'"{hashlib.md5(data).hexdigest()}"'}

    def close(self):
        self.closed = True


@pytest.fixture
def fake_s3():
    """Provide an empty fake S3 client."""
    return FakeS3Client()


@pytest.fixture
def workspace(tmp_path):
    """Provide an empty local workspace directory."""
    path = tmp_path / "ws"
    path.mkdir()
    return path


@pytest.fixture
def make_engine(fake_s3, workspace):
    """Factory for engines bound to bucket "b", prefix "u/1/" and the fake client."""
    engines = []

    def factory(**kwargs):
        kwargs.setdefault("bucket", "b")
        kwargs.setdefault("prefix", "u/1/")
        kwargs.setdefault("workspace_dir", workspace)
        kwargs.setdefault("s3_client", fake_s3)
        engine = SyncEngine(**kwargs)
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.close()


def local_files(directory: Path) -> set[str]:
    """Relative paths of all files below a directory."""
    return {p.relative_to(directory).as_posix() for p in directory.rglob("*") if p.is_file()}
