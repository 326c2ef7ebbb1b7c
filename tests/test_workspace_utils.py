"""Tests for the per-user workspace adapter."""

from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeS3Client

from s3workspace.exceptions import InvalidStoragePathError
from s3workspace.workspace_utils import (
    WorkspaceSync,
    initialize_workspace_sync,
    validate_storage_path,
)


class TestValidateStoragePath:
    """Tests for validate_storage_path."""

    @pytest.mark.parametrize(
        "path", ["/", "", "/dev2", "projects/my-app_v1.2", "/a/b/c/"]
    )
    def test_valid_paths(self, path):
        validate_storage_path(path)

    @pytest.mark.parametrize(
        "path,message",
        [
            ("/a/../b", "path traversal"),
            ("..", "path traversal"),
            ("/a\0b", "null bytes"),
            ("/a b", "only alphanumeric"),
            ("/a;rm", "only alphanumeric"),
            ("//evil.com/x", "protocol-relative"),
            ("/" + "/".join(["d"] * 51), "depth exceeds"),
        ],
    )
    def test_invalid_paths(self, path, message):
        with pytest.raises(InvalidStoragePathError, match=message):
            validate_storage_path(path)

    def test_max_depth_allowed(self):
        validate_storage_path("/".join(["d"] * 50))

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_storage_path("..")


class TestWorkspaceSync:
    """Tests for WorkspaceSync."""

    def test_prefix_and_directory_for_subpath(self, tmp_path):
        """Test mapping a storage path to prefix and local directory."""
        workspace = WorkspaceSync(
            "user-1", "/dev2/", bucket="b", workspace_root=tmp_path, s3_client=FakeS3Client()
        )
        try:
            assert workspace.engine.prefix == "users/user-1/dev2/"
            assert workspace.get_active_working_directory() == str(tmp_path / "dev2")
            assert workspace.get_workspace_path() == str(tmp_path / "dev2")
        finally:
            workspace.close()

    def test_prefix_and_directory_for_root(self, tmp_path):
        workspace = WorkspaceSync(
            "user-1", "/", bucket="b", workspace_root=tmp_path, s3_client=FakeS3Client()
        )
        try:
            assert workspace.engine.prefix == "users/user-1/"
            assert workspace.get_active_working_directory() == str(tmp_path)
        finally:
            workspace.close()

    @patch.dict("os.environ", {"USER_STORAGE_BUCKET_NAME": "env-bucket"}, clear=False)
    def test_bucket_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.delenv("S3_WORKSPACE_BUCKET", raising=False)
        workspace = WorkspaceSync(
            "u", "/p", workspace_root=tmp_path, s3_client=FakeS3Client()
        )
        try:
            assert workspace.engine.bucket == "env-bucket"
        finally:
            workspace.close()

    def test_initial_sync_then_push(self, tmp_path):
        """Test the start/wait/push lifecycle."""
        fake = FakeS3Client({"users/u/proj/readme.md": "# hi"})
        workspace = WorkspaceSync(
            "u", "/proj", bucket="b", workspace_root=tmp_path, s3_client=fake
        )
        try:
            workspace.start_initial_sync()
            assert workspace.wait_for_initial_sync(timeout=10) is True
            assert (tmp_path / "proj" / "readme.md").read_text() == "# hi"

            (tmp_path / "proj" / "new.txt").write_text("new")
            result = workspace.sync_to_s3()
        finally:
            workspace.close()

        assert result.uploaded_files == 1
        assert fake.objects["users/u/proj/new.txt"] == b"new"


class TestInitializeWorkspaceSync:
    """Tests for initialize_workspace_sync."""

    def test_no_storage_path(self):
        assert initialize_workspace_sync("u", None) is None
        assert initialize_workspace_sync("u", "") is None

    def test_anonymous_user(self):
        assert initialize_workspace_sync("anonymous", "/proj") is None

    def test_invalid_path_raises(self):
        with pytest.raises(InvalidStoragePathError):
            initialize_workspace_sync("u", "/../etc")

    def test_starts_background_pull(self, tmp_path):
        fake = FakeS3Client({"users/u/proj/a.txt": "a"})
        workspace = initialize_workspace_sync(
            "u", "/proj", bucket="b", workspace_root=tmp_path, s3_client=fake
        )
        try:
            assert workspace is not None
            assert workspace.wait_for_initial_sync(timeout=10) is True
            assert Path(workspace.get_active_working_directory(), "a.txt").exists()
        finally:
            workspace.close()
