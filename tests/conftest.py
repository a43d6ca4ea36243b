"""Shared pytest fixtures for docsync tests."""

from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from docsync.config import Config
from docsync.core.client import UploadEntry
from docsync.core.git import is_git_installed
from docsync.exceptions import AssetError
from docsync.file_handler import bytes_hash
from docsync.sync.harness import SyncSession

requires_git = pytest.mark.skipif(
    not is_git_installed(), reason="git executable not available"
)


def write_document(
    directory: Path,
    settings: Optional[Dict[str, Any]] = None,
    content: str = "# Hello\n",
    content_name: str = "content.md",
    **files: str,
) -> Path:
    """Create a document directory with settings, content and extra files.

    Extra files are passed as keyword arguments with dots replaced by
    underscores, e.g. ``style_css="body {}"``.
    """
    directory.mkdir(parents=True, exist_ok=True)
    if settings is not None:
        (directory / "settings.json").write_text(
            json.dumps(settings, indent=2) + "\n"
        )
    if content_name:
        (directory / content_name).write_text(content)
    for key, value in files.items():
        (directory / key.replace("_", ".", 1)).write_text(value)
    return directory


# ---------------------------------------------------------------------------
# In-memory fake document server
# ---------------------------------------------------------------------------


class FakeDocumentServer:
    """In-memory stand-in for ``DocumentServerClient``.

    Documents are keyed by normalized path.  ``upload_archive`` stores the
    tarball and parses its ``settings.json`` so later ``get_settings``
    calls see it.
    """

    def __init__(self) -> None:
        self.archives: Dict[str, bytes] = {}
        self.settings: Dict[str, Dict[str, Any]] = {}
        self.uploads: Dict[str, Dict[str, bytes]] = {}
        self.calls: List[tuple] = []
        self.failing_uploads: set[str] = set()
        self.closed = False

    def add_upload(self, path: str, name: str, data: bytes) -> None:
        self.uploads.setdefault(path, {})[name] = data

    def get_settings(self, normalized_path: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("get_settings", normalized_path))
        return self.settings.get(normalized_path)

    def get_upload_manifest(self, normalized_path: str) -> List[UploadEntry]:
        self.calls.append(("get_upload_manifest", normalized_path))
        return [
            UploadEntry(name=name, hash=bytes_hash(data))
            for name, data in sorted(self.uploads.get(normalized_path, {}).items())
        ]

    def download_archive(self, normalized_path: str) -> Optional[bytes]:
        self.calls.append(("download_archive", normalized_path))
        return self.archives.get(normalized_path)

    def upload_archive(self, normalized_path: str, data: bytes) -> None:
        self.calls.append(("upload_archive", normalized_path))
        self.archives[normalized_path] = data
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            member = tar.extractfile("settings.json")
            if member is not None:
                self.settings[normalized_path] = json.loads(member.read())

    def download_upload(self, normalized_path: str, name: str) -> bytes:
        self.calls.append(("download_upload", normalized_path, name))
        try:
            return self.uploads[normalized_path][name]
        except KeyError:
            raise AssetError(name, f"File not found: {name}") from None

    def upload_file(self, normalized_path: str, name: str, data: bytes) -> None:
        self.calls.append(("upload_file", normalized_path, name))
        if name in self.failing_uploads:
            raise AssetError(name, "Server did not confirm upload: quota")
        self.add_upload(normalized_path, name, data)

    def delete_upload(self, normalized_path: str, name: str) -> None:
        self.calls.append(("delete_upload", normalized_path, name))
        self.uploads.get(normalized_path, {}).pop(name, None)

    def close(self) -> None:
        self.closed = True

    def called(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        server_url="https://docs.example.com",
        username="testuser",
        password="testpass",
        insecure=False,
    )


@pytest.fixture
def fake_server():
    return FakeDocumentServer()


@pytest.fixture
def make_session(mock_config, fake_server):
    """Factory for a ``SyncSession`` backed by the fake server."""

    def _create(cwd: Path, **kwargs: Any) -> SyncSession:
        return SyncSession(
            config=mock_config, client=fake_server, cwd=cwd, **kwargs
        )

    return _create


@pytest.fixture
def git_identity(monkeypatch):
    """Give git a committer identity so commits work on bare CI machines."""
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "Docsync Tests")
        monkeypatch.setenv(f"{prefix}_EMAIL", "tests@example.com")
