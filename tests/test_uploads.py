"""Tests for sync.uploads: download, upload and delete passes."""

import logging

import pytest

from docsync.document.context import Settings, make_context
from docsync.sync.uploads import (
    delete_path_uploads,
    download_path_uploads,
    upload_path_uploads,
)

FILES = {"a.png": b"aaa", "b.pdf": b"bbb", "c.txt": b"ccc"}


def node(config, directory, uploads=None, prompt=False):
    return make_context(
        Settings(path="/notes", uploads=uploads),
        config.server_url,
        config.auth,
        directory,
        prompt=prompt,
    )


@pytest.fixture
def server_with_files(fake_server):
    for name, data in FILES.items():
        fake_server.add_upload("notes", name, data)
    return fake_server


class TestDownload:
    async def test_nothing_declared(self, tmp_path, mock_config, make_session, server_with_files):
        assert await download_path_uploads(node(mock_config, tmp_path), make_session(tmp_path)) == 0
        assert server_with_files.calls == []

    async def test_missing_directory_downloads_all_declared(
        self, tmp_path, mock_config, make_session, server_with_files
    ):
        ctx = node(mock_config, tmp_path, uploads=list(FILES))
        assert await download_path_uploads(ctx, make_session(tmp_path)) == 3

        assert server_with_files.called("get_upload_manifest") == []
        for name, data in FILES.items():
            assert (tmp_path / "uploads" / name).read_bytes() == data

    async def test_only_mismatched_hashes(
        self, tmp_path, mock_config, make_session, server_with_files
    ):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "a.png").write_bytes(b"aaa")
        (uploads / "b.pdf").write_bytes(b"bbb")
        (uploads / "c.txt").write_bytes(b"stale")

        ctx = node(mock_config, tmp_path, uploads=list(FILES))
        assert await download_path_uploads(ctx, make_session(tmp_path)) == 1

        assert server_with_files.called("download_upload") == [
            ("download_upload", "notes", "c.txt")
        ]
        assert (uploads / "c.txt").read_bytes() == b"ccc"

    async def test_failed_download_is_skipped(
        self, tmp_path, mock_config, make_session, server_with_files
    ):
        ctx = node(mock_config, tmp_path, uploads=["a.png", "missing.bin"])
        assert await download_path_uploads(ctx, make_session(tmp_path)) == 1
        assert not (tmp_path / "uploads" / "missing.bin").exists()

    async def test_manifest_name_cannot_leave_uploads(
        self, tmp_path, mock_config, make_session, fake_server, caplog
    ):
        (tmp_path / "content.md").write_bytes(b"# mine\n")
        (tmp_path / "uploads").mkdir()
        (tmp_path / "uploads" / "a.png").write_bytes(b"old")
        fake_server.add_upload("notes", "a.png", b"aaa")
        fake_server.add_upload("notes", "../content.md", b"PWNED")

        ctx = node(mock_config, tmp_path, uploads=["a.png"])
        with caplog.at_level(logging.WARNING):
            assert await download_path_uploads(ctx, make_session(tmp_path)) == 1

        assert (tmp_path / "content.md").read_bytes() == b"# mine\n"
        assert (tmp_path / "uploads" / "a.png").read_bytes() == b"aaa"
        assert any("../content.md" in m for m in caplog.messages)

    async def test_declared_name_cannot_leave_uploads(
        self, tmp_path, mock_config, make_session, fake_server
    ):
        fake_server.add_upload("notes", "../settings.json", b"{}")
        ctx = node(mock_config, tmp_path, uploads=["../settings.json"])
        assert await download_path_uploads(ctx, make_session(tmp_path)) == 0
        assert not (tmp_path / "settings.json").exists()
        assert fake_server.called("download_upload") == []

    async def test_prompt_declined(self, tmp_path, mock_config, make_session, server_with_files):
        questions = []

        async def confirm(message):
            questions.append(message)
            return False

        ctx = node(mock_config, tmp_path, uploads=["a.png"], prompt=True)
        assert await download_path_uploads(ctx, make_session(tmp_path, confirm=confirm)) == 0
        assert questions == ["Would you like to download 1 item?"]


class TestUpload:
    async def test_no_directory(self, tmp_path, mock_config, make_session, fake_server):
        assert await upload_path_uploads(node(mock_config, tmp_path), make_session(tmp_path)) == 0
        assert fake_server.calls == []

    async def test_new_and_changed(self, tmp_path, mock_config, make_session, server_with_files):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "a.png").write_bytes(b"aaa")
        (uploads / "b.pdf").write_bytes(b"changed")
        (uploads / "d.svg").write_bytes(b"<svg/>")

        sent = await upload_path_uploads(node(mock_config, tmp_path), make_session(tmp_path))

        assert sent == 2
        names = [c[2] for c in server_with_files.called("upload_file")]
        assert names == ["b.pdf", "d.svg"]
        assert server_with_files.uploads["notes"]["b.pdf"] == b"changed"

    async def test_failure_does_not_abort(self, tmp_path, mock_config, make_session, fake_server):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "a.png").write_bytes(b"a")
        (uploads / "b.png").write_bytes(b"b")
        fake_server.failing_uploads.add("a.png")

        sent = await upload_path_uploads(node(mock_config, tmp_path), make_session(tmp_path))

        assert sent == 1
        assert "b.png" in fake_server.uploads["notes"]


class TestDelete:
    async def test_removes_server_only_files(
        self, tmp_path, mock_config, make_session, server_with_files
    ):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "a.png").write_bytes(b"aaa")

        deleted = await delete_path_uploads(node(mock_config, tmp_path), make_session(tmp_path))

        assert deleted == 2
        assert sorted(server_with_files.uploads["notes"]) == ["a.png"]

    async def test_nothing_to_delete(self, tmp_path, mock_config, make_session, fake_server):
        assert await delete_path_uploads(node(mock_config, tmp_path), make_session(tmp_path)) == 0
        assert fake_server.called("delete_upload") == []
