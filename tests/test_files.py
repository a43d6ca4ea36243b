"""Tests for transport.files: archive file sets, tarballs and comparisons."""

import io
import tarfile

import pytest
from conftest import write_document

from docsync.exceptions import (
    ArchiveFileSetError,
    ContentAmbiguousError,
    ContentMissingError,
    DataAmbiguousError,
)
from docsync.transport.files import (
    FileStatus,
    apply_changes,
    build_tarball,
    compare_files,
    extract_tarball,
    format_bytes,
    validate_and_get_files_from_dir,
)


def tarball_with(name, data=b"x"):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        info = tarfile.TarInfo(name)
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class TestValidateAndGetFiles:
    def test_full_file_set(self, tmp_path):
        write_document(
            tmp_path,
            {"path": "/a"},
            data_json="{}",
            style_css="",
            script_js="",
            server_js="",
        )
        (tmp_path / "notes.txt").write_text("scratch")
        (tmp_path / "uploads").mkdir()
        (tmp_path / "template").mkdir()

        result = validate_and_get_files_from_dir(tmp_path)

        assert result.files == [
            "content.md",
            "settings.json",
            "data.json",
            "style.css",
            "server.js",
            "script.js",
        ]
        assert result.excluded == ["notes.txt"]

    def test_missing_content(self, tmp_path):
        write_document(tmp_path, {"path": "/a"}, content_name="")
        with pytest.raises(ContentMissingError):
            validate_and_get_files_from_dir(tmp_path)

    def test_multiple_content(self, tmp_path):
        write_document(tmp_path, {"path": "/a"}, content_html="")
        with pytest.raises(ContentAmbiguousError):
            validate_and_get_files_from_dir(tmp_path)

    def test_missing_settings(self, tmp_path):
        write_document(tmp_path, None)
        with pytest.raises(ArchiveFileSetError, match="settings.json"):
            validate_and_get_files_from_dir(tmp_path)

    def test_multiple_data(self, tmp_path):
        write_document(tmp_path, {"path": "/a"}, data_json="{}", data_toml="")
        with pytest.raises(DataAmbiguousError):
            validate_and_get_files_from_dir(tmp_path)


class TestTarballs:
    def test_pack_and_extract(self, tmp_path):
        source = write_document(tmp_path / "src", {"path": "/a"}, style_css="p {}")
        data = build_tarball(source, ["content.md", "settings.json", "style.css"])

        names = extract_tarball(data, tmp_path / "out")

        assert sorted(names) == ["content.md", "settings.json", "style.css"]
        assert (tmp_path / "out" / "style.css").read_text() == "p {}"

    def test_dot_slash_prefix_is_normalized(self, tmp_path):
        names = extract_tarball(tarball_with("./content.md"), tmp_path)
        assert names == ["content.md"]

    @pytest.mark.parametrize("name", ["../evil.txt", "/etc/evil.txt", "a/../../evil.txt"])
    def test_refuses_escaping_entries(self, tmp_path, name):
        with pytest.raises(ArchiveFileSetError, match="outside target"):
            extract_tarball(tarball_with(name), tmp_path / "out")
        assert not (tmp_path / "evil.txt").exists()

    def test_invalid_data(self, tmp_path):
        with pytest.raises(ArchiveFileSetError, match="Invalid archive"):
            extract_tarball(b"not a tarball", tmp_path)

    def test_skips_symlinks(self, tmp_path):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            info = tarfile.TarInfo("link")
            info.type = tarfile.SYMTYPE
            info.linkname = "/etc/passwd"
            tar.addfile(info)
        assert extract_tarball(buffer.getvalue(), tmp_path) == []
        assert not (tmp_path / "link").exists()


class TestCompareAndApply:
    def test_statuses_and_copy(self, tmp_path):
        staging = tmp_path / "staging"
        target = tmp_path / "target"
        staging.mkdir()
        target.mkdir()
        (staging / "same.txt").write_text("same")
        (target / "same.txt").write_text("same")
        (staging / "changed.txt").write_text("new")
        (target / "changed.txt").write_text("old")
        (staging / "uploads").mkdir()
        (staging / "uploads" / "a.png").write_bytes(b"a")

        changes = compare_files(
            staging, target, ["same.txt", "changed.txt", "uploads/a.png"]
        )
        assert [(c.file, c.status) for c in changes] == [
            ("same.txt", FileStatus.UNCHANGED),
            ("changed.txt", FileStatus.MODIFIED),
            ("uploads/a.png", FileStatus.NEW),
        ]
        assert [c.symbol for c in changes] == ["=", "~", "+"]

        assert apply_changes(staging, target, changes) == 2
        assert (target / "changed.txt").read_text() == "new"
        assert (target / "uploads" / "a.png").read_bytes() == b"a"


class TestFormatBytes:
    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (1048576, "1 MB"), (3 * 1024**3, "3 GB")],
    )
    def test_format(self, size, expected):
        assert format_bytes(size) == expected
