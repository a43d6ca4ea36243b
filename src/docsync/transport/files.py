"""File-set selection, tarball packing and safe extraction for archives.

An archive holds exactly the files that make up a document: one content
file, ``settings.json``, at most one ``data.*`` and the optional
``style.css``, ``server.js`` and ``script.js``.  Uploads travel separately.
"""

from __future__ import annotations

import io
import logging
import re
import shutil
import tarfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from ..exceptions import (
    ArchiveFileSetError,
    ContentAmbiguousError,
    ContentMissingError,
    DataAmbiguousError,
)
from ..file_handler import file_hash

logger = logging.getLogger(__name__)

OPTIONAL_FILES = ("style.css", "server.js", "script.js")

# Written when a tar-synced directory is put under local version control
TRACKED_GITIGNORE = (
    "*\n"
    "!.gitignore\n"
    "!settings.json\n"
    "!content.*\n"
    "!data.*\n"
    "!server.js\n"
    "!style.css\n"
    "!script.js\n"
)

_CONTENT_NAME = re.compile(r"^(content\.|index\.html$)")
_DATA_NAME = re.compile(r"^data\.")
_EXPECTED_NAMES = (
    _CONTENT_NAME,
    _DATA_NAME,
    re.compile(r"^style\.css$"),
    re.compile(r"^server\.js$"),
    re.compile(r"^script\.js$"),
    re.compile(r"^settings\.json$"),
    re.compile(r"^\.git$"),
    re.compile(r"^template$"),
    re.compile(r"^slot$"),
    re.compile(r"^uploads$"),
)


class FileStatus(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FileChange:
    file: str
    status: FileStatus

    @property
    def symbol(self) -> str:
        return {FileStatus.NEW: "+", FileStatus.MODIFIED: "~"}.get(self.status, "=")


@dataclass
class ArchiveFileSet:
    """Files to pack and the unexpected names that were left out."""

    files: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)


def validate_and_get_files_from_dir(directory: Path | str) -> ArchiveFileSet:
    """Select the files of *directory* that belong in an archive.

    Raises:
        ContentMissingError: No content file.
        ContentAmbiguousError: More than one content file.
        ArchiveFileSetError: ``settings.json`` is missing.
        DataAmbiguousError: More than one ``data.*`` file.
    """
    directory = Path(directory)
    try:
        names = sorted(p.name for p in directory.iterdir())
    except OSError:
        names = []

    content = [n for n in names if _CONTENT_NAME.match(n)]
    if not content:
        raise ContentMissingError(
            f"No content file found in {directory} (e.g., content.md or index.html)"
        )
    if len(content) > 1:
        raise ContentAmbiguousError(
            f"Multiple content files found in {directory}: {', '.join(content)}"
        )
    result = ArchiveFileSet(files=[content[0]])

    if not (directory / "settings.json").is_file():
        raise ArchiveFileSetError(f"No settings.json file found in {directory}")
    result.files.append("settings.json")

    data = [n for n in names if _DATA_NAME.match(n)]
    if len(data) > 1:
        raise DataAmbiguousError(
            f"Multiple data files found in {directory}: {', '.join(data)}"
        )
    result.files.extend(data)

    result.files.extend(n for n in OPTIONAL_FILES if (directory / n).is_file())
    result.excluded = [
        n for n in names if not any(p.match(n) for p in _EXPECTED_NAMES)
    ]
    return result


def build_tarball(directory: Path | str, files: list[str]) -> bytes:
    """Return a gzip'd tar holding *files* from *directory* at the top level."""
    directory = Path(directory)
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name in files:
            tar.add(str(directory / name), arcname=name, recursive=False)
    return buffer.getvalue()


def _safe_target(dest: Path, name: str) -> Path:
    relative = PurePosixPath(name)
    if relative.is_absolute() or ".." in relative.parts:
        raise ArchiveFileSetError(f"Refusing archive entry outside target: {name}")
    target = (dest / relative).resolve()
    if not target.is_relative_to(dest):
        raise ArchiveFileSetError(f"Refusing archive entry outside target: {name}")
    return target


def extract_tarball(data: bytes, dest: Path | str) -> list[str]:
    """Extract a gzip'd tar into *dest* and return the extracted file names.

    Only regular files and directories are written.  Entries with absolute
    paths or ``..`` components, and data that is not a gzip'd tar, raise
    ``ArchiveFileSetError``.
    """
    dest = Path(dest).resolve()
    dest.mkdir(parents=True, exist_ok=True)
    extracted: list[str] = []

    try:
        tar = tarfile.open(fileobj=io.BytesIO(data), mode="r:gz")
        members = tar.getmembers()
    except tarfile.TarError as e:
        raise ArchiveFileSetError(f"Invalid archive: {e}") from e

    with tar:
        for member in members:
            target = _safe_target(dest, member.name)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            if not member.isfile():
                logger.debug("Skipping non-file archive entry %s", member.name)
                continue
            source = tar.extractfile(member)
            if source is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)
            extracted.append(str(PurePosixPath(member.name)))

    return extracted


def compare_files(
    source_dir: Path, target_dir: Path, names: list[str]
) -> list[FileChange]:
    """Classify each of *names* in *source_dir* against *target_dir* by sha256."""
    changes: list[FileChange] = []
    for name in names:
        target = target_dir / name
        if not target.is_file():
            status = FileStatus.NEW
        elif file_hash(source_dir / name) != file_hash(target):
            status = FileStatus.MODIFIED
        else:
            status = FileStatus.UNCHANGED
        changes.append(FileChange(name, status))
    return changes


def apply_changes(
    source_dir: Path, target_dir: Path, changes: list[FileChange]
) -> int:
    """Copy new and modified files into *target_dir*.  Returns the count."""
    copied = 0
    for change in changes:
        if change.status is FileStatus.UNCHANGED:
            continue
        destination = target_dir / change.file
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source_dir / change.file, destination)
        copied += 1
    return copied


def format_bytes(size: int) -> str:
    """Human-readable size: ``0 B``, ``512 B``, ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            break
        value /= 1024
    else:
        unit = "GB"
    if unit == "B":
        return f"{size} B"
    return f"{round(value, 1):g} {unit}"
