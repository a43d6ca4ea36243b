"""Transports that move one document node between disk and server.

- ``vcs``     -- ``push_path_via_git`` / ``pull_path_via_git``.
- ``archive`` -- ``push_path_via_archive`` / ``pull_path_via_archive``.
- ``detect``  -- ``TransportKind`` and ``detect_transport``.
- ``files``   -- archive file sets, tarballs and change detection.

Every primitive has the shape ``async primitive(ctx, session)``.
"""

from .archive import pull_path_via_archive, push_path_via_archive
from .detect import DirectoryState, TransportKind, detect_transport, inspect_directory
from .files import (
    ArchiveFileSet,
    FileChange,
    FileStatus,
    validate_and_get_files_from_dir,
)
from .vcs import pull_path_via_git, push_path_via_git

__all__ = [
    "ArchiveFileSet",
    "DirectoryState",
    "FileChange",
    "FileStatus",
    "TransportKind",
    "detect_transport",
    "inspect_directory",
    "pull_path_via_archive",
    "pull_path_via_git",
    "push_path_via_archive",
    "push_path_via_git",
    "validate_and_get_files_from_dir",
]
