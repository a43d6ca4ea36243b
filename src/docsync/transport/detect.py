"""Pick the transport for a directory.

``inspect_directory`` gathers the facts from disk; ``detect_transport`` is
a pure function of those facts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..core.git import has_remote, is_git_repo

IGNORED_ENTRIES = frozenset({".git", ".DS_Store"})


class TransportKind(str, Enum):
    GIT = "git"
    ARCHIVE = "tar"


@dataclass(frozen=True)
class DirectoryState:
    """What a directory looks like to transport detection.

    Attributes:
        exists: The directory exists.
        empty: No entries besides ``.git`` and ``.DS_Store``.
        is_repo: Holds a ``.git``.
        has_remote: The repository has at least one remote.
    """

    exists: bool
    empty: bool
    is_repo: bool = False
    has_remote: bool = False


def inspect_directory(path: Path | str) -> DirectoryState:
    path = Path(path)
    if not path.is_dir():
        return DirectoryState(exists=False, empty=True)
    empty = not any(entry.name not in IGNORED_ENTRIES for entry in path.iterdir())
    repo = is_git_repo(path)
    return DirectoryState(
        exists=True,
        empty=empty,
        is_repo=repo,
        has_remote=repo and has_remote(path),
    )


def detect_transport(state: DirectoryState) -> TransportKind:
    """Choose a transport for a directory in *state*.

    A repository uses git only when it has a remote.  Otherwise an empty
    or missing directory uses git and a populated one uses the archive
    transport.
    """
    if state.is_repo:
        return TransportKind.GIT if state.has_remote else TransportKind.ARCHIVE
    if not state.exists or state.empty:
        return TransportKind.GIT
    return TransportKind.ARCHIVE
