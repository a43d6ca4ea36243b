"""Scan a directory tree for documents and resolve paths to directories."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .assembler import is_content_file
from .context import SETTINGS_FILE, UPLOADS_DIR, read_settings

logger = logging.getLogger(__name__)

IGNORED_FOLDERS = frozenset(
    {
        "node_modules",
        ".git",
        ".svn",
        ".hg",
        "dist",
        "build",
        "coverage",
        ".next",
        ".nuxt",
        ".cache",
        "__pycache__",
        ".pytest_cache",
        ".vscode",
        ".idea",
        "vendor",
        "bower_components",
    }
)


@dataclass(frozen=True)
class DiscoveredDocument:
    path: str
    fs_path: Path
    has_template: bool = False
    has_slot: bool = False
    template_path: str | None = None
    slot_path: str | None = None


@dataclass
class DiscoveryResult:
    """Documents found under a root directory.

    Attributes:
        documents: First directory found for each document path.
        duplicates: Paths claimed by more than one directory, with all of
            their directories.
        errors: ``(directory, message)`` for directories that could not be
            scanned.
    """

    documents: dict[str, DiscoveredDocument] = field(default_factory=dict)
    duplicates: dict[str, list[Path]] = field(default_factory=dict)
    errors: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def sorted_paths(self) -> list[str]:
        return sorted(self.documents)


def _is_document_dir(names: list[str]) -> bool:
    return SETTINGS_FILE in names and any(is_content_file(n) for n in names)


def _scan(
    directory: Path,
    found: list[DiscoveredDocument],
    errors: list[tuple[Path, str]],
    visited: set[tuple[int, int]],
) -> None:
    try:
        stat = directory.stat()
    except OSError:
        return
    key = (stat.st_dev, stat.st_ino)
    if key in visited:
        return
    visited.add(key)

    try:
        entries = list(os.scandir(directory))
    except OSError as e:
        errors.append((directory, str(e)))
        return

    names = [e.name for e in entries if e.is_file()]
    subdirs = sorted(e.name for e in entries if e.is_dir())

    if _is_document_dir(names):
        settings = read_settings(directory)
        if settings is not None and settings.path:
            found.append(
                DiscoveredDocument(
                    path=settings.path,
                    fs_path=directory,
                    has_template="template" in subdirs,
                    has_slot="slot" in subdirs,
                    template_path=settings.template_path,
                    slot_path=settings.slot_path,
                )
            )

    for name in subdirs:
        if name in IGNORED_FOLDERS or name.startswith(".") or name == UPLOADS_DIR:
            continue
        _scan(directory / name, found, errors, visited)


def discover_documents(root: Path | str) -> DiscoveryResult:
    """Recursively find directories holding ``settings.json`` and content.

    ``template/`` and ``slot/`` directories are included since they are
    documents in their own right.  Hidden folders, ``uploads/`` and common
    tool/build folders are skipped.
    """
    found: list[DiscoveredDocument] = []
    result = DiscoveryResult()
    _scan(Path(root).resolve(), found, result.errors, set())

    for doc in found:
        existing = result.documents.get(doc.path)
        if existing is None:
            result.documents[doc.path] = doc
            continue
        locations = result.duplicates.setdefault(doc.path, [existing.fs_path])
        locations.append(doc.fs_path)

    for directory, message in result.errors:
        logger.warning("Error during discovery in %s: %s", directory, message)
    for path, locations in result.duplicates.items():
        logger.warning(
            "Duplicate document path %s in: %s",
            path,
            ", ".join(str(p) for p in locations),
        )
    logger.debug("Discovered %d document(s)", len(result.documents))
    return result


def make_path_resolver(result: DiscoveryResult) -> Callable[[str], Path | None]:
    """Return a ``resolve_document_path`` callable backed by *result*."""

    def resolve(path: str) -> Path | None:
        doc = result.documents.get(path)
        return doc.fs_path if doc is not None else None

    return resolve
