"""Build an in-memory ``Document`` from a document directory.

Top-level documents also pick up their slot and template, either from the
adjacent ``slot/``/``template/`` directories or through a resolver that
maps a document path to a directory elsewhere on disk.  Sub-documents are
assembled with ``is_nested=True`` and never compose further.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, Union

from pydantic import BaseModel, Field

from ..core.async_utils import maybe_await, run_sync
from ..exceptions import (
    ContentAmbiguousError,
    ContentMissingError,
    DataAmbiguousError,
    DirectoryNotFoundError,
    PathMismatchError,
)
from ..file_handler import read_text
from .context import NodeReference, Settings, read_settings

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "text/html; charset=UTF-8"
OPTIONAL_FILES = {"style": "style.css", "script": "script.js", "server": "server.js"}

_CONTENT_TYPES = {
    ".md": "text/markdown",
    ".html": "text/html",
    ".eta": "text/html",
    ".txt": "text/plain",
}
_DATA_TYPES = {".yaml": "yaml", ".yml": "yaml", ".json": "json", ".toml": "toml"}
_HTML_EXTENSIONS = (".md", ".html", ".eta")

_RAW_BLOCK = re.compile(r"<%\s*raw\s*%>.*?<%\s*endraw\s*%>", re.DOTALL)
_ETA_TAG = re.compile(r"<%.*?%>", re.DOTALL)

PathResolver = Callable[[str], Union[Path, str, None, Awaitable[Union[Path, str, None]]]]


class Document(BaseModel):
    """A document assembled from local files, ready for rendering."""

    path: str = "/"
    title: str = "Untitled"
    content: str
    data: str = ""
    style: str = ""
    script: str = ""
    server: str = ""
    content_type: str = "text/plain"
    data_type: str | None = None
    has_eta: bool = False
    mime_type: str = DEFAULT_MIME_TYPE
    extension: str = ".html"
    template: Document | None = None
    slot: Document | None = None
    draft: bool = True
    redirects: list[str] = Field(default_factory=list)
    uploads: list[str] = Field(default_factory=list)


def is_content_file(name: str) -> bool:
    return name.startswith("content.") or name == "index.html"


def content_type_for(filename: str) -> str:
    return _CONTENT_TYPES.get(Path(filename).suffix.lower(), "text/plain")


def data_type_for(filename: str) -> str | None:
    return _DATA_TYPES.get(Path(filename).suffix.lower())


def has_eta_templates(content: str) -> bool:
    """True when *content* uses template tags outside ``<% raw %>`` blocks."""
    return bool(_ETA_TAG.search(_RAW_BLOCK.sub("", content)))


def derive_extension(content_file: str, settings: Settings) -> str:
    """Output extension: the settings override, else ``.html`` for markup."""
    if settings.extension:
        return settings.extension
    suffix = Path(content_file).suffix.lower()
    return ".html" if suffix in _HTML_EXTENSIONS else suffix


def find_content_file(names: list[str]) -> str:
    """Return the single content file among *names*.

    Raises:
        ContentMissingError: When there is none.
        ContentAmbiguousError: When there is more than one.
    """
    matches = sorted(n for n in names if is_content_file(n))
    if not matches:
        raise ContentMissingError("No content file found (e.g., content.md)")
    if len(matches) > 1:
        raise ContentAmbiguousError(
            f"Multiple content files found: {', '.join(matches)}. Only one "
            "content file (content.* or index.html) is allowed per directory."
        )
    return matches[0]


def find_data_file(names: list[str]) -> str | None:
    """Return the single ``data.*`` file among *names*, if any.

    Raises:
        DataAmbiguousError: When there is more than one.
    """
    matches = sorted(n for n in names if n.startswith("data."))
    if len(matches) > 1:
        raise DataAmbiguousError(
            f"Multiple data files found: {', '.join(matches)}. "
            "Only one data.* file is allowed per directory."
        )
    return matches[0] if matches else None


def _read_document(directory: Path) -> tuple[Document, Settings]:
    names = [p.name for p in directory.iterdir() if p.is_file()]
    content_file = find_content_file(names)
    data_file = find_data_file(names)
    settings = read_settings(directory) or Settings()

    content = read_text(directory / content_file)
    optional = {
        field: read_text(directory / filename)
        for field, filename in OPTIONAL_FILES.items()
        if filename in names
    }

    document = Document(
        path=settings.path or "/",
        title=settings.title or "Untitled",
        content=content,
        data=read_text(directory / data_file) if data_file else "",
        content_type=content_type_for(content_file),
        data_type=data_type_for(data_file) if data_file else None,
        has_eta=has_eta_templates(content),
        mime_type=settings.mime_type or DEFAULT_MIME_TYPE,
        extension=derive_extension(content_file, settings),
        **optional,
    )
    return document, settings


async def _assemble_part(
    directory: Path,
    reference: NodeReference,
    pointer: str,
    resolve_document_path: PathResolver | None,
) -> Document | None:
    name = reference.value
    local_dir = directory / name

    if local_dir.is_dir():
        part = await assemble(local_dir, is_nested=True)
        if part.path != pointer:
            raise PathMismatchError(
                f'{name.capitalize()} path mismatch: settings.json specifies "{pointer}" '
                f'but {name}/settings.json has "{part.path}"'
            )
        return part

    if resolve_document_path is None:
        raise DirectoryNotFoundError(
            f"{name.capitalize()} directory not found: settings.json references "
            f'{name}_path "{pointer}" but no {name}/ directory exists'
        )

    resolved = await maybe_await(resolve_document_path(pointer))
    if not resolved:
        logger.debug("No document found for %s %s", name, pointer)
        return None
    return await assemble(Path(resolved), is_nested=True)


async def assemble(
    directory: Path | str,
    *,
    is_nested: bool = False,
    resolve_document_path: PathResolver | None = None,
) -> Document:
    """Assemble the document stored in *directory*.

    Args:
        directory: Document directory.
        is_nested: Assemble a template/slot; its own pointers are ignored.
        resolve_document_path: Maps a document path to a directory (sync
            or async).  Consulted when ``slot/``/``template/`` is absent
            locally; returning None leaves that part out.

    Raises:
        ContentMissingError: No content file, or more than one.
        DataAmbiguousError: More than one ``data.*`` file.
        PathMismatchError: A local sub-document's path differs from the
            pointer in ``settings.json``.
        DirectoryNotFoundError: A pointer cannot be satisfied and no
            resolver was given.
    """
    directory = Path(directory)
    document, settings = await run_sync(_read_document, directory)

    if is_nested:
        return document

    parts: dict[str, Document | None] = {}
    # Slot first, then template
    for reference in (NodeReference.SLOT, NodeReference.TEMPLATE):
        pointer = settings.pointer(reference)
        if pointer:
            parts[reference.value] = await _assemble_part(
                directory, reference, pointer, resolve_document_path
            )

    if parts:
        document = document.model_copy(update=parts)
    return document
