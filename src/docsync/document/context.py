"""Settings I/O and the per-invocation node model.

A document directory holds a ``settings.json`` and may hold ``template/``
and ``slot/`` sub-documents.  Each of the (up to three) directories is a
*node*, described for one command run by a ``PathContext``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from ..file_handler import read_json, write_json
from ..logger import NodeLogger

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
UPLOADS_DIR = "uploads"


class NodeReference(str, Enum):
    """Role of a node within a document tree."""

    ROOT = "main"
    TEMPLATE = "template"
    SLOT = "slot"


class Settings(BaseModel):
    """Contents of a ``settings.json`` file.

    Unknown keys (``draft``, ``redirect`` and the like) are kept so that a
    read-modify-write never drops fields.

    Attributes:
        path: Canonical absolute document path, e.g. ``/docs/intro``.
        template_path: Path of the template document, if any.
        slot_path: Path of the slot document, if any.
        uploads: Filenames expected in ``uploads/``, in order.
        title: Document title.
        extension: Output extension override, e.g. ``.xml``.
        mime_type: Response MIME type override.
    """

    model_config = ConfigDict(extra="allow")

    path: str | None = None
    template_path: str | None = None
    slot_path: str | None = None
    uploads: list[str] | None = None
    title: str | None = None
    extension: str | None = None
    mime_type: str | None = None

    def pointer(self, reference: NodeReference) -> str | None:
        """Return ``template_path`` or ``slot_path`` for *reference*."""
        if reference is NodeReference.TEMPLATE:
            return self.template_path
        if reference is NodeReference.SLOT:
            return self.slot_path
        return None


def read_settings(directory: Path | str) -> Settings | None:
    """Read ``settings.json`` from *directory*.

    Returns None when the file is missing, unparsable, or not an object.
    """
    data = read_json(Path(directory) / SETTINGS_FILE)
    if not isinstance(data, dict):
        return None
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        logger.debug("Ignoring invalid settings in %s: %s", directory, e)
        return None


def write_settings(directory: Path | str, data: dict[str, Any]) -> None:
    """Write *data* as ``settings.json`` in *directory*."""
    write_json(Path(directory) / SETTINGS_FILE, data)


def update_settings_property(
    directory: Path | str, key: str, value: Any
) -> None:
    """Set one top-level key in ``settings.json``, keeping every other key.

    A missing or unreadable file is replaced by ``{key: value}``.
    """
    settings_path = Path(directory) / SETTINGS_FILE
    data = read_json(settings_path)
    if not isinstance(data, dict):
        data = {}
    data[key] = value
    write_json(settings_path, data)


def normalize_path(path: str) -> str:
    """Drop a single leading slash: ``/docs`` -> ``docs``, ``/`` -> ``""``."""
    return path[1:] if path.startswith("/") else path


@dataclass
class PathContext:
    """One node of a document tree for the duration of one command.

    Attributes:
        reference: Role of the node (root, template or slot).
        path: Document path on the server.
        normalized_path: ``path`` without its leading slash.
        server_url: ``scheme://host[:port]`` of the document server.
        auth: Base64 basic-auth token.
        settings: Parsed ``settings.json`` of the node.
        dir: Directory relative to the command's base, for display.
        absolute_dir: Absolute directory for filesystem and git work.
        forbidden_paths: Paths this node must not reuse.
        prompt: Ask for confirmation before mutating steps.
    """

    reference: NodeReference
    path: str
    normalized_path: str
    server_url: str
    auth: str
    settings: Settings
    dir: str
    absolute_dir: Path
    forbidden_paths: tuple[str, ...] = ()
    prompt: bool = False
    log: NodeLogger = field(default=None, repr=False)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.log is None:
            self.log = NodeLogger(logger, self.path)

    @property
    def uploads_dir(self) -> Path:
        return self.absolute_dir / UPLOADS_DIR

    @property
    def label(self) -> str:
        """``template/`` style prefix used in messages; empty for ``.``."""
        return "" if self.dir == "." else f"{self.dir}/"

    def child(
        self,
        reference: NodeReference,
        settings: Settings,
        forbidden_paths: tuple[str, ...] = (),
    ) -> PathContext:
        """Build the context of the ``template/`` or ``slot/`` sub-node."""
        name = reference.value
        path = settings.path or ""
        return replace(
            self,
            reference=reference,
            path=path,
            normalized_path=normalize_path(path),
            settings=settings,
            dir=name if self.dir == "." else f"{self.dir}/{name}",
            absolute_dir=self.absolute_dir / name,
            forbidden_paths=forbidden_paths,
            log=self.log.child(name),
        )


def make_context(
    settings: Settings,
    server_url: str,
    auth: str,
    directory: Path,
    *,
    reference: NodeReference = NodeReference.ROOT,
    dir_label: str = ".",
    path: str | None = None,
    prompt: bool = False,
) -> PathContext:
    """Build a ``PathContext`` for a single directory.

    *path* overrides ``settings.path`` (e.g. a parent's pointer).
    """
    node_path = path or settings.path or "/"
    return PathContext(
        reference=reference,
        path=node_path,
        normalized_path=normalize_path(node_path),
        server_url=server_url,
        auth=auth,
        settings=settings,
        dir=dir_label,
        absolute_dir=Path(directory).resolve(),
        prompt=prompt,
    )


def build_node_list(
    root_settings: Settings,
    server_url: str,
    auth: str,
    base_dir: Path,
    *,
    prompt: bool = False,
) -> list[PathContext]:
    """Return the nodes of the tree rooted at *base_dir* in push order.

    Order is template, slot, root so that the root is published after the
    documents it references.  A sub-node is included only when the root
    points at it and its directory has readable settings.
    """
    base_dir = Path(base_dir)
    nodes: list[PathContext] = []

    for reference in (NodeReference.TEMPLATE, NodeReference.SLOT):
        pointer = root_settings.pointer(reference)
        if not pointer:
            continue
        sub_dir = base_dir / reference.value
        sub_settings = read_settings(sub_dir)
        if sub_settings is None:
            continue
        nodes.append(
            make_context(
                sub_settings,
                server_url,
                auth,
                sub_dir,
                reference=reference,
                dir_label=reference.value,
                path=pointer,
                prompt=prompt,
            )
        )

    nodes.append(
        make_context(root_settings, server_url, auth, base_dir, prompt=prompt)
    )
    return nodes
