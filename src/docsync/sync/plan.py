"""Build the upload plan shown before an archive push."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.async_utils import gather_limited, run_sync
from ..document.context import NodeReference, PathContext, Settings
from ..exceptions import ServerError
from ..file_handler import list_upload_files
from ..transport.files import validate_and_get_files_from_dir
from .models import DocumentPlan, FileItem, FileItemStatus

if TYPE_CHECKING:
    from .harness import SyncSession

# Unexpected entries that are normal in a document directory
PLAN_HIDDEN_EXCLUDED = frozenset(
    {
        ".gitignore",
        ".github",
        "uploads",
        "doc.code-workspace",
        ".git",
        "slot",
        "template",
        ".DS_Store",
    }
)


@dataclass
class NodePlan:
    """Push plan for one node before it is rendered as a ``DocumentPlan``."""

    ctx: PathContext
    server_settings: dict[str, Any] | None
    files: list[str]
    excluded: list[str]
    local_uploads: list[str] = field(default_factory=list)
    server_uploads: list[str] = field(default_factory=list)

    @property
    def is_create(self) -> bool:
        return self.server_settings is None

    @property
    def uploads_to_add(self) -> list[str]:
        return [f for f in self.local_uploads if f not in self.server_uploads]

    @property
    def uploads_to_remove(self) -> list[str]:
        return [f for f in self.server_uploads if f not in self.local_uploads]

    @property
    def uploads_synced(self) -> list[str]:
        return [f for f in self.local_uploads if f in self.server_uploads]

    def to_document_plan(self) -> DocumentPlan:
        items = [FileItem(file=f, status=FileItemStatus.INCLUDED) for f in self.files]
        items += [
            FileItem(file=f, status=FileItemStatus.IGNORED)
            for f in self.excluded
            if f not in PLAN_HIDDEN_EXCLUDED
        ]
        for names, status in (
            (self.uploads_synced, FileItemStatus.SYNCED),
            (self.uploads_to_add, FileItemStatus.ADD),
            (self.uploads_to_remove, FileItemStatus.REMOVE),
        ):
            items += [FileItem(file=f"uploads/{n}", status=status) for n in names]

        action = "Create" if self.is_create else "Update"
        return DocumentPlan(
            label=f"{action} {self.ctx.reference.value.capitalize()}",
            url=f"{self.ctx.server_url}{self.ctx.path}",
            files=items,
            is_create=self.is_create,
        )


async def _fetch_server_settings(
    session: SyncSession, ctx: PathContext
) -> dict[str, Any] | None:
    try:
        return await run_sync(session.client.get_settings, ctx.normalized_path)
    except ServerError as e:
        ctx.log.debug("No server settings: %s", e)
        return None


async def build_upload_plan(
    session: SyncSession,
    nodes: list[PathContext],
    root_settings: Settings,
) -> list[NodePlan]:
    """Compare each node with the server and describe the push.

    Server settings for all nodes are fetched concurrently.  When the root
    has no ``uploads/`` directory its declared uploads stand in for the
    local listing.
    """
    server_settings = await gather_limited(
        [_fetch_server_settings(session, ctx) for ctx in nodes]
    )

    plans: list[NodePlan] = []
    for ctx, remote in zip(nodes, server_settings):
        file_set = await run_sync(validate_and_get_files_from_dir, ctx.absolute_dir)
        if ctx.uploads_dir.is_dir():
            local_uploads = list_upload_files(ctx.uploads_dir)
        elif ctx.reference is NodeReference.ROOT:
            local_uploads = list(root_settings.uploads or [])
        else:
            local_uploads = []
        server_uploads = list((remote or {}).get("uploads") or [])
        plans.append(
            NodePlan(
                ctx=ctx,
                server_settings=remote,
                files=file_set.files,
                excluded=file_set.excluded,
                local_uploads=local_uploads,
                server_uploads=server_uploads,
            )
        )
    return plans


def confirm_message(plans: list[NodePlan]) -> str:
    """``Would you like to upload 5 items, and remove 1?``"""
    upload_count = sum(len(p.files) + len(p.uploads_to_add) for p in plans)
    remove_count = sum(len(p.uploads_to_remove) for p in plans)

    parts = []
    if upload_count:
        parts.append(f"upload {upload_count} item{'' if upload_count == 1 else 's'}")
    if remove_count:
        parts.append(f"remove {remove_count}")
    if not parts:
        return "Would you like to proceed?"
    return f"Would you like to {', and '.join(parts)}?"
