"""Upload (asset) sync for one node.

Uploads live in ``uploads/`` next to the document and are compared with
the server's ``uploads.json`` manifest by ``sha256:<hex>`` hash.  The
three passes are independent; a failed transfer is logged and the pass
moves on to the next file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.async_utils import run_sync
from ..document.context import PathContext
from ..exceptions import AssetError
from ..file_handler import (
    file_hash,
    file_hash_async,
    is_plain_file_name,
    list_upload_files,
)

if TYPE_CHECKING:
    from .harness import SyncSession


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def _download_all(session: SyncSession, ctx: PathContext, names: list[str]) -> int:
    ctx.uploads_dir.mkdir(parents=True, exist_ok=True)
    downloaded = 0
    for name in names:
        if not is_plain_file_name(name):
            ctx.log.warning("Refusing upload name outside uploads/: %s", name)
            continue
        try:
            data = session.client.download_upload(ctx.normalized_path, name)
        except AssetError as e:
            ctx.log.warning("Failed to download %s: %s", name, e)
            continue
        (ctx.uploads_dir / name).write_bytes(data)
        downloaded += 1
    return downloaded


def _needs_download(ctx: PathContext, name: str, remote_hash: str) -> bool:
    if not is_plain_file_name(name):
        return True
    local = ctx.uploads_dir / name
    if not local.is_file():
        return True
    try:
        return file_hash(local) != remote_hash
    except OSError:
        return True


async def download_path_uploads(ctx: PathContext, session: SyncSession) -> int:
    """Download uploads that are missing locally or differ from the server.

    When ``uploads/`` is missing or empty every upload declared in the
    node's settings is fetched without consulting the manifest.

    Returns:
        Number of files written.
    """
    declared = ctx.settings.uploads or []
    if not declared:
        return 0

    existing = await run_sync(list_upload_files, ctx.uploads_dir)

    if not existing:
        to_download = list(declared)
        new = set(to_download)
    else:
        manifest = await run_sync(session.client.get_upload_manifest, ctx.normalized_path)
        to_download = [
            entry.name
            for entry in manifest
            if _needs_download(ctx, entry.name, entry.hash)
        ]
        if not to_download:
            ctx.log.info("All uploads are up to date")
            return 0
        new = {n for n in to_download if n not in existing}

    if ctx.prompt:
        for name in to_download:
            status = "new" if name in new else "modified"
            symbol = "+" if name in new else "~"
            ctx.log.info("%s uploads/%s (%s)", symbol, name, status)
        count = len(to_download)
        if not await session.ask(f"Would you like to download {count} item{_plural(count)}?"):
            return 0

    ctx.log.info("Downloading %d upload%s", len(to_download), _plural(len(to_download)))
    return await run_sync(_download_all, session, ctx, to_download)


def _upload_all(session: SyncSession, ctx: PathContext, names: list[str]) -> int:
    uploaded = 0
    for name in names:
        path = ctx.uploads_dir / name
        try:
            data = path.read_bytes()
        except OSError:
            ctx.log.warning("File not found locally: %s", name)
            continue
        try:
            session.client.upload_file(ctx.normalized_path, name, data)
        except AssetError as e:
            ctx.log.warning("Failed to upload %s: %s", name, e)
            continue
        ctx.log.info("Uploaded %s", name)
        uploaded += 1
    return uploaded


async def upload_path_uploads(ctx: PathContext, session: SyncSession) -> int:
    """Upload local files the server lacks or holds with a different hash.

    Returns:
        Number of files uploaded.
    """
    if not ctx.uploads_dir.is_dir():
        return 0

    local = await run_sync(list_upload_files, ctx.uploads_dir)
    manifest = await run_sync(session.client.get_upload_manifest, ctx.normalized_path)
    remote = {entry.name: entry.hash for entry in manifest}

    to_send = []
    for name in local:
        try:
            local_hash = await file_hash_async(ctx.uploads_dir / name)
        except OSError:
            continue
        if remote.get(name) != local_hash:
            to_send.append(name)

    if not to_send:
        ctx.log.info("All uploads are synced")
        return 0

    ctx.log.info("Uploading %d new upload%s", len(to_send), _plural(len(to_send)))
    return await run_sync(_upload_all, session, ctx, to_send)


def _delete_all(session: SyncSession, ctx: PathContext, names: list[str]) -> int:
    deleted = 0
    for name in names:
        try:
            session.client.delete_upload(ctx.normalized_path, name)
        except AssetError as e:
            ctx.log.warning("Failed to delete %s: %s", name, e)
            continue
        deleted += 1
    return deleted


async def delete_path_uploads(ctx: PathContext, session: SyncSession) -> int:
    """Delete server uploads that no longer exist locally.

    Returns:
        Number of files deleted.
    """
    local = set(await run_sync(list_upload_files, ctx.uploads_dir))
    manifest = await run_sync(session.client.get_upload_manifest, ctx.normalized_path)
    to_delete = [entry.name for entry in manifest if entry.name not in local]
    if not to_delete:
        return 0
    return await run_sync(_delete_all, session, ctx, to_delete)
