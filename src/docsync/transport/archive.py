"""Archive transport: push and pull a node as a gzip'd tarball over HTTP."""

from __future__ import annotations

import hashlib
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.async_utils import run_sync
from ..core.git import (
    get_remote_url,
    has_uncommitted_changes,
    is_git_repo,
    run_git,
)
from ..document.context import UPLOADS_DIR, PathContext, read_settings
from ..exceptions import (
    AssetError,
    ServerError,
    TransportConflictError,
    UncommittedChangesError,
)
from ..file_handler import is_plain_file_name, write_file
from .files import (
    TRACKED_GITIGNORE,
    FileChange,
    FileStatus,
    apply_changes,
    build_tarball,
    compare_files,
    extract_tarball,
    format_bytes,
    validate_and_get_files_from_dir,
)

if TYPE_CHECKING:
    from ..sync.harness import SyncSession

IGNORED_ENTRIES = frozenset({".DS_Store"})


async def push_path_via_archive(ctx: PathContext, session: SyncSession) -> None:
    """Upload the node's file set as ``{path}/edit?update=true``.

    Raises:
        ConfigurationError: The directory does not hold a valid file set.
        AuthenticationError: The server answered 401.
        ServerError: Any other non-2xx answer.
    """
    log = ctx.log.child("push")
    file_set = await run_sync(validate_and_get_files_from_dir, ctx.absolute_dir)
    tarball = await run_sync(build_tarball, ctx.absolute_dir, file_set.files)
    log.debug("Packed %s (%s)", ", ".join(file_set.files), format_bytes(len(tarball)))

    try:
        await run_sync(session.client.upload_archive, ctx.normalized_path, tarball)
    except ServerError as e:
        label = ctx.reference.value.capitalize()
        raise ServerError(
            e.method, e.url, e.status, f"{label} upload failed: {e.detail}"
        ) from e

    log.info("Uploaded successfully")


def _has_content(directory: Path) -> bool:
    if not directory.is_dir():
        return False
    return any(entry.name not in IGNORED_ENTRIES for entry in directory.iterdir())


def _download_uploads(
    session: SyncSession,
    ctx: PathContext,
    names: list[str],
    uploads_dir: Path,
) -> list[str]:
    """Fetch *names* into *uploads_dir*; failures are skipped."""
    if not names:
        return []
    uploads_dir.mkdir(parents=True, exist_ok=True)
    downloaded: list[str] = []
    for name in names:
        if not is_plain_file_name(name):
            ctx.log.warning("Refusing upload name outside uploads/: %s", name)
            continue
        try:
            data = session.client.download_upload(ctx.normalized_path, name)
        except AssetError as e:
            ctx.log.debug("Skipping upload %s: %s", name, e)
            continue
        (uploads_dir / name).write_bytes(data)
        downloaded.append(f"{UPLOADS_DIR}/{name}")
    return downloaded


def _commit_pull(directory: Path, fresh: bool) -> None:
    if fresh:
        run_git(["init"], cwd=directory)
        write_file(directory / ".gitignore", TRACKED_GITIGNORE)
    run_git(["add", "-A"], cwd=directory)
    if run_git(["status", "--porcelain"], cwd=directory):
        run_git(["commit", "-m", "pull"], cwd=directory)


async def pull_path_via_archive(
    ctx: PathContext,
    session: SyncSession,
    track_with_git: bool = False,
) -> None:
    """Download ``archive.tar.gz`` for the node and apply what changed.

    The archive and its uploads are staged in a temporary directory and
    compared by sha256; only new and modified files are copied.  With
    *track_with_git* the directory is committed into a local repository.

    Raises:
        TransportConflictError: The directory is a clone with an ``origin``.
        UncommittedChangesError: The directory is a repository with
            uncommitted changes and the archive would change files.
    """
    target_dir = ctx.absolute_dir
    has_content = await run_sync(_has_content, target_dir)
    has_git = has_content and is_git_repo(target_dir)

    if has_git and await run_sync(get_remote_url, target_dir):
        raise TransportConflictError(
            f'"{ctx.dir}" has a git remote origin; use "pull --via git" to update it'
        )

    data = await run_sync(session.client.download_archive, ctx.normalized_path)
    if data is None:
        ctx.log.warning("Archive not found for %s, skipping", ctx.path)
        return

    digest = hashlib.sha256(data).hexdigest()[:12]

    with tempfile.TemporaryDirectory(prefix=f"docsync-tar-{ctx.reference.value}-") as tmp:
        staging = Path(tmp) / ctx.reference.value
        extracted = await run_sync(extract_tarball, data, staging)

        remote_settings = read_settings(staging)
        upload_names = (remote_settings.uploads if remote_settings else None) or []
        uploads = await run_sync(
            _download_uploads, session, ctx, upload_names, staging / UPLOADS_DIR
        )

        changes: list[FileChange] = await run_sync(
            compare_files, staging, target_dir, [*extracted, *uploads]
        )
        changed = [c for c in changes if c.status is not FileStatus.UNCHANGED]

        ctx.log.info("Archive: %s (%s)", format_bytes(len(data)), digest)
        if not changed:
            ctx.log.info("Already up to date")
            return

        for change in changed:
            ctx.log.info("%s %s (%s)", change.symbol, change.file, change.status.value)

        if has_git and await run_sync(has_uncommitted_changes, target_dir):
            raise UncommittedChangesError(
                f'"{ctx.dir}" has uncommitted changes; commit or stash before pulling'
            )

        await session.approve(ctx, f"Apply {len(changed)} file(s) to {ctx.dir}")
        target_dir.mkdir(parents=True, exist_ok=True)
        await run_sync(apply_changes, staging, target_dir, changes)

    if track_with_git:
        git = "git" if ctx.dir == "." else f"git -C {ctx.dir}"
        if has_git:
            await session.approve(ctx, f'{git} add -A && {git} commit -m "pull"')
        else:
            await session.approve(
                ctx, f'{git} init && {git} add -A && {git} commit -m "pull"'
            )
        await run_sync(_commit_pull, target_dir, not has_git)
