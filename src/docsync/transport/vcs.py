"""Version-control transport: push and pull a node with ``git``.

The server exposes each document as ``{server_url}{path}.git``.  The
credential URL is only set on ``origin`` while a command runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..core.async_utils import run_sync
from ..core.git import (
    authenticated_remote,
    build_auth_url,
    current_branch,
    get_remote_url,
    has_remote,
    has_uncommitted_changes,
    has_upstream,
    is_git_repo,
    remote_url_for,
    run_git,
    sanitize_message,
    sanitize_url,
)
from ..document.context import PathContext
from ..exceptions import GitCommandError, RemoteMismatchError
from ..logger import NodeLogger
from .archive import push_path_via_archive

if TYPE_CHECKING:
    from ..sync.harness import SyncSession


def _git_prefix(ctx: PathContext) -> str:
    return "git" if ctx.dir == "." else f'git -C "{ctx.dir}"'


def _log_output(log: NodeLogger, output: str) -> None:
    for line in output.splitlines():
        if line.strip():
            log.debug(line)


def _push(directory: Path, auth_url: str, clean_url: str, log: NodeLogger) -> None:
    with authenticated_remote(directory, auth_url, clean_url):
        if has_upstream(directory):
            output = run_git(["push"], cwd=directory)
        else:
            branch = current_branch(directory)
            output = run_git(["push", "-u", "origin", branch], cwd=directory)
    _log_output(log, output)


def _pull(directory: Path, auth_url: str, clean_url: str, log: NodeLogger) -> None:
    with authenticated_remote(directory, auth_url, clean_url):
        output = run_git(["pull"], cwd=directory)
    _log_output(log, output)


def _clone(directory: Path, auth_url: str, clean_url: str, log: NodeLogger) -> None:
    try:
        output = run_git(["clone", auth_url, str(directory)])
        run_git(["remote", "set-url", "origin", clean_url], cwd=directory)
    except GitCommandError as e:
        raise GitCommandError(
            sanitize_message(e.command, auth_url, clean_url),
            sanitize_message(str(e), auth_url, clean_url),
        ) from None
    _log_output(log, output)


async def push_path_via_git(ctx: PathContext, session: SyncSession) -> None:
    """Push the node's repository, or fall back to the archive transport.

    Without a ``.git`` or without a remote the node is pushed as an
    archive.  A branch without an upstream is pushed with ``-u origin``.
    """
    directory = ctx.absolute_dir
    if not await run_sync(has_remote, directory):
        ctx.log.debug("No git remote, pushing as archive")
        await push_path_via_archive(ctx, session)
        return

    auth_url, clean_url = build_auth_url(
        remote_url_for(ctx.server_url, ctx.path), ctx.auth
    )
    await session.approve(ctx, f"{_git_prefix(ctx)} push")
    await run_sync(_push, directory, auth_url, clean_url, ctx.log.child("push"))


async def pull_path_via_git(ctx: PathContext, session: SyncSession) -> None:
    """Clone the node, or pull into an existing clone of the same remote.

    Raises:
        RemoteMismatchError: The existing repository has no ``origin`` or
            it points at another document.
        GitCommandError: A git command failed (credentials removed).
    """
    directory = ctx.absolute_dir
    auth_url, clean_url = build_auth_url(
        remote_url_for(ctx.server_url, ctx.path), ctx.auth
    )

    if not is_git_repo(directory):
        await session.approve(ctx, f'git clone {clean_url} "{ctx.dir}"')
        await run_sync(_clone, directory, auth_url, clean_url, ctx.log.child("clone"))
        return

    remote_url = await run_sync(get_remote_url, directory)
    if not remote_url:
        raise RemoteMismatchError(f'Git repo at "{ctx.dir}" has no remote origin URL')
    if sanitize_url(remote_url) != clean_url:
        raise RemoteMismatchError(
            f'Remote URL mismatch at "{ctx.dir}": expected {clean_url}, '
            f"got {sanitize_url(remote_url)}"
        )

    log = ctx.log.child("pull")
    if await run_sync(has_uncommitted_changes, directory):
        log.warning("Has uncommitted changes, skipping")
        return

    await session.approve(ctx, f"{_git_prefix(ctx)} pull")
    await run_sync(_pull, directory, auth_url, clean_url, log)
