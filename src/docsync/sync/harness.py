"""Push and pull orchestration over the document node tree.

``push`` publishes template, slot and root (in that order) and then syncs
their uploads.  ``pull`` fetches the root first, discovers template and
slot from the pulled settings, fetches those, and downloads uploads for
all three.  Either transport can carry the nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

from ..config import Config, resolve_target
from ..core.async_utils import maybe_await, run_sync
from ..core.client import DocumentServerClient
from ..document.context import (
    NodeReference,
    PathContext,
    Settings,
    build_node_list,
    make_context,
    read_settings,
)
from ..document.validator import validate_dir_settings
from ..exceptions import (
    ConfigurationError,
    DocsyncError,
    SettingsNotFoundError,
    SyncError,
)
from ..logger import NodeLogger
from ..transport.archive import pull_path_via_archive, push_path_via_archive
from ..transport.detect import TransportKind, detect_transport, inspect_directory
from ..transport.files import validate_and_get_files_from_dir
from ..transport.vcs import pull_path_via_git, push_path_via_git
from .cache import RenderHook, populate_cache
from .plan import build_upload_plan, confirm_message
from .reporter import format_upload_plan
from .uploads import delete_path_uploads, download_path_uploads, upload_path_uploads

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]
Primitive = Callable[[PathContext, "SyncSession"], Awaitable[None]]


def _always_yes(message: str) -> bool:
    return True


@dataclass
class SyncSession:
    """Everything one push/pull/settings invocation needs.

    Attributes:
        config: Server connection configuration.
        client: HTTP client, closed by ``close()``.
        logger: Command-level logger; nodes prefix their own paths.
        prompt: Ask before mutating steps.
        confirm: Answers yes/no questions; may be async.
        json_output: The caller prints machine-readable output.
        cwd: Base directory for relative paths.
        render: Optional cache render hook.
    """

    config: Config
    client: DocumentServerClient
    logger: NodeLogger = field(default_factory=lambda: NodeLogger(logger))
    prompt: bool = False
    confirm: ConfirmCallback = _always_yes
    json_output: bool = False
    cwd: Path = field(default_factory=Path.cwd)
    render: RenderHook | None = None

    @classmethod
    def create(cls, config: Config, **kwargs: Any) -> SyncSession:
        return cls(config=config, client=DocumentServerClient(config), **kwargs)

    async def ask(self, message: str) -> bool:
        return bool(await maybe_await(self.confirm(message)))

    async def approve(self, ctx: PathContext, command: str) -> None:
        """Log *command*, or ask first when the node prompts.

        Raises:
            SyncError: The user declined.
        """
        if not ctx.prompt:
            ctx.log.info("> %s", command)
            return
        if not await self.ask(f"Require permission to execute: {command}\nProceed?"):
            raise SyncError("Command cancelled by user")

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> SyncSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def select_transport(
    via: str | None = None,
    no_git: bool = False,
    directory: Path | str | None = None,
) -> TransportKind:
    """Resolve ``--via`` / ``--no-git``, falling back to detection.

    Raises:
        ConfigurationError: Unknown ``via`` or ``--no-git`` with ``--via git``.
    """
    kind: TransportKind | None = None
    if via:
        try:
            kind = TransportKind(via)
        except ValueError:
            raise ConfigurationError(
                f'Invalid --via value: "{via}". Must be "git" or "tar".'
            ) from None
    if no_git:
        if kind is TransportKind.GIT:
            raise ConfigurationError("Cannot use --no-git with --via=git.")
        kind = TransportKind.ARCHIVE
    if kind is None:
        kind = detect_transport(inspect_directory(directory or Path.cwd()))
    return kind


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------


async def push(
    session: SyncSession,
    transport: TransportKind | None = None,
    source: str | None = None,
) -> str | None:
    """Publish the document tree in ``session.cwd``.

    Returns:
        The document URL, or None when the user declined the plan.

    Raises:
        ConfigurationError: Settings or files are not in a pushable state
            (raised before any network I/O).
        SyncError: A transport or upload step failed.
    """
    log = session.logger.child("push")
    base = session.cwd
    target = resolve_target(session.config, source, cwd=base)

    settings = read_settings(base)
    if settings is None:
        raise SettingsNotFoundError(
            "Could not determine document path from settings.json"
        )
    settings = settings.model_copy(update={"path": target.document_path})

    validate_dir_settings(settings, base)
    nodes = build_node_list(
        settings, target.server_url, target.auth, base, prompt=session.prompt
    )
    for node in nodes:
        node.log = log.child(node.path)
        await run_sync(validate_and_get_files_from_dir, node.absolute_dir)

    kind = transport or detect_transport(inspect_directory(base))
    primitive: Primitive = (
        push_path_via_git if kind is TransportKind.GIT else push_path_via_archive
    )

    if kind is TransportKind.ARCHIVE:
        log.info("Building upload plan...")
        plans = await build_upload_plan(session, nodes, settings)
        log.info(format_upload_plan([p.to_document_plan() for p in plans]))
        if session.prompt and not await session.ask(confirm_message(plans)):
            log.info("Update cancelled.")
            return None

    try:
        for node in nodes:
            await primitive(node, session)
        for node in nodes:
            await upload_path_uploads(node, session)
            await delete_path_uploads(node, session)
    except (DocsyncError, OSError) as e:
        raise SyncError(f"Push failed: {e}") from e

    await populate_cache(target, base, session.render)

    if not session.json_output:
        log.info("url: %s", target.url)
    return target.url


# ---------------------------------------------------------------------------
# Pull
# ---------------------------------------------------------------------------


def _sub_label(dest: str, name: str) -> str:
    return name if dest == "." else f"{dest}/{name}"


async def pull(
    session: SyncSession,
    transport: TransportKind | None = None,
    source: str | None = None,
    destination: str | None = None,
    track_with_git: bool = False,
) -> str:
    """Fetch a document tree into its destination directory.

    Returns:
        The document URL.

    Raises:
        ConfigurationError: The target cannot be resolved.
        SyncError: Any later step failed.
    """
    log = session.logger.child("pull")
    target = resolve_target(session.config, source, destination, cwd=session.cwd)
    dest_dir = (session.cwd / target.dest).resolve()

    kind = transport or detect_transport(inspect_directory(dest_dir))
    primitive: Primitive = (
        pull_path_via_git
        if kind is TransportKind.GIT
        else partial(pull_path_via_archive, track_with_git=track_with_git)
    )

    def node(reference: NodeReference, path: str, directory: Path, label: str) -> PathContext:
        ctx = make_context(
            Settings(path=path),
            target.server_url,
            target.auth,
            directory,
            reference=reference,
            dir_label=label,
            path=path,
            prompt=session.prompt,
        )
        ctx.log = log.child(path)
        return ctx

    try:
        root = node(NodeReference.ROOT, target.document_path, dest_dir, target.dest)
        await primitive(root, session)

        settings = read_settings(dest_dir)
        if settings is None:
            log.warning("No settings.json in %s after pull", target.dest)
        else:
            root.settings = settings
            subs = [
                node(reference, pointer, dest_dir / reference.value, _sub_label(target.dest, reference.value))
                for reference in (NodeReference.TEMPLATE, NodeReference.SLOT)
                if (pointer := settings.pointer(reference))
            ]

            # Sequential so log output stays in a stable order
            for sub in subs:
                await primitive(sub, session)

            for sub in subs:
                sub_settings = read_settings(sub.absolute_dir)
                if sub_settings is not None:
                    sub.settings = sub_settings

            for ctx in (root, *subs):
                await download_path_uploads(ctx, session)

            await populate_cache(target, dest_dir, session.render)
    except (DocsyncError, OSError) as e:
        raise SyncError(f"Pull failed: {e}") from e

    if not session.json_output:
        log.info("url: %s", target.url)
    return target.url
