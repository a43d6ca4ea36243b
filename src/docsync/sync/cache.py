"""Warm the server's render cache after a sync."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

from ..config import ResolvedTarget
from ..core.async_utils import maybe_await
from ..document.assembler import Document, assemble

logger = logging.getLogger(__name__)

RenderHook = Callable[[Document, ResolvedTarget], Union[Any, Awaitable[Any]]]


async def populate_cache(
    target: ResolvedTarget,
    directory: Path | str,
    render: RenderHook | None = None,
) -> Document:
    """Assemble the document in *directory* and hand it to *render*.

    Rendering itself happens outside this package; without a hook the
    assembly still checks that the synced tree is complete.  Failures
    propagate.
    """
    document = await assemble(directory)
    logger.debug("Assembled %s for cache", document.path)
    if render is not None:
        await maybe_await(render(document, target))
    return document
