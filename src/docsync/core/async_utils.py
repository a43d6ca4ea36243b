"""Async utilities for bridging blocking HTTP, git and filesystem calls."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used to wrap blocking requests, subprocess and file calls in the
    async transport primitives.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        client = DocumentServerClient(config)
        settings = await run_sync(client.get_settings, "/docs")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Return *value*, awaiting it first when it is awaitable.

    Lets callers accept both plain and ``async`` callbacks.
    """
    if asyncio.iscoroutine(value) or isinstance(value, asyncio.Future):
        return await value
    return value  # type: ignore[return-value]


async def gather_limited(
    coros: Sequence[Awaitable[T]],
    max_parallel: int | None = None,
) -> list[T]:
    """Run awaitables concurrently, optionally bounded by a semaphore.

    Returns results in order. Exceptions propagate from the first failure.

    Args:
        coros: Sequence of awaitables to run concurrently.
        max_parallel: Upper bound on concurrently running awaitables.
            ``None`` means unbounded.

    Returns:
        List of results in the same order as the input.
    """
    if max_parallel is None:
        return list(await asyncio.gather(*coros))

    semaphore = asyncio.Semaphore(max_parallel)

    async def _bounded(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return list(await asyncio.gather(*(_bounded(c) for c in coros)))
