"""Tests for core.async_utils: run_sync, maybe_await, gather_limited."""

import asyncio
import threading

from docsync.core.async_utils import gather_limited, maybe_await, run_sync


class TestRunSync:
    async def test_runs_in_worker_thread(self):
        main_thread = threading.get_ident()
        worker = await run_sync(threading.get_ident)
        assert worker != main_thread

    async def test_passes_arguments(self):
        assert await run_sync(divmod, 7, 2) == (3, 1)


class TestMaybeAwait:
    async def test_plain_value(self):
        assert await maybe_await(True) is True

    async def test_coroutine(self):
        async def answer():
            return 42

        assert await maybe_await(answer()) == 42


class TestGatherLimited:
    async def test_preserves_order(self):
        async def delayed(value, delay):
            await asyncio.sleep(delay)
            return value

        result = await gather_limited([delayed("a", 0.02), delayed("b", 0)])
        assert result == ["a", "b"]

    async def test_bounded(self):
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await gather_limited([task() for _ in range(6)], max_parallel=2)
        assert peak == 2
