"""Unit tests for PersistenceQueue (ordered fire-and-forget writes)."""
import asyncio

import pytest

from api.utils.background import PersistenceQueue
from api.utils.errors import UpstreamError


@pytest.mark.unit
class TestPersistenceQueue:
    @pytest.mark.asyncio
    async def test_jobs_run_in_submission_order(self):
        queue = PersistenceQueue()
        order = []

        def job(name, delay):
            async def _run():
                await asyncio.sleep(delay)
                order.append(name)
            return _run

        # A slow first write must still land before a fast second one.
        queue.submit("first", job("first", 0.02))
        queue.submit("second", job("second", 0))
        await queue.drain()
        assert order == ["first", "second"]
        await queue.close()

    @pytest.mark.asyncio
    async def test_failure_reported_and_queue_keeps_going(self):
        errors = []
        queue = PersistenceQueue(on_error=lambda description, exc: errors.append((description, exc)))
        done = []

        async def fail():
            raise UpstreamError("store down")

        async def succeed():
            done.append(True)

        queue.submit("chat c1", fail)
        queue.submit("chat c2", succeed)
        await queue.drain()

        assert [d for d, _ in errors] == ["chat c1"]
        assert isinstance(errors[0][1], UpstreamError)
        assert done == [True]
        await queue.close()

    @pytest.mark.asyncio
    async def test_failing_error_callback_does_not_stall_queue(self):
        def broken_callback(description, exc):
            raise RuntimeError("callback broke")

        queue = PersistenceQueue(on_error=broken_callback)
        done = []

        async def fail():
            raise UpstreamError("store down")

        async def succeed():
            done.append(True)

        queue.submit("chat c1", fail)
        queue.submit("chat c2", succeed)
        await asyncio.wait_for(queue.drain(), timeout=1)

        assert done == [True]
        await queue.close()

    @pytest.mark.asyncio
    async def test_submit_does_not_wait(self):
        queue = PersistenceQueue()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(0.01)

        queue.submit("slow", slow)
        assert queue.pending == 1
        await queue.drain()
        assert started.is_set()
        assert queue.pending == 0
        await queue.close()

    @pytest.mark.asyncio
    async def test_close_flushes_then_stops(self):
        queue = PersistenceQueue()
        done = []

        async def write():
            done.append(1)

        queue.submit("w", write)
        await queue.close()
        assert done == [1]
        await queue.close()
