"""
Ordered fire-and-forget persistence.

Callers enqueue a coroutine factory and move on. A single consumer task runs the jobs in
submission order, so remote writes land in the order they were issued. Failures are
logged and handed to `on_error`; they never propagate to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Tuple

from api.utils.logger import configure_logging

logger = configure_logging()

Job = Callable[[], Awaitable[object]]
ErrorCallback = Callable[[str, BaseException], None]


class PersistenceQueue:
    def __init__(self, on_error: Optional[ErrorCallback] = None):
        self.on_error = on_error
        self._queue: Optional[asyncio.Queue[Tuple[str, Job]]] = None
        self._worker: Optional[asyncio.Task] = None

    def _ensure_worker(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run(self._queue))
        return self._queue

    def submit(self, description: str, job: Job) -> None:
        """Queue a write. Must be called from inside the running event loop."""
        self._ensure_worker().put_nowait((description, job))

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            description, job = await queue.get()
            try:
                await job()
                logger.debug("persisted %s", description)
            except Exception as e:
                logger.error("persist failed %s error=%s", description, e)
                self._report(description, e)
            finally:
                queue.task_done()

    def _report(self, description: str, error: Exception) -> None:
        if self.on_error is None:
            return
        # A failing callback must not stop the consumer with jobs still queued.
        try:
            self.on_error(description, error)
        except Exception:
            logger.exception("persist error callback failed %s", description)

    async def drain(self) -> None:
        """Wait until every queued write has been attempted."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self._queue = None
