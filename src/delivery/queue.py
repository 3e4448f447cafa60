"""DeliveryQueue -- serialized, self-rate-limited job queue.

Jobs are pushed without blocking the caller and run strictly one at a time
in enqueue order. Each job reports how long the queue must wait before the
next one starts, which lets a job stretch the spacing (remote throttling) or
skip it (failure already handled).

One queue is created at application scope and shared by every plugin that
posts to the same rate-limited endpoint.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


type DeliveryJob = Callable[[], Awaitable[float | None]]

# Minimum spacing between dispatches (seconds)
BASE_INTERVAL = 1.0


class DeliveryQueue:
    """Single-worker FIFO of delivery jobs.

    Args:
        min_spacing: Delay used when a job reports none (seconds)
    """

    def __init__(self, min_spacing: float = BASE_INTERVAL) -> None:
        self._min_spacing = min_spacing
        self._pending: deque[DeliveryJob] = deque()
        self._busy = False
        self._worker: asyncio.Task[None] | None = None

    @property
    def min_spacing(self) -> float:
        return self._min_spacing

    @property
    def busy(self) -> bool:
        """True while a worker loop is running."""
        return self._busy

    @property
    def pending(self) -> int:
        """Jobs waiting to start."""
        return len(self._pending)

    def push(self, job: DeliveryJob) -> None:
        """Enqueue a job (non-blocking).

        Starts the worker when none is running. Without a running event loop
        the job waits for the next push made inside one, or for ``join()``.
        """
        self._pending.append(job)
        if not self._busy:
            self._start_worker()

    def _start_worker(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("DeliveryQueue: no running event loop, {} job(s) deferred", self.pending)
            return
        self._busy = True
        self._worker = loop.create_task(self._process(), name="delivery-queue-worker")

    async def _process(self) -> None:
        """Worker loop: pop, run, wait, repeat until empty."""
        try:
            while self._pending:
                job = self._pending.popleft()
                delay = await self._run(job)
                if delay > 0:
                    await asyncio.sleep(delay)
        finally:
            self._busy = False
            self._worker = None

    async def _run(self, job: DeliveryJob) -> float:
        try:
            delay = await job()
        except Exception:
            logger.exception("DeliveryQueue: job raised, continuing with base spacing")
            return self._min_spacing
        return self._min_spacing if delay is None else delay

    async def join(self) -> None:
        """Wait until every pending job has run (and its delay elapsed)."""
        while self._pending or self._busy:
            if not self._busy:
                self._start_worker()
            worker = self._worker
            if worker is None:
                break
            await asyncio.shield(worker)
