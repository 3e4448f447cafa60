"""Batcher -- collects delivery events and drains them on a timer.

``record()`` only appends; a recurring timer task calls ``flush()`` every
``flush_interval`` seconds. Each flush renders up to ``max_units`` units,
groups them into chunks and submits a single job to the DeliveryQueue, so
the queue's spacing applies per flush rather than per log call. The timer
stops itself once nothing is pending and restarts on the next ``record()``.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from src.core.common import join_parts
from src.delivery.models import (
    DEFAULT_UNIT_MODEL,
    UNIT_BODY_LIMIT,
    DeliveryUnit,
    FlushState,
    LogEvent,
    Severity,
    UnitModel,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from src.delivery.queue import DeliveryJob, DeliveryQueue

# Units drained per flush
MAX_UNITS_PER_FLUSH = 10
# Units per webhook request (Discord accepts at most 10 embeds)
CHUNK_SIZE = 10
# Seconds between flushes
FLUSH_INTERVAL = 1.0


class DeliveryOwner(Protocol):
    """Holder of the enable flag shared by the batcher and the dispatcher."""

    @property
    def enabled(self) -> bool: ...


class ChunkSender(Protocol):
    """Sends the chunks of one job and returns the delay before the next dispatch."""

    async def send_batch(self, chunks: Sequence[Sequence[DeliveryUnit]]) -> float: ...


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def render_text(parts: Sequence[Any]) -> str:
    """Text of one event as shown in the embed body."""
    return join_parts(parts, fenced=True).replace("\n ", "\n").strip()


def split_text(text: str, limit: int = UNIT_BODY_LIMIT) -> list[str]:
    """Cut ``text`` into consecutive slices of at most ``limit`` characters."""
    return [text[start : start + limit] for start in range(0, len(text), limit)]


def make_chunks(units: Sequence[DeliveryUnit], size: int = CHUNK_SIZE) -> list[list[DeliveryUnit]]:
    return [list(units[start : start + size]) for start in range(0, len(units), size)]


class Batcher:
    """Pending-event buffer with a lazily started flush timer.

    Args:
        queue: Shared DeliveryQueue
        sender: Chunk sender (the webhook dispatcher)
        models: Title/color per severity
        owner: Provides the enable flag
        flush_interval: Seconds between flushes
        max_units: Units drained per flush
        chunk_size: Units per request
    """

    def __init__(
        self,
        queue: DeliveryQueue,
        sender: ChunkSender,
        models: Mapping[Severity, UnitModel],
        *,
        owner: DeliveryOwner,
        flush_interval: float = FLUSH_INTERVAL,
        max_units: int = MAX_UNITS_PER_FLUSH,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self._queue = queue
        self._sender = sender
        self._models = dict(models)
        self._owner = owner
        self._flush_interval = flush_interval
        self._max_units = max_units
        self._chunk_size = chunk_size

        self._pending: deque[LogEvent] = deque()
        self._state = FlushState.IDLE
        self._timer: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def state(self) -> FlushState:
        return self._state

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record(self, severity: Severity, parts: Sequence[Any]) -> None:
        """Append one event and make sure the flush timer runs."""
        if not self._owner.enabled:
            return
        self._pending.append(LogEvent(severity=severity, parts=tuple(parts)))
        logger.debug("Batcher: {} event(s) pending", len(self._pending))
        self._start_timer()

    # -------------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------------

    def _start_timer(self) -> None:
        if self._timer is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Batcher: no running event loop, flush timer not started")
            return
        self._timer = loop.create_task(self._tick(), name="delivery-batcher-timer")

    async def _tick(self) -> None:
        me = asyncio.current_task()
        while self._timer is me:
            await asyncio.sleep(self._flush_interval)
            try:
                self.flush()
            except Exception:
                logger.exception("Batcher: flush failed, timer keeps running")

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not _current_task():
            timer.cancel()

    # -------------------------------------------------------------------------
    # Flushing
    # -------------------------------------------------------------------------

    def render(self, event: LogEvent) -> list[DeliveryUnit]:
        """Units of one event (empty text gives none)."""
        model = self._models.get(event.severity, DEFAULT_UNIT_MODEL)
        return [
            DeliveryUnit(title=model.title, color=model.color, body=body)
            for body in split_text(render_text(event.parts))
        ]

    def _drain(self) -> list[DeliveryUnit]:
        units: list[DeliveryUnit] = []
        while self._pending and len(units) < self._max_units:
            event = self._pending.popleft()
            try:
                units.extend(self.render(event))
            except Exception:
                logger.exception(
                    "Batcher: dropping {} event that failed to render", event.severity
                )
        return units

    def _make_job(self, chunks: list[list[DeliveryUnit]]) -> DeliveryJob:
        sender = self._sender

        async def job() -> float:
            return await sender.send_batch(chunks)

        return job

    def _submit(self, units: list[DeliveryUnit]) -> None:
        if not units:
            return
        chunks = make_chunks(units, self._chunk_size)
        self._queue.push(self._make_job(chunks))
        logger.debug("Batcher: submitted {} unit(s) in {} chunk(s)", len(units), len(chunks))

    def flush(self) -> None:
        """Drain up to ``max_units`` units into one queued job."""
        if self._state is FlushState.FLUSHING:
            return
        self._state = FlushState.FLUSHING
        try:
            if not self._owner.enabled or not self._pending:
                self._stop_timer()
                return

            self._submit(self._drain())

            if not self._pending:
                self._stop_timer()
        finally:
            self._state = FlushState.IDLE

    async def aclose(self) -> None:
        """Submit everything still pending and stop the timer."""
        self._stop_timer()
        if self._owner.enabled:
            while self._pending:
                self._submit(self._drain())
