"""Background trace synthesis worker."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from ..engine import SpanSynthesizer
from ..logging_config import get_logger
from ..models import Span, SpanRecord, TraceEvent, Turn, TurnState
from ..registry import ISpanRegistry
from ..sink import ITraceSink
from ..storage import IStorage

logger = get_logger(__name__)


@dataclass
class TraceJob:
    """Everything needed to trace one turn after the client was answered."""

    turn: Turn
    events: list[TraceEvent] = field(default_factory=list)
    upstream_error: str | None = None


class ITraceWorker(Protocol):
    """Accepts trace jobs off the request path."""

    def submit(self, job: TraceJob) -> None:
        """Queue a job without waiting."""
        ...

    async def start(self) -> None:
        """Start consuming jobs."""
        ...

    async def stop(self) -> None:
        """Drain pending jobs, then stop."""
        ...


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class TraceWorker:
    """Consumes trace jobs from a bounded queue, dropping the oldest on overflow."""

    def __init__(
        self,
        synthesizer: SpanSynthesizer,
        sink: ITraceSink,
        registry: ISpanRegistry | None = None,
        storage: IStorage | None = None,
        max_queue_size: int = 256,
        drain_timeout: float = 5.0,
    ):
        self._synthesizer = synthesizer
        self._sink = sink
        self._registry = registry
        self._storage = storage
        self._drain_timeout = drain_timeout
        self._queue: asyncio.Queue[TraceJob] = asyncio.Queue(maxsize=max_queue_size)
        self._task: asyncio.Task | None = None
        self._dropped = 0
        self._processed = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, job: TraceJob) -> None:
        """Queue a job without waiting."""
        if self._queue.full():
            oldest = self._queue.get_nowait()
            self._queue.task_done()
            self._dropped += 1
            oldest.turn.transition(TurnState.DONE)
            logger.warning(
                "Trace queue full, dropped oldest job",
                extra={"context": {"turn_id": oldest.turn.id, "dropped": self._dropped}},
            )
        self._queue.put_nowait(job)

    async def start(self) -> None:
        """Start consuming jobs."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Trace worker started")

    async def stop(self) -> None:
        """Drain pending jobs (bounded wait), then stop."""
        if not self._task:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("Trace worker stopped with %s jobs pending", self._queue.qsize())
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Trace worker stopped")

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process(job)
            finally:
                self._queue.task_done()

    async def process(self, job: TraceJob) -> str | None:
        """Synthesize and emit one turn's trace. Errors are logged, never raised."""
        turn = job.turn
        context = {"turn_id": turn.id, "user_id": turn.request.user_id}
        span_id = None
        try:
            turn.transition(TurnState.SYNTHESIZING_TRACE)
            tree = self._synthesizer.synthesize(
                job.events,
                turn.started_at,
                turn.request,
                upstream_error=job.upstream_error,
            )
            span_id = self._sink.emit(tree)
            if span_id:
                await self._record(span_id, turn, tree.root)
            logger.debug(
                "Trace emitted",
                extra={"context": {**context, "span_id": span_id, "children": len(tree.children)}},
            )
        except Exception:
            logger.exception("Trace synthesis failed", extra={"context": context})
        finally:
            # Done regardless of outcome.
            turn.state = TurnState.DONE
            self._processed += 1
        return span_id

    async def _record(self, span_id: str, turn: Turn, root: Span) -> None:
        if self._registry is not None:
            self._registry.add(span_id)
        if self._storage is not None:
            await self._storage.save_span_record(
                SpanRecord(
                    span_id=span_id,
                    user_id=turn.request.user_id,
                    start_time=_epoch_ms(root.start_time),
                    end_time=_epoch_ms(root.end_time),
                )
            )
