"""Background, best-effort persistence of a turn's memory entries."""

import asyncio
import re
from typing import Awaitable, Callable

import structlog

from observability import metrics

from .backend import MemoryBackendAdapter
from .models import MemoryEntry
from .resolver import ConflictResolver

logger = structlog.get_logger()

Job = Callable[[], Awaitable[object]]

_META_PATTERNS = re.compile(
    r"\b(the (assistant|ai|bot|system)|told the (ai|assistant)|we are talking|"
    r"we were talking|remember this|this conversation)\b",
    re.I,
)
MIN_DEDUP_CONTEXT_CHARS = 20


def is_meta_fact(fact: str) -> bool:
    """Facts about the conversation or the assistant itself."""
    return bool(_META_PATTERNS.search(fact))


def fact_keywords(fact: str, limit: int = 3) -> list[str]:
    """Words longer than 4 chars, used to pull context specific to one fact."""
    return [w for w in fact.split(" ") if len(w) > 4][:limit]


class BackgroundQueue:
    """Bounded FIFO of jobs run one at a time by a single worker task.

    Jobs submitted while the queue is full are dropped and logged.
    ``drain()`` waits until every accepted job has finished.
    """

    def __init__(self, maxsize: int = 32):
        self._queue: asyncio.Queue[Job] = asyncio.Queue(maxsize=maxsize)
        self._worker: asyncio.Task | None = None

    def _ensure_worker(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        while True:
            job = await self._queue.get()
            try:
                await job()
            except Exception:
                logger.exception("background.job_failed")
            finally:
                self._queue.task_done()

    def submit(self, job: Job) -> bool:
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning("background.queue_full", pending=self._queue.qsize())
            return False
        self._ensure_worker()
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def drain(self):
        await self._queue.join()

    async def close(self):
        await self.drain()
        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None


class MemoryWriter:
    """Deduplicate, refine and store entries after the reply has been returned."""

    def __init__(self, backend: MemoryBackendAdapter, resolver: ConflictResolver):
        self.backend = backend
        self.resolver = resolver

    async def write(self, entries: list[MemoryEntry], turn_context: list[str]) -> int:
        """Persist surviving entries; returns how many were stored."""
        stored = 0
        for entry in entries:
            if is_meta_fact(entry.fact):
                logger.info("memory.meta_discarded", fact=entry.fact)
                continue

            specific = await self.backend.retrieve(fact_keywords(entry.fact))
            existing = list(dict.fromkeys([*turn_context, *specific]))

            if sum(len(m) for m in existing) > MIN_DEDUP_CONTEXT_CHARS:
                resolution = await self.resolver.resolve(entry.fact, entry.entities, existing)
                if not resolution.should_persist:
                    logger.info("memory.skipped", fact=entry.fact, status=resolution.status.value)
                    metrics.counter("memory.skipped")
                    continue
                if resolution.fact != entry.fact:
                    logger.info("memory.refined", original=entry.fact, refined=resolution.fact)
                entry.fact = resolution.fact
                entry.entities = resolution.entities

            if await self.backend.store_atomic(entry):
                stored += 1

        logger.info("memory.write_complete", candidates=len(entries), stored=stored)
        return stored
