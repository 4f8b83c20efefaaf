"""Tests for background persistence and the bounded job queue."""

import asyncio

import pytest

from memory.models import MemoryEntry
from memory.resolver import ConflictResolver
from memory.writer import BackgroundQueue, MemoryWriter, fact_keywords, is_meta_fact
from observability import metrics


class TestHelpers:
    @pytest.mark.parametrize("fact", [
        "The assistant knows John.",
        "Arvin told the AI to remember this.",
        "We are talking about John.",
    ])
    def test_meta_facts(self, fact):
        assert is_meta_fact(fact)

    def test_ordinary_fact_is_not_meta(self):
        assert not is_meta_fact("John works as a system administrator.")

    def test_fact_keywords(self):
        assert fact_keywords("Jemi's brother owns a small bakery downtown") == ["Jemi's", "brother", "small"]


class TestMemoryWriter:
    @pytest.mark.asyncio
    async def test_stores_when_no_context(self, completion, backend):
        writer = MemoryWriter(backend, ConflictResolver(completion))
        entry = MemoryEntry("User does not know Jemi's sister's name.", "Jemi", "Relationship", 2)

        stored = await writer.write([entry], [])

        assert stored == 1
        backend.store_atomic.assert_awaited_once_with(entry)
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_meta_fact_never_persisted(self, completion, backend):
        writer = MemoryWriter(backend, ConflictResolver(completion))
        stored = await writer.write([MemoryEntry("We are talking about Jemi.")], [])
        assert stored == 0
        backend.store_atomic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_skipped(self, completion, backend):
        completion.script("DedupRefine", {"status": "DUPLICATE"})
        backend.retrieve.return_value = ["Jemi detests leafy greens."]
        writer = MemoryWriter(backend, ConflictResolver(completion))

        stored = await writer.write([MemoryEntry("Jemi hates kale.", "Jemi")], ["Jemi works at the bank downtown."])

        assert stored == 0
        assert metrics.count("memory.skipped") == 1

    @pytest.mark.asyncio
    async def test_refined_text_persisted(self, completion, backend):
        completion.script("DedupRefine", {
            "status": "NEW",
            "better_fact": "Jemi was nervous about the exam. (Note: This is a momentary reaction to this specific event)",
            "better_entities": "Jemi",
        })
        writer = MemoryWriter(backend, ConflictResolver(completion))
        entry = MemoryEntry("User said Jemi was nervous about the exam.", "User, Jemi")

        await writer.write([entry], ["Jemi studies medicine at the university."])

        stored_entry = backend.store_atomic.await_args.args[0]
        assert stored_entry.fact.startswith("Jemi was nervous")
        assert stored_entry.entities == "Jemi"

    @pytest.mark.asyncio
    async def test_short_context_skips_resolver(self, completion, backend):
        writer = MemoryWriter(backend, ConflictResolver(completion))
        await writer.write([MemoryEntry("Jemi plays chess.")], ["short"])
        assert completion.calls == []
        backend.store_atomic.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_failure_is_not_counted(self, completion, backend):
        backend.store_atomic.return_value = False
        writer = MemoryWriter(backend, ConflictResolver(completion))
        assert await writer.write([MemoryEntry("Jemi plays chess.")], []) == 0


class TestBackgroundQueue:
    @pytest.mark.asyncio
    async def test_jobs_run_in_order_and_drain(self):
        queue = BackgroundQueue()
        done = []

        async def job(n):
            await asyncio.sleep(0)
            done.append(n)

        for n in range(3):
            assert queue.submit(lambda n=n: job(n))
        await queue.drain()

        assert done == [0, 1, 2]
        await queue.close()

    @pytest.mark.asyncio
    async def test_failing_job_does_not_stop_worker(self):
        queue = BackgroundQueue()
        done = []

        async def boom():
            raise RuntimeError("backend down")

        async def ok():
            done.append("ok")

        queue.submit(boom)
        queue.submit(ok)
        await queue.drain()

        assert done == ["ok"]
        await queue.close()

    @pytest.mark.asyncio
    async def test_full_queue_drops_job(self):
        queue = BackgroundQueue(maxsize=1)
        gate = asyncio.Event()

        async def blocked():
            await gate.wait()

        assert queue.submit(blocked)
        await asyncio.sleep(0)  # worker takes the first job
        assert queue.submit(blocked)
        assert not queue.submit(blocked)
        assert queue.pending == 1

        gate.set()
        await queue.close()
