"""Tests for keyword heuristics and retrieval."""

import random

import pytest

from memory.models import ChatMessage
from memory.retriever import (
    GHOST_AUDIT_KEYWORDS,
    MemoryRetriever,
    RetrievedContext,
    deep_anchor_keywords,
    dedupe_keywords,
    raw_input_keywords,
    sticky_keywords,
)
from shared_types import Role


def _history(*pairs) -> list[ChatMessage]:
    return [ChatMessage(role, content) for role, content in pairs]


class TestHeuristics:
    def test_raw_input_title_cases_lowercase_names(self):
        assert raw_input_keywords("let's talk about ruben") == ["Ruben"]

    def test_raw_input_ignored_for_long_input(self):
        assert raw_input_keywords("x" * 60) == []

    def test_sticky_words_from_last_assistant_turn(self):
        history = _history(
            (Role.ASSISTANT, "Earlier message about gardening"),
            (Role.USER, "ok"),
            (Role.ASSISTANT, "Tell me about Jemi's brother and his bakery business"),
        )
        assert sticky_keywords(history) == ["brother", "bakery"]

    def test_deep_anchor_finds_most_recent_named_subject(self):
        history = _history(
            (Role.USER, "My friend Jemi works downtown"),
            (Role.ASSISTANT, "What does he do?"),
            (Role.USER, "What? I don't know"),
        )
        assert deep_anchor_keywords(history) == ["Jemi"]

    def test_deep_anchor_limited_depth(self):
        history = _history((Role.USER, "Clarissa is nice"), *[(Role.USER, "ok") for _ in range(5)])
        assert deep_anchor_keywords(history) == []

    def test_dedupe_keeps_order_and_length(self):
        assert dedupe_keywords(["Jemi", "ab", "Work", "Jemi", ""]) == ["Jemi", "Work"]


class TestBuildKeywords:
    def test_merges_sources(self, backend):
        retriever = MemoryRetriever(backend)
        history = _history(
            (Role.USER, "Jemi got promoted"),
            (Role.ASSISTANT, "Congratulations Jemi! Promotions deserve celebration"),
        )
        keys = retriever.build_keywords("so proud", history, ["Promotion", "Work"])
        assert keys[:2] == ["Promotion", "Work"]
        assert "Proud" in keys
        assert "Promotions" in keys
        assert "Jemi" in keys

    def test_ghost_audit_injected(self, backend):
        keys = MemoryRetriever(backend).build_keywords("hey", [], [], ghost_audit=True)
        assert keys[-3:] == GHOST_AUDIT_KEYWORDS

    def test_ghost_audit_suppressed_in_interrogation(self, backend):
        keys = MemoryRetriever(backend).build_keywords("hey", [], [], interrogation=True, ghost_audit=True)
        assert not set(GHOST_AUDIT_KEYWORDS) & set(keys)

    def test_empty_falls_back_to_input_words(self, backend):
        long_text = "what when where dont know " * 3
        keys = MemoryRetriever(backend).build_keywords(long_text + "weather", [], [])
        assert keys == ["weather"]

    def test_seeded_ghost_audit_is_reproducible(self, backend):
        a = MemoryRetriever(backend, ghost_audit_rate=0.5, rng=random.Random(7))
        b = MemoryRetriever(backend, ghost_audit_rate=0.5, rng=random.Random(7))
        assert [a.roll_ghost_audit() for _ in range(20)] == [b.roll_ghost_audit() for _ in range(20)]

    def test_zero_rate_never_triggers(self, backend, seeded_rng):
        retriever = MemoryRetriever(backend, ghost_audit_rate=0.0, rng=seeded_rng)
        assert not any(retriever.roll_ghost_audit() for _ in range(100))


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_context_block(self, backend):
        backend.retrieve.return_value = ["Jemi works at a bank"]
        context = await MemoryRetriever(backend).retrieve(["Jemi"])
        assert context.found
        assert context.as_prompt_block() == "=== DATABASE SEARCH RESULTS ===\nJemi works at a bank"

    def test_empty_context(self):
        assert RetrievedContext().as_prompt_block() == ""

    def test_deep_anchor_includes_current_turn(self, backend):
        history = _history(
            (Role.USER, "Clarissa went to Paris"),
            (Role.ASSISTANT, "How was it?"),
            (Role.USER, "Tell me more about how Jemi and his brother get along these days"),
        )
        keys = MemoryRetriever(backend).build_keywords(history[-1].content, history, [], interrogation=True)
        assert "Jemi" in keys
        assert "Clarissa" not in keys
