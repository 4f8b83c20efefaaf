"""Tests for the unified dedup/refine contract."""

import pytest

from memory.resolver import ConflictResolver, ResolutionStatus


class TestTextSimilarity:
    def test_identical(self):
        assert ConflictResolver._text_similarity("X likes tea", "x likes tea") == 1.0

    def test_disjoint(self):
        assert ConflictResolver._text_similarity("X likes tea", "Y hates coffee") == 0.0

    def test_empty(self):
        assert ConflictResolver._text_similarity("", "anything") == 0.0

    def test_partial_overlap(self):
        sim = ConflictResolver._text_similarity("Jemi likes green tea", "Jemi likes tea")
        assert sim == pytest.approx(0.75)


class TestResolve:
    @pytest.mark.asyncio
    async def test_no_existing_is_new_without_model_call(self, completion):
        resolution = await ConflictResolver(completion).resolve("X likes tea", "X", [])
        assert resolution.status is ResolutionStatus.NEW
        assert resolution.should_persist
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_near_identical_is_auto_duplicate(self, completion):
        resolution = await ConflictResolver(completion).resolve("X likes tea", "X", ["[X]: X likes tea"])
        assert resolution.status is ResolutionStatus.DUPLICATE
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_refines_new_fact(self, completion):
        completion.script("DedupRefine", {
            "status": "new",
            "better_fact": "Liliani is a nurse.",
            "better_entities": ["Liliani"],
        })
        resolver = ConflictResolver(completion, user_name="Arvin")

        resolution = await resolver.resolve(
            "Arvin stated that Mom is a nurse.", "Arvin, Mom", ["Mom is called Liliani"]
        )

        assert resolution.status is ResolutionStatus.NEW
        assert resolution.fact == "Liliani is a nurse."
        assert resolution.entities == "Liliani"
        assert "Arvin stated" in completion.prompt_for("DedupRefine")

    @pytest.mark.asyncio
    async def test_short_refinements_ignored(self, completion):
        completion.script("DedupRefine", {"status": "NEW", "better_fact": "ok", "better_entities": "X"})
        resolution = await ConflictResolver(completion).resolve("Jemi bakes bread", "Jemi", ["Jemi is a chef"])
        assert resolution.fact == "Jemi bakes bread"
        assert resolution.entities == "Jemi"

    @pytest.mark.asyncio
    async def test_contradiction_keeps_warning(self, completion):
        completion.script("DirectorDedup", {
            "status": "CONTRADICTION",
            "warning_message": "Cody was recorded as short.",
        })
        resolution = await ConflictResolver(completion).resolve(
            "Cody is tall", "Cody", ["[Cody]: Cody is short"], label="DirectorDedup"
        )
        assert resolution.status is ResolutionStatus.CONTRADICTION
        assert not resolution.should_persist
        assert resolution.warning == "Cody was recorded as short."

    @pytest.mark.asyncio
    async def test_warning_dropped_for_duplicates(self, completion):
        completion.script("DedupRefine", {"status": "DUPLICATE", "warning_message": "noise"})
        resolution = await ConflictResolver(completion).resolve("a b c", "", ["d e f"])
        assert resolution.status is ResolutionStatus.DUPLICATE
        assert resolution.warning == ""

    @pytest.mark.asyncio
    async def test_invalid_status_falls_back_to_new(self, completion):
        completion.script("DedupRefine", {"status": "MAYBE"})
        resolution = await ConflictResolver(completion).resolve("Jemi bakes bread", "Jemi", ["Jemi is a chef"])
        assert resolution.status is ResolutionStatus.NEW
        assert resolution.fact == "Jemi bakes bread"
