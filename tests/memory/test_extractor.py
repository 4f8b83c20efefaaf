"""Tests for the synthesis pass."""

import pytest

from memory.extractor import FactExtractor, normalize_keywords


class TestNormalizeKeywords:
    def test_list(self):
        assert normalize_keywords(["Jemi", " ", "Work "]) == ["Jemi", "Work"]

    def test_comma_string(self):
        assert normalize_keywords("Jemi, Work,Relationship") == ["Jemi", "Work", "Relationship"]

    def test_other_types(self):
        assert normalize_keywords(None) == []
        assert normalize_keywords(7) == []


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_parses_entries(self, completion):
        completion.script("Synthesis", {
            "search_keywords": "Jemi, Sister",
            "entries": [
                {"fact": "User does not know Jemi's sister's name.", "entities": "Jemi", "topics": "Relationship", "importance": 2},
                {"fact": "null"},
                "garbage",
            ],
        })
        extractor = FactExtractor(completion, user_name="Arvin")

        result, ok = await extractor.synthesize("I don't know", "ASSISTANT: What is his sister called?", "Thu, January 30, 2025")

        assert ok
        assert result.search_keywords == ["Jemi", "Sister"]
        assert len(result.entries) == 1
        assert result.entries[0].importance == 2

    @pytest.mark.asyncio
    async def test_prompt_carries_pending_fact_and_identity(self, completion):
        completion.script("Synthesis", {"search_keywords": [], "entries": []})
        extractor = FactExtractor(completion, user_name="Arvin", pronouns="he, him, his")

        await extractor.synthesize("Last March", "", "Thu, January 30, 2025", pending_fact="Arvin went on a work trip.")

        prompt = completion.prompt_for("Synthesis")
        assert "USER_IDENTITY: Arvin" in prompt
        assert "PENDING UNRESOLVED MEMORY" in prompt
        assert "Arvin went on a work trip." in prompt
        assert "CURRENT_DATE: Thu, January 30, 2025" in prompt

    @pytest.mark.asyncio
    async def test_history_truncated(self, completion):
        completion.script("Synthesis", {"search_keywords": [], "entries": []})
        extractor = FactExtractor(completion)

        await extractor.synthesize("hi", "A" * 2000 + "TAIL", "today")

        prompt = completion.prompt_for("Synthesis")
        assert "TAIL" in prompt
        assert "A" * 801 not in prompt

    @pytest.mark.asyncio
    async def test_safe_mode_reports_not_ok(self, completion):
        extractor = FactExtractor(completion)
        result, ok = await extractor.synthesize("hi", "", "today")
        assert not ok
        assert result.entries == []
        assert result.search_keywords == []
