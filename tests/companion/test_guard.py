"""Tests for the interrogation-mode redundancy guard."""

import pytest

from companion.guard import RedundancyGuard, candidate_keywords
from memory.retriever import MemoryRetriever
from shared_types import Mood


@pytest.fixture
def guard(completion, backend):
    return RedundancyGuard(completion, MemoryRetriever(backend))


def test_candidate_keywords_anchor_on_search_keywords():
    keys = candidate_keywords("What is her favorite food?", ["Angeline"])
    assert keys == ["her", "favorite", "Angeline"]


@pytest.mark.asyncio
async def test_known_fact_gets_different_question_on_same_subject(guard, completion, backend):
    backend.retrieve.return_value = ["Jemi works as a nurse."]
    completion.script("RedundancyCheck", {"is_redundant": True, "reason": "KNOWN"})
    completion.script("CorrectionGeneration", {"response": "Where did Jemi train as a nurse?", "mood": "curious"})

    response, mood = await guard.review("What does Jemi do for work?", Mood.QUESTION, ["Jemi"])

    assert response == "Where did Jemi train as a nurse?"
    assert response != "What does Jemi do for work?"
    assert mood is Mood.CURIOUS
    prompt = completion.prompt_for("CorrectionGeneration")
    assert "STAY ON TOPIC" in prompt
    assert "Jemi works as a nurse." in prompt


@pytest.mark.asyncio
async def test_dead_end_abandons_topic(guard, completion, backend):
    backend.retrieve.return_value = ["User does not know Jemi's sister's name."]
    completion.script("RedundancyCheck", {"is_redundant": True, "reason": "DEAD_END"})
    completion.script("CorrectionGeneration", {"response": "How was work this week?", "mood": "CURIOUS"})

    response, _ = await guard.review("What is Jemi's sister called?", Mood.QUESTION, ["Jemi"])

    assert response == "How was work this week?"
    assert "ABORT TOPIC" in completion.prompt_for("CorrectionGeneration")


@pytest.mark.asyncio
async def test_not_redundant_keeps_candidate(guard, completion, backend):
    backend.retrieve.return_value = ["Jemi works as a nurse."]
    completion.script("RedundancyCheck", {"is_redundant": False, "reason": "NONE"})

    result = await guard.review("Does Jemi enjoy night shifts?", Mood.QUESTION, ["Jemi"])

    assert result == ("Does Jemi enjoy night shifts?", Mood.QUESTION)
    assert "CorrectionGeneration" not in completion.labels()


@pytest.mark.asyncio
async def test_no_memory_skips_check(guard, completion, backend):
    result = await guard.review("Does Jemi cook?", Mood.QUESTION, ["Jemi"])
    assert result == ("Does Jemi cook?", Mood.QUESTION)
    assert completion.calls == []


@pytest.mark.asyncio
async def test_failed_correction_keeps_candidate(guard, completion, backend):
    backend.retrieve.return_value = ["Jemi works as a nurse."]
    completion.script("RedundancyCheck", {"is_redundant": True, "reason": "KNOWN"})

    response, _ = await guard.review("What does Jemi do?", Mood.QUESTION, ["Jemi"])

    assert response == "What does Jemi do?"
