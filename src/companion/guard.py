"""Reflexive redundancy check for interrogation-mode questions."""

import re

import structlog

from llm import CompletionClient
from memory.retriever import MemoryRetriever, dedupe_keywords
from shared_types import Mood, sanitize_mood

from .prompts import PromptTemplates

logger = structlog.get_logger()

_STOP_WORDS = {"what", "when", "where", "who", "why", "does", "this", "that", "have", "your", "about"}
_ALPHA = re.compile(r"^[a-zA-Z]+$")


def candidate_keywords(candidate: str, search_keywords: list[str]) -> list[str]:
    """Content words of the candidate question, anchored by the turn's search keywords."""
    words = [
        w for w in candidate.split(" ")
        if len(w) > 2 and _ALPHA.match(w) and w.lower() not in _STOP_WORDS
    ]
    if not words:
        return []
    return dedupe_keywords([*words, *search_keywords])


class RedundancyGuard:
    """Replaces a question that memory already answers with a corrected one."""

    def __init__(self, completion: CompletionClient, retriever: MemoryRetriever):
        self.completion = completion
        self.retriever = retriever

    async def review(self, candidate: str, mood: Mood, search_keywords: list[str]) -> tuple[str, Mood]:
        """Return the (possibly corrected) question and mood."""
        keywords = candidate_keywords(candidate, search_keywords)
        if not keywords:
            return candidate, mood

        context = await self.retriever.retrieve(keywords)
        if not context.found:
            return candidate, mood
        memories = "\n".join(context.memories)

        check = await self.completion.complete(
            [{
                "role": "system",
                "content": PromptTemplates.REDUNDANCY_CHECK.format(candidate=candidate, memories=memories),
            }],
            lambda d: isinstance(d.get("is_redundant"), bool),
            "RedundancyCheck",
        )
        if not check.ok or not check.parsed["is_redundant"]:
            return candidate, mood

        reason = str(check.parsed.get("reason") or "KNOWN").upper()
        strategy = (
            PromptTemplates.DEAD_END_STRATEGY if reason == "DEAD_END" else PromptTemplates.SAME_SUBJECT_STRATEGY
        )
        logger.info("guard.regenerating", reason=reason)

        correction = await self.completion.complete(
            [{
                "role": "system",
                "content": PromptTemplates.CORRECTION.format(
                    candidate=candidate, reason=reason, memories=memories, strategy=strategy
                ),
            }],
            lambda d: bool(d.get("response")),
            "CorrectionGeneration",
        )
        if not correction.ok:
            return candidate, mood
        return correction.parsed["response"], sanitize_mood(correction.parsed.get("mood") or Mood.CURIOUS)
