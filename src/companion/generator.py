"""Grounded reply generation with a same-call knowledge graph."""

from dataclasses import dataclass

import structlog

from llm import CompletionClient
from memory.retriever import RetrievedContext
from shared_types import Mood, sanitize_mood

from .graph import KnowledgeGraph
from .prompts import PromptTemplates

logger = structlog.get_logger()

HISTORY_TAIL_CHARS = 800


@dataclass
class GeneratedReply:
    response: str
    mood: Mood
    graph: KnowledgeGraph
    ok: bool = True


def _has_response_and_mood(data: dict) -> bool:
    return bool(data.get("response")) and bool(data.get("mood"))


class ResponseGenerator:
    """Builds the mode-specific prompt and sanitizes what comes back."""

    def __init__(self, completion: CompletionClient):
        self.completion = completion

    def build_prompt(
        self,
        user_text: str,
        history_text: str,
        context: RetrievedContext,
        interrogation: bool = False,
        audit: bool = False,
    ) -> str:
        if interrogation:
            rules = PromptTemplates.INTERROGATION_RULES
        else:
            rules = PromptTemplates.STANDARD_RULES.format(audit=str(audit).lower())
        return PromptTemplates.GENERATION.format(
            memories=context.as_prompt_block(),
            history=history_text[-HISTORY_TAIL_CHARS:],
            user_text=user_text,
            rules=rules,
        )

    async def generate(
        self,
        user_text: str,
        history_text: str,
        context: RetrievedContext,
        interrogation: bool = False,
        audit: bool = False,
        extra_messages: list[dict] | None = None,
    ) -> GeneratedReply:
        prompt = self.build_prompt(user_text, history_text, context, interrogation, audit)
        messages = list(extra_messages or []) + [{"role": "user", "content": prompt}]
        outcome = await self.completion.complete(messages, _has_response_and_mood, "Generation")

        parsed = outcome.parsed
        graph = KnowledgeGraph.from_model_output(
            parsed.get("roots"), "\n".join([*context.memories, history_text[-HISTORY_TAIL_CHARS:], user_text])
        )
        reply = GeneratedReply(
            response=parsed.get("response") or "...",
            mood=sanitize_mood(parsed.get("mood")),
            graph=graph,
            ok=outcome.ok,
        )
        logger.info("generator.reply", mood=reply.mood.value, roots=len(graph.roots), ok=outcome.ok)
        return reply
