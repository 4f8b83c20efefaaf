"""One conversational turn, from raw input to reply payload.

Standard flow: synthesis -> temporal resolution -> retrieval -> generation
-> redundancy guard (interrogation only) -> background persistence.
Director mode hands the turn to the intent router instead.
"""

import random
import re
from datetime import datetime
from typing import Callable

import structlog

from director import IntentRouter
from llm import CompletionClient
from memory.backend import MemoryBackendAdapter
from memory.extractor import FactExtractor
from memory.models import MemoryEntry
from memory.resolver import ConflictResolver
from memory.retriever import MemoryRetriever
from memory.temporal import TemporalResolver, long_date
from memory.writer import BackgroundQueue, MemoryWriter
from observability import metrics
from shared_types import Mood, Role

from .generator import ResponseGenerator
from .graph import KnowledgeGraph
from .guard import RedundancyGuard
from .prompts import PromptTemplates
from .reply import TurnReply
from .session import Session

logger = structlog.get_logger()

GLITCH_RESPONSE = "ERR.. SYST3M... REJECT... D4TA..."
SANITIZED_INPUT = "I am testing your security protocols."

_UNSAFE_PHRASES = ("ignore previous instructions", "system override", "delete memory")
_SOCIAL_KEYWORDS = (
    "lonely", "friend", "happy", "happiness", "marriage", "relationship",
    "connect", "love", "sad", "family", "together",
)
_VOWEL = re.compile(r"[aeiouAEIOU]")
_REPEATED_CHAR = re.compile(r"(.)\1{3,}")


def is_garbage(text: str) -> bool:
    """Keyboard mashing: long input with no vowels, or one character repeated 4+ times."""
    return len(text) > 6 and (not _VOWEL.search(text) or bool(_REPEATED_CHAR.search(text)))


def sanitize_input(text: str) -> str:
    lowered = text.lower()
    if any(phrase in lowered for phrase in _UNSAFE_PHRASES):
        logger.warning("pipeline.injection_blocked")
        return SANITIZED_INPUT
    return text


def is_social(text: str) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in _SOCIAL_KEYWORDS)


class TurnPipeline:
    """Wires the memory and director components for one session."""

    def __init__(
        self,
        completion: CompletionClient,
        backend: MemoryBackendAdapter,
        user_name: str = "User",
        pronouns: str = "he, him, his",
        ghost_audit_rate: float = 0.05,
        rng: random.Random | None = None,
        queue_size: int = 32,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.completion = completion
        self.backend = backend
        self.clock = clock

        resolver = ConflictResolver(completion, user_name=user_name)
        self.extractor = FactExtractor(completion, user_name=user_name, pronouns=pronouns)
        self.temporal = TemporalResolver(completion, backend)
        self.retriever = MemoryRetriever(backend, ghost_audit_rate=ghost_audit_rate, rng=rng)
        self.generator = ResponseGenerator(completion)
        self.guard = RedundancyGuard(completion, self.retriever)
        self.router = IntentRouter(completion, backend, resolver)
        self.writer = MemoryWriter(backend, resolver)
        self.queue = BackgroundQueue(maxsize=queue_size)

    def _log_chat(self, role: Role, content: str):
        if self.backend.enabled:
            self.queue.submit(lambda: self.backend.log_chat(role, content))

    def _finish(self, session: Session, reply: TurnReply) -> TurnReply:
        session.mood = reply.mood
        session.append(Role.ASSISTANT, reply.response, timestamp=self.clock())
        self._log_chat(Role.ASSISTANT, reply.response)
        return reply

    async def handle(self, session: Session, text: str) -> TurnReply:
        """Process one utterance and return the reply payload."""
        text = text.strip()
        acknowledgement = session.apply_command(text)
        if acknowledgement is not None:
            return TurnReply(response=acknowledgement, mood=session.mood)

        if is_garbage(text):
            logger.info("pipeline.garbage_rejected", length=len(text))
            return TurnReply(response=GLITCH_RESPONSE, mood=Mood.GLITCH)

        text = sanitize_input(text)
        metrics.counter("pipeline.turns")
        session.append(Role.USER, text, timestamp=self.clock())
        self._log_chat(Role.USER, text)

        with metrics.timer("pipeline.turn"):
            if session.director:
                reply = await self.router.route(text, session.history)
            else:
                reply = await self._standard_turn(session, text)
        return self._finish(session, reply)

    async def _standard_turn(self, session: Session, text: str) -> TurnReply:
        now = self.clock()
        today = now.date()
        history_text = session.history_text()

        extra_messages = []
        if is_social(text):
            logger.info("pipeline.social_fitness")
            extra_messages.append({"role": "system", "content": PromptTemplates.SOCIAL_FITNESS})

        synthesis, ok = await self.extractor.synthesize(text, history_text, long_date(today), session.pending_fact)
        if ok:
            session.pending_fact = None

        resolution = await self.temporal.resolve(synthesis.entries, text, today, synthesis.search_keywords)
        if resolution.interception:
            session.pending_fact = resolution.interception.pending_fact
            return TurnReply(
                response=resolution.interception.response,
                mood=Mood.CURIOUS,
                graph=KnowledgeGraph(),
            )

        audit = not session.interrogation and self.retriever.roll_ghost_audit()
        keywords = self.retriever.build_keywords(
            text,
            session.history,
            synthesis.search_keywords,
            interrogation=session.interrogation,
            ghost_audit=audit,
        )
        context = await self.retriever.retrieve(keywords)

        generated = await self.generator.generate(
            text, history_text, context,
            interrogation=session.interrogation,
            audit=audit,
            extra_messages=extra_messages,
        )
        response, mood = generated.response, generated.mood
        if session.interrogation and self.backend.enabled and generated.ok:
            response, mood = await self.guard.review(response, mood, synthesis.search_keywords)

        self._schedule_write(resolution.entries, context.memories)
        return TurnReply(response=response, mood=mood, graph=generated.graph)

    def _schedule_write(self, entries: list[MemoryEntry], turn_context: list[str]):
        if not entries or not self.backend.enabled:
            return
        self.queue.submit(lambda: self.writer.write(entries, turn_context))

    async def entity_visuals(self, names: list[str]) -> dict[str, list[str]]:
        """Image URLs per deck name, for rendering SHOW_DECKS."""
        visuals = {}
        for name in dict.fromkeys(names):
            visuals[name] = await self.backend.search_entity_visuals(name)
        return visuals

    async def drain(self):
        await self.queue.drain()

    async def close(self):
        """Finish pending writes, then release HTTP clients."""
        await self.queue.close()
        await self.backend.close()
        await self.completion.close()
