"""Per-turn keyword construction and global memory retrieval."""

import random
import re
from dataclasses import dataclass, field

import structlog

from shared_types import Role

from .backend import MemoryBackendAdapter
from .models import ChatMessage

logger = structlog.get_logger()

_RAW_INPUT_STOP_WORDS = {
    "no", "yes", "nope", "yeah", "dont", "know", "what", "when",
    "where", "who", "why", "i", "lets", "talk", "about",
}
_ANCHOR_EXCLUDE = {
    "Who", "What", "Where", "When", "Why", "How", "I", "No", "Yes", "I'm",
    "He", "She", "It", "They", "We", "You", "His", "Her", "Their", "My",
}
_FALLBACK_STOP_WORDS = {"what", "when", "where", "dont", "know"}
GHOST_AUDIT_KEYWORDS = ["Relationship", "BONDING", "SocialFitness"]

_CAPITALIZED = re.compile(r"[A-Z][a-zA-Z]+")
_ALPHA = re.compile(r"^[a-zA-Z]+$")

RAW_INPUT_MAX_CHARS = 50
ANCHOR_INPUT_MAX_CHARS = 30
ANCHOR_DEPTH = 5
STICKY_WORDS = 2


def raw_input_keywords(user_text: str) -> list[str]:
    """Title-cased content words of a short input, so "ruben" still finds "Ruben"."""
    if len(user_text) >= RAW_INPUT_MAX_CHARS:
        return []
    clean = re.sub(r"[^a-z ]", "", user_text.lower()).strip()
    return [
        w[0].upper() + w[1:]
        for w in clean.split(" ")
        if w not in _RAW_INPUT_STOP_WORDS and len(w) > 2
    ]


def sticky_keywords(history: list[ChatMessage]) -> list[str]:
    """First long alphabetic words of the previous assistant turn."""
    last_ai = next((m for m in reversed(history) if m.role is Role.ASSISTANT), None)
    if not last_ai:
        return []
    words = [w for w in last_ai.content.split(" ") if len(w) > 5 and _ALPHA.match(w)]
    return words[:STICKY_WORDS]


def deep_anchor_keywords(history: list[ChatMessage]) -> list[str]:
    """Capitalized tokens from the most recent of the last user turns that has any."""
    user_msgs = [m for m in history if m.role is Role.USER]
    for depth, msg in enumerate(reversed(user_msgs[-ANCHOR_DEPTH:]), start=1):
        caps = [w for w in _CAPITALIZED.findall(msg.content) if w not in _ANCHOR_EXCLUDE]
        if caps:
            logger.debug("retriever.deep_anchor", depth=depth, anchors=caps)
            return caps
    return []


def dedupe_keywords(keywords: list[str]) -> list[str]:
    """Order-preserving dedup, keeping tokens longer than 2 chars."""
    seen = set()
    result = []
    for k in keywords:
        if not k or len(k) <= 2 or k in seen:
            continue
        seen.add(k)
        result.append(k)
    return result


@dataclass
class RetrievedContext:
    keywords: list[str] = field(default_factory=list)
    memories: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.memories)

    def as_prompt_block(self) -> str:
        if not self.memories:
            return ""
        return "=== DATABASE SEARCH RESULTS ===\n" + "\n".join(self.memories)


class MemoryRetriever:
    """Merges keyword heuristics and queries the backend ``retrieve`` action."""

    def __init__(
        self,
        backend: MemoryBackendAdapter,
        ghost_audit_rate: float = 0.05,
        rng: random.Random | None = None,
    ):
        self.backend = backend
        self.ghost_audit_rate = ghost_audit_rate
        self.rng = rng or random.Random()

    def roll_ghost_audit(self) -> bool:
        return self.rng.random() < self.ghost_audit_rate

    def build_keywords(
        self,
        user_text: str,
        history: list[ChatMessage],
        search_keywords: list[str],
        interrogation: bool = False,
        ghost_audit: bool = False,
    ) -> list[str]:
        keys = list(search_keywords)
        keys.extend(raw_input_keywords(user_text))

        if history:
            keys.extend(sticky_keywords(history))
            if interrogation or len(user_text) < ANCHOR_INPUT_MAX_CHARS:
                keys.extend(deep_anchor_keywords(history))

        if ghost_audit and not interrogation:
            logger.info("retriever.ghost_audit")
            keys.extend(GHOST_AUDIT_KEYWORDS)

        keys = dedupe_keywords(keys)
        if not keys:
            keys = [w for w in user_text.split(" ") if len(w) > 3 and w not in _FALLBACK_STOP_WORDS]
        return keys

    async def retrieve(self, keywords: list[str]) -> RetrievedContext:
        logger.info("retriever.search", keywords=keywords)
        memories = await self.backend.retrieve(keywords)
        return RetrievedContext(keywords=keywords, memories=memories)
