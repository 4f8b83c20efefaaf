"""Deduplication and refinement of a candidate fact against existing memories.

Both the director STORE loop and the background writer go through this one
contract: NEW (persist, possibly refined), DUPLICATE (discard, also used for
conversational meta-noise) or CONTRADICTION (discard, surface a warning).
"""

import re
from dataclasses import dataclass
from enum import Enum

import structlog

from llm import CompletionClient

logger = structlog.get_logger()

_RESOLUTION_PROMPT = """EXISTING MEMORIES:
{existing}

NEW CANDIDATE FACT: "{fact}"
CURRENT ENTITIES: "{entities}"

TASK:
1. DUPLICATE CHECK: Is this fact (or its semantic equivalent) already logged?
   - Example: "Hates kale" == "Detests leafy greens" -> DUPLICATE.
2. CONTRADICTION CHECK: Does it directly contradict an existing memory?
   - If so return "CONTRADICTION" and explain the conflict in "warning_message".
3. ENTITY RESOLUTION: Replace generic names with specific ones found in EXISTING MEMORIES (e.g. "Mom" -> "Liliani").
4. CLEANUP: Remove "{user_name} stated/mentioned/said" prefixes. Just state the absolute fact.
   - BAD: "{user_name} stated that Casey is tall."
   - GOOD: "Casey is tall."
5. TAG HYGIENE: Remove "{user_name}" from entities UNLESS the fact is about {user_name}.
6. TRANSIENCE CHECK: If the fact describes a TEMPORARY feeling (afraid, angry, sad, nervous) about a specific moment,
   APPEND: "(Note: This is a momentary reaction to this specific event)".
7. META-FILTER: Any fact about the assistant's memory or the conversation itself is TRASH.
   - "The assistant knows John", "{user_name} told the AI to remember this", "We are talking about John".
   - IF TRASH: return "status": "DUPLICATE".

Return JSON:
{{
  "status": "NEW" or "DUPLICATE" or "CONTRADICTION",
  "better_fact": "The refined fact",
  "better_entities": "The updated comma-separated list",
  "warning_message": "Only for CONTRADICTION"
}}"""

_ENTITY_PREFIX = re.compile(r"^\s*\[[^\]]*\]:?\s*")
_TOKEN = re.compile(r"[a-z0-9']+")


class ResolutionStatus(str, Enum):
    NEW = "NEW"
    DUPLICATE = "DUPLICATE"
    CONTRADICTION = "CONTRADICTION"


@dataclass
class FactResolution:
    status: ResolutionStatus
    fact: str
    entities: str = ""
    warning: str = ""

    @property
    def should_persist(self) -> bool:
        return self.status is ResolutionStatus.NEW


def _valid_resolution(data: dict) -> bool:
    return str(data.get("status", "")).upper() in ResolutionStatus.__members__


class ConflictResolver:
    """Classifies a candidate fact as NEW, DUPLICATE or CONTRADICTION."""

    def __init__(
        self,
        completion: CompletionClient,
        user_name: str = "User",
        auto_duplicate_threshold: float = 0.95,
    ):
        self.completion = completion
        self.user_name = user_name
        self.auto_duplicate_threshold = auto_duplicate_threshold

    async def resolve(self, fact: str, entities: str, existing: list[str], label: str = "DedupRefine") -> FactResolution:
        """Resolve one candidate against existing memory lines."""
        if not existing:
            return FactResolution(ResolutionStatus.NEW, fact, entities)

        for line in existing:
            if self._text_similarity(fact, _ENTITY_PREFIX.sub("", line)) > self.auto_duplicate_threshold:
                logger.info("resolver.auto_duplicate", fact=fact)
                return FactResolution(ResolutionStatus.DUPLICATE, fact, entities)

        prompt = _RESOLUTION_PROMPT.format(
            existing="\n".join(existing),
            fact=fact,
            entities=entities,
            user_name=self.user_name,
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], _valid_resolution, label
        )
        if not outcome.ok:
            logger.warning("resolver.unavailable", fact=fact)
            return FactResolution(ResolutionStatus.NEW, fact, entities)

        return self._parse(outcome.parsed, fact, entities)

    def _parse(self, data: dict, fact: str, entities: str) -> FactResolution:
        status = ResolutionStatus(str(data["status"]).upper())

        better_fact = data.get("better_fact")
        if isinstance(better_fact, str) and len(better_fact.strip()) > 5:
            fact = better_fact.strip()

        better_entities = data.get("better_entities")
        if isinstance(better_entities, list):
            better_entities = ", ".join(str(e) for e in better_entities)
        if isinstance(better_entities, str) and len(better_entities.strip()) > 2:
            entities = better_entities.strip()

        warning = str(data.get("warning_message") or "") if status is ResolutionStatus.CONTRADICTION else ""
        return FactResolution(status, fact, entities, warning)

    @staticmethod
    def _text_similarity(a: str, b: str) -> float:
        """Token-overlap similarity for auto-duplicate detection."""
        tokens_a = set(_TOKEN.findall(a.lower()))
        tokens_b = set(_TOKEN.findall(b.lower()))
        if not tokens_a or not tokens_b:
            return 0.0
        return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)
