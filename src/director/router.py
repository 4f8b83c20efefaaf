"""Director mode: classify archive requests into STORE / SEARCH / CHAT and run them."""

import re
from dataclasses import dataclass, field

import structlog

from companion.reply import TurnReply
from llm import CompletionClient
from memory.backend import MemoryBackendAdapter
from memory.models import ChatMessage, DirectorMemory, MediaFile
from memory.resolver import ConflictResolver, ResolutionStatus
from observability import metrics
from shared_types import DirectorAction, Intent, Mood, Role

from .prompts import PromptTemplates

logger = structlog.get_logger()

SHORT_INPUT_WORDS = 5
DRILL_DOWN_LIMIT = 15

_PRONOUNS = re.compile(r"\b(he|him|she|her|it|them|that|those)\b", re.I)
_CAPITALIZED = re.compile(r"[A-Z][a-zA-Z]+")
_FACT_NAME = re.compile(r"[A-Z][a-z]+")
_INPUT_NAME = re.compile(r"[A-Z][a-zA-Z]+(?:\s[A-Z][a-zA-Z]+)?")

_BRIDGE_STOP_WORDS = {
    "The", "A", "An", "I", "He", "She", "It", "They", "We", "Who", "What", "Where", "When",
}
_DECK_STOP_WORDS = {
    "Tell", "Me", "About", "Who", "Is", "What", "Where", "When", "How", "Why", "The", "A",
    "An", "And", "Or", "But", "No", "Yes", "Compare", "Him", "Her", "Them", "With", "Any", "Guys",
}

NO_CONSTRAINTS_RESPONSE = "I need more specific names or traits to search the archive."
NO_FOOTAGE_RESPONSE = "No matching footage found."
FOOTAGE_FOUND_RESPONSE = "Archive accessed."
STORED_RESPONSE = "Database Updated."
CONFLICT_RESPONSE = "Some facts conflicted with existing records."


def _str_list(value) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass
class DirectorClassification:
    """Parsed output of the classification call."""

    intent: Intent | None
    facts: list[str] = field(default_factory=list)
    entity_name: str = ""
    positive: list[str] = field(default_factory=list)
    negative: list[str] = field(default_factory=list)
    response: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "DirectorClassification":
        try:
            intent = Intent(str(data.get("intent", "")).strip().upper())
        except ValueError:
            intent = None
        return cls(
            intent=intent,
            facts=_str_list(data.get("facts")),
            entity_name=str(data.get("entity_name") or "").strip(),
            positive=_str_list(data.get("positive_constraints")),
            negative=_str_list(data.get("negative_constraints")),
            response=str(data.get("response") or "").strip(),
        )


def bridge_entities(user_text: str, history: list[ChatMessage]) -> list[str]:
    """Likely referents from the previous assistant turn for short or pronoun-bearing input."""
    if len(user_text.split(" ")) >= SHORT_INPUT_WORDS and not _PRONOUNS.search(user_text):
        return []
    last_ai = next((m for m in reversed(history) if m.role is Role.ASSISTANT), None)
    if not last_ai:
        return []
    return [w for w in _CAPITALIZED.findall(last_ai.content) if w not in _BRIDGE_STOP_WORDS]


def fact_lookup_keys(fact: str, entity_name: str) -> list[str]:
    """Entity name plus capitalized words of the fact, deduplicated."""
    keys = list(dict.fromkeys([entity_name, *_FACT_NAME.findall(fact)]))
    return [k for k in keys if k and len(k) > 1]


def exclude_files(files: list[MediaFile], excludes: list[str]) -> list[MediaFile]:
    """Drop files whose name or description mentions any excluded term."""
    if not excludes:
        return files
    lowered = [e.lower() for e in excludes]
    kept = []
    for f in files:
        meta = f"{f.name} {f.description or ''}".lower()
        if not any(term in meta for term in lowered):
            kept.append(f)
    return kept


def deck_names(user_text: str) -> list[str]:
    """Capitalized names in the raw input, minus sentence starters."""
    return [w for w in _INPUT_NAME.findall(user_text) if w not in _DECK_STOP_WORDS and len(w) > 2]


def drill_down_targets(memories: list[DirectorMemory], positive: list[str]) -> list[str]:
    """Entities found in the first pass that were not asked for by name.

    Entities whose known facts already mention one of the requested traits come first.
    """
    entities = list(dict.fromkeys(m.entity for m in memories if m.entity))
    targets = [e for e in entities if e not in positive]

    lowered = [p.lower() for p in positive]

    def score(entity: str) -> int:
        fact = next((m.fact for m in memories if m.entity == entity), "").lower()
        return 1 if any(p in fact for p in lowered) else 0

    targets.sort(key=score, reverse=True)
    return targets[:DRILL_DOWN_LIMIT]


class IntentRouter:
    """Runs one director-mode turn against the fact and media archive."""

    def __init__(
        self,
        completion: CompletionClient,
        backend: MemoryBackendAdapter,
        resolver: ConflictResolver,
    ):
        self.completion = completion
        self.backend = backend
        self.resolver = resolver

    async def classify(self, user_text: str, history: list[ChatMessage]) -> DirectorClassification:
        history_text = "\n".join(m.as_prompt_line() for m in history)
        bridge = bridge_entities(user_text, history)
        if bridge:
            logger.info("director.bridge", entities=bridge)
        prompt = PromptTemplates.CLASSIFY.format(
            history=history_text[-800:],
            bridge=PromptTemplates.BRIDGE.format(entities=", ".join(bridge)) if bridge else "",
            user_text=user_text,
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], lambda d: bool(d.get("intent")), "DirectorAI"
        )
        if not outcome.ok:
            return DirectorClassification(intent=None, response=outcome.parsed.get("response", "..."))
        classification = DirectorClassification.from_dict(outcome.parsed)
        logger.info(
            "director.classified",
            intent=classification.intent.value if classification.intent else None,
            positive=classification.positive,
            negative=classification.negative,
        )
        return classification

    async def route(self, user_text: str, history: list[ChatMessage]) -> TurnReply:
        classification = await self.classify(user_text, history)
        if classification.intent:
            metrics.counter(f"director.{classification.intent.value.lower()}")

        if classification.intent is Intent.CHAT:
            return await self.chat(classification, user_text, history)
        if classification.intent is Intent.STORE and self.backend.enabled:
            return await self.store(classification)
        if classification.intent is Intent.SEARCH and self.backend.enabled:
            return await self.search(classification, user_text)
        return TurnReply(response=classification.response or "...", mood=Mood.CRYPTIC)

    async def store(self, classification: DirectorClassification) -> TurnReply:
        """Check each fact in turn and persist the new ones.

        Facts accepted earlier in the batch count as existing for later ones.
        """
        entity = classification.entity_name
        accepted: list[str] = []
        conflicts: list[str] = []

        for fact in classification.facts:
            found = await self.backend.retrieve_director_memory(fact_lookup_keys(fact, entity))
            existing = [m.as_line() for m in found]
            existing.extend(f"[{entity or 'Unknown'}]: {f}" for f in accepted)

            resolution = await self.resolver.resolve(fact, entity, existing, label="DirectorDedup")
            if resolution.status is ResolutionStatus.DUPLICATE:
                logger.info("director.duplicate_skipped", fact=fact)
                continue
            if resolution.status is ResolutionStatus.CONTRADICTION:
                conflicts.append(f"Conflict: {resolution.warning or fact}")
                continue

            await self.backend.store_director_fact(fact, entity, tags="Metadata")
            accepted.append(fact)

        logger.info("director.store_complete", stored=len(accepted), conflicts=len(conflicts))
        if conflicts:
            return TurnReply(response="\n".join([CONFLICT_RESPONSE, *conflicts]), mood=Mood.SAD)
        return TurnReply(response=classification.response or STORED_RESPONSE, mood=Mood.CRYPTIC)

    async def _check_ambiguity(self, user_text: str, targets: list[str]) -> tuple[str | None, list[str]]:
        """Returns (clarification question or None, resolved names)."""
        memories = await self.backend.retrieve_director_memory(targets)
        if not memories:
            return None, []
        prompt = PromptTemplates.AMBIGUITY.format(
            user_text=user_text,
            targets=", ".join(targets),
            memories="\n".join(m.as_line() for m in memories),
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], lambda d: bool(d.get("status")), "DirectorAmbiguity"
        )
        if not outcome.ok:
            return None, []
        status = str(outcome.parsed.get("status")).upper()
        if status == "AMBIGUOUS":
            question = str(outcome.parsed.get("clarification_question") or "").strip()
            return question or "Which one do you mean?", []
        if status == "RESOLVED":
            return None, _str_list(outcome.parsed.get("resolved_names"))
        return None, []

    async def search(self, classification: DirectorClassification, user_text: str) -> TurnReply:
        keywords = list(classification.positive)
        excludes = list(classification.negative)

        if keywords:
            question, resolved = await self._check_ambiguity(user_text, keywords)
            if question:
                return TurnReply(response=question, mood=Mood.QUESTION)
            if resolved:
                keywords = resolved

        logger.info("director.search", include=keywords, exclude=excludes)
        files = await self.backend.director_search(user_text, keywords, excludes)
        filtered = exclude_files(files, excludes)
        if len(filtered) < len(files):
            logger.info("director.excluded", dropped=len(files) - len(filtered))

        if not filtered and len(keywords) > 1:
            return TurnReply(
                response=(
                    f"I couldn't find a single scene with BOTH {' and '.join(keywords)}. "
                    "However, I can likely access their individual footage. Which one should I prioritize?"
                ),
                mood=Mood.QUESTION,
                director_action=DirectorAction.SHOW_DECKS,
                files=[],
                deck_keywords=keywords,
            )

        if filtered:
            return TurnReply(
                response=classification.response or FOOTAGE_FOUND_RESPONSE,
                mood=Mood.CRYPTIC,
                director_action=DirectorAction.PLAY_MEDIA,
                files=filtered,
            )
        return TurnReply(
            response=NO_FOOTAGE_RESPONSE,
            mood=Mood.SAD,
            director_action=DirectorAction.PLAY_MEDIA,
            files=[],
        )

    async def _gather_facts(self, positive: list[str]) -> list[DirectorMemory]:
        memories = await self.backend.retrieve_director_memory(positive)
        if not memories:
            return []

        targets = drill_down_targets(memories, positive)
        if targets:
            logger.info("director.drill_down", targets=targets)
            known = {m.fact for m in memories}
            for m in await self.backend.retrieve_director_memory(targets):
                if m.fact not in known:
                    known.add(m.fact)
                    memories.append(m)
        return memories

    async def _filter_matches(self, user_text: str, history_text: str, facts: str) -> list[str]:
        prompt = PromptTemplates.FILTER.format(history=history_text[-300:], user_text=user_text, facts=facts)
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}],
            lambda d: isinstance(d.get("matches"), list),
            "DirectorFilter",
        )
        if not outcome.ok:
            return []
        return _str_list(outcome.parsed["matches"])

    async def chat(
        self, classification: DirectorClassification, user_text: str, history: list[ChatMessage]
    ) -> TurnReply:
        if not classification.positive or not self.backend.enabled:
            names = deck_names(user_text)
            response = classification.response if len(classification.response) > 2 else NO_CONSTRAINTS_RESPONSE
            if names:
                return TurnReply(
                    response=response,
                    mood=Mood.CRYPTIC,
                    director_action=DirectorAction.SHOW_DECKS,
                    deck_keywords=names,
                )
            return TurnReply(response=response, mood=Mood.CRYPTIC)

        memories = await self._gather_facts(classification.positive)
        if not memories:
            return TurnReply(
                response=f"I searched the archives for {', '.join(classification.positive)} but found no records.",
                mood=Mood.SAD,
            )

        history_text = "\n".join(m.as_prompt_line() for m in history)
        facts = "\n".join(m.as_line() for m in memories)
        matches = await self._filter_matches(user_text, history_text, facts)
        logger.info("director.matches", matches=matches)

        prompt = PromptTemplates.ANSWER.format(
            history=history_text[-300:],
            user_text=user_text,
            matches=", ".join(matches),
            facts=facts,
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], lambda d: bool(d.get("response")), "DirectorContextChat"
        )
        reply = TurnReply(response=outcome.parsed.get("response"), mood=Mood.CRYPTIC)
        if matches:
            reply.director_action = DirectorAction.SHOW_DECKS
            reply.deck_keywords = matches
        return reply
