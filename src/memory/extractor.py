"""Synthesis pass: search keywords and candidate memory entries for one turn."""

import structlog

from llm import CompletionClient

from .models import MemoryEntry, SynthesisResult

logger = structlog.get_logger()

_SYNTHESIS_PROMPT = """USER_IDENTITY: {user_name}, (pronoun: {pronouns}) unless said otherwise
CURRENT_DATE: {today}
CONTEXT:
{history}
{pending_block}

CURRENT INPUT: "{user_text}"

TASK:
0. RETROACTIVE MERGE (CRITICAL):
   - IF "PENDING UNRESOLVED MEMORY" is present, prioritize merging it with CURRENT INPUT.
   - IF "CURRENT INPUT" is just a date (e.g. "2024"), attach it to the pending fact.
   - IF "CURRENT INPUT" is conversational (e.g. "It was cold"), merge that detail with the pending fact and mark as a NEW entry.
   - IF "CURRENT INPUT" is a date/time (e.g. "Yesterday", "In 2026", "27-29 Jan") AND the previous User message in "CONTEXT" was a detailed event that wasn't saved: COMBINE THEM.

1. KEYWORDS: Extract 3-5 specific search terms.
   - Appended categories MUST choose from: [Identity, Preference, Location, Relationship, History, Work, Generativity, SocialFitness].
   - "Generativity" trigger: mentoring, teaching, leaving a legacy, helping others grow.

2. MEMORY ENTRIES (ADAPTIVE SPLITTING):
   - Continuous stories = ONE entry. Unrelated facts = SPLIT entries.
   - DEAD END PROTOCOL: IF User says "I don't know", "Not sure", or "No idea" in response to a question,
     CREATE AN ENTRY: "User does not know [Topic/Detail]." (Importance: 2).
     This prevents the same question being asked again later.

3. FACT FORMATTING & METADATA:
   - Write in third person ({user_name}...).
   - Entities: comma-separated list.
   - Topics: choose from [Identity, Preference, Location, Relationship, History, Work, Generativity].
   - Evaluate the emotional nutritional value of this interaction and append ONE of these to "topics":
     > "Energizing": uplifting, supportive, fun, side-by-side bonding (doing things together).
     > "Depleting": conflict, draining, neglectful, stressful, vague anxiety.
     > "Neutral": routine, transactional.

4. IMPORTANCE (1-10):
   > 1-3: Trivial.
   > 4-6: Routine.
   > 7-8: Significant (relationship changes, side-by-side bonding activities).
   > 9-10: Life-defining.
   - SIDE-BY-SIDE RULE: intimacy is often built through shared activities (gaming, hiking, sports).
     IF the user describes a shared activity with a close entity, mark it 7-8 and add the tag BONDING.

If QUESTION/CHIT-CHAT/KNOWN INFO/COMMANDS, return an empty "entries" array.

Return JSON only:
{{
    "search_keywords": ["..."],
    "entries": [
        {{"fact": "...", "entities": "...", "topics": "...", "importance": 5}}
    ]
}}"""

_PENDING_BLOCK = """
*** PENDING UNRESOLVED MEMORY ***
User previously stated: "{pending_fact}" but was interrupted to ask for a time/date.
IF the "CURRENT INPUT" provides that context (even vaguely), MERGE them."""


def _has_keywords(data: dict) -> bool:
    return isinstance(data.get("search_keywords"), (list, str))


def normalize_keywords(value) -> list[str]:
    """Accept a list or a comma-joined string; drop blanks."""
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(k).strip() for k in value if str(k).strip()]


class FactExtractor:
    """Runs the synthesis completion and parses its entries."""

    def __init__(self, completion: CompletionClient, user_name: str = "User", pronouns: str = "he, him, his"):
        self.completion = completion
        self.user_name = user_name
        self.pronouns = pronouns

    async def synthesize(
        self,
        user_text: str,
        history_text: str,
        today: str,
        pending_fact: str | None = None,
    ) -> tuple[SynthesisResult, bool]:
        """Extract keywords and entries.

        Returns:
            (result, ok) where ok is False when the completion fell back to safe mode.
        """
        pending_block = _PENDING_BLOCK.format(pending_fact=pending_fact) if pending_fact else ""
        prompt = _SYNTHESIS_PROMPT.format(
            user_name=self.user_name,
            pronouns=self.pronouns,
            today=today,
            history=history_text[-800:],
            pending_block=pending_block,
            user_text=user_text,
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], _has_keywords, "Synthesis"
        )
        if not outcome.ok:
            return SynthesisResult(), False
        return self._parse(outcome.parsed), True

    def _parse(self, data: dict) -> SynthesisResult:
        entries = []
        raw_entries = data.get("entries") or []
        if isinstance(raw_entries, list):
            for item in raw_entries:
                if not isinstance(item, dict):
                    continue
                entry = MemoryEntry.from_dict(item)
                if entry:
                    entries.append(entry)

        result = SynthesisResult(
            search_keywords=normalize_keywords(data.get("search_keywords")),
            entries=entries,
        )
        logger.info(
            "memory.synthesized",
            keywords=result.search_keywords,
            entries=len(result.entries),
        )
        return result
