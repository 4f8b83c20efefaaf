"""Temporal validation of candidate facts: rewrite relative dates, or defer.

Each entry at or above the importance threshold moves
UNVALIDATED -> VALID (possibly rewritten) or UNVALIDATED -> DEFERRED.
A deferred entry first tries the silent latch (a memory already stamped
with today's date); otherwise the turn is intercepted with a clarifying
question and the fact is parked as the session's pending fact.
"""

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

import structlog

from llm import CompletionClient

from .backend import MemoryBackendAdapter
from .models import MemoryEntry

logger = structlog.get_logger()

IMPORTANCE_THRESHOLD = 4


def long_date(d: date) -> str:
    """``Thu, January 30, 2025``"""
    return f"{d:%a}, {d:%B} {d.day}, {d.year}"


def short_date(d: date) -> str:
    """``Jan 30, 2025``"""
    return f"{d:%b} {d.day}, {d.year}"


# phrase -> (days back, template)
_RELATIVE_PHRASES = [
    (re.compile(r"\blast night\b", re.I), 1, "on the night of {d}"),
    (re.compile(r"\byesterday\b(?!['’]s)", re.I), 1, "on {d}"),
    (re.compile(r"\btonight\b(?!['’]s)", re.I), 0, "on the night of {d}"),
    (re.compile(r"\bthis morning\b", re.I), 0, "on the morning of {d}"),
    (re.compile(r"\btoday\b(?!['’]s)", re.I), 0, "on {d}"),
]


def rewrite_relative_date(fact: str, today: date) -> str | None:
    """Replace unambiguous relative day expressions with an absolute date.

    Returns None when the fact has none of them. Weekday names and
    "last week/month" are left to the model.
    """
    rewritten = fact
    for pattern, days_back, template in _RELATIVE_PHRASES:
        replacement = template.format(d=short_date(today - timedelta(days=days_back)))
        rewritten = pattern.sub(replacement, rewritten)
    if rewritten == fact:
        return None
    return rewritten


_TIME_PROMPT = """ORIGINAL_INPUT: "{user_text}"
FACT: "{fact}"
CURRENT_DATE: {today}
TASK: Determine if this fact requires a specific date.

RULES:
1. RELATIVE DATE RESOLUTION (CRITICAL):
   - If the fact says "yesterday", "today", "last night/week/month", or a day name:
   - You MUST calculate the actual date/month based on CURRENT_DATE.
   - REWRITE the fact with the specific date/month (e.g. "{example}").
   - RETURN "valid": true.

2. EPISODIC EVENTS (Priority):
   - If the fact mentions a specific temporary event (e.g. "trip", "visit", "meeting", "incident")
   - AND it lacks a specific date/year
   - RETURN "valid": false.
   - This applies even if the user is describing a feeling or opinion that happened during the event.

3. GENERAL STATES (Lower Priority):
   - If it is a general trait, preference, or history (e.g. "was fat", "likes sushi", "is rich")
     WITHOUT a specific event attached -> return "valid": true.

4. DATED:
   - If it already has a date -> return "valid": true.

When "valid" is true, "rewritten_fact" MUST contain the full fact (rewritten or unchanged).

Return JSON: {{ "valid": boolean, "rewritten_fact": "..." }}"""

_INTERCEPT_PROMPT = """User said: "{user_text}"
Fact detected: "{fact}"

EXISTING DATABASE RECORDS:
{matches}

ISSUE: User mentioned an event but didn't specify WHEN (Date/Year).

INSTRUCTIONS:
1. CHECK "EXISTING DATABASE RECORDS" for similar events (matching location, people, or topic).
2. IF MATCHES FOUND: Ask the user to clarify if they mean one of those specific instances.
   - Example: "Do you mean the Shanghai trip in Jan 2025, or the biz trip in July?"
3. IF NO MATCHES: Just ask "When did this happen?" naturally.

Return JSON: {{ "response": "..." }}"""


def _valid_time_result(data: dict) -> bool:
    """A VALID verdict must carry a non-trivial rewritten fact."""
    if not isinstance(data.get("valid"), bool):
        return False
    if data["valid"]:
        rewritten = data.get("rewritten_fact")
        if not isinstance(rewritten, str) or len(rewritten.strip()) < 5:
            return False
    return True


class TemporalStatus(str, Enum):
    VALID = "valid"
    DEFERRED = "deferred"


@dataclass
class Interception:
    """Clarifying question that replaces the turn's normal generation."""

    response: str
    pending_fact: str


@dataclass
class TemporalResolution:
    entries: list[MemoryEntry] = field(default_factory=list)
    interception: Interception | None = None


class TemporalResolver:
    """Validates candidate facts for concrete dates before they are kept."""

    def __init__(self, completion: CompletionClient, backend: MemoryBackendAdapter):
        self.completion = completion
        self.backend = backend

    async def validate(self, entry: MemoryEntry, user_text: str, today: date) -> TemporalStatus:
        """Classify one entry, rewriting ``entry.fact`` in place when VALID."""
        rewritten = rewrite_relative_date(entry.fact, today)
        if rewritten:
            logger.info("temporal.rewritten", original=entry.fact, rewritten=rewritten)
            entry.fact = rewritten
            return TemporalStatus.VALID

        prompt = _TIME_PROMPT.format(
            user_text=user_text,
            fact=entry.fact,
            today=long_date(today),
            example=short_date(today),
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], _valid_time_result, "Timekeeper"
        )
        if not outcome.ok:
            logger.warning("temporal.check_unavailable", fact=entry.fact)
            return TemporalStatus.VALID

        if outcome.parsed["valid"]:
            entry.fact = outcome.parsed["rewritten_fact"].strip()
            return TemporalStatus.VALID
        return TemporalStatus.DEFERRED

    async def _silent_latch(self, search_keywords: list[str], today: date) -> tuple[bool, list[str]]:
        """Look for a memory already stamped with today's date."""
        if not search_keywords:
            return False, []
        memories = await self.backend.retrieve(search_keywords)
        stamps = (long_date(today), short_date(today))
        latched = any(stamp in memory for memory in memories for stamp in stamps)
        return latched, memories

    async def _intercept(self, entry: MemoryEntry, user_text: str, matches: list[str]) -> Interception:
        prompt = _INTERCEPT_PROMPT.format(
            user_text=user_text,
            fact=entry.fact,
            matches="\n".join(matches) if matches else "(none)",
        )
        outcome = await self.completion.complete(
            [{"role": "system", "content": prompt}], lambda d: bool(d.get("response")), "Interceptor"
        )
        response = outcome.parsed.get("response") if outcome.ok else None
        return Interception(response=response or "When did this happen?", pending_fact=entry.fact)

    async def resolve(
        self,
        entries: list[MemoryEntry],
        user_text: str,
        today: date,
        search_keywords: list[str],
    ) -> TemporalResolution:
        """Validate entries in order; stop at the first one that must be intercepted."""
        kept = []
        for entry in entries:
            if entry.importance < IMPORTANCE_THRESHOLD:
                kept.append(entry)
                continue

            status = await self.validate(entry, user_text, today)
            if status is TemporalStatus.VALID:
                kept.append(entry)
                continue

            latched, matches = await self._silent_latch(search_keywords, today)
            if latched:
                entry.fact = f"{entry.fact} (Detail added on {long_date(today)})"
                logger.info("temporal.silent_latch", fact=entry.fact)
                kept.append(entry)
                continue

            logger.info("temporal.intercepted", fact=entry.fact)
            interception = await self._intercept(entry, user_text, matches)
            return TemporalResolution(entries=kept, interception=interception)

        return TemporalResolution(entries=kept)
