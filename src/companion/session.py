"""Session record threaded through every turn: history, mode flags, pending fact."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from memory.backend import MemoryBackendAdapter
from memory.models import ChatMessage
from shared_types import Mood, Role

logger = structlog.get_logger()

HISTORY_LIMIT = 10
SESSION_GAP_HOURS = 6

DIRECTOR_ON = "director mode"
INTERROGATION_ON = "question time"
MODE_OFF = "done"

_COMMAND_REPLIES = {
    DIRECTOR_ON: "DIRECTOR MODE ENGAGED. ACCESSING ARCHIVES.",
    INTERROGATION_ON: "MODE: INTERROGATION. WHAT SHALL WE DISCUSS?",
}
_EXIT_REPLIES = {
    "director": "RETURNING TO STANDARD MEMORY.",
    "interrogation": "RETURNING TO HOMEOSTASIS.",
}


def gap_note(hours: int) -> str:
    return (
        f"[SYSTEM_NOTE: The user has returned after {hours} hours. "
        "Treat this as a new session context, but retain previous memories.]"
    )


@dataclass
class Session:
    """Mutable per-session state. At most one of the two modes is active."""

    history: list[ChatMessage] = field(default_factory=list)
    interrogation: bool = False
    director: bool = False
    pending_fact: str | None = None
    mood: Mood = Mood.NEUTRAL
    history_limit: int = HISTORY_LIMIT

    def append(self, role: Role, content: str, timestamp: datetime | None = None):
        self.history.append(ChatMessage(role=role, content=content, timestamp=timestamp))
        if len(self.history) > self.history_limit:
            self.history = self.history[-self.history_limit:]

    def history_text(self) -> str:
        return "\n".join(m.as_prompt_line() for m in self.history)

    @property
    def mode(self) -> str:
        if self.director:
            return "director"
        if self.interrogation:
            return "interrogation"
        return "standard"

    def apply_command(self, text: str) -> str | None:
        """Handle a mode command; returns the acknowledgement, or None for ordinary input."""
        command = text.strip().lower()
        if command == DIRECTOR_ON:
            self.director, self.interrogation = True, False
            self.mood = Mood.CRYPTIC
        elif command == INTERROGATION_ON:
            self.interrogation, self.director = True, False
            self.mood = Mood.QUESTION
        elif command == MODE_OFF and self.mode != "standard":
            reply = _EXIT_REPLIES[self.mode]
            self.director = self.interrogation = False
            self.mood = Mood.NEUTRAL
            logger.info("session.mode_changed", mode=self.mode)
            return reply
        else:
            return None
        logger.info("session.mode_changed", mode=self.mode)
        return _COMMAND_REPLIES[command]

    @classmethod
    async def restore(
        cls,
        backend: MemoryBackendAdapter,
        now: datetime | None = None,
        history_limit: int = HISTORY_LIMIT,
        gap_hours: float = SESSION_GAP_HOURS,
    ) -> "Session":
        """Load recent backend history; add a gap note when the user has been away."""
        session = cls(history_limit=history_limit)
        if not backend.enabled:
            return session

        messages = await backend.get_recent_chat()
        session.history = messages[-history_limit:]

        last = session.history[-1].timestamp if session.history else None
        if last is not None:
            now = now or datetime.now(timezone.utc)
            if last.tzinfo is None:
                last = last.replace(tzinfo=timezone.utc)
            if now.tzinfo is None:
                now = now.replace(tzinfo=timezone.utc)
            hours = (now - last).total_seconds() / 3600
            if hours > gap_hours:
                logger.info("session.gap_detected", hours=round(hours, 1))
                session.append(Role.SYSTEM, gap_note(int(hours)))

        logger.info("session.restored", messages=len(session.history))
        return session
