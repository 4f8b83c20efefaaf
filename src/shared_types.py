"""Shared enums and types for symbiosis."""

from enum import StrEnum


class Mood(StrEnum):
    NEUTRAL = "NEUTRAL"
    AFFECTIONATE = "AFFECTIONATE"
    CRYPTIC = "CRYPTIC"
    DISLIKE = "DISLIKE"
    JOYFUL = "JOYFUL"
    CURIOUS = "CURIOUS"
    SAD = "SAD"
    GLITCH = "GLITCH"
    QUESTION = "QUESTION"


class Intent(StrEnum):
    STORE = "STORE"
    SEARCH = "SEARCH"
    CHAT = "CHAT"


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class DirectorAction(StrEnum):
    SHOW_DECKS = "SHOW_DECKS"
    PLAY_MEDIA = "PLAY_MEDIA"


_MOODS = {m.value for m in Mood}


def sanitize_mood(value) -> Mood:
    """Collapse anything outside the closed mood set to NEUTRAL."""
    if value is None:
        return Mood.NEUTRAL
    cleaned = str(value).strip().upper()
    if cleaned in _MOODS:
        return Mood(cleaned)
    return Mood.NEUTRAL
