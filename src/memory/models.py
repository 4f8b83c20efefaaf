"""Data models for the conversational memory system."""

from dataclasses import dataclass, field
from datetime import datetime

from shared_types import Role


@dataclass
class ChatMessage:
    role: Role
    content: str
    timestamp: datetime | None = None

    def as_prompt_line(self) -> str:
        return f"{self.role.value.upper()}: {self.content}"


def _join_tags(value) -> str:
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value or "").strip()


def _coerce_importance(value) -> int:
    try:
        importance = int(float(value))
    except (TypeError, ValueError):
        return 5
    return max(1, min(10, importance))


@dataclass
class MemoryEntry:
    """One atomic fact extracted from a turn, before persistence."""

    fact: str
    entities: str = ""
    topics: str = ""
    importance: int = 5

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryEntry | None":
        """Build from model output; returns None for empty or literal-"null" facts."""
        fact = str(data.get("fact") or "").strip()
        if not fact or fact.lower() == "null":
            return None
        return cls(
            fact=fact,
            entities=_join_tags(data.get("entities")),
            topics=_join_tags(data.get("topics")),
            importance=_coerce_importance(data.get("importance", 5)),
        )

    @property
    def entity_list(self) -> list[str]:
        return [e.strip() for e in self.entities.split(",") if e.strip()]


@dataclass
class DirectorMemory:
    """A fact row in the director archive, keyed by entity."""

    entity: str
    fact: str

    @classmethod
    def from_dict(cls, data) -> "DirectorMemory":
        if isinstance(data, dict):
            return cls(entity=str(data.get("Entity") or ""), fact=str(data.get("Fact") or ""))
        return cls(entity="", fact=str(data))

    def as_line(self) -> str:
        return f"[{self.entity or 'Unknown'}]: {self.fact}"


@dataclass
class MediaFile:
    name: str
    mime: str = ""
    url: str = ""
    thumbnail: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "MediaFile":
        return cls(
            name=str(data.get("name") or ""),
            mime=str(data.get("mime") or ""),
            url=str(data.get("url") or ""),
            thumbnail=data.get("thumbnail") or None,
            description=data.get("description") or None,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "mime": self.mime,
            "url": self.url,
            "thumbnail": self.thumbnail,
            "description": self.description,
        }


@dataclass
class SynthesisResult:
    """Search keywords and candidate entries produced by the synthesis pass."""

    search_keywords: list[str] = field(default_factory=list)
    entries: list[MemoryEntry] = field(default_factory=list)
