"""Turn reply payload handed to the presentation layer."""

import json
from dataclasses import dataclass

from memory.models import MediaFile
from shared_types import DirectorAction, Mood, sanitize_mood

from .graph import KnowledgeGraph


@dataclass
class TurnReply:
    response: str
    mood: Mood = Mood.NEUTRAL
    graph: KnowledgeGraph | None = None
    director_action: DirectorAction | None = None
    files: list[MediaFile] | None = None
    deck_keywords: list[str] | None = None

    def __post_init__(self):
        if self.response is None:
            self.response = "..."
        elif not isinstance(self.response, str):
            self.response = json.dumps(self.response)
        self.mood = sanitize_mood(self.mood)

    def to_dict(self) -> dict:
        payload = {"responseText": self.response, "mood": self.mood.value}
        if self.graph is not None:
            payload["knowledgeGraph"] = self.graph.model_dump(mode="json")
        if self.director_action is not None:
            payload["directorAction"] = self.director_action.value
        if self.files is not None:
            payload["files"] = [f.to_dict() for f in self.files]
        if self.deck_keywords is not None:
            payload["deckKeywords"] = list(self.deck_keywords)
        return payload
