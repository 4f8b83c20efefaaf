"""Tests for the turn reply payload."""

from companion.graph import GraphRoot, KnowledgeGraph
from companion.reply import TurnReply
from memory.models import MediaFile
from shared_types import DirectorAction, Mood


def test_minimal_payload():
    assert TurnReply("hi", "joyful").to_dict() == {"responseText": "hi", "mood": "JOYFUL"}


def test_invalid_mood_collapses():
    assert TurnReply("hi", "ECSTATIC").mood is Mood.NEUTRAL


def test_non_string_response():
    assert TurnReply(None).response == "..."
    assert TurnReply({"a": 1}).response == '{"a": 1}'


def test_full_payload():
    reply = TurnReply(
        "Playing.",
        Mood.CRYPTIC,
        graph=KnowledgeGraph(roots=[GraphRoot(label="ALEX")]),
        director_action=DirectorAction.PLAY_MEDIA,
        files=[MediaFile("a.mp4", "video/mp4", "u")],
        deck_keywords=["Alex"],
    )
    payload = reply.to_dict()
    assert payload["directorAction"] == "PLAY_MEDIA"
    assert payload["files"][0]["name"] == "a.mp4"
    assert payload["knowledgeGraph"]["roots"][0]["label"] == "ALEX"
    assert payload["deckKeywords"] == ["Alex"]
