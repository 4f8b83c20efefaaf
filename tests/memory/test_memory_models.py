"""Tests for memory data models."""

from memory.models import ChatMessage, DirectorMemory, MediaFile, MemoryEntry
from shared_types import Role


class TestMemoryEntry:
    def test_from_dict(self):
        entry = MemoryEntry.from_dict(
            {"fact": "User likes tea.", "entities": ["User", "Tea"], "topics": "Preference, Neutral", "importance": "6"}
        )
        assert entry.fact == "User likes tea."
        assert entry.entities == "User, Tea"
        assert entry.topics == "Preference, Neutral"
        assert entry.importance == 6

    def test_null_fact_is_dropped(self):
        assert MemoryEntry.from_dict({"fact": "null"}) is None
        assert MemoryEntry.from_dict({"fact": "  "}) is None
        assert MemoryEntry.from_dict({}) is None

    def test_importance_clamped(self):
        assert MemoryEntry.from_dict({"fact": "x is y", "importance": 42}).importance == 10
        assert MemoryEntry.from_dict({"fact": "x is y", "importance": -1}).importance == 1
        assert MemoryEntry.from_dict({"fact": "x is y", "importance": "high"}).importance == 5

    def test_entity_list(self):
        assert MemoryEntry("f", entities="Jemi, , Work").entity_list == ["Jemi", "Work"]


class TestDirectorMemory:
    def test_from_dict(self):
        m = DirectorMemory.from_dict({"Entity": "Brent", "Fact": "Brent is tall"})
        assert m.as_line() == "[Brent]: Brent is tall"

    def test_plain_string_row(self):
        m = DirectorMemory.from_dict("Has a beard")
        assert m.entity == ""
        assert m.as_line() == "[Unknown]: Has a beard"


class TestMediaFile:
    def test_round_trip_fields(self):
        f = MediaFile.from_dict({"name": "clip.mp4", "mime": "video/mp4", "url": "https://x/clip"})
        assert f.thumbnail is None
        assert f.to_dict()["name"] == "clip.mp4"


def test_chat_message_prompt_line():
    assert ChatMessage(Role.ASSISTANT, "Hello").as_prompt_line() == "ASSISTANT: Hello"
