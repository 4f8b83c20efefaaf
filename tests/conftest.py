"""Shared test fixtures for Symbiosis."""

import random
import sys
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from llm.base import RetryOutcome  # noqa: E402
from memory.backend import MemoryBackendAdapter  # noqa: E402
from observability import metrics  # noqa: E402


class ScriptedCompletion:
    """Stand-in for CompletionClient that answers per call-site label.

    ``script(label, payload)`` queues a parsed object for that label; a label
    with nothing queued answers with the safe-mode sentinel, as the real
    client does after exhausting retries.
    """

    def __init__(self):
        self._queued = defaultdict(list)
        self.calls = []

    def script(self, label: str, *payloads: dict):
        self._queued[label].extend(payloads)
        return self

    def labels(self) -> list[str]:
        return [label for label, _ in self.calls]

    def prompt_for(self, label: str) -> str:
        for call_label, messages in self.calls:
            if call_label == label:
                return "\n".join(m["content"] for m in messages)
        raise AssertionError(f"no call with label {label}")

    async def complete(self, messages, validator=None, label="completion") -> RetryOutcome:
        self.calls.append((label, messages))
        if self._queued[label]:
            parsed = self._queued[label].pop(0)
            if validator is None or validator(parsed):
                return RetryOutcome(parsed=parsed, ok=True, attempts=1)
        return RetryOutcome(ok=False, attempts=3, reason="scripted failure")

    async def close(self):
        pass


@pytest.fixture
def completion():
    return ScriptedCompletion()


@pytest.fixture
def backend():
    """MemoryBackendAdapter mock; every action succeeds with no data."""
    b = MagicMock(spec=MemoryBackendAdapter)
    b.enabled = True
    b.url = "https://backend.test/exec"
    b.get_recent_chat.return_value = []
    b.log_chat.return_value = True
    b.retrieve.return_value = []
    b.store_atomic.return_value = True
    b.retrieve_director_memory.return_value = []
    b.store_director_fact.return_value = True
    b.director_search.return_value = []
    b.search_entity_visuals.return_value = []
    return b


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 30, 14, 0, 0)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
