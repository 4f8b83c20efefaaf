"""Knowledge graph payload: three mood-tagged levels grounded in the turn's context."""

import re

from pydantic import BaseModel, Field

from shared_types import Mood, sanitize_mood

MAX_ROOTS = 3
MAX_BRANCHES = 5
MAX_LEAVES = 5

_CONTEXT_WORD = re.compile(r"[A-Za-z][A-Za-z'-]*")
_EDGE_PUNCT = re.compile(r"^[^A-Za-z0-9]+|[^A-Za-z0-9]+$")


class GraphLeaf(BaseModel):
    text: str
    mood: Mood = Mood.NEUTRAL


class GraphBranch(BaseModel):
    label: str
    mood: Mood = Mood.NEUTRAL
    leaves: list[GraphLeaf] = Field(default_factory=list)


class GraphRoot(BaseModel):
    label: str
    mood: Mood = Mood.NEUTRAL
    branches: list[GraphBranch] = Field(default_factory=list)


def context_vocabulary(context: str) -> set[str]:
    """Uppercased words available for graph labels."""
    return {w.upper() for w in _CONTEXT_WORD.findall(context)}


def grounded_token(value, vocabulary: set[str]) -> str | None:
    """Single uppercase token present verbatim in the context, else None.

    Multi-word labels keep their first word; tokens containing digits are rejected.
    """
    if not isinstance(value, str):
        return None
    parts = value.strip().split()
    if not parts:
        return None
    token = _EDGE_PUNCT.sub("", parts[0]).upper()
    if not token or any(ch.isdigit() for ch in token):
        return None
    if token not in vocabulary:
        return None
    return token


class KnowledgeGraph(BaseModel):
    roots: list[GraphRoot] = Field(default_factory=list)

    @classmethod
    def from_model_output(cls, raw_roots, context: str) -> "KnowledgeGraph":
        """Sanitize model-produced roots against the supplied memory/history context.

        Nodes that are not grounded are dropped together with their children;
        every mood is collapsed onto the closed set.
        """
        if not isinstance(raw_roots, list):
            return cls()
        vocabulary = context_vocabulary(context)

        roots = []
        for raw_root in raw_roots:
            if len(roots) >= MAX_ROOTS:
                break
            if not isinstance(raw_root, dict):
                continue
            label = grounded_token(raw_root.get("label"), vocabulary)
            if not label:
                continue
            roots.append(
                GraphRoot(
                    label=label,
                    mood=sanitize_mood(raw_root.get("mood")),
                    branches=cls._branches(raw_root.get("branches"), vocabulary),
                )
            )
        return cls(roots=roots)

    @staticmethod
    def _branches(raw_branches, vocabulary: set[str]) -> list[GraphBranch]:
        branches = []
        for raw in raw_branches if isinstance(raw_branches, list) else []:
            if len(branches) >= MAX_BRANCHES:
                break
            if not isinstance(raw, dict):
                continue
            label = grounded_token(raw.get("label") or raw.get("text"), vocabulary)
            if not label:
                continue
            leaves = []
            for leaf in raw.get("leaves") if isinstance(raw.get("leaves"), list) else []:
                if len(leaves) >= MAX_LEAVES:
                    break
                text, mood = (leaf.get("text"), leaf.get("mood")) if isinstance(leaf, dict) else (leaf, None)
                token = grounded_token(text, vocabulary)
                if token:
                    leaves.append(GraphLeaf(text=token, mood=sanitize_mood(mood)))
            branches.append(GraphBranch(label=label, mood=sanitize_mood(raw.get("mood")), leaves=leaves))
        return branches

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def keywords(self) -> list[str]:
        """Flattened labels, roots first."""
        words = []
        for root in self.roots:
            words.append(root.label)
            for branch in root.branches:
                words.append(branch.label)
                words.extend(leaf.text for leaf in branch.leaves)
        return words
