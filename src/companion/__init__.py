"""Companion: session state, reply payload, knowledge graph and generation."""

from .graph import KnowledgeGraph
from .reply import TurnReply
from .session import Session

__all__ = ["KnowledgeGraph", "TurnReply", "Session"]
