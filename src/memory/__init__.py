"""Conversational memory: backend adapter, synthesis, temporal checks, retrieval, persistence."""

from .backend import BackendError, MemoryBackendAdapter
from .extractor import FactExtractor
from .models import ChatMessage, DirectorMemory, MediaFile, MemoryEntry, SynthesisResult
from .resolver import ConflictResolver, FactResolution, ResolutionStatus
from .retriever import MemoryRetriever, RetrievedContext
from .temporal import TemporalResolution, TemporalResolver, TemporalStatus
from .writer import BackgroundQueue, MemoryWriter

__all__ = [
    "BackendError",
    "MemoryBackendAdapter",
    "FactExtractor",
    "ChatMessage",
    "DirectorMemory",
    "MediaFile",
    "MemoryEntry",
    "SynthesisResult",
    "ConflictResolver",
    "FactResolution",
    "ResolutionStatus",
    "MemoryRetriever",
    "RetrievedContext",
    "TemporalResolution",
    "TemporalResolver",
    "TemporalStatus",
    "BackgroundQueue",
    "MemoryWriter",
]
