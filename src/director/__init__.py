"""Director mode: archive classification with store, search and chat procedures."""

from .router import DirectorClassification, IntentRouter

__all__ = ["DirectorClassification", "IntentRouter"]
