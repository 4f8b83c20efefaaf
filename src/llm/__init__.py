"""Structured completion layer: client, retry policy, errors."""

from .base import (
    SAFE_MODE_RESPONSE,
    AttemptResult,
    AttemptStatus,
    LLMAuthError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTimeoutError,
    RetryOutcome,
    safe_mode,
)
from .client import CompletionClient, classify_response
from .factory import create_completion_client

__all__ = [
    "CompletionClient",
    "create_completion_client",
    "classify_response",
    "AttemptResult",
    "AttemptStatus",
    "RetryOutcome",
    "SAFE_MODE_RESPONSE",
    "safe_mode",
    "LLMError",
    "LLMAuthError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMTimeoutError",
]
