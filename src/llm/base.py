"""Completion errors, attempt classification and the safe-mode sentinel."""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class LLMError(Exception):
    """Base LLM error."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure (401/403). Never retried."""


class LLMTimeoutError(LLMError):
    """Request exceeded the hard timeout."""


class LLMResponseError(LLMError):
    """Structured content missing, unparsable, or rejected by the validator."""


SAFE_MODE_RESPONSE: dict[str, Any] = {"mood": "NEUTRAL", "response": "..."}

Validator = Callable[[dict], bool]


def safe_mode() -> dict[str, Any]:
    """Fresh copy of the safe-mode payload; callers may mutate it."""
    return deepcopy(SAFE_MODE_RESPONSE)


class AttemptStatus(str, Enum):
    OK = "ok"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptResult:
    """Tagged outcome of one completion attempt."""

    status: AttemptStatus
    parsed: dict | None = None
    error: LLMError | None = None

    @classmethod
    def ok(cls, parsed: dict) -> "AttemptResult":
        return cls(AttemptStatus.OK, parsed=parsed)

    @classmethod
    def retryable(cls, error: LLMError) -> "AttemptResult":
        return cls(AttemptStatus.RETRYABLE, error=error)

    @classmethod
    def fatal(cls, error: LLMError) -> "AttemptResult":
        return cls(AttemptStatus.FATAL, error=error)

    @property
    def reason(self) -> str:
        return str(self.error) if self.error else ""

    @property
    def is_retryable(self) -> bool:
        return self.status is AttemptStatus.RETRYABLE


@dataclass
class RetryOutcome:
    """What every call site receives: a validated structure or the safe-mode sentinel."""

    parsed: dict = field(default_factory=safe_mode)
    ok: bool = False
    attempts: int = 0
    reason: str = ""
