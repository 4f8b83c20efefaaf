"""Pydantic configuration models for Symbiosis."""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "openrouter", "openai"}


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Resolve a ``${VAR}`` reference; other values pass through."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """Completion service configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = provider default
    api_key: Optional[str] = None
    url: Optional[str] = None
    timeout: float = 15.0
    referer: Optional[str] = None
    app_title: str = "Symbiosis"

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class RetryConfig(BaseModel):
    """Retry schedule for completion calls."""

    max_attempts: int = 3
    initial_wait: float = 1.0
    max_wait: float = 4.0

    @model_validator(mode="after")
    def check_waits(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_wait < self.initial_wait:
            raise ValueError("max_wait must be >= initial_wait")
        return self


class BackendConfig(BaseModel):
    """Memory backend endpoint."""

    url: Optional[str] = None
    timeout: float = 30.0


class SessionConfig(BaseModel):
    """Per-session behaviour."""

    user_name: str = "User"
    user_pronouns: str = "he, him, his"
    history_limit: int = 10
    ghost_audit_rate: float = 0.05
    session_gap_hours: float = 6.0
    writer_queue_size: int = 32

    @field_validator("ghost_audit_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"ghost_audit_rate must be between 0 and 1, got {v}")
        return v


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class SymbiosisConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} references and fill gaps from the environment."""
        self.llm.api_key = _expand_env(self.llm.api_key)
        self.backend.url = _expand_env(self.backend.url) or os.getenv("SYMBIOSIS_BACKEND_URL")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "SymbiosisConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
