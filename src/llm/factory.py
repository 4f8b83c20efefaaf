"""Completion client factory with provider auto-detection."""

import os

from .base import LLMError
from .client import OPENROUTER_URL, CompletionClient

_PROVIDER_ENV_KEYS = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
}

_PROVIDER_URLS = {
    "openrouter": OPENROUTER_URL,
    "openai": "https://api.openai.com/v1/chat/completions",
}

_DEFAULT_MODELS = {
    "openrouter": "x-ai/grok-4-fast",
    "openai": "gpt-4o-mini",
}

_AUTO_DETECT_ORDER = ["openrouter", "openai"]


def create_completion_client(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    url: str | None = None,
    timeout: float = 15.0,
    max_attempts: int = 3,
    initial_wait: float = 1.0,
    max_wait: float = 4.0,
    client=None,
    **kwargs,
) -> CompletionClient:
    """Create a CompletionClient.

    Args:
        provider: "openrouter", "openai", "auto", or None (auto-detect)
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        url: Endpoint override (None = provider default)
        client: Pre-built httpx.AsyncClient for testing/DI

    Returns:
        CompletionClient instance
    """
    resolved = provider or "auto"
    if resolved == "auto":
        resolved = _auto_detect_provider(api_key)
    if resolved not in _PROVIDER_URLS:
        raise LLMError(f"Unknown provider: {resolved}. Use: openrouter, openai")

    if not api_key:
        api_key = os.getenv(_PROVIDER_ENV_KEYS[resolved])

    return CompletionClient(
        api_key=api_key,
        model=model or _DEFAULT_MODELS[resolved],
        url=url or _PROVIDER_URLS[resolved],
        timeout=timeout,
        max_attempts=max_attempts,
        initial_wait=initial_wait,
        max_wait=max_wait,
        client=client,
        **kwargs,
    )


def _detect_provider_from_key(api_key: str) -> str | None:
    """Infer provider from API key prefix."""
    if api_key.startswith("sk-or-"):
        return "openrouter"
    if api_key.startswith("sk-"):
        return "openai"
    return None


def _auto_detect_provider(api_key: str | None = None) -> str:
    """Detect provider from explicit key prefix, then env vars."""
    if api_key:
        inferred = _detect_provider_from_key(api_key)
        if inferred:
            return inferred

    for name in _AUTO_DETECT_ORDER:
        if os.getenv(_PROVIDER_ENV_KEYS[name]):
            return name
    raise LLMError("No LLM API key found. Set one of: OPENROUTER_API_KEY, OPENAI_API_KEY")
