"""Structured completion client with hard timeout, backoff retry and validation."""

import asyncio
import json
from typing import Awaitable, Callable

import httpx
import structlog

from observability import metrics

from .base import (
    AttemptResult,
    AttemptStatus,
    LLMAuthError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTimeoutError,
    RetryOutcome,
    Validator,
)
from .retry import completion_retrying

logger = structlog.get_logger()

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "x-ai/grok-4-fast"


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


def classify_response(response: httpx.Response, validator: Validator | None) -> AttemptResult:
    """Map one HTTP response to OK / RETRYABLE / FATAL.

    Credential errors (401/403) are FATAL. Any other non-2xx status, a body
    without a candidate message, content that is not a JSON object, or a
    validator rejection is RETRYABLE.
    """
    if response.status_code in (401, 403):
        return AttemptResult.fatal(LLMAuthError(f"auth error {response.status_code}"))
    if response.status_code == 429:
        return AttemptResult.retryable(LLMRateLimitError("rate limited (429)"))
    if not response.is_success:
        return AttemptResult.retryable(LLMError(f"http {response.status_code}"))

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        return AttemptResult.retryable(LLMResponseError("no candidate message"))

    if not isinstance(content, str):
        return AttemptResult.retryable(LLMResponseError("non-text content"))

    try:
        parsed = json.loads(_strip_fences(content))
    except json.JSONDecodeError:
        return AttemptResult.retryable(LLMResponseError("invalid json"))

    if not isinstance(parsed, dict):
        return AttemptResult.retryable(LLMResponseError("json is not an object"))

    if validator is not None:
        try:
            accepted = validator(parsed)
        except Exception as e:
            return AttemptResult.retryable(LLMResponseError(f"validator raised: {e}"))
        if not accepted:
            return AttemptResult.retryable(LLMResponseError("validation failed"))

    return AttemptResult.ok(parsed)


class CompletionClient:
    """Issues structured (JSON object) chat completions.

    ``complete`` never raises: it returns a validated structure or, after the
    final failed attempt, the safe-mode sentinel.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        url: str = OPENROUTER_URL,
        timeout: float = 15.0,
        max_attempts: int = 3,
        initial_wait: float = 1.0,
        max_wait: float = 4.0,
        app_title: str = "Symbiosis",
        referer: str | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key or ""
        self.model = model or DEFAULT_MODEL
        self.url = url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.initial_wait = initial_wait
        self.max_wait = max_wait
        self.app_title = app_title
        self.referer = referer
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.app_title,
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        return headers

    def _payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.model,
            "messages": messages,
            "response_format": {"type": "json_object"},
            "include_reasoning": False,
        }

    async def _attempt(self, messages: list[dict], validator: Validator | None, label: str) -> AttemptResult:
        metrics.counter("llm.attempts")
        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.post(
                    self.url, headers=self._headers(), json=self._payload(messages)
                )
        except TimeoutError:
            result = AttemptResult.retryable(LLMTimeoutError(f"timeout after {self.timeout}s"))
        except httpx.HTTPError as e:
            result = AttemptResult.retryable(LLMError(f"transport: {e}"))
        except Exception as e:
            result = AttemptResult.fatal(LLMError(f"unexpected: {type(e).__name__}: {e}"))
        else:
            result = classify_response(response, validator)

        if result.status is not AttemptStatus.OK:
            logger.warning("llm.attempt_failed", label=label, status=result.status.value, reason=result.reason)
        return result

    async def complete(
        self, messages: list[dict], validator: Validator | None = None, label: str = "completion"
    ) -> RetryOutcome:
        """Run one structured completion.

        Args:
            messages: Ordered ``{"role": ..., "content": ...}`` dicts
            validator: Predicate over the parsed object; False triggers a retry
            label: Call-site name for logs

        Returns:
            RetryOutcome with ``ok`` True and the parsed object, or ``ok`` False
            and the safe-mode sentinel.
        """
        attempts = 0

        async def _counted() -> AttemptResult:
            nonlocal attempts
            attempts += 1
            logger.debug("llm.attempt", label=label, attempt=attempts)
            return await self._attempt(messages, validator, label)

        retrying = completion_retrying(
            label,
            max_attempts=self.max_attempts,
            initial_wait=self.initial_wait,
            max_wait=self.max_wait,
            sleep=self._sleep,
        )
        result = await retrying(_counted)

        if result.status is AttemptStatus.OK:
            return RetryOutcome(parsed=result.parsed, ok=True, attempts=attempts)

        metrics.counter("llm.safe_mode")
        logger.error("llm.safe_mode", label=label, attempts=attempts, reason=result.reason)
        return RetryOutcome(ok=False, attempts=attempts, reason=result.reason)

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
