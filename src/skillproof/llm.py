"""Completion capability: protocol, OpenAI-backed client and JSON extraction."""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, TypeVar, runtime_checkable

import structlog
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from .errors import CompletionError
from .usage import UsageTracker

T = TypeVar("T")

DEFAULT_MODEL = "gpt-4o-mini"

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Completion:
    """Text returned by one completion call plus token accounting."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


@runtime_checkable
class CompletionClient(Protocol):
    """Text-in/text-out completion capability.

    Implementations raise :class:`~skillproof.errors.CompletionError` for
    transport failures and timeouts. Malformed output is not an error at this
    level; callers validate the text themselves.
    """

    async def complete(
        self,
        prompt: str,
        *,
        step: str = "other",
        max_tokens: int = 2000,
        metadata: dict[str, Any] | None = None,
    ) -> Completion:
        """Return the completion for ``prompt``."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Per-call timeout plus bounded exponential backoff."""

    attempts: int = 3
    initial_backoff: float = 1.0
    multiplier: float = 2.0
    timeout: float = 60.0


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    step: str = "other",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``operation`` under ``policy``.

    Only timeouts and retryable :class:`CompletionError` instances are
    retried; any other exception propagates immediately. A ``retry_after``
    hint on the error replaces the computed backoff for that attempt.
    """

    delay = policy.initial_backoff
    last_error: CompletionError | None = None

    for attempt in range(1, policy.attempts + 1):
        try:
            return await asyncio.wait_for(operation(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            last_error = CompletionError(f"Completion timed out after {policy.timeout:g}s")
        except CompletionError as exc:
            if not exc.retryable:
                raise
            last_error = exc

        if attempt < policy.attempts:
            wait = last_error.retry_after if last_error.retry_after is not None else delay
            logger.warning(
                "llm.retrying",
                step=step,
                attempt=attempt,
                wait_seconds=wait,
                error=last_error.message,
            )
            await sleep(wait)
            delay *= policy.multiplier

    assert last_error is not None
    logger.error("llm.retries_exhausted", step=step, attempts=policy.attempts, error=last_error.message)
    raise last_error


def _retry_after(exc: APIStatusError) -> float | None:
    header = exc.response.headers.get("retry-after") if exc.response is not None else None
    if not header:
        return None
    try:
        return float(header)
    except ValueError:
        return None


class OpenAICompletionClient:
    """Completion client backed by the official OpenAI SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        temperature: float = 0.7,
        retry_policy: RetryPolicy | None = None,
        usage: UsageTracker | None = None,
    ) -> None:
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        self.model = model or os.environ.get("SKILLPROOF_MODEL") or DEFAULT_MODEL
        self._temperature = temperature
        self._policy = retry_policy or RetryPolicy()
        self._usage = usage
        # Retries are handled by call_with_retry so the SDK's own loop is disabled.
        self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        logger.info("llm.client_initialized", model=self.model)

    async def complete(
        self,
        prompt: str,
        *,
        step: str = "other",
        max_tokens: int = 2000,
        metadata: dict[str, Any] | None = None,
    ) -> Completion:
        completion = await call_with_retry(
            lambda: self._create(prompt, max_tokens=max_tokens),
            self._policy,
            step=step,
        )
        if self._usage is not None:
            meta = dict(metadata or {})
            self._usage.record(
                step=step,
                model=completion.model,
                input_tokens=completion.input_tokens,
                output_tokens=completion.output_tokens,
                assessment_id=meta.pop("assessment_id", None),
                metadata=meta,
            )
        return completion

    async def _create(self, prompt: str, *, max_tokens: int) -> Completion:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=max_tokens,
            )
        except RateLimitError as exc:
            raise CompletionError(
                f"OpenAI rate limit: {exc}", code="RATE_LIMITED", retry_after=_retry_after(exc)
            ) from exc
        except (APITimeoutError, APIConnectionError) as exc:
            raise CompletionError(f"OpenAI connection error: {exc}") from exc
        except APIStatusError as exc:
            logger.error("llm.api_status_error", status=exc.status_code, error=str(exc))
            raise CompletionError(
                f"OpenAI API error {exc.status_code}: {exc}", retryable=exc.status_code >= 500
            ) from exc
        except APIError as exc:
            logger.error("llm.api_error", error=str(exc))
            raise CompletionError(f"OpenAI API error: {exc}", retryable=False) from exc

        usage = response.usage
        text = response.choices[0].message.content if response.choices else None
        return Completion(
            text=text or "",
            model=response.model or self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Return the first balanced ``{...}`` span in ``text`` that decodes to an object.

    Braces inside JSON string literals are ignored. Prose, markdown fences and
    trailing commentary around the object are tolerated.
    """

    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            try:
                candidate = json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                candidate = None
            if isinstance(candidate, dict):
                return candidate
        start = text.find("{", start + 1)
    return None


def validate_configuration(api_key: str | None = None) -> list[str]:
    """Return the names of required settings that are missing."""
    missing: list[str] = []
    if not (api_key or os.environ.get("OPENAI_API_KEY")):
        missing.append("OPENAI_API_KEY")
    return missing
