"""Shared LLM calling utilities.

Centralizes provider invocations and the one structured-payload
extraction step every AI task relies on. Calls go through the Anthropic
API (``anthropic.AsyncAnthropic``); tests and alternative backends
plug in through the ``TextProvider`` protocol.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any, Protocol

import anthropic

from mindful.errors import ProviderError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Model name mapping
# ---------------------------------------------------------------------------

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-6",
}

_DEFAULT_MODEL = "claude-haiku-4-5-20251001"

DEFAULT_TIMEOUT = 30.0


def resolve_model(model: str | None) -> str:
    """Resolve a short model name to an API model ID."""
    if model is None:
        return _DEFAULT_MODEL
    return _MODEL_MAP.get(model, model)


# ---------------------------------------------------------------------------
# Provider protocol
# ---------------------------------------------------------------------------


class TextProvider(Protocol):
    """A single request/response text-generation call."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        label: str = "analysis",
    ) -> str: ...


class ClaudeProvider:
    """Text provider backed by the Anthropic Messages API."""

    def __init__(
        self,
        *,
        model: str | None = None,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_tokens: int = 1024,
    ) -> None:
        self._model = resolve_model(model)
        self._api_key = api_key
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            api_key = (self._api_key or os.environ.get("ANTHROPIC_API_KEY", "")).strip()
            if not api_key:
                raise ProviderError("ANTHROPIC_API_KEY not set")
            self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=self._timeout)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        label: str = "analysis",
    ) -> str:
        """Send one message and return the concatenated text blocks.

        When ``schema`` is given it is appended to the system prompt as the
        required output shape.

        Raises:
            ProviderError: On API failure or an empty response.
        """
        client = self._get_client()

        system = system_prompt
        if schema is not None:
            system += "\n\nThe response must be a single JSON value matching this JSON Schema:\n"
            system += json.dumps(schema)

        logger.debug("Calling Anthropic API model=%s (%s)", self._model, label)

        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=system,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIError as exc:
            raise ProviderError(f"Anthropic API failed (label={label}): {exc}") from exc

        text_parts: list[str] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)

        result = "".join(text_parts).strip()
        if not result:
            raise ProviderError(f"Anthropic API returned empty response (label={label})")
        return result


# ---------------------------------------------------------------------------
# Bounded call
# ---------------------------------------------------------------------------


async def call_provider(
    provider: TextProvider,
    system_prompt: str,
    user_prompt: str,
    *,
    schema: dict[str, Any] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    label: str = "analysis",
) -> str:
    """Call ``provider`` with a hard timeout.

    Every failure mode (timeout, transport error, provider-specific
    exception) is reported as ``ProviderError`` so callers have exactly one
    exception to catch before falling back.

    Raises:
        ProviderError: On any failure.
    """
    try:
        return await asyncio.wait_for(
            provider.complete(system_prompt, user_prompt, schema=schema, label=label),
            timeout=timeout,
        )
    except ProviderError:
        raise
    except asyncio.TimeoutError as exc:
        raise ProviderError(f"Provider timed out after {timeout}s (label={label})") from exc
    except Exception as exc:
        raise ProviderError(f"Provider call failed (label={label}): {exc}") from exc


# ---------------------------------------------------------------------------
# JSON output helpers
# ---------------------------------------------------------------------------

_JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_json_fences(text: str) -> str:
    """Strip one surrounding markdown code fence from model output.

    Handles the ```json ... ``` wrapping models add around structured
    output. Anything else is returned stripped but otherwise untouched.
    """
    text = text.strip()
    match = _JSON_FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def extract_json_payload(text: str, *, label: str = "analysis") -> Any:
    """Decode the structured payload from raw model text.

    One normalization pass (fence stripping) followed by a strict decode.

    Raises:
        ProviderError: If the text is empty or not valid JSON.
    """
    cleaned = strip_json_fences(text)
    if not cleaned:
        raise ProviderError(f"Empty payload (label={label})")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ProviderError(f"Response is not valid JSON (label={label}): {exc}") from exc
