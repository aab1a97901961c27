"""Async OpenAI wrapper for the optional reasoning service.

The scorer and fix generator only ever call ``simple_completion``; both
accept ``None`` instead of a client and then skip straight to their
deterministic fallbacks.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
import re
from typing import Any, Callable, Protocol

from openai import AsyncOpenAI, APIConnectionError, APITimeoutError, RateLimitError

from a11ynav.errors import ParseError, ReasoningServiceError

logger = logging.getLogger(__name__)

MODEL = "gpt-4o"
MAX_TOKENS = 8_192

MAX_ATTEMPTS = 4
BASE_DELAY_S = 2.0
_NOT_RETRYABLE = ("request too large", "context_length_exceeded")
_RETRY_IN = re.compile(r"try again in (\d+(?:\.\d+)?)\s*(ms|s)\b", re.IGNORECASE)

TokensCallback = Callable[[int, int], None]
"""Called with (input_tokens, output_tokens) when a completion finishes."""


class CompletionClient(Protocol):
    async def simple_completion(
        self,
        *,
        system: str,
        user_message: str,
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str: ...


def _suggested_delay(exc: RateLimitError) -> float | None:
    """Seconds the API asked us to wait: ``Retry-After`` header, else the message text."""
    response = getattr(exc, "response", None)
    header = getattr(response, "headers", {}).get("retry-after") if response is not None else None
    if header:
        try:
            return float(header)
        except ValueError:
            logger.debug("Ignoring unparsable Retry-After header %r", header)
    m = _RETRY_IN.search(str(exc))
    if not m:
        return None
    value = float(m.group(1))
    return value / 1000 if m.group(2).lower() == "ms" else value


def retry_delay(attempt: int, exc: Exception) -> float:
    """Backoff before retry ``attempt + 1``: exponential, +/-25% jitter, at least 1s.

    Rate limits wait at least as long as the API suggests.
    """
    base = BASE_DELAY_S * 2 ** min(attempt, 3)
    if isinstance(exc, RateLimitError):
        base = max(base, _suggested_delay(exc) or 0.0)
    return max(1.0, base * random.uniform(0.75, 1.25))


class ReasoningClient:
    """Thin async wrapper around the OpenAI SDK."""

    def __init__(self, api_key: str | None = None, *, model: str = MODEL) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self.model = model

    @classmethod
    def from_env(cls) -> "ReasoningClient | None":
        """Return a client when ``OPENAI_API_KEY`` is set, else ``None``.

        Lets callers detect a missing credential before any network call.
        """
        api_key = os.environ.get("OPENAI_API_KEY", "").strip()
        if not api_key:
            return None
        return cls(api_key=api_key, model=os.environ.get("A11YNAV_MODEL", MODEL))

    async def _create(self, **kwargs: Any) -> Any:
        """``chat.completions.create`` retried on rate limits and connection errors.

        Oversized requests are never retried.
        """
        for attempt in range(MAX_ATTEMPTS):
            try:
                return await self._client.chat.completions.create(**kwargs)
            except (RateLimitError, APIConnectionError, APITimeoutError) as exc:
                if isinstance(exc, RateLimitError) and any(
                    marker in str(exc).lower() for marker in _NOT_RETRYABLE
                ):
                    logger.error("Request exceeds the model's token limit: %s", exc)
                    raise
                if attempt == MAX_ATTEMPTS - 1:
                    raise
                delay = retry_delay(attempt, exc)
                logger.warning(
                    "%s from reasoning service, retrying in %.1fs (attempt %d/%d)",
                    type(exc).__name__, delay, attempt + 1, MAX_ATTEMPTS,
                )
                await asyncio.sleep(delay)

    async def simple_completion(
        self,
        *,
        system: str,
        user_message: str,
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        """Single request/response.

        When ``json_mode`` is True (default), the OpenAI API guarantees
        the response is a valid JSON object.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user_message},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._create(**kwargs)
        usage = getattr(response, "usage", None)
        if on_tokens and usage:
            on_tokens(getattr(usage, "prompt_tokens", 0), getattr(usage, "completion_tokens", 0))
        return response.choices[0].message.content or ""


def extract_json_list(text: str, key: str) -> list[Any]:
    """Extract a JSON array from model output.

    Accepts ``{"<key>": [...]}`` (JSON mode), a response that is a bare
    array, or either of those wrapped in markdown fences. An object without
    a list under ``key`` raises ``ParseError``; arrays nested inside it are
    never picked up instead.
    """
    text = text.strip()

    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if match:
        text = match.group(1).strip()

    decoder = json.JSONDecoder()
    start = 0 if text.startswith("[") else text.find("{")
    if start != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx=start)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict) and isinstance(obj.get(key), list):
            return obj[key]
        if isinstance(obj, list):
            return obj

    raise ParseError(
        f"Could not extract a JSON list from model response (length={len(text)}). "
        f"First 300 chars: {text[:300]!r}"
    )


async def complete_json_list(
    client: CompletionClient,
    *,
    system: str,
    user_message: str,
    key: str,
    expected: int,
    on_tokens: TokensCallback | None = None,
) -> list[Any]:
    """One JSON-mode request whose answer must be a list of ``expected`` entries.

    Service failures raise ``ReasoningServiceError``; unusable answers
    raise ``ParseError``.
    """
    try:
        raw = await client.simple_completion(
            system=system, user_message=user_message, on_tokens=on_tokens,
        )
    except Exception as exc:
        raise ReasoningServiceError(str(exc)) from exc
    logger.debug("Reasoning service output: %s", raw[:500])

    entries = extract_json_list(raw, key)
    if len(entries) != expected:
        raise ParseError(f"Expected {expected} {key}, got {len(entries)}")
    return entries


# ======================================================================
# Dry-run client, zero API calls
# ======================================================================

_DRY_RUN_ANALYSIS = {
    "legal_risk_score": 7,
    "user_impact_score": 8,
    "business_risk_score": 6,
    "technical_complexity": 3,
    "compliance_level": "High",
    "deadline_recommendation": "Fix within 30 days",
    "business_justification": "Dry-run analysis: no reasoning service was contacted.",
    "fix_recommendations": ["Apply the suggested code fix", "Re-run the scan"],
    "estimated_effort": "1-2 hours",
    "business_value": "Dry-run placeholder",
}

_DRY_RUN_FIX = {
    "fixed_code": "<!-- dry-run: no reasoning service was contacted -->",
    "explanation": "Dry-run placeholder fix.",
    "steps": ["Review the violation", "Apply a fix"],
    "testing_recommendations": ["Re-run the scan"],
    "browser_compatibility": ["All modern browsers"],
    "additional_improvements": [],
}


class DryRunClient:
    """Drop-in replacement for ReasoningClient that makes zero API calls.

    Returns one canned entry per ``### Violation`` block in the user
    message, keyed the way the scorer or fix generator asked for.
    """

    async def simple_completion(
        self,
        *,
        system: str,
        user_message: str,
        json_mode: bool = True,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        count = user_message.count("### Violation ")
        if "Code Fix" in system:
            return json.dumps({"fixes": [_DRY_RUN_FIX] * count})
        return json.dumps({"analyses": [_DRY_RUN_ANALYSIS] * count})
