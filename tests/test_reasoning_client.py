"""Tests for the ReasoningClient — mock the OpenAI SDK underneath."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import APITimeoutError

from a11ynav.errors import ParseError, ReasoningServiceError
from a11ynav.shared.reasoning_client import (
    DryRunClient,
    ReasoningClient,
    complete_json_list,
    extract_json_list,
    retry_delay,
)


def _make_text_response(text: str, usage=None):
    """Create a mock OpenAI chat completion response."""
    message = SimpleNamespace(content=text)
    choice = SimpleNamespace(message=message)
    return SimpleNamespace(choices=[choice], usage=usage)


class TestFromEnv:
    def test_missing_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert ReasoningClient.from_env() is None

    def test_blank_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "   ")
        assert ReasoningClient.from_env() is None

    def test_model_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("A11YNAV_MODEL", "gpt-4o-mini")
        client = ReasoningClient.from_env()
        assert client is not None
        assert client.model == "gpt-4o-mini"


class TestSimpleCompletion:
    @pytest.mark.asyncio
    async def test_returns_text(self, mock_reasoning_client: ReasoningClient) -> None:
        mock_reasoning_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response('{"analyses": []}')
        )
        result = await mock_reasoning_client.simple_completion(system="sys", user_message="hi")
        assert result == '{"analyses": []}'
        kwargs = mock_reasoning_client._client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_reports_tokens(self, mock_reasoning_client: ReasoningClient) -> None:
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=30)
        mock_reasoning_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response("{}", usage=usage)
        )
        seen: list[tuple[int, int]] = []
        await mock_reasoning_client.simple_completion(
            system="sys", user_message="hi", on_tokens=lambda i, o: seen.append((i, o)),
        )
        assert seen == [(120, 30)]

    @pytest.mark.asyncio
    async def test_plain_text_mode(self, mock_reasoning_client: ReasoningClient) -> None:
        mock_reasoning_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response(None)
        )
        result = await mock_reasoning_client.simple_completion(
            system="sys", user_message="hi", json_mode=False,
        )
        assert result == ""
        kwargs = mock_reasoning_client._client.chat.completions.create.await_args.kwargs
        assert "response_format" not in kwargs


class TestRetry:
    def test_delay_bounds(self) -> None:
        for attempt, base in [(0, 2.0), (1, 4.0), (3, 16.0), (9, 16.0)]:
            delay = retry_delay(attempt, RuntimeError("connection reset"))
            assert 0.75 * base <= delay <= 1.25 * base

    @pytest.mark.asyncio
    async def test_retries_timeouts(
        self, mock_reasoning_client: ReasoningClient, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("a11ynav.shared.reasoning_client.retry_delay", lambda a, e: 0.0)
        mock_reasoning_client._client.chat.completions.create = AsyncMock(side_effect=[
            APITimeoutError(request=MagicMock()),
            _make_text_response("{}"),
        ])
        result = await mock_reasoning_client.simple_completion(system="s", user_message="u")
        assert result == "{}"
        assert mock_reasoning_client._client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up(
        self, mock_reasoning_client: ReasoningClient, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("a11ynav.shared.reasoning_client.retry_delay", lambda a, e: 0.0)
        mock_reasoning_client._client.chat.completions.create = AsyncMock(
            side_effect=APITimeoutError(request=MagicMock())
        )
        with pytest.raises(APITimeoutError):
            await mock_reasoning_client.simple_completion(system="s", user_message="u")
        assert mock_reasoning_client._client.chat.completions.create.await_count == 4


class TestExtractJsonList:
    def test_keyed_object(self) -> None:
        assert extract_json_list('{"fixes": [{"a": 1}]}', "fixes") == [{"a": 1}]

    def test_bare_array_in_fence(self) -> None:
        text = 'Here you go:\n```json\n[1, 2, 3]\n```'
        assert extract_json_list(text, "analyses") == [1, 2, 3]

    def test_wrong_key(self) -> None:
        with pytest.raises(ParseError):
            extract_json_list('{"other": [1]}', "analyses")

    def test_wrong_key_does_not_fall_back_to_inner_array(self) -> None:
        text = 'Result:\n{"summary": "ok", "notes": [{"id": "v0"}]}'
        with pytest.raises(ParseError):
            extract_json_list(text, "analyses")

    def test_keyed_object_after_prose(self) -> None:
        text = 'Sure. {"analyses": [{"id": "v0"}]}'
        assert extract_json_list(text, "analyses") == [{"id": "v0"}]

    def test_garbage(self) -> None:
        with pytest.raises(ParseError):
            extract_json_list("I cannot help with that.", "analyses")


class TestCompleteJsonList:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value='{"analyses": [{}, {}]}')
        entries = await complete_json_list(
            client, system="s", user_message="u", key="analyses", expected=2,
        )
        assert entries == [{}, {}]

    @pytest.mark.asyncio
    async def test_length_mismatch(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value='{"analyses": [{}]}')
        with pytest.raises(ParseError, match="Expected 2"):
            await complete_json_list(
                client, system="s", user_message="u", key="analyses", expected=2,
            )

    @pytest.mark.asyncio
    async def test_service_failure(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(side_effect=ConnectionError("reset by peer"))
        with pytest.raises(ReasoningServiceError, match="reset by peer"):
            await complete_json_list(
                client, system="s", user_message="u", key="analyses", expected=1,
            )


class TestDryRunClient:
    @pytest.mark.asyncio
    async def test_one_analysis_per_violation(self) -> None:
        message = "## Violations (2)\n\n### Violation 1: a\n\n### Violation 2: b"
        raw = await DryRunClient().simple_completion(system="Prioritize", user_message=message)
        assert len(json.loads(raw)["analyses"]) == 2

    @pytest.mark.asyncio
    async def test_fix_prompt(self) -> None:
        raw = await DryRunClient().simple_completion(
            system="You are a Code Fix generator", user_message="### Violation 1: x",
        )
        fixes = json.loads(raw)["fixes"]
        assert len(fixes) == 1
        assert fixes[0]["fixed_code"]
