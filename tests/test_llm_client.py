"""Tests for the provider client and its error translation."""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from chat_insights.config import settings
from chat_insights.core.exceptions import ProviderBusyError, ProviderError
from chat_insights.services.llm_client import LLMClient, model_supports_json_format
from conftest import text_block

ANTHROPIC_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def anthropic_status_error(status_code, error_class=anthropic.APIStatusError):
    response = httpx.Response(status_code, request=ANTHROPIC_REQUEST)
    return error_class(f"status {status_code}", response=response, body=None)


def anthropic_response(text):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=120, output_tokens=40),
    )


def openai_completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=40, total_tokens=160),
    )


@pytest.fixture
def anthropic_client():
    client = LLMClient(provider="anthropic", fallback_provider="")
    client._anthropic = MagicMock()
    return client


@pytest.fixture
def openai_client():
    client = LLMClient(provider="openai", fallback_provider="")
    client._openai = MagicMock()
    return client


class TestModelSupportsJsonFormat:
    @pytest.mark.parametrize("model", ["gpt-4o-mini", "gpt-3.5-turbo", "openai/gpt-4o", "azure-gpt-4.1"])
    def test_gpt_models(self, model):
        assert model_supports_json_format(model)

    @pytest.mark.parametrize("model", ["", "llama-3-70b", "mistral-large"])
    def test_other_models(self, model):
        assert not model_supports_json_format(model)


class TestAnthropicProvider:
    def test_returns_content_blocks(self, anthropic_client):
        anthropic_client._anthropic.messages.create.return_value = anthropic_response('{"a": 1}')

        content = anthropic_client.complete("system", "user", 500)

        assert content[0].type == "text"
        assert content[0].text == '{"a": 1}'
        kwargs = anthropic_client._anthropic.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["max_tokens"] == 500
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]
        assert kwargs["temperature"] == settings.llm_temperature

    def test_rate_limit_is_busy(self, anthropic_client):
        anthropic_client._anthropic.messages.create.side_effect = anthropic_status_error(
            429, anthropic.RateLimitError
        )
        with pytest.raises(ProviderBusyError) as exc_info:
            anthropic_client.complete("s", "u", 10)
        assert exc_info.value.provider == "anthropic"

    def test_overloaded_is_busy(self, anthropic_client):
        anthropic_client._anthropic.messages.create.side_effect = anthropic_status_error(529)
        with pytest.raises(ProviderBusyError):
            anthropic_client.complete("s", "u", 10)

    def test_server_error_is_provider_error(self, anthropic_client):
        anthropic_client._anthropic.messages.create.side_effect = anthropic_status_error(500)
        with pytest.raises(ProviderError) as exc_info:
            anthropic_client.complete("s", "u", 10)
        assert not isinstance(exc_info.value, ProviderBusyError)

    def test_connection_error(self, anthropic_client):
        anthropic_client._anthropic.messages.create.side_effect = anthropic.APIConnectionError(
            request=ANTHROPIC_REQUEST
        )
        with pytest.raises(ProviderError):
            anthropic_client.complete("s", "u", 10)


class TestOpenAIProvider:
    def test_content_wrapped_as_text_block(self, openai_client, monkeypatch):
        monkeypatch.setattr(settings, "openai_model", "gpt-4o-mini")
        openai_client._openai.chat.completions.create.return_value = openai_completion('{"a": 1}')

        assert openai_client.complete("system", "user", 500) == text_block('{"a": 1}')

        kwargs = openai_client._openai.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_no_json_mode_for_other_models(self, openai_client, monkeypatch):
        monkeypatch.setattr(settings, "openai_model", "llama-3-70b")
        openai_client._openai.chat.completions.create.return_value = openai_completion("hi")

        openai_client.complete("s", "u", 10)

        kwargs = openai_client._openai.chat.completions.create.call_args.kwargs
        assert "response_format" not in kwargs

    def test_missing_content_is_empty(self, openai_client):
        openai_client._openai.chat.completions.create.return_value = openai_completion(None)
        assert openai_client.complete("s", "u", 10) == []

        openai_client._openai.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)
        assert openai_client.complete("s", "u", 10) == []

    def test_rate_limit_is_busy(self, openai_client):
        response = httpx.Response(429, request=OPENAI_REQUEST)
        openai_client._openai.chat.completions.create.side_effect = openai.RateLimitError(
            "slow down", response=response, body=None
        )
        with pytest.raises(ProviderBusyError) as exc_info:
            openai_client.complete("s", "u", 10)
        assert exc_info.value.provider == "openai"


class TestFallback:
    def test_retries_on_fallback_provider(self):
        client = LLMClient(provider="anthropic", fallback_provider="openai")
        with patch.object(
            client,
            "_complete_anthropic",
            side_effect=anthropic.APIConnectionError(request=ANTHROPIC_REQUEST),
        ), patch.object(client, "_complete_openai", return_value=text_block("ok")) as openai_call:
            assert client.complete("s", "u", 10) == text_block("ok")

        openai_call.assert_called_once_with("s", "u", 10)

    def test_last_error_is_raised(self):
        client = LLMClient(provider="anthropic", fallback_provider="openai")
        busy = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=OPENAI_REQUEST), body=None
        )
        with patch.object(
            client,
            "_complete_anthropic",
            side_effect=anthropic.APIConnectionError(request=ANTHROPIC_REQUEST),
        ), patch.object(client, "_complete_openai", side_effect=busy):
            with pytest.raises(ProviderBusyError):
                client.complete("s", "u", 10)

    def test_same_provider_is_not_retried(self):
        client = LLMClient(provider="anthropic", fallback_provider="anthropic")
        with patch.object(
            client,
            "_complete_anthropic",
            side_effect=anthropic.APIConnectionError(request=ANTHROPIC_REQUEST),
        ) as anthropic_call:
            with pytest.raises(ProviderError):
                client.complete("s", "u", 10)
        assert anthropic_call.call_count == 1

    def test_unknown_provider(self):
        client = LLMClient(provider="mystery", fallback_provider="")
        with pytest.raises(ProviderError, match="Unknown LLM provider"):
            client.complete("s", "u", 10)
