"""Tests for the completion provider adapters."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List

import anthropic
import httpx
import openai
import pytest

from leanintel.errors import (
    AuthenticationError,
    InvalidRequestError,
    ProviderConnectionError,
    ProviderTimeoutError,
    RateLimitError,
    ServerError,
    UnsupportedProviderError,
)
from leanintel.providers import (
    AnthropicProvider,
    CompletionOptions,
    GoogleProvider,
    OpenAIProvider,
    ProviderConfig,
    XAIProvider,
    calculate_model_cost,
    create_provider,
    default_model,
    validate_api_key,
)
from leanintel.providers import anthropic_provider, openai_compat
from leanintel.providers.base import error_for_status, model_pricing

OPTIONS = CompletionOptions(max_tokens=512, temperature=0.2)


class RecordingEndpoint:
    """Stands in for ``client.messages`` / ``client.chat.completions``."""

    def __init__(self, response: Any = None, error: BaseException | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _anthropic_client(endpoint: RecordingEndpoint) -> Any:
    return SimpleNamespace(messages=endpoint)


def _openai_client(endpoint: RecordingEndpoint) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=endpoint))


def _response(status: int, headers: Dict[str, str] | None = None) -> httpx.Response:
    request = httpx.Request("POST", "https://api.example.test/v1")
    return httpx.Response(status, headers=headers or {}, request=request)


# ---------------------------------------------------------------------------
# Anthropic


def test_anthropic_completion_joins_text_blocks_and_prices_usage() -> None:
    endpoint = RecordingEndpoint(
        SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="# Title"),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text="Body"),
            ],
            usage=SimpleNamespace(input_tokens=1000, output_tokens=500),
        )
    )
    provider = AnthropicProvider("sk-ant-test", "claude-sonnet-4-6", client=_anthropic_client(endpoint))

    result = asyncio.run(provider.generate_completion("hello", OPTIONS))

    assert result.content == "# Title\nBody"
    assert result.tokens == 1500
    assert result.cost == pytest.approx(0.0105)
    assert endpoint.calls == [
        {
            "model": "claude-sonnet-4-6",
            "max_tokens": 512,
            "temperature": 0.2,
            "messages": [{"role": "user", "content": "hello"}],
        }
    ]
    assert provider.get_name() == "Anthropic"


@pytest.mark.parametrize(
    ("status", "expected"),
    [(429, RateLimitError), (401, AuthenticationError), (400, InvalidRequestError), (529, ServerError)],
)
def test_anthropic_status_errors_are_translated(status: int, expected: type) -> None:
    error = anthropic.APIStatusError("failed", response=_response(status, {"retry-after": "7"}), body=None)
    provider = AnthropicProvider("sk-ant-test", client=_anthropic_client(RecordingEndpoint(error=error)))

    with pytest.raises(expected) as info:
        asyncio.run(provider.generate_completion("hello", OPTIONS))

    assert info.value.status == status
    if expected is RateLimitError:
        assert info.value.retry_after == 7.0


def test_anthropic_transport_errors_are_transient() -> None:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    assert isinstance(
        anthropic_provider.translate_error(anthropic.APITimeoutError(request=request)), ProviderTimeoutError
    )
    assert isinstance(
        anthropic_provider.translate_error(anthropic.APIConnectionError(request=request)),
        ProviderConnectionError,
    )


# ---------------------------------------------------------------------------
# OpenAI-compatible


def test_openai_completion_reads_first_choice() -> None:
    endpoint = RecordingEndpoint(
        SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="# Doc"))],
            usage=SimpleNamespace(prompt_tokens=2000, completion_tokens=1000),
        )
    )
    provider = OpenAIProvider("sk-test", "gpt-4o-mini", client=_openai_client(endpoint))

    result = asyncio.run(provider.generate_completion("hi", OPTIONS))

    assert result.content == "# Doc"
    assert result.cost == pytest.approx(0.0009)
    assert endpoint.calls[0]["model"] == "gpt-4o-mini"


def test_openai_completion_tolerates_missing_usage_and_choices() -> None:
    endpoint = RecordingEndpoint(SimpleNamespace(choices=[], usage=None))
    provider = XAIProvider("xai-test", client=_openai_client(endpoint))

    result = asyncio.run(provider.generate_completion("hi", OPTIONS))

    assert (result.content, result.tokens, result.cost) == ("", 0, 0.0)
    assert provider.get_model() == "grok-3"


def test_openai_errors_name_the_vendor() -> None:
    error = openai.APIStatusError("down", response=_response(503), body=None)
    provider = GoogleProvider("g" * 30, client=_openai_client(RecordingEndpoint(error=error)))

    with pytest.raises(ServerError, match="Google API error"):
        asyncio.run(provider.generate_completion("hi", OPTIONS))


def test_openai_transport_errors_are_transient() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    assert isinstance(openai_compat.translate_error(openai.APITimeoutError(request=request)), ProviderTimeoutError)


# ---------------------------------------------------------------------------
# Factory and pricing


@pytest.mark.parametrize(
    ("provider_type", "cls", "key"),
    [
        ("anthropic", AnthropicProvider, "sk-ant-" + "x" * 30),
        ("openai", OpenAIProvider, "sk-" + "x" * 30),
        ("google", GoogleProvider, "g" * 30),
        ("xai", XAIProvider, "xai-" + "x" * 30),
    ],
)
def test_create_provider(provider_type: str, cls: type, key: str) -> None:
    provider = create_provider(ProviderConfig(type=provider_type, api_key=key))
    assert isinstance(provider, cls)
    assert provider.get_model() == default_model(provider_type)


def test_unsupported_provider() -> None:
    with pytest.raises(UnsupportedProviderError):
        create_provider(ProviderConfig(type="mistral", api_key="x"))
    with pytest.raises(UnsupportedProviderError):
        default_model("mistral")


@pytest.mark.parametrize(
    ("provider", "key", "valid"),
    [
        ("anthropic", "sk-ant-" + "a" * 20, True),
        ("anthropic", "sk-" + "a" * 20, False),
        ("openai", "sk-" + "a" * 20, True),
        ("openai", "sk-short", False),
        ("xai", "xai-" + "a" * 20, True),
        ("google", "a" * 20, True),
        ("google", "a" * 19, False),
        ("openai", "   ", False),
        ("openai", None, False),
    ],
)
def test_validate_api_key(provider: str, key: str | None, valid: bool) -> None:
    assert validate_api_key(provider, key) is valid


def test_pricing_uses_most_specific_model_key() -> None:
    assert model_pricing("openai", "gpt-4.1-mini-2025").input == 0.40
    assert model_pricing("openai", "gpt-4.1").input == 2.0
    assert model_pricing("anthropic", "claude-opus-4").output == 25.0
    assert model_pricing("google", "unknown-model") == model_pricing("google", None)
    assert calculate_model_cost("anthropic", "claude-haiku", 1_000_000, 0) == 1.0


def test_error_for_status_without_status_is_generic() -> None:
    error = error_for_status("boom", None)
    assert type(error).__name__ == "ProviderError"
    assert error.status is None
