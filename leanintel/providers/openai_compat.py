"""Providers speaking the OpenAI chat-completions protocol (OpenAI, Gemini, Grok)."""

from __future__ import annotations

from typing import Any, Optional

import openai

from ..errors import ProviderConnectionError, ProviderError, ProviderTimeoutError
from ..logging import get_logger
from .base import (
    DEFAULT_MODELS,
    CompletionOptions,
    CompletionResult,
    calculate_model_cost,
    error_for_status,
    parse_retry_after,
)

logger = get_logger("providers.openai")


class OpenAICompatibleProvider:
    """Shared ``chat.completions.create`` implementation."""

    name = "OpenAI"
    provider_type = "openai"
    base_url: Optional[str] = None

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        *,
        client: Any | None = None,
    ) -> None:
        self.model = model or DEFAULT_MODELS[self.provider_type]
        if client is None:
            client = openai.AsyncOpenAI(api_key=api_key, base_url=self.base_url, max_retries=0)
        self._client = client

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> CompletionResult:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIError as exc:
            raise translate_error(exc, self.name) from exc

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        usage = response.usage
        input_tokens = usage.prompt_tokens if usage is not None else 0
        output_tokens = usage.completion_tokens if usage is not None else 0
        logger.debug("%s usage: %d in / %d out", self.name, input_tokens, output_tokens)
        return CompletionResult(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=self.calculate_cost(input_tokens, output_tokens),
        )

    def get_name(self) -> str:
        return self.name

    def get_model(self) -> str:
        return self.model

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return calculate_model_cost(self.provider_type, self.model, input_tokens, output_tokens)


class OpenAIProvider(OpenAICompatibleProvider):
    name = "OpenAI"
    provider_type = "openai"


class GoogleProvider(OpenAICompatibleProvider):
    name = "Google"
    provider_type = "google"
    base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"


class XAIProvider(OpenAICompatibleProvider):
    name = "xAI"
    provider_type = "xai"
    base_url = "https://api.x.ai/v1"


def translate_error(exc: openai.APIError, vendor: str = "OpenAI") -> ProviderError:
    message = f"{vendor} API error: {exc}"
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(message)
    if isinstance(exc, openai.APIConnectionError):
        return ProviderConnectionError(message)
    if isinstance(exc, openai.APIStatusError):
        return error_for_status(
            message, exc.status_code, retry_after=parse_retry_after(exc.response.headers)
        )
    return ProviderError(message)


__all__ = [
    "GoogleProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "XAIProvider",
    "translate_error",
]
