"""Anthropic (Claude) completion provider."""

from __future__ import annotations

from typing import Any, Optional

import anthropic

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

logger = get_logger("providers.anthropic")


class AnthropicProvider:
    """Calls ``messages.create`` on the async Anthropic client."""

    name = "Anthropic"
    provider_type = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        *,
        client: Any | None = None,
    ) -> None:
        self.model = model or DEFAULT_MODELS[self.provider_type]
        # Retries are owned by the orchestrator's backoff loop.
        self._client = client if client is not None else anthropic.AsyncAnthropic(
            api_key=api_key, max_retries=0
        )

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> CompletionResult:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise translate_error(exc) from exc

        content = "\n".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        logger.debug("Anthropic usage: %d in / %d out", input_tokens, output_tokens)
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


def translate_error(exc: anthropic.APIError) -> ProviderError:
    message = f"Anthropic API error: {exc}"
    if isinstance(exc, anthropic.APITimeoutError):
        return ProviderTimeoutError(message)
    if isinstance(exc, anthropic.APIConnectionError):
        return ProviderConnectionError(message)
    if isinstance(exc, anthropic.APIStatusError):
        return error_for_status(
            message, exc.status_code, retry_after=parse_retry_after(exc.response.headers)
        )
    return ProviderError(message)


__all__ = ["AnthropicProvider", "translate_error"]
