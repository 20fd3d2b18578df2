"""Completion provider adapters."""

from .anthropic_provider import AnthropicProvider
from .base import (
    CompletionOptions,
    CompletionProvider,
    CompletionResult,
    ProviderConfig,
    calculate_model_cost,
)
from .factory import create_provider, default_model, validate_api_key
from .openai_compat import GoogleProvider, OpenAIProvider, XAIProvider

__all__ = [
    "AnthropicProvider",
    "CompletionOptions",
    "CompletionProvider",
    "CompletionResult",
    "GoogleProvider",
    "OpenAIProvider",
    "ProviderConfig",
    "XAIProvider",
    "calculate_model_cost",
    "create_provider",
    "default_model",
    "validate_api_key",
]
